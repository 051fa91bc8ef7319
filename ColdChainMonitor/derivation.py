"""Derived analytics over telemetry - pure functions for testability.

Nothing in this module performs I/O or mutates its inputs; every result is a
function of the history, alerts and snapshot passed in.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

from telemetry_data import Alert, AlertSeverity, HistoryEntry, Snapshot, parse_timestamp

EARTH_RADIUS_KM = 6371.0
OPTIMAL_JOURNEY_HOURS = 24.0
TREND_WINDOW = 5
STABLE_TREND_THRESHOLD = 0.5
MAX_INSIGHTS = 4
RSL_HORIZON_DAYS = 30.0


class TemperatureBand(NamedTuple):
    """Inclusive acceptable temperature range in °C."""
    low: float
    high: float

    def contains(self, temperature: float) -> bool:
        return self.low <= temperature <= self.high


# Dashboard "compliance" uses the wide band, analytics the refrigerated one
DASHBOARD_BAND = TemperatureBand(15.0, 25.0)
ANALYTICS_BAND = TemperatureBand(2.0, 8.0)


class TrendDirection(Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class InsightSeverity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


@dataclass(frozen=True)
class Insight:
    severity: InsightSeverity
    title: str
    message: str


@dataclass(frozen=True)
class HistoryStatistics:
    avg_temp: float = 0.0
    avg_humidity: float = 0.0
    temp_trend: float = 0.0
    compliance_rate: int = 0
    time_span_hours: float = 0.0
    reading_rate: float = 0.0  # readings per hour


@dataclass(frozen=True)
class AlertSummary:
    critical: int
    warning: int
    resolved: int
    total: int

    @property
    def verdict(self) -> str:
        return alert_verdict(self)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def compliance_rate(history: Sequence[HistoryEntry], band: TemperatureBand) -> Optional[int]:
    """
    Percentage of readings whose temperature lies inside the band.

    Args:
        history: Readings to evaluate
        band: Acceptable range (DASHBOARD_BAND or ANALYTICS_BAND)

    Returns:
        Integer percentage in [0, 100], or None when there is no history
    """
    if not history:
        return None
    in_range = sum(1 for entry in history if band.contains(entry.temperature))
    return _round_half_up(100 * in_range / len(history))


def temperature_trend(temperatures: Sequence[float]) -> float:
    """Endpoint difference, last minus first. Not a regression slope."""
    if len(temperatures) < 2:
        return 0.0
    return temperatures[-1] - temperatures[0]


def recent_trend(history: Sequence[HistoryEntry], window: int = TREND_WINDOW) -> float:
    return temperature_trend([entry.temperature for entry in history[-window:]])


def classify_trend(trend: float) -> TrendDirection:
    if abs(trend) < STABLE_TREND_THRESHOLD:
        return TrendDirection.STABLE
    return TrendDirection.RISING if trend > 0 else TrendDirection.FALLING


def calculate_statistics(history: Sequence[HistoryEntry]) -> HistoryStatistics:
    """
    Summary statistics over the full history.

    The trend here compares the mean of the first half against the mean of
    the second half. Compliance uses the narrow analytics band. An empty
    history yields all-zero statistics.
    """
    if not history:
        return HistoryStatistics()

    temps = [entry.temperature for entry in history]
    humidities = [entry.humidity for entry in history]

    midpoint = len(temps) // 2
    if midpoint > 0:
        temp_trend = _mean(temps[midpoint:]) - _mean(temps[:midpoint])
    else:
        temp_trend = 0.0

    time_span = 0.0
    if len(history) > 1:
        first = parse_timestamp(history[0].timestamp)
        last = parse_timestamp(history[-1].timestamp)
        if first is not None and last is not None:
            time_span = (last - first).total_seconds() / 3600

    return HistoryStatistics(
        avg_temp=_mean(temps),
        avg_humidity=_mean(humidities),
        temp_trend=temp_trend,
        compliance_rate=compliance_rate(history, ANALYTICS_BAND),
        time_span_hours=time_span,
        reading_rate=len(history) / (time_span or 1),
    )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_traveled(history: Sequence[HistoryEntry]) -> float:
    """
    Total distance in km over consecutive positioned readings.

    Readings without a position are skipped: the leg runs from the previous
    positioned reading to the next one, with nothing interpolated in between.
    """
    positioned = [entry for entry in history if entry.has_position]
    total = 0.0
    for prev, curr in zip(positioned, positioned[1:]):
        total += haversine_distance(prev.lat, prev.lng, curr.lat, curr.lng)
    return total


def journey_efficiency(hours: float) -> float:
    """Score in [0, 1] against an assumed optimal 24 hour transit."""
    score = 1 - abs(hours - OPTIMAL_JOURNEY_HOURS) / OPTIMAL_JOURNEY_HOURS
    return max(0.0, min(1.0, score))


def _trend_insight(history: Sequence[HistoryEntry]) -> Optional[Insight]:
    if len(history) <= TREND_WINDOW:
        return None
    trend = recent_trend(history)
    direction = classify_trend(trend)
    if direction is TrendDirection.RISING:
        return Insight(
            InsightSeverity.WARNING,
            "Rising Temperature Detected",
            f"Temperature has increased by {trend:.1f}°C in the last {TREND_WINDOW} readings. Monitor closely.",
        )
    if direction is TrendDirection.FALLING:
        return Insight(
            InsightSeverity.INFO,
            "Temperature Decreasing",
            f"Temperature has dropped by {abs(trend):.1f}°C. Conditions improving.",
        )
    return Insight(
        InsightSeverity.SUCCESS,
        "Stable Temperature",
        "Temperature remains stable. Good cold chain management.",
    )


def _rsl_insight(days: Optional[float]) -> Optional[Insight]:
    if days is None:
        return None
    if days < 10:
        return Insight(
            InsightSeverity.CRITICAL,
            "Critical RSL Alert",
            f"Only {days:.1f} days of shelf life remaining. Expedite delivery!",
        )
    if days < 20:
        return Insight(
            InsightSeverity.WARNING,
            "Moderate RSL",
            f"{days:.1f} days of shelf life. Plan delivery within 2 weeks.",
        )
    return Insight(
        InsightSeverity.SUCCESS,
        "Excellent RSL",
        f"{days:.1f} days of shelf life. Products are in optimal condition.",
    )


def _humidity_insight(humidity: Optional[float]) -> Optional[Insight]:
    if humidity is None:
        return None
    if humidity > 80:
        return Insight(
            InsightSeverity.WARNING,
            "High Humidity",
            f"Humidity at {humidity:.1f}%. Risk of condensation. Check ventilation.",
        )
    if humidity < 50:
        return Insight(
            InsightSeverity.INFO,
            "Low Humidity",
            f"Humidity at {humidity:.1f}%. Dry conditions detected.",
        )
    return None


def _journey_insight(hours: Optional[float]) -> Optional[Insight]:
    if hours is None:
        return None
    efficiency = journey_efficiency(hours)
    return Insight(
        InsightSeverity.SUCCESS if efficiency > 0.8 else InsightSeverity.INFO,
        "Journey Progress",
        f"{hours:.1f}h elapsed. Efficiency: {efficiency * 100:.0f}%",
    )


def dashboard_insights(latest: Snapshot, history: Sequence[HistoryEntry]) -> List[Insight]:
    """
    Build the dashboard insight list in fixed priority order.

    Order is trend, remaining shelf life, humidity, journey progress; at most
    four are returned. Nothing is produced until a temperature has been seen.
    """
    if latest.temperature is None:
        return []
    candidates = [
        _trend_insight(history),
        _rsl_insight(latest.predicted_rsl_days),
        _humidity_insight(latest.humidity),
        _journey_insight(latest.journey_time_hours),
    ]
    return [insight for insight in candidates if insight is not None][:MAX_INSIGHTS]


def analytics_recommendations(stats: HistoryStatistics, reading_count: int) -> List[str]:
    """Operator recommendations for the analytics view."""
    recommendations = []
    if stats.compliance_rate < 80:
        recommendations.append(
            f"Temperature compliance is {stats.compliance_rate}%. Consider improving cooling system efficiency."
        )
    else:
        recommendations.append(
            f"Excellent temperature control at {stats.compliance_rate}% compliance. Maintain current procedures."
        )

    if stats.temp_trend > 1:
        recommendations.append("Warming trend detected. Check refrigeration unit performance and door seals.")
    elif stats.temp_trend < -1:
        recommendations.append("Cooling trend observed. Monitor for potential over-cooling or freezing risk.")

    if stats.avg_humidity > 75:
        recommendations.append("High humidity levels detected. Ensure adequate ventilation to prevent condensation.")

    if reading_count > 100:
        recommendations.append(
            f"{reading_count} data points collected. Consider archiving old data for better performance."
        )
    return recommendations


def journey_milestones(history: Sequence[HistoryEntry], count: int = 5) -> List[HistoryEntry]:
    """Evenly spaced readings for the journey timeline."""
    if not history:
        return []
    step = max(1, len(history) // count)
    return [entry for index, entry in enumerate(history) if index % step == 0]


def rsl_progress(days: Optional[float], horizon: float = RSL_HORIZON_DAYS) -> Optional[Tuple[float, InsightSeverity]]:
    """
    Remaining shelf life as a percentage of the horizon, with a severity band.

    Returns:
        (percentage in [0, 100], severity) or None when RSL is not known
    """
    if days is None:
        return None
    percentage = max(0.0, min(100.0, days / horizon * 100))
    if percentage < 30:
        return percentage, InsightSeverity.CRITICAL
    if percentage < 60:
        return percentage, InsightSeverity.WARNING
    return percentage, InsightSeverity.SUCCESS


def alert_summary(alerts: Sequence[Alert]) -> AlertSummary:
    return AlertSummary(
        critical=sum(1 for alert in alerts if alert.severity is AlertSeverity.CRITICAL),
        warning=sum(1 for alert in alerts if alert.severity is AlertSeverity.WARNING),
        resolved=sum(1 for alert in alerts if not alert.is_active),
        total=len(alerts),
    )


def alert_verdict(summary: AlertSummary) -> str:
    """One-line priority verdict; the first matching rule wins."""
    if summary.total == 0:
        return "No alerts detected. All systems operating normally. Excellent cold chain management!"
    if summary.critical > 0:
        return f"{summary.critical} critical alert(s) require immediate attention. Review temperature control systems."
    if summary.warning > 0:
        return f"{summary.warning} warning(s) detected. Monitor conditions closely to prevent escalation."
    return f"{summary.resolved} of {summary.total} alerts resolved. Good response time!"


def format_uptime(seconds: float) -> str:
    minutes = int(seconds // 60)
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"
