"""Cold-chain domain model - pure data structures independent of any API."""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional


class SystemStatus(Enum):
    """Overall shipment status reported by the monitoring backend."""
    NORMAL = "NORMAL"
    ALERT = "ALERT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "SystemStatus":
        if value == cls.NORMAL.value:
            return cls.NORMAL
        if value == cls.ALERT.value:
            return cls.ALERT
        return cls.UNKNOWN


class AlertSeverity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


# Alert types published by the monitoring backend
ALERT_SEVERITY_BY_TYPE: Dict[str, AlertSeverity] = {
    "High Temperature": AlertSeverity.CRITICAL,
    "High Humidity": AlertSeverity.CRITICAL,
    "Critical": AlertSeverity.CRITICAL,
    "Low Temperature": AlertSeverity.WARNING,
    "Low Humidity": AlertSeverity.WARNING,
    "Warning": AlertSeverity.WARNING,
}

UNKNOWN_TYPE_WARNING_CACHE = 64


@lru_cache(maxsize=UNKNOWN_TYPE_WARNING_CACHE)
def _warn_unknown_alert_type(alert_type: str) -> None:
    # Cached so a recurring type is reported once, bounded to the cache size
    logging.warning(f"Unknown alert type '{alert_type}', classified as info")


def classify_alert_type(alert_type: str) -> AlertSeverity:
    """
    Map an alert type string to its severity bucket.

    Unknown types fall into INFO and are logged the first time they are seen.
    """
    severity = ALERT_SEVERITY_BY_TYPE.get(alert_type)
    if severity is None:
        _warn_unknown_alert_type(alert_type)
        return AlertSeverity.INFO
    return severity


def optional_float(value: Any) -> Optional[float]:
    """Coerce a JSON value to float, treating anything malformed as absent."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (a trailing 'Z' is accepted).

    Timestamps without an offset are taken as UTC so every parsed value is
    timezone-aware and can be compared with any other.
    """
    if not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _put(data: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


@dataclass(frozen=True)
class Snapshot:
    """Latest telemetry reading. A None field has not been observed yet."""
    timestamp: Optional[str] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    predicted_rsl_days: Optional[float] = None
    avg_temp: Optional[float] = None
    journey_time_hours: Optional[float] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    status: SystemStatus = SystemStatus.UNKNOWN

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        if not isinstance(data, dict):
            raise ValueError(f"Status payload must be an object, got {type(data).__name__}")
        return cls(
            timestamp=optional_str(data.get("timestamp")),
            temperature=optional_float(data.get("temperature")),
            humidity=optional_float(data.get("humidity")),
            predicted_rsl_days=optional_float(data.get("predicted_rsl_days")),
            avg_temp=optional_float(data.get("avg_temp")),
            journey_time_hours=optional_float(data.get("journey_time_hours")),
            lat=optional_float(data.get("lat")),
            lng=optional_float(data.get("lng")),
            status=SystemStatus.parse(data.get("status")),
        )

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        _put(data, "timestamp", self.timestamp)
        _put(data, "temperature", self.temperature)
        _put(data, "humidity", self.humidity)
        _put(data, "predicted_rsl_days", self.predicted_rsl_days)
        _put(data, "avg_temp", self.avg_temp)
        _put(data, "journey_time_hours", self.journey_time_hours)
        _put(data, "lat", self.lat)
        _put(data, "lng", self.lng)
        if self.status is not SystemStatus.UNKNOWN:
            data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class HistoryEntry:
    """One past reading from the history endpoint."""
    timestamp: str
    temperature: float
    humidity: float
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        temperature = optional_float(data["temperature"])
        humidity = optional_float(data["humidity"])
        if temperature is None or humidity is None:
            raise ValueError(f"History entry has no usable reading: {data!r}")
        return cls(
            timestamp=str(data["timestamp"]),
            temperature=temperature,
            humidity=humidity,
            lat=optional_float(data.get("lat")),
            lng=optional_float(data.get("lng")),
        )

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "temperature": self.temperature,
            "humidity": self.humidity,
        }
        _put(data, "lat", self.lat)
        _put(data, "lng", self.lng)
        return data


@dataclass(frozen=True)
class Alert:
    """A temperature or humidity excursion. No end_time means still ongoing."""
    type: str
    start_time: str
    end_time: Optional[str] = None
    peak_value: Optional[float] = None
    severity: Optional[AlertSeverity] = field(default=None, compare=False)

    def __post_init__(self):
        # Severity is fixed at ingestion so display code never parses the type text
        if self.severity is None:
            object.__setattr__(self, "severity", classify_alert_type(self.type))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Alert":
        return cls(
            type=str(data["type"]),
            start_time=str(data["start_time"]),
            end_time=optional_str(data.get("end_time")),
            peak_value=optional_float(data.get("peak_value")),
        )

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "start_time": self.start_time,
        }
        _put(data, "end_time", self.end_time)
        _put(data, "peak_value", self.peak_value)
        return data
