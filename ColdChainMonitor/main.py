"""Headless cold-chain monitor: polls the backend and logs a live dashboard."""
import argparse
import asyncio
import logging
import os
import signal
import sys
import time
from typing import List, Sequence, Tuple

from dotenv import load_dotenv

from coldchain_api_provider import ColdChainApiProvider
from derivation import (
    ANALYTICS_BAND,
    DASHBOARD_BAND,
    RSL_HORIZON_DAYS,
    alert_summary,
    analytics_recommendations,
    calculate_statistics,
    compliance_rate,
    dashboard_insights,
    distance_traveled,
    format_uptime,
    journey_milestones,
    rsl_progress,
)
from poll_scheduler import DEFAULT_POLL_INTERVAL, PollScheduler
from refresh_coordinator import DashboardState, RefreshCoordinator
from telemetry_data import HistoryEntry, Snapshot
from telemetry_export import write_export
from telemetry_store import TelemetryStore

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "coldchain-monitor.log")
PLACEHOLDER = "--"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Cold-chain telemetry monitor")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--interval", type=float, default=None, help="Seconds between refreshes")
    parser.add_argument("--timeout", type=float, default=10, help="HTTP timeout in seconds")
    parser.add_argument("--once", action="store_true", help="Run a single refresh and exit")
    parser.add_argument("--export-dir", default=None, help="Write a JSON export here on exit")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def load_config(interval_override=None) -> Tuple[str, float]:
    load_dotenv()
    base_url = os.getenv("COLDCHAIN_API_BASE", ColdChainApiProvider.DEFAULT_BASE_URL)
    interval = os.getenv("COLDCHAIN_POLL_INTERVAL")

    if not base_url.startswith(("http://", "https://")):
        raise SystemExit(f"Invalid COLDCHAIN_API_BASE: {base_url}")

    if interval_override is not None:
        interval_val = interval_override
    elif interval:
        try:
            interval_val = float(interval)
        except ValueError as exc:
            raise SystemExit(f"Invalid COLDCHAIN_POLL_INTERVAL: {exc}") from exc
    else:
        interval_val = DEFAULT_POLL_INTERVAL

    if interval_val <= 0:
        raise SystemExit(f"Poll interval must be positive, got {interval_val}")

    logging.info("Configuration loaded: api=%s interval=%ss", base_url, interval_val)
    return base_url, interval_val


def check_export_dir(export_dir) -> None:
    """Fail at startup rather than after the monitor has run."""
    if export_dir is None:
        return
    if not os.path.isdir(export_dir):
        raise SystemExit(f"Export directory does not exist: {export_dir}")
    if not os.access(export_dir, os.W_OK):
        raise SystemExit(f"Export directory is not writable: {export_dir}")


def _fmt(value, suffix: str = "", digits: int = 1) -> str:
    if value is None:
        return f"{PLACEHOLDER}{suffix}"
    return f"{value:.{digits}f}{suffix}"


def format_snapshot_lines(latest: Snapshot) -> Tuple[str, str, str]:
    """Readings line, KPI line and position line; unseen values show placeholders."""
    readings = (
        f"Temp {_fmt(latest.temperature, '°C')}  Hum {_fmt(latest.humidity, '%')}  "
        f"RSL {_fmt(latest.predicted_rsl_days, 'd')}  Status {latest.status.value.title()}"
    )
    kpis = f"Avg {_fmt(latest.avg_temp, '°C')}  Journey {_fmt(latest.journey_time_hours, 'h')}"
    if latest.has_position:
        position = f"Position {latest.lat:.6f}, {latest.lng:.6f}"
    else:
        position = f"Position {PLACEHOLDER}"
    return readings, kpis, position


def format_analytics(latest: Snapshot, history: Sequence[HistoryEntry]) -> List[str]:
    """Shelf-life band, analytics statistics, recommendations and journey timeline."""
    lines = []
    progress = rsl_progress(latest.predicted_rsl_days)
    if progress is not None:
        percentage, severity = progress
        lines.append(f"RSL {percentage:.0f}% of {RSL_HORIZON_DAYS:.0f} days [{severity.value}]")

    if not history:
        return lines

    stats = calculate_statistics(history)
    lines.append(
        f"Analytics: compliance {stats.compliance_rate}% "
        f"({ANALYTICS_BAND.low:g}-{ANALYTICS_BAND.high:g}°C)  "
        f"trend {stats.temp_trend:+.1f}°C  {stats.reading_rate:.1f} readings/hour"
    )
    for recommendation in analytics_recommendations(stats, len(history)):
        lines.append(f"Recommendation: {recommendation}")
    for milestone in journey_milestones(history):
        if milestone.has_position:
            where = f"{milestone.lat:.4f}, {milestone.lng:.4f}"
        else:
            where = PLACEHOLDER
        lines.append(f"Milestone {milestone.timestamp}  {milestone.temperature:.1f}°C  {where}")
    return lines


def format_dashboard(state: DashboardState, uptime_seconds: float) -> List[str]:
    view = state.view
    readings, kpis, position = format_snapshot_lines(view.latest)

    compliance = compliance_rate(view.history, DASHBOARD_BAND)
    compliance_text = f"{compliance}%" if compliance is not None else PLACEHOLDER
    stats = calculate_statistics(view.history)
    summary = alert_summary(view.alerts)

    lines = [
        readings,
        f"{kpis}  Compliance {compliance_text}  Alerts {summary.total}",
        f"{position}  Distance {distance_traveled(view.history):.1f} km",
        f"History {len(view.history)} readings over {stats.time_span_hours:.1f}h  "
        f"avg {stats.avg_temp:.1f}°C / {stats.avg_humidity:.1f}%",
        f"Alerts: {summary.critical} critical, {summary.warning} warning, "
        f"{summary.resolved} resolved - {summary.verdict}",
    ]
    for insight in dashboard_insights(view.latest, view.history):
        lines.append(f"[{insight.severity.value}] {insight.title}: {insight.message}")
    lines.extend(format_analytics(view.latest, view.history))

    metrics = state.metrics
    if metrics.last_update is not None:
        lines.append(
            f"API {state.connectivity.value}  Response: {metrics.avg_response_time_ms:.0f}ms | "
            f"Uptime: {format_uptime(uptime_seconds)}"
        )
    else:
        lines.append(f"API {state.connectivity.value}")
    return lines


class ConsoleDashboard:
    """Logs the dashboard whenever the coordinator reports new data."""

    def __init__(self, coordinator: RefreshCoordinator):
        self.coordinator = coordinator
        self.started = time.time()
        self._last_rendered: List[str] = []

    def on_update(self, field_name: str) -> None:
        logging.debug("Store field updated: %s", field_name)
        lines = format_dashboard(self.coordinator.state(), time.time() - self.started)
        # Skip identical frames so repeated polls do not flood the log
        if lines == self._last_rendered:
            return
        self._last_rendered = lines
        for line in lines:
            logging.info(line)

    def on_warning(self, message: str) -> None:
        logging.warning("%s", message)


def build_coordinator(base_url: str, args: argparse.Namespace) -> Tuple[RefreshCoordinator, ConsoleDashboard]:
    provider = ColdChainApiProvider(base_url=base_url, timeout=args.timeout)
    coordinator = RefreshCoordinator(provider=provider, store=TelemetryStore())
    dashboard = ConsoleDashboard(coordinator)
    coordinator.on_warning = dashboard.on_warning
    coordinator.add_listener(dashboard.on_update)
    logging.info("Refresh coordinator ready (timeout=%ss)", args.timeout)
    return coordinator, dashboard


async def run_monitor(coordinator: RefreshCoordinator, interval: float) -> None:
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    scheduler = PollScheduler(coordinator, interval=interval)

    def request_stop(signum):
        logging.info("Received signal %s, shutting down", signum)
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, request_stop, signal.SIGINT)
    loop.add_signal_handler(signal.SIGTERM, request_stop, signal.SIGTERM)
    # SIGUSR1/SIGUSR2 stand in for the consumer becoming hidden/visible
    loop.add_signal_handler(signal.SIGUSR1, scheduler.set_visibility, False)
    loop.add_signal_handler(signal.SIGUSR2, scheduler.set_visibility, True)

    scheduler.start()
    try:
        await stop_event.wait()
    finally:
        scheduler.stop()
        await scheduler.drain()


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    base_url, interval = load_config(args.interval)
    check_export_dir(args.export_dir)
    coordinator, _ = build_coordinator(base_url, args)

    if args.once:
        outcome = asyncio.run(coordinator.refresh_all())
        logging.info("Single refresh finished: %s", outcome.value)
    else:
        asyncio.run(run_monitor(coordinator, interval))
        logging.info("Monitor stopped")

    if args.export_dir:
        write_export(coordinator.state().view, args.export_dir)


if __name__ == "__main__":
    main()
