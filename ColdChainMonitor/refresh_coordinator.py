"""Refresh coordinator - fetches all endpoints concurrently and merges into the store."""
import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from telemetry_provider import TelemetryProviderBase, TelemetryProviderError
from telemetry_store import StoreView, TelemetryStore

CONNECTION_WARNING = "Connection error. Retrying..."


class ConnectivityState(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class RefreshOutcome(Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PerformanceMetrics:
    api_calls: int = 0
    avg_response_time_ms: float = 0.0
    last_update: Optional[datetime] = None

    def record(self, sample_ms: float, now: datetime) -> "PerformanceMetrics":
        """Fold one latency sample into the running mean without keeping samples."""
        count = self.api_calls + 1
        average = (self.avg_response_time_ms * (count - 1) + sample_ms) / count
        return PerformanceMetrics(api_calls=count, avg_response_time_ms=average, last_update=now)


@dataclass(frozen=True)
class DashboardState:
    """Everything a presentation layer may read, as one consistent object."""
    view: StoreView
    connectivity: ConnectivityState
    metrics: PerformanceMetrics


class RefreshCoordinator:
    """
    Runs refresh cycles against a telemetry provider.

    A cycle issues the status, history and alerts fetches concurrently. Each
    successful fetch replaces its store field as soon as it lands, so one
    failing endpoint never holds back the others. Only one cycle may be in
    flight; overlapping calls are skipped.
    """

    def __init__(
        self,
        provider: TelemetryProviderBase,
        store: TelemetryStore,
        on_warning: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize refresh coordinator.

        Args:
            provider: Telemetry source; its blocking calls run in worker threads
            store: Store this coordinator is the only writer of
            on_warning: Called with a user-visible message when a cycle fails
            clock: Monotonic clock in seconds used for latency measurement
        """
        self.provider = provider
        self.store = store
        self.on_warning = on_warning
        self.clock = clock

        self._listeners: List[Callable[[str], None]] = []
        self._in_flight = False
        self._connectivity = ConnectivityState.DISCONNECTED
        self._metrics = PerformanceMetrics()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def connectivity(self) -> ConnectivityState:
        return self._connectivity

    @property
    def metrics(self) -> PerformanceMetrics:
        return self._metrics

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with the field name after each store update."""
        self._listeners.append(callback)

    def state(self) -> DashboardState:
        return DashboardState(
            view=self.store.read(),
            connectivity=self._connectivity,
            metrics=replace(self._metrics),
        )

    async def refresh_all(self) -> RefreshOutcome:
        """
        Run one refresh cycle.

        Returns:
            RefreshOutcome.SKIPPED if a cycle is already running,
            RefreshOutcome.FAILED if no endpoint could be fetched or the
            orchestration raised, RefreshOutcome.COMPLETED otherwise
        """
        if self._in_flight:
            logging.debug("Refresh already in flight, skipping")
            return RefreshOutcome.SKIPPED

        self._in_flight = True
        start = self.clock()
        try:
            results = await asyncio.gather(
                self._fetch("latest", self.provider.get_status, self.store.replace_snapshot),
                self._fetch("history", self.provider.get_history, self.store.replace_history),
                self._fetch("alerts", self.provider.get_alerts, self.store.replace_alerts),
                return_exceptions=True,
            )
            # Let every fetch settle before surfacing an unexpected error
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            if not any(results):
                raise TelemetryProviderError("All telemetry endpoints failed")

            elapsed_ms = (self.clock() - start) * 1000
            self._metrics = self._metrics.record(elapsed_ms, datetime.now())
            self._set_connectivity(ConnectivityState.CONNECTED)
            logging.info(
                f"Refresh complete: {sum(results)}/3 endpoints in {elapsed_ms:.0f}ms "
                f"(avg {self._metrics.avg_response_time_ms:.0f}ms over {self._metrics.api_calls} cycles)"
            )
            return RefreshOutcome.COMPLETED
        except Exception as e:
            logging.error(f"Error fetching data: {e}")
            self._set_connectivity(ConnectivityState.DISCONNECTED)
            if self.on_warning is not None:
                self.on_warning(CONNECTION_WARNING)
            return RefreshOutcome.FAILED
        finally:
            self._in_flight = False

    async def _fetch(self, name: str, fetch, apply) -> bool:
        """Fetch one endpoint; a failure leaves the store field untouched."""
        try:
            value = await asyncio.to_thread(fetch)
        except TelemetryProviderError as e:
            logging.warning(f"Error fetching {name}: {e}")
            return False
        apply(value)
        self._notify(name)
        return True

    def _notify(self, name: str) -> None:
        for callback in self._listeners:
            try:
                callback(name)
            except Exception:
                logging.exception(f"Update listener failed for {name}")

    def _set_connectivity(self, state: ConnectivityState) -> None:
        if state is not self._connectivity:
            logging.info(f"Connectivity: {self._connectivity.value} -> {state.value}")
        self._connectivity = state
