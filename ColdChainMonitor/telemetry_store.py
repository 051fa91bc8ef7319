"""In-memory store for the latest cold-chain telemetry."""
from dataclasses import dataclass
from typing import Iterable, Tuple

from telemetry_data import Alert, HistoryEntry, Snapshot


@dataclass(frozen=True)
class StoreView:
    """Immutable view of the store fields as they stood when read."""
    latest: Snapshot
    history: Tuple[HistoryEntry, ...]
    alerts: Tuple[Alert, ...]


class TelemetryStore:
    """
    Holds one snapshot, one history sequence and one alert set.

    Each field is replaced wholesale, never merged. Readers always see a
    complete old or complete new value per field, but fields may come from
    different refresh cycles.
    """

    def __init__(self):
        self._latest: Snapshot = Snapshot.empty()
        self._history: Tuple[HistoryEntry, ...] = ()
        self._alerts: Tuple[Alert, ...] = ()

    def replace_snapshot(self, snapshot: Snapshot) -> None:
        self._latest = snapshot

    def replace_history(self, history: Iterable[HistoryEntry]) -> None:
        self._history = tuple(history)

    def replace_alerts(self, alerts: Iterable[Alert]) -> None:
        self._alerts = tuple(alerts)

    def read(self) -> StoreView:
        return StoreView(latest=self._latest, history=self._history, alerts=self._alerts)
