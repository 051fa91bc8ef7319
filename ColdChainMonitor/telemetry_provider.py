"""Telemetry provider abstraction - allows swapping different monitoring backends."""
from abc import ABC, abstractmethod
from typing import List

from telemetry_data import Alert, HistoryEntry, Snapshot


class TelemetryProviderBase(ABC):
    """Abstract base class for cold-chain telemetry sources."""

    @abstractmethod
    def get_status(self) -> Snapshot:
        """
        Fetch the latest telemetry snapshot.

        Returns:
            Snapshot: Most recent reading

        Raises:
            TelemetryProviderError: If the provider fails to fetch data
        """
        pass

    @abstractmethod
    def get_history(self) -> List[HistoryEntry]:
        """
        Fetch the reading history, ordered by timestamp.

        Raises:
            TelemetryProviderError: If the provider fails to fetch data
        """
        pass

    @abstractmethod
    def get_alerts(self) -> List[Alert]:
        """
        Fetch all recorded alerts.

        Raises:
            TelemetryProviderError: If the provider fails to fetch data
        """
        pass


class TelemetryProviderError(Exception):
    """Exception raised when a telemetry provider fails."""
    pass
