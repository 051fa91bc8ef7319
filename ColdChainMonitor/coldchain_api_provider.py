"""ColdChain monitoring backend REST provider implementation."""
import logging
from typing import Any, List

import requests

from telemetry_data import Alert, HistoryEntry, Snapshot
from telemetry_provider import TelemetryProviderBase, TelemetryProviderError


class ColdChainApiProvider(TelemetryProviderBase):
    """
    Telemetry provider using the ColdChain monitoring REST API.

    The backend exposes three read-only JSON endpoints under a common base:
    /status (single object), /history (list of readings) and /alerts
    (list of excursion events).
    """

    DEFAULT_BASE_URL = "https://my-coldchain-backend.onrender.com/api"

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10):
        """
        Initialize ColdChain API provider.

        Args:
            base_url: API root, without trailing slash
            timeout: HTTP request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_status(self) -> Snapshot:
        data = self._get_json("status")
        try:
            snapshot = Snapshot.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse status response: {e}", exc_info=True)
            raise TelemetryProviderError(f"Failed to parse status response: {str(e)}")
        logging.debug(f"Parsed status: temp={snapshot.temperature} status={snapshot.status.value}")
        return snapshot

    def get_history(self) -> List[HistoryEntry]:
        data = self._get_json("history")
        history = self._parse_list("history", data, HistoryEntry.from_dict)
        logging.debug(f"Parsed {len(history)} history entries")
        return history

    def get_alerts(self) -> List[Alert]:
        data = self._get_json("alerts")
        alerts = self._parse_list("alerts", data, Alert.from_dict)
        logging.debug(f"Parsed {len(alerts)} alerts")
        return alerts

    def _parse_list(self, endpoint: str, data: Any, parse) -> list:
        if not isinstance(data, list):
            logging.error(f"Response from /{endpoint} is not a list")
            raise TelemetryProviderError(f"Response from /{endpoint} is not a list")
        try:
            return [parse(item) for item in data]
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse {endpoint} response: {e}", exc_info=True)
            raise TelemetryProviderError(f"Failed to parse {endpoint} response: {str(e)}")

    def _get_json(self, endpoint: str) -> Any:
        """
        Issue a GET against one endpoint and decode its JSON body.

        Raises:
            TelemetryProviderError: On transport errors, non-2xx status or
                a body that is not JSON
        """
        url = f"{self.base_url}/{endpoint}"
        try:
            logging.debug(f"Making ColdChain API request: {url}")
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request to /{endpoint}: {e}")
            raise TelemetryProviderError(f"Network error: {str(e)}")

        logging.debug(f"API response status for /{endpoint}: {response.status_code}")
        if not response.ok:
            logging.error(f"API request to /{endpoint} failed with status {response.status_code}")
            self._handle_error_response(response)

        try:
            return response.json()
        except ValueError as e:
            logging.error(f"Invalid JSON from /{endpoint}: {e}")
            raise TelemetryProviderError(f"Failed to parse response: {str(e)}")

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from an API error response."""
        try:
            error_data = response.json()
        except ValueError:
            # Not JSON, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise TelemetryProviderError(
                f"HTTP {response.status_code}: {response.text[:200]}"
            )

        message = "Unknown error"
        if isinstance(error_data, dict):
            message = error_data.get("error") or error_data.get("message") or message
        logging.error(f"ColdChain API error response: {error_data}")
        raise TelemetryProviderError(f"ColdChain API error {response.status_code}: {message}")
