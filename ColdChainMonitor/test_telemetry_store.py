"""Tests for the telemetry store."""
import dataclasses
import pytest
from telemetry_data import Alert, HistoryEntry, Snapshot
from telemetry_store import TelemetryStore


def test_store_starts_empty():
    """Test that a new store is empty."""
    view = TelemetryStore().read()
    assert view.latest == Snapshot.empty()
    assert view.history == ()
    assert view.alerts == ()


def test_store_replaces_fields_independently():
    """Test that fields are replaced independently."""
    store = TelemetryStore()
    store.replace_snapshot(Snapshot(temperature=4.0))
    store.replace_history([HistoryEntry("t0", 4.0, 60.0)])

    view = store.read()
    assert view.latest.temperature == 4.0
    assert len(view.history) == 1
    assert view.alerts == ()


def test_store_history_is_replaced_not_appended():
    """Test that history is replaced wholesale."""
    store = TelemetryStore()
    store.replace_history([HistoryEntry("t0", 4.0, 60.0), HistoryEntry("t1", 4.5, 61.0)])
    store.replace_history([HistoryEntry("t2", 5.0, 62.0)])

    assert [entry.timestamp for entry in store.read().history] == ["t2"]


def test_store_view_is_isolated_from_later_writes():
    """Test that a view is unaffected by later writes."""
    store = TelemetryStore()
    alerts = [Alert("High Temperature", "t0")]
    store.replace_alerts(alerts)
    view = store.read()

    alerts.append(Alert("Low Temperature", "t1"))
    store.replace_alerts([])

    assert len(view.alerts) == 1
    assert store.read().alerts == ()


def test_store_view_is_immutable():
    """Test that a view cannot be modified."""
    view = TelemetryStore().read()
    with pytest.raises(dataclasses.FrozenInstanceError):
        view.latest = Snapshot(temperature=1.0)
