"""Tests for telemetry_data module."""
import logging
import pytest
from datetime import timezone
from telemetry_data import (
    UNKNOWN_TYPE_WARNING_CACHE,
    Alert,
    AlertSeverity,
    HistoryEntry,
    Snapshot,
    SystemStatus,
    _warn_unknown_alert_type,
    classify_alert_type,
    optional_float,
    parse_timestamp,
)


def test_snapshot_from_dict():
    """Test parsing a full status payload."""
    snapshot = Snapshot.from_dict({
        "timestamp": "2024-05-01T10:00:00Z",
        "temperature": 4.2,
        "humidity": 61,
        "predicted_rsl_days": 12.5,
        "avg_temp": 4.8,
        "journey_time_hours": 18,
        "lat": 27.7172,
        "lng": 85.324,
        "status": "NORMAL",
    })

    assert snapshot.temperature == 4.2
    assert snapshot.humidity == 61.0
    assert snapshot.predicted_rsl_days == 12.5
    assert snapshot.journey_time_hours == 18.0
    assert snapshot.status is SystemStatus.NORMAL
    assert snapshot.has_position is True


def test_snapshot_missing_fields_are_absent():
    """Test that missing or malformed fields become None, never zero."""
    snapshot = Snapshot.from_dict({
        "temperature": "not a number",
        "humidity": None,
        "predicted_rsl_days": True,
        "lat": 27.7,
        "status": "SOMETHING_ELSE",
    })

    assert snapshot.temperature is None
    assert snapshot.humidity is None
    assert snapshot.predicted_rsl_days is None
    assert snapshot.avg_temp is None
    assert snapshot.has_position is False
    assert snapshot.status is SystemStatus.UNKNOWN


def test_snapshot_zero_is_a_real_reading():
    """Test that a zero reading is kept rather than treated as missing."""
    snapshot = Snapshot.from_dict({"temperature": 0, "humidity": 0.0})
    assert snapshot.temperature == 0.0
    assert snapshot.humidity == 0.0


def test_snapshot_rejects_non_object():
    """Test that a status payload must be a JSON object."""
    with pytest.raises(ValueError):
        Snapshot.from_dict([1, 2, 3])


def test_empty_snapshot():
    """Test that the empty snapshot has nothing observed."""
    snapshot = Snapshot.empty()
    assert snapshot.temperature is None
    assert snapshot.status is SystemStatus.UNKNOWN
    assert snapshot.to_dict() == {}


def test_snapshot_to_dict_omits_absent_fields():
    """Test that to_dict reproduces the payload without absent keys."""
    payload = {"temperature": 5.0, "humidity": 70.0, "status": "ALERT"}
    assert Snapshot.from_dict(payload).to_dict() == payload


def test_history_entry_from_dict():
    """Test parsing a positioned history entry."""
    entry = HistoryEntry.from_dict({
        "timestamp": "2024-05-01T10:00:00",
        "temperature": 5.1,
        "humidity": 72,
        "lat": 27.7,
        "lng": 85.3,
    })

    assert entry.temperature == 5.1
    assert entry.humidity == 72.0
    assert entry.has_position is True


def test_history_entry_without_position():
    """Test a history entry with no GPS fix."""
    entry = HistoryEntry.from_dict({"timestamp": "t", "temperature": 5, "humidity": 70})
    assert entry.has_position is False
    assert entry.to_dict() == {"timestamp": "t", "temperature": 5.0, "humidity": 70.0}


def test_history_entry_missing_reading():
    """Test that a history entry without a usable reading is rejected."""
    with pytest.raises(KeyError):
        HistoryEntry.from_dict({"timestamp": "t", "humidity": 70})
    with pytest.raises(ValueError):
        HistoryEntry.from_dict({"timestamp": "t", "temperature": "warm", "humidity": 70})


def test_alert_from_dict():
    """Test parsing an ongoing alert."""
    alert = Alert.from_dict({
        "type": "High Temperature",
        "start_time": "2024-05-01T10:00:00",
        "end_time": None,
        "peak_value": 9.4,
    })

    assert alert.is_active is True
    assert alert.peak_value == 9.4
    assert alert.severity is AlertSeverity.CRITICAL


def test_alert_resolved():
    """Test that an alert with an end time is resolved."""
    alert = Alert.from_dict({
        "type": "Low Temperature",
        "start_time": "2024-05-01T10:00:00",
        "end_time": "2024-05-01T11:00:00",
        "peak_value": 0.5,
    })

    assert alert.is_active is False
    assert alert.severity is AlertSeverity.WARNING


def test_alert_severity_assigned_on_construction():
    """Test that severity is classified when an alert is built directly."""
    alert = Alert(type="High Humidity", start_time="t")
    assert alert.severity is AlertSeverity.CRITICAL


@pytest.mark.parametrize("alert_type,expected", [
    ("High Temperature", AlertSeverity.CRITICAL),
    ("Critical", AlertSeverity.CRITICAL),
    ("Low Temperature", AlertSeverity.WARNING),
    ("Low Humidity", AlertSeverity.WARNING),
    ("Warning", AlertSeverity.WARNING),
    ("Door Open", AlertSeverity.INFO),
])
def test_classify_alert_type(alert_type, expected):
    """Test the alert type mapping table."""
    assert classify_alert_type(alert_type) is expected


def test_unknown_alert_type_logged_once(caplog):
    """Test that a recurring unknown alert type is only reported once."""
    _warn_unknown_alert_type.cache_clear()
    with caplog.at_level(logging.WARNING):
        classify_alert_type("Reefer Door Ajar")
        classify_alert_type("Reefer Door Ajar")

    messages = [r.getMessage() for r in caplog.records if "Reefer Door Ajar" in r.getMessage()]
    assert len(messages) == 1


def test_unknown_alert_type_tracking_is_bounded():
    """Test that remembered unknown alert types never exceed the cache size."""
    _warn_unknown_alert_type.cache_clear()
    for index in range(UNKNOWN_TYPE_WARNING_CACHE * 3):
        classify_alert_type(f"Sensor Fault {index}")

    assert _warn_unknown_alert_type.cache_info().currsize == UNKNOWN_TYPE_WARNING_CACHE


def test_optional_float():
    """Test coercion of JSON values to optional floats."""
    assert optional_float(3) == 3.0
    assert optional_float("2.5") == 2.5
    assert optional_float(None) is None
    assert optional_float(False) is None
    assert optional_float("nan") is None
    assert optional_float({}) is None


def test_parse_timestamp():
    """Test ISO-8601 parsing with and without an offset."""
    parsed = parse_timestamp("2024-05-01T10:00:00Z")
    assert parsed.hour == 10
    assert parsed.utcoffset().total_seconds() == 0
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_parse_timestamp_naive_is_utc():
    """Test that a timestamp without an offset is read as UTC."""
    naive = parse_timestamp("2024-05-01T10:00:00")
    assert naive.tzinfo is timezone.utc
    assert naive == parse_timestamp("2024-05-01T10:00:00Z")


def test_parse_timestamp_mixed_forms_compare():
    """Test that offset and offset-free timestamps can be subtracted."""
    first = parse_timestamp("2024-05-01T00:00:00Z")
    second = parse_timestamp("2024-05-01T02:00:00")
    third = parse_timestamp("2024-05-01T05:00:00+02:00")

    assert (second - first).total_seconds() == 7200
    assert (third - first).total_seconds() == 3 * 3600
