from datetime import datetime, timedelta, timezone

from app.core.timeutils import ensure_aware_utc, parse_utc, utcnow


def test_parse_utc_handles_zulu_suffix():
    dt = parse_utc("2024-08-16T19:00:00Z")
    assert dt == datetime(2024, 8, 16, 19, 0, tzinfo=timezone.utc)


def test_parse_utc_converts_offsets_and_rejects_garbage():
    assert parse_utc("2024-08-16T21:00:00+02:00") == datetime(2024, 8, 16, 19, 0, tzinfo=timezone.utc)
    assert parse_utc("") is None
    assert parse_utc(None) is None
    assert parse_utc("soon") is None


def test_ensure_aware_utc_attaches_tz_to_naive():
    naive = datetime(2024, 8, 16, 19, 0)
    assert ensure_aware_utc(naive).tzinfo == timezone.utc
    cet = datetime(2024, 8, 16, 21, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_aware_utc(cet).hour == 19


def test_utcnow_can_be_frozen(monkeypatch):
    monkeypatch.setenv("AS_OF_DATE", "2025-01-01T12:00:00Z")
    assert utcnow() == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    monkeypatch.delenv("AS_OF_DATE")
    assert utcnow().year >= 2025
