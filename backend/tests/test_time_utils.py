from datetime import datetime, timezone

from farmsync.time_utils import EPOCH, parse_iso_datetime, parse_since, to_utc_z


def test_parse_iso_normalizes_to_utc_naive():
    assert parse_iso_datetime("2026-03-01T10:00:00+03:00") == datetime(2026, 3, 1, 7, 0, 0)
    assert parse_iso_datetime("2026-03-01T10:00:00Z") == datetime(2026, 3, 1, 10, 0, 0)
    assert parse_iso_datetime("2026-03-01") == datetime(2026, 3, 1)
    assert parse_iso_datetime("") is None


def test_parse_since_falls_back_to_epoch():
    assert parse_since(None) == EPOCH
    assert parse_since("not-a-date") == EPOCH
    assert parse_since(12345) == EPOCH
    assert parse_since("1970-01-01T00:00:00Z") == EPOCH


def test_parse_since_accepts_aware_datetime():
    aware = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_since(aware) == datetime(2026, 3, 1, 10, 0)


def test_to_utc_z_keeps_milliseconds():
    assert to_utc_z(datetime(2026, 3, 1, 10, 0, 0, 123456)) == "2026-03-01T10:00:00.123Z"
    assert to_utc_z(None) is None
