from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from shared.timestamps import (
    INVALID_DATE,
    UNKNOWN_DATE,
    to_comparable_instant,
    to_datetime,
    to_display_string,
)

INSTANT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
INSTANT_MS = 1714564800000


class ClientTimestamp:
    """Mimics a store client's timestamp type."""

    def __init__(self, value: datetime) -> None:
        self._value = value

    def to_datetime(self) -> datetime:
        return self._value


class JsStyleTimestamp:
    def toDate(self) -> datetime:
        return INSTANT


class ProtoStyleTimestamp:
    def ToDatetime(self) -> datetime:
        return INSTANT.replace(tzinfo=None)


class BrokenTimestamp:
    def to_datetime(self) -> datetime:
        raise RuntimeError("boom")


@pytest.mark.parametrize(
    "raw",
    [
        INSTANT,
        INSTANT.astimezone(timezone(timedelta(hours=2))),
        INSTANT.replace(tzinfo=None),
        "2024-05-01T12:00:00Z",
        "2024-05-01T14:00:00+02:00",
        "2024-05-01T12:00:00",
        1714564800,
        1714564800.0,
        INSTANT_MS,
        {"seconds": 1714564800, "nanoseconds": 0},
        SimpleNamespace(seconds=1714564800, nanoseconds=0),
        ClientTimestamp(INSTANT),
        JsStyleTimestamp(),
        ProtoStyleTimestamp(),
    ],
)
def test_equivalent_encodings_normalize_to_the_same_instant(raw):
    assert to_comparable_instant(raw) == INSTANT_MS


def test_nanoseconds_contribute_whole_milliseconds():
    assert to_comparable_instant({"seconds": 10, "nanoseconds": 999_999_999}) == 10_999
    assert to_comparable_instant({"seconds": 10}) == 10_000


def test_date_is_midnight_utc():
    assert to_comparable_instant(date(2024, 5, 1)) == INSTANT_MS - 12 * 3600 * 1000


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not a date",
        True,
        False,
        object(),
        [],
        {"foo": 1},
        {"seconds": "abc"},
        float("nan"),
        float("inf"),
        -5,
        BrokenTimestamp(),
    ],
)
def test_unrecognized_input_is_zero(raw):
    assert to_comparable_instant(raw) == 0


def test_to_datetime_is_aware_utc():
    converted = to_datetime("2024-05-01T14:00:00+02:00")

    assert converted == INSTANT
    assert converted.utcoffset() == timedelta(0)
    assert to_datetime("garbage") is None


def test_display_string_sentinels():
    assert to_display_string(None) == UNKNOWN_DATE
    assert to_display_string("garbage") == INVALID_DATE
    assert to_display_string(True) == INVALID_DATE
    assert to_display_string(BrokenTimestamp()) == INVALID_DATE


@pytest.mark.parametrize("raw", ["", 0, 0.0, False])
def test_empty_values_display_as_unknown(raw):
    assert to_display_string(raw) == UNKNOWN_DATE


def test_display_string_formats_in_requested_zone():
    assert to_display_string(INSTANT_MS, fmt="%Y-%m-%d %H:%M", tz=timezone.utc) == "2024-05-01 12:00"
    tokyo = timezone(timedelta(hours=9))
    assert to_display_string(INSTANT, fmt="%Y-%m-%d %H:%M", tz=tokyo) == "2024-05-01 21:00"


def test_display_string_with_unknown_zone_is_invalid():
    assert to_display_string(INSTANT, tz="Not/AZone") == INVALID_DATE


def test_display_string_default_format_never_raises():
    rendered = to_display_string({"seconds": 1714564800, "nanoseconds": 0})

    assert rendered not in (UNKNOWN_DATE, INVALID_DATE)
    assert "2024" in rendered
