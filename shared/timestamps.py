"""
Timestamp normalization.

Stores hand back timestamps in several encodings: native datetimes, ISO
strings, numeric epochs, ``{seconds, nanoseconds}`` records and client
timestamp objects exposing a conversion method. Everything here reduces them to
one comparable instant and never raises.
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from numbers import Real
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from shared.config import config
from shared.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_DATE = "Unknown date"
INVALID_DATE = "Invalid date"

# Numeric epochs below this magnitude are seconds, above it milliseconds
_EPOCH_SECONDS_LIMIT = 1e12

_CONVERSION_METHODS = ("to_datetime", "ToDatetime", "toDate")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch(value: float) -> datetime:
    if abs(value) < _EPOCH_SECONDS_LIMIT:
        return _EPOCH + timedelta(seconds=value)
    return _EPOCH + timedelta(milliseconds=value)


def _from_seconds_record(seconds: Any, nanoseconds: Any) -> datetime:
    millis = int(seconds) * 1000 + int(nanoseconds or 0) // 1_000_000
    return _EPOCH + timedelta(milliseconds=millis)


def _convert(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return _as_utc(datetime.fromisoformat(text))
    if isinstance(raw, Real):
        return _from_epoch(float(raw))
    for method_name in _CONVERSION_METHODS:
        method = getattr(raw, method_name, None)
        if callable(method):
            return _convert(method())
    if isinstance(raw, Mapping):
        if "seconds" in raw:
            return _from_seconds_record(raw["seconds"], raw.get("nanoseconds"))
        return None
    if hasattr(raw, "seconds"):
        return _from_seconds_record(raw.seconds, getattr(raw, "nanoseconds", 0))
    return None


def to_datetime(raw: Any) -> Optional[datetime]:
    """Aware UTC datetime for ``raw``, or None when it cannot be interpreted."""
    try:
        return _convert(raw)
    except Exception as exc:
        logger.debug(f"Unparseable timestamp {raw!r}: {exc}")
        return None


def to_comparable_instant(raw: Any) -> int:
    """
    Milliseconds since the Unix epoch.

    Absent or unrecognized input maps to 0, which sorts it last under
    most-recent-first ordering. The result is never negative.
    """
    converted = to_datetime(raw)
    if converted is None:
        return 0
    return max((converted - _EPOCH) // timedelta(milliseconds=1), 0)


def _resolve_zone(tz: Any) -> Optional[tzinfo]:
    if tz is None:
        tz = config.display_timezone
    if tz is None:
        return None
    if isinstance(tz, tzinfo):
        return tz
    return ZoneInfo(str(tz))


def to_display_string(raw: Any, fmt: Optional[str] = None, tz: Any = None) -> str:
    """
    Human readable rendering of ``raw``.

    Args:
        raw: Any supported timestamp encoding
        fmt: strftime format (default: ``config.display_datetime_format``)
        tz: zone name or tzinfo (default: ``config.display_timezone``, else local)

    Returns:
        The formatted string, ``"Unknown date"`` when ``raw`` is absent
        (``None``, an empty string or zero), or
        ``"Invalid date"`` when it cannot be interpreted.
    """
    if raw is None or (isinstance(raw, (str, int, float)) and not raw):
        return UNKNOWN_DATE
    converted = to_datetime(raw)
    if converted is None:
        return INVALID_DATE
    try:
        zone = _resolve_zone(tz)
        localized = converted.astimezone(zone)
        return localized.strftime(fmt or config.display_datetime_format)
    except Exception as exc:
        logger.debug(f"Cannot render timestamp {raw!r}: {exc}")
        return INVALID_DATE


__all__ = [
    "UNKNOWN_DATE",
    "INVALID_DATE",
    "to_comparable_instant",
    "to_datetime",
    "to_display_string",
]
