from __future__ import annotations

from datetime import datetime, timedelta, timezone
from platform import system

# Seconds between the Unix epoch and the Cocoa reference date, 2001-01-01T00:00:00Z
COCOA_EPOCH_OFFSET = 978307200

if system().lower() in ("windows", "emscripten"):
    _EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

    def _calculate_timestamp(ts: float) -> datetime:
        """Calculate timestamps relative from Unix epoch.

        Windows and WASM (Emscripten) can not calculate timestamps before 1970 with ``fromtimestamp``.
        """
        return _EPOCH + timedelta(seconds=ts)

else:

    def _calculate_timestamp(ts: float) -> datetime:
        return datetime.fromtimestamp(ts, tz=timezone.utc)


def cocoatimestamp(ts: float) -> datetime:
    """Converts an ``NSDate`` time interval (seconds since 2001-01-01 UTC) to an aware datetime object in UTC.

    Args:
        ts: The Cocoa timestamp.

    Returns:
        Datetime object from the passed timestamp.
    """
    return _calculate_timestamp(float(ts) + COCOA_EPOCH_OFFSET)


def to_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware datetime in UTC.

    ``plistlib`` returns naive datetimes for ``<date>`` nodes, which are always expressed in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
