from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current UTC time as a naive datetime truncated to milliseconds.

    MongoDB stores datetimes as naive UTC with millisecond precision; producing
    the same shape here keeps in-memory values equal to what is read back.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format a stored (naive UTC) datetime as an ISO-8601 string with a Z suffix."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec='milliseconds') + 'Z'

