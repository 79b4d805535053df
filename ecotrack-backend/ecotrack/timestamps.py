from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ecotrack.database import get_utc_datetime, to_utc_naive

IST = timezone(timedelta(hours=5, minutes=30), "IST")

# Numbers above this are epoch milliseconds, below it epoch seconds
_EPOCH_MS_THRESHOLD = 10 ** 11


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a timestamp coming from a device or a query string into naive UTC.

    Accepts datetimes, epoch seconds/milliseconds, and ISO-8601 strings,
    including a trailing "Z" and the " IST" suffix written by the ESP32
    firmware. Strings without an offset are taken as UTC.
    Raises ValueError when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return to_utc_naive(value)

    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")

    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if abs(value) >= _EPOCH_MS_THRESHOLD else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e

    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    tz = timezone.utc
    if text.endswith(" IST"):
        text = text[:-4].strip()
        tz = IST
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    if text.lstrip("-").isdigit():
        return parse_timestamp(int(text))

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return to_utc_naive(parsed)


def parse_optional_timestamp(value: Any, default: Optional[datetime] = None) -> datetime:
    """Missing values mean `default` (or "now"); anything else must parse."""
    if value is None or value == "":
        return default or get_utc_datetime()
    return parse_timestamp(value)
