"""Date helpers: day timestamps, ages and subscription timestamps"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def to_day_timestamp(value: Any) -> Optional[int]:
    """
    Convert a date-ish value into a millisecond timestamp

    Accepts ints (already milliseconds), date/datetime objects and ISO strings.
    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day).timestamp() * 1000)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return int(parsed.timestamp() * 1000)
    return None


def calculate_age(dob: Any, today: Optional[date] = None) -> Optional[int]:
    """
    Age in whole years from a YYYY-MM-DD date of birth

    Returns None for a missing or unparsable DOB.
    """
    if not dob:
        return None
    if isinstance(dob, datetime):
        born = dob.date()
    elif isinstance(dob, date):
        born = dob
    else:
        try:
            born = date.fromisoformat(str(dob)[:10])
        except ValueError:
            logger.warning(f"Unparsable date of birth: {dob!r}")
            return None

    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def parse_subscription_end(value: Any) -> Optional[datetime]:
    """
    Parse a subscription end date in any of the encodings the store produces

    Supported:
        - datetime / date values (Firestore timestamps deserialize as datetime)
        - {"seconds": int, "nanoseconds": int} objects (also "_seconds")
        - epoch milliseconds as int/float
        - ISO-8601 strings

    Returns:
        Timezone-aware datetime, or None when the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime(value.year, value.month, value.day)
        elif isinstance(value, dict):
            seconds = value.get("seconds", value.get("_seconds"))
            if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
                return None
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            parsed = datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed
