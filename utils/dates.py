import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.errors import ValidationError


def now_utc():
    return datetime.datetime.now(datetime.timezone.utc)


def to_iso(dt):
    """Stored form of every timestamp: UTC, microsecond precision, so strings sort in time order."""
    return dt.astimezone(datetime.timezone.utc).isoformat(timespec='microseconds')


def now_iso():
    return to_iso(now_utc())


def parse_datetime(value, default_tz='UTC'):
    """Parses an ISO 8601 string. Naive values are read in the festival's timezone."""
    if isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"'{value}' is not a valid ISO 8601 date and time.")
    else:
        raise ValidationError('A date and time is required.')

    if dt.tzinfo is None:
        try:
            dt = dt.replace(tzinfo=ZoneInfo(default_tz))
        except ZoneInfoNotFoundError:
            raise ValidationError(f"Unknown timezone '{default_tz}'.")
    return dt
