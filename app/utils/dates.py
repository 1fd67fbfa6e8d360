from datetime import datetime, timezone

from dateutil import parser

from app.core.errors import ValidationError


def parse_timestamp(value, field: str = "date") -> datetime:
    """Accept a datetime or ISO-8601 string; naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = parser.isoparse(str(value))
        except (ValueError, OverflowError):
            raise ValidationError(f"Invalid {field}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
