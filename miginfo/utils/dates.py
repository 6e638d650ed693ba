"""Date formatting helpers."""

from datetime import date, datetime

ISO_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
ISO_DATE_FORMAT = "%Y-%m-%d"


def format_date_as_iso_string(value: date | datetime | None) -> str:
    """Format a timestamp as YYYY-MM-DDTHH:MM:SS, or "" when absent.

    Sub-second precision and timezone offsets are dropped.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(ISO_DATETIME_FORMAT)
    return value.strftime(ISO_DATE_FORMAT)
