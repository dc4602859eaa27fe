"""Date parsing and formatting utilities for GitHub issue queries."""

from datetime import datetime, timedelta, timezone


def parse_date_input(date_str: str) -> datetime:
    """Parse various date formats into datetime objects.

    Supports:
    - ISO dates: 2024-01-01, 2024-01-01T10:00:00Z, 2024-01-01T10:00:00+02:00
    - Common formats: January 1, 2024, Jan 1 2024

    Args:
        date_str: Date string to parse

    Returns:
        Parsed datetime object

    Raises:
        ValueError: If date format is not recognized
    """
    formats = [
        "%Y-%m-%d",  # 2024-01-01
        "%Y-%m-%dT%H:%M:%SZ",  # 2024-01-01T10:00:00Z
        "%Y-%m-%dT%H:%M:%S",  # 2024-01-01T10:00:00
        "%B %d, %Y",  # January 1, 2024
        "%b %d, %Y",  # Jan 1, 2024
        "%B %d %Y",  # January 1 2024
        "%b %d %Y",  # Jan 1 2024
        "%Y/%m/%d",  # 2024/01/01
        "%m/%d/%Y",  # 01/01/2024
    ]

    date_str = date_str.strip()
    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue

    # Timestamps with offsets or fractional seconds
    try:
        return datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        pass

    raise ValueError(
        f"Unable to parse date '{date_str}'. "
        f"Supported formats include: YYYY-MM-DD, YYYY-MM-DDTHH:MM:SSZ, "
        f"'January 1, 2024', 'Jan 1 2024', MM/DD/YYYY"
    )


def relative_date_to_absolute(days: int) -> datetime:
    """Convert a number of days ago into an absolute UTC datetime.

    Raises:
        ValueError: If days is not a positive integer
    """
    if days <= 0:
        raise ValueError("Days must be a positive integer")
    return datetime.now(timezone.utc) - timedelta(days=days)


def format_timestamp_for_github(dt: datetime) -> str:
    """Format a datetime as the ISO 8601 UTC timestamp GitHub expects.

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
