from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every table stores."""
    return datetime.now(UTC).replace(tzinfo=None)
