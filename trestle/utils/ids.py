"""Node id generation and timestamp formatting."""

from datetime import UTC, datetime
from uuid import uuid4


def generate_node_id(prefix: str = "nid") -> str:
    """Return a fresh node id, e.g. 'nid-3f2a…'.

    Safe to embed as the trailing segment of a node URI (no '/').
    """
    return f"{prefix}-{uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a 'Z' suffix.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
