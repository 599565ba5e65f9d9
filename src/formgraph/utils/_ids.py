"""Identifier and timestamp helpers."""

from datetime import UTC, datetime
from uuid import uuid4


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def generate_id(prefix: str) -> str:
    """Generate a unique identifier with a readable prefix.

    Args:
        prefix: Short tag describing the kind of object (e.g. "sub", "log").

    Returns:
        An identifier such as ``sub_3f2a9c0e41d84b7a``.
    """
    return f"{prefix}_{uuid4().hex[:16]}"
