"""
Timestamp helpers shared by the models.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time with microsecond precision (used as the ordering key)."""
    return datetime.now(timezone.utc)
