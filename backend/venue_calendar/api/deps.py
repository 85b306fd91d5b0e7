"""
Shared FastAPI dependencies.
"""

from datetime import datetime, timezone


def get_now() -> datetime:
    """Current instant used for status derivation; override in tests to pin the clock."""
    return datetime.now(timezone.utc)
