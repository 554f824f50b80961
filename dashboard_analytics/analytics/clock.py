"""
Time source shared by the classifier and the snapshot cache.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored order timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
