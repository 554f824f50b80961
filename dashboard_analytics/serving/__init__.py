"""
Serving Module
"""
from .cache import (
    init_redis,
    close_redis,
    get_redis,
    MemorySnapshotStore,
    RedisSnapshotStore,
    SnapshotCache,
)

__all__ = [
    "init_redis",
    "close_redis",
    "get_redis",
    "MemorySnapshotStore",
    "RedisSnapshotStore",
    "SnapshotCache",
]
