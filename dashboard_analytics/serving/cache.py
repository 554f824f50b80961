"""
Snapshot Cache Module

Caching layer for the dashboard snapshot with:
- Redis connection pooling and JSON serialization
- Interchangeable snapshot stores (in-process memory or Redis)
- TTL expiry measured from computation time
- Single-flight recomputation: concurrent misses share one computation
"""

import asyncio
import json
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from dashboard_analytics.analytics.clock import Clock, utcnow
from dashboard_analytics.analytics.exceptions import StoreUnavailableError
from dashboard_analytics.analytics.schemas import AnalyticsSnapshot, CacheEntry
from dashboard_analytics.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """Initialize Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    _redis_pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=settings.redis.decode_responses,
    )

    _redis_client = Redis(connection_pool=_redis_pool)

    try:
        await _redis_client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        raise

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


async def cache_get(key: str) -> Optional[Any]:
    """
    Get value from cache.

    Args:
        key: Cache key

    Returns:
        Cached value or None if not found
    """
    client = get_redis()
    value = await client.get(key)

    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def cache_set(
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if successful
    """
    client = get_redis()

    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to serialize value for cache: {e}")
        return False

    if ttl:
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        await client.setex(key, ttl, serialized)
    else:
        await client.set(key, serialized)

    return True


# =============================================================================
# SNAPSHOT STORES
# =============================================================================

class SnapshotStore(Protocol):
    """Holds at most one CacheEntry; save replaces it wholesale."""

    async def load(self) -> Optional[CacheEntry]:
        ...

    async def save(self, entry: CacheEntry) -> None:
        ...


class MemorySnapshotStore:
    """In-process store; replacing the entry is a single reference swap."""

    def __init__(self):
        self._entry: Optional[CacheEntry] = None

    async def load(self) -> Optional[CacheEntry]:
        return self._entry

    async def save(self, entry: CacheEntry) -> None:
        self._entry = entry


class RedisSnapshotStore:
    """
    Redis-backed store shared by all worker processes.

    The entry is written with SETEX so Redis drops it once the TTL passes.
    """

    def __init__(self, key: Optional[str] = None):
        self.key = key or f"analytics:{settings.analytics.cache_key}"

    async def load(self) -> Optional[CacheEntry]:
        try:
            raw = await cache_get(self.key)
        except RedisError as e:
            raise StoreUnavailableError(f"Snapshot cache unavailable: {e}") from e

        if not isinstance(raw, dict):
            return None

        try:
            return CacheEntry.model_validate(raw)
        except ValidationError as e:
            # Written by an older snapshot schema or corrupted; recompute over it
            logger.warning(
                "Unreadable snapshot in Redis, treating as miss",
                key=self.key,
                errors=e.error_count(),
            )
            return None

    async def save(self, entry: CacheEntry) -> None:
        try:
            stored = await cache_set(
                self.key,
                entry.model_dump(mode="json", by_alias=True),
                ttl=entry.ttl_seconds,
            )
        except RedisError as e:
            raise StoreUnavailableError(f"Snapshot cache unavailable: {e}") from e

        if not stored:
            logger.warning("Snapshot not written to Redis", key=self.key)


# =============================================================================
# SINGLE-FLIGHT CACHE
# =============================================================================

SnapshotFactory = Callable[[], Awaitable[AnalyticsSnapshot]]


def _log_flight_failure(task: asyncio.Task) -> None:
    """Retrieve the outcome of a computation even when every waiter has gone."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "Snapshot computation failed",
            error=str(error),
            error_type=type(error).__name__,
        )


class SnapshotCache:
    """
    Dashboard snapshot cache with TTL and single-flight recomputation.

    States: empty -> computing -> populated (-> expired, treated as empty).
    The lock serializes the miss-to-computing transition, so at most one
    computation runs per process; callers that miss meanwhile await the
    same task and receive the same snapshot or the same error.

    Example:
        cache = SnapshotCache()
        snapshot = await cache.get()
        if snapshot is None:
            snapshot = await cache.compute_and_store(compute_snapshot)
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        ttl_seconds: Optional[int] = None,
        clock: Clock = utcnow,
    ):
        self.store = store if store is not None else MemorySnapshotStore()
        self.ttl = timedelta(seconds=ttl_seconds or settings.analytics.cache_ttl_seconds)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def computing(self) -> bool:
        """Whether a computation is currently in flight"""
        return self._in_flight is not None

    async def get(self) -> Optional[AnalyticsSnapshot]:
        """Return the cached snapshot, or None if absent or expired."""
        entry = await self.store.load()
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry.snapshot

    async def compute_and_store(self, compute: SnapshotFactory) -> AnalyticsSnapshot:
        """
        Return a fresh snapshot, computing it at most once across concurrent callers.

        Args:
            compute: Coroutine factory producing a complete snapshot

        Returns:
            The cached snapshot if one became fresh meanwhile, otherwise the
            result of the (possibly shared) computation

        Raises:
            Whatever ``compute`` raised; nothing is stored in that case
        """
        async with self._lock:
            snapshot = await self.get()
            if snapshot is not None:
                logger.debug("Snapshot populated while waiting for cache lock")
                return snapshot

            if self._in_flight is None:
                logger.info("Snapshot cache miss, starting computation")
                self._in_flight = asyncio.create_task(self._compute(compute))
                self._in_flight.add_done_callback(_log_flight_failure)
            else:
                logger.debug("Joining in-flight snapshot computation")
            flight = self._in_flight

        # Cancelling one waiter must not cancel the shared computation
        return await asyncio.shield(flight)

    async def _compute(self, compute: SnapshotFactory) -> AnalyticsSnapshot:
        try:
            snapshot = await compute()
            computed_at = self._clock()
            await self.store.save(
                CacheEntry(
                    snapshot=snapshot,
                    computed_at=computed_at,
                    expires_at=computed_at + self.ttl,
                )
            )
            logger.debug("Snapshot stored", ttl_seconds=int(self.ttl.total_seconds()))
            return snapshot
        finally:
            self._in_flight = None
