"""
Analytics Service

Entry point for dashboard analytics: cache lookup, then on a miss a
concurrent fan-out of the collectors and the segmentation classifier,
KPI derivation, snapshot assembly and cache store.
"""

import asyncio
import functools
import time
from contextlib import AbstractAsyncContextManager
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard_analytics.analytics.assembler import assemble_snapshot
from dashboard_analytics.analytics.clock import Clock, utcnow
from dashboard_analytics.analytics.collectors import (
    aggregate_inventory,
    aggregate_monthly_sales,
    aggregate_revenue,
    count_population,
)
from dashboard_analytics.analytics.exceptions import AnalyticsError, translate_error
from dashboard_analytics.analytics.kpis import derive_kpis
from dashboard_analytics.analytics.schemas import AnalyticsSnapshot
from dashboard_analytics.analytics.segmentation import collect_customer_facts
from dashboard_analytics.database.connection import get_db
from dashboard_analytics.serving.cache import SnapshotCache, SnapshotStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")
SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
Collector = Callable[[AsyncSession], Awaitable[T]]


class AnalyticsService:
    """
    Computes and serves the dashboard analytics snapshot.

    Safe to call concurrently: the snapshot cache guarantees that a miss
    triggers a single computation shared by every caller waiting on it.
    """

    def __init__(
        self,
        cache: Optional[SnapshotCache] = None,
        session_factory: SessionFactory = get_db,
        clock: Clock = utcnow,
    ):
        self.cache = cache if cache is not None else SnapshotCache(clock=clock)
        self._session_factory = session_factory
        self._clock = clock

    async def get_dashboard_analytics(self) -> AnalyticsSnapshot:
        """
        Get the dashboard snapshot.

        Returns:
            AnalyticsSnapshot: cached if fresh, otherwise freshly computed

        Raises:
            AnalyticsError: StoreUnavailableError or ComputationFailureError;
            no partial snapshot is ever returned
        """
        try:
            snapshot = await self.cache.get()
            if snapshot is not None:
                logger.debug("Snapshot cache hit")
                return snapshot
            return await self.cache.compute_and_store(self.compute_snapshot)
        except AnalyticsError:
            raise
        except Exception as e:
            raise translate_error(e, "snapshot cache") from e

    async def compute_snapshot(self) -> AnalyticsSnapshot:
        """
        Run every collector concurrently and assemble the snapshot.

        The first failing collector cancels the others and is re-raised as
        an AnalyticsError.
        """
        start = time.perf_counter()
        now = self._clock()

        try:
            async with asyncio.TaskGroup() as group:
                population = group.create_task(self._collect("population", count_population))
                revenue = group.create_task(self._collect("revenue", aggregate_revenue))
                monthly_sales = group.create_task(self._collect("monthly_sales", aggregate_monthly_sales))
                inventory = group.create_task(self._collect("inventory", aggregate_inventory))
                customers = group.create_task(
                    self._collect("segmentation", functools.partial(collect_customer_facts, now=now))
                )
        except ExceptionGroup as group_error:
            error = group_error.exceptions[0]
            logger.error(
                "Snapshot computation aborted",
                error=str(error),
                error_type=type(error).__name__,
            )
            raise error

        try:
            kpis = derive_kpis(population.result(), revenue.result(), inventory.result())
            snapshot = assemble_snapshot(
                population=population.result(),
                revenue=revenue.result(),
                monthly_sales=monthly_sales.result(),
                inventory=inventory.result(),
                customer_facts=customers.result(),
                kpis=kpis,
            )
        except Exception as e:
            raise translate_error(e, "assembly") from e

        logger.info(
            "Dashboard analytics computed",
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            total_orders=revenue.result().total_orders,
            months=len(snapshot.monthly_sales),
            customers=snapshot.customer_analytics.total_customers,
        )
        return snapshot

    async def _collect(self, stage: str, collector: Collector[T]) -> T:
        """Run one collector in its own session, translating failures."""
        try:
            async with self._session_factory() as session:
                return await collector(session)
        except Exception as e:
            logger.warning("Collector failed", stage=stage, error=str(e), error_type=type(e).__name__)
            raise translate_error(e, stage) from e


# Global service instance
_service: Optional[AnalyticsService] = None


def init_analytics_service(store: Optional[SnapshotStore] = None) -> AnalyticsService:
    """Create the process-wide analytics service with the given snapshot store."""
    global _service

    _service = AnalyticsService(cache=SnapshotCache(store=store))
    logger.info("Analytics service initialized", store=type(_service.cache.store).__name__)
    return _service


def get_analytics_service() -> AnalyticsService:
    """FastAPI dependency returning the analytics service"""
    if _service is None:
        raise RuntimeError("Analytics service not initialized. Call init_analytics_service() first.")
    return _service
