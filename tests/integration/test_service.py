"""
Integration Tests - Analytics Service
"""
import asyncio
import json
from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from dashboard_analytics.analytics import service as service_module
from dashboard_analytics.analytics.exceptions import ComputationFailureError, StoreUnavailableError
from dashboard_analytics.analytics.schemas import CustomerSegment
from dashboard_analytics.analytics.service import AnalyticsService
from dashboard_analytics.serving.cache import RedisSnapshotStore, SnapshotCache


@pytest.fixture
def analytics_service(session_factory, clock) -> AnalyticsService:
    return AnalyticsService(
        cache=SnapshotCache(ttl_seconds=600, clock=clock),
        session_factory=session_factory,
        clock=clock,
    )


class TestGetDashboardAnalytics:
    """End-to-end snapshot computation over the example store"""

    async def test_snapshot(self, analytics_service, example_store):
        snapshot = await analytics_service.get_dashboard_analytics()

        assert snapshot.active_users == 2
        assert snapshot.total_products == 3
        assert snapshot.total_revenue == pytest.approx(300.0)
        assert [b.model_dump(by_alias=True) for b in snapshot.monthly_sales] == [
            {"year": 2024, "month": 1, "revenue": 100.0, "orders": 1},
            {"year": 2024, "month": 2, "revenue": 200.0, "orders": 1},
        ]
        assert snapshot.inventory.out_of_stock == 1
        assert snapshot.inventory.low_stock == 2
        assert snapshot.kpis.average_order_value == pytest.approx(150.0)
        assert snapshot.kpis.conversion_rate == "100.00"
        assert snapshot.kpis.stock_turnover_rate == pytest.approx(300 / 55)

    async def test_customer_analytics(self, analytics_service, example_store):
        snapshot = await analytics_service.get_dashboard_analytics()
        customers = snapshot.customer_analytics

        assert customers.total_customers == 2
        assert customers.average_lifetime_value == pytest.approx(150.0)
        assert sorted(fact.segment for fact in customers.customer_segments) == sorted(
            [CustomerSegment.REGULAR, CustomerSegment.ACTIVE]
        )

    async def test_buckets_sum_to_totals(self, analytics_service, example_store):
        snapshot = await analytics_service.get_dashboard_analytics()

        assert sum(b.revenue for b in snapshot.monthly_sales) == pytest.approx(snapshot.total_revenue)
        assert sum(b.order_count for b in snapshot.monthly_sales) == 2

    async def test_empty_store(self, analytics_service):
        snapshot = await analytics_service.get_dashboard_analytics()

        assert snapshot.total_revenue == 0
        assert snapshot.monthly_sales == ()
        assert snapshot.customer_analytics.total_customers == 0
        assert snapshot.customer_analytics.average_lifetime_value == 0
        assert snapshot.kpis.conversion_rate == "0.00"
        assert snapshot.kpis.stock_turnover_rate == 0


class TestCaching:
    """Snapshot reuse through the service"""

    async def test_second_call_served_from_cache(self, analytics_service, example_store, monkeypatch):
        first = await analytics_service.get_dashboard_analytics()

        async def fail():
            raise AssertionError("snapshot recomputed")

        monkeypatch.setattr(analytics_service, "compute_snapshot", fail)
        second = await analytics_service.get_dashboard_analytics()

        assert second is first

    async def test_concurrent_requests_compute_once(self, analytics_service, example_store):
        calls = 0
        compute = analytics_service.compute_snapshot

        async def counting_compute():
            nonlocal calls
            calls += 1
            return await compute()

        analytics_service.compute_snapshot = counting_compute
        results = await asyncio.gather(*(analytics_service.get_dashboard_analytics() for _ in range(5)))

        assert calls == 1
        assert all(result is results[0] for result in results)

    async def test_recomputed_after_ttl(self, analytics_service, example_store, clock):
        first = await analytics_service.get_dashboard_analytics()

        clock.advance(601)
        second = await analytics_service.get_dashboard_analytics()

        assert second is not first
        assert second.total_revenue == first.total_revenue
        assert [f.days_since_last_purchase for f in second.customer_facts] == pytest.approx(
            [f.days_since_last_purchase + 601 / 86400 for f in first.customer_facts]
        )

    async def test_unreadable_redis_entry_is_recomputed(self, session_factory, example_store, clock, monkeypatch):
        """A Redis entry in an older snapshot layout is replaced instead of failing the request"""
        client = AsyncMock()
        client.get.return_value = json.dumps({
            "snapshot": {"old": "schema"},
            "computedAt": clock().isoformat(),
            "expiresAt": (clock() + timedelta(seconds=600)).isoformat(),
        })
        monkeypatch.setattr("dashboard_analytics.serving.cache.get_redis", lambda: client)
        service = AnalyticsService(
            cache=SnapshotCache(store=RedisSnapshotStore(), ttl_seconds=600, clock=clock),
            session_factory=session_factory,
            clock=clock,
        )
        calls = 0
        compute = service.compute_snapshot

        async def counting_compute():
            nonlocal calls
            calls += 1
            return await compute()

        service.compute_snapshot = counting_compute
        snapshot = await service.get_dashboard_analytics()

        assert calls == 1
        assert snapshot.total_revenue == pytest.approx(300.0)
        client.setex.assert_awaited_once()


class TestFailures:
    """Failures surface as one AnalyticsError and are never cached"""

    async def test_uninitialized_database(self, clock):
        """The default session factory fails until init_database() has run"""
        service = AnalyticsService(cache=SnapshotCache(ttl_seconds=600, clock=clock), clock=clock)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.get_dashboard_analytics()

        assert exc_info.value.status_code == 503
        assert await service.cache.store.load() is None

    async def test_unreachable_store(self, clock):
        @asynccontextmanager
        async def unreachable():
            raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))
            yield

        service = AnalyticsService(
            cache=SnapshotCache(ttl_seconds=600, clock=clock),
            session_factory=unreachable,
            clock=clock,
        )

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.get_dashboard_analytics()

        assert exc_info.value.error_code == "STORE_UNAVAILABLE"
        assert not service.cache.computing

    async def test_collector_failure_aborts_snapshot(self, analytics_service, example_store, monkeypatch):
        async def broken_inventory(session):
            raise ValueError("malformed stock value")

        monkeypatch.setattr(service_module, "aggregate_inventory", broken_inventory)

        with pytest.raises(ComputationFailureError) as exc_info:
            await analytics_service.get_dashboard_analytics()

        assert exc_info.value.status_code == 500
        assert exc_info.value.details["stage"] == "inventory"
        assert await analytics_service.cache.store.load() is None

    async def test_recovers_after_failure(self, analytics_service, example_store, monkeypatch):
        async def broken_revenue(session):
            raise ValueError("bad amount")

        with monkeypatch.context() as patch:
            patch.setattr(service_module, "aggregate_revenue", broken_revenue)
            with pytest.raises(ComputationFailureError):
                await analytics_service.get_dashboard_analytics()

        snapshot = await analytics_service.get_dashboard_analytics()
        assert snapshot.total_revenue == pytest.approx(300.0)
