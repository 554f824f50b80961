"""
Unit Tests - Monthly Sales Buckets
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from dashboard_analytics.analytics.collectors import build_monthly_buckets
from dashboard_analytics.analytics.schemas import MonthlyBucket


def row(year, month, revenue, orders):
    return SimpleNamespace(year=year, month=month, revenue=revenue, orders=orders)


class TestBuildMonthlyBuckets:
    """Tests for bucket normalization"""

    def test_sorted_for_unordered_input(self):
        """Buckets ascend by (year, month) whatever order rows arrive in"""
        buckets = build_monthly_buckets([
            row(2024, 2, 200.0, 1),
            row(2023, 12, 50.0, 2),
            row(2024, 1, 100.0, 1),
        ])

        assert [(b.year, b.month) for b in buckets] == [(2023, 12), (2024, 1), (2024, 2)]

    def test_duplicate_keys_are_merged(self):
        """Rows sharing a month collapse into one bucket"""
        rows = [
            row(2024, 1, 100.0, 1),
            row(2024, 3, 30.0, 3),
            row(2024, 1, 25.5, 2),
        ]

        buckets = build_monthly_buckets(rows)

        assert buckets == (
            MonthlyBucket(year=2024, month=1, revenue=125.5, order_count=3),
            MonthlyBucket(year=2024, month=3, revenue=30.0, order_count=3),
        )
        assert sum(b.revenue for b in buckets) == pytest.approx(sum(r.revenue for r in rows))
        assert sum(b.order_count for b in buckets) == sum(r.orders for r in rows)

    def test_store_types_are_coerced(self):
        """Decimal sums and float month numbers from the store become plain numbers"""
        (bucket,) = build_monthly_buckets([row(2024.0, 5.0, Decimal("19.99"), 1)])

        assert (bucket.year, bucket.month) == (2024, 5)
        assert bucket.revenue == pytest.approx(19.99)

    def test_empty(self):
        """No orders, no buckets"""
        assert build_monthly_buckets([]) == ()

    def test_month_range_is_validated(self):
        """Month numbers outside 1-12 are rejected"""
        with pytest.raises(ValidationError):
            build_monthly_buckets([row(2024, 13, 1.0, 1)])

    def test_wire_key_for_order_count(self):
        """Order count serializes as "orders" """
        bucket = MonthlyBucket(year=2024, month=1, revenue=100.0, order_count=1)

        assert bucket.model_dump(by_alias=True) == {
            "year": 2024,
            "month": 1,
            "revenue": 100.0,
            "orders": 1,
        }
