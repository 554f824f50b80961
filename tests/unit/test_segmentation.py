"""
Unit Tests - Customer Segmentation
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import polars as pl
import pytest

from dashboard_analytics.analytics.schemas import CustomerSegment
from dashboard_analytics.analytics.segmentation import (
    SEGMENT_RULES,
    classify_customers,
    customer_frame,
    segment_expression,
    to_customer_facts,
)

NOW = datetime(2024, 2, 12, 12, 0, 0)


def customer(customer_id: str, total_spent: float, days_ago: float, order_count: int = 1):
    return SimpleNamespace(
        customer_id=customer_id,
        total_spent=total_spent,
        order_count=order_count,
        last_purchase_at=NOW - timedelta(days=days_ago),
    )


def classify(*rows):
    return to_customer_facts(classify_customers(customer_frame(rows), NOW))


class TestSegmentRules:
    """Tests for the ordered segment rule table"""

    @pytest.mark.parametrize(
        "total_spent, days_ago, expected",
        [
            (1500, 3, CustomerSegment.VIP),
            (1000, 6.9, CustomerSegment.VIP),
            (999.99, 3, CustomerSegment.ACTIVE),
            (1500, 10, CustomerSegment.REGULAR),
            (50, 7, CustomerSegment.REGULAR),
            (50, 29.5, CustomerSegment.REGULAR),
            (5000, 30, CustomerSegment.AT_RISK),
            (50, 400, CustomerSegment.AT_RISK),
        ],
    )
    def test_first_matching_rule_wins(self, total_spent, days_ago, expected):
        """Spend only matters inside the 7-day window"""
        (fact,) = classify(customer("c-1", total_spent, days_ago))

        assert fact.segment == expected

    def test_rule_order_is_explicit(self):
        """VIP is checked before Active, Active before Regular"""
        labels = [segment for _, segment in SEGMENT_RULES]

        assert labels == [CustomerSegment.VIP, CustomerSegment.ACTIVE, CustomerSegment.REGULAR]

    def test_empty_rule_table_uses_default(self):
        """Without rules every customer gets the default segment"""
        df = pl.DataFrame({"days_since_last_purchase": [1.0, 100.0]})

        result = df.with_columns(segment_expression(rules=(), default=CustomerSegment.REGULAR))

        assert result["segment"].to_list() == ["Regular", "Regular"]


class TestClassifyCustomers:
    """Tests for per-customer facts"""

    def test_derived_fields(self):
        """Average order value and recency are derived per customer"""
        (fact,) = classify(customer("c-1", 300.0, 2.5, order_count=3))

        assert fact.average_order_value == pytest.approx(100.0)
        assert fact.days_since_last_purchase == pytest.approx(2.5)
        assert fact.last_purchase_at == NOW - timedelta(days=2.5)

    def test_sorted_by_customer_id(self):
        """Facts come back in customer id order"""
        facts = classify(customer("c-2", 10, 1), customer("c-1", 10, 1), customer("c-3", 10, 1))

        assert [fact.customer_id for fact in facts] == ["c-1", "c-2", "c-3"]

    def test_no_customers(self):
        """An empty order set yields no facts"""
        assert classify() == ()

    def test_timezone_aware_timestamps_are_normalized(self):
        """Aware timestamps are converted to naive UTC before comparison"""
        row = SimpleNamespace(
            customer_id="c-1",
            total_spent=10.0,
            order_count=1,
            last_purchase_at=(NOW - timedelta(days=1)).replace(tzinfo=timezone.utc),
        )

        (fact,) = classify(row)

        assert fact.days_since_last_purchase == pytest.approx(1.0)
        assert fact.segment == CustomerSegment.ACTIVE

    def test_serialized_with_frontend_keys(self):
        """Facts serialize with camelCase keys and the display label"""
        (fact,) = classify(customer("c-1", 10, 45))

        payload = fact.model_dump(mode="json", by_alias=True)

        assert payload["customerId"] == "c-1"
        assert payload["segment"] == "At Risk"
        assert "lastPurchaseDate" in payload
        assert "daysSinceLastPurchase" in payload
