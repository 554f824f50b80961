"""
Analytics Schemas

Immutable value objects produced by the aggregation engine. Field names are
snake_case in Python and camelCase on the wire, matching the keys the
dashboard frontend reads (monthlySalesData, inventoryMetrics,
customerAnalytics.customerSegments).
"""

from datetime import datetime
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CustomerSegment(str, Enum):
    """Recency/spend segment labels"""
    VIP = "VIP"
    ACTIVE = "Active"
    REGULAR = "Regular"
    AT_RISK = "At Risk"


class SnapshotModel(BaseModel):
    """Frozen base model serialized with camelCase aliases"""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# PARTIAL AGGREGATES
# =============================================================================

class PopulationCounts(SnapshotModel):
    """Record counts for users and products"""
    active_users: int = 0
    total_products: int = 0


class RevenueTotals(SnapshotModel):
    """Revenue and order count across all orders"""
    total_revenue: float = 0.0
    total_orders: int = 0


class MonthlyBucket(SnapshotModel):
    """Revenue and order count for one calendar month"""
    year: int
    month: int = Field(ge=1, le=12)
    revenue: float = 0.0
    order_count: int = Field(default=0, alias="orders")


class InventoryMetrics(SnapshotModel):
    """Stock health across the product catalog"""
    total_stock: int = 0
    average_stock: float = 0.0
    low_stock: int = 0
    out_of_stock: int = 0


# =============================================================================
# CUSTOMER ANALYTICS
# =============================================================================

class CustomerFact(SnapshotModel):
    """Per-customer spend and recency with its assigned segment"""
    customer_id: str
    total_spent: float
    order_count: int
    average_order_value: float
    last_purchase_at: datetime = Field(alias="lastPurchaseDate")
    days_since_last_purchase: float
    segment: CustomerSegment


class CustomerAnalytics(SnapshotModel):
    """Customer base summary"""
    total_customers: int = 0
    average_lifetime_value: float = 0.0
    customer_segments: Tuple[CustomerFact, ...] = ()


class Kpis(SnapshotModel):
    """Derived ratios; conversion_rate is a fixed two-decimal string"""
    average_order_value: float = 0.0
    conversion_rate: str = "0.00"
    stock_turnover_rate: float = 0.0


# =============================================================================
# SNAPSHOT
# =============================================================================

class AnalyticsSnapshot(SnapshotModel):
    """
    Consolidated dashboard analytics.

    Built in one piece by the snapshot assembler and never modified afterwards.
    """
    active_users: int
    total_products: int
    total_revenue: float
    monthly_sales: Tuple[MonthlyBucket, ...] = Field(default=(), alias="monthlySalesData")
    inventory: InventoryMetrics = Field(default_factory=InventoryMetrics, alias="inventoryMetrics")
    customer_analytics: CustomerAnalytics = Field(default_factory=CustomerAnalytics)
    kpis: Kpis = Field(default_factory=Kpis)

    @property
    def customer_facts(self) -> Tuple[CustomerFact, ...]:
        """Per-customer facts in customer id order"""
        return self.customer_analytics.customer_segments


class CacheEntry(SnapshotModel):
    """A stored snapshot with its computation and expiry timestamps"""
    snapshot: AnalyticsSnapshot
    computed_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        """Whether the entry is still within its TTL at ``now``"""
        return now < self.expires_at

    @property
    def ttl_seconds(self) -> int:
        return max(1, int((self.expires_at - self.computed_at).total_seconds()))
