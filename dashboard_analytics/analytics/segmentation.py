"""
Customer Segmentation

Reduces orders grouped by customer into spend and recency facts, then assigns
each customer exactly one segment from an ordered rule table:

    1. VIP      total spent >= 1000 and last purchase under 7 days ago
    2. Active   last purchase under 7 days ago
    3. Regular  last purchase under 30 days ago
    4. At Risk  everyone else

Rules are evaluated top-down and the first match wins, so spend only matters
inside the 7-day window: a big spender who last bought 10 days ago is Regular.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence, Tuple

import polars as pl
import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard_analytics.analytics.schemas import CustomerFact, CustomerSegment
from dashboard_analytics.database.models import Order

logger = structlog.get_logger(__name__)

VIP_MIN_SPEND = 1000
RECENT_DAYS = 7
LAPSING_DAYS = 30
MS_PER_DAY = 86_400_000

CUSTOMER_SCHEMA = {
    "customer_id": pl.Utf8,
    "total_spent": pl.Float64,
    "order_count": pl.Int64,
    "last_purchase_at": pl.Datetime("us"),
}

SegmentRule = Tuple[pl.Expr, CustomerSegment]

SEGMENT_RULES: Tuple[SegmentRule, ...] = (
    (
        (pl.col("total_spent") >= VIP_MIN_SPEND) & (pl.col("days_since_last_purchase") < RECENT_DAYS),
        CustomerSegment.VIP,
    ),
    (pl.col("days_since_last_purchase") < RECENT_DAYS, CustomerSegment.ACTIVE),
    (pl.col("days_since_last_purchase") < LAPSING_DAYS, CustomerSegment.REGULAR),
)
DEFAULT_SEGMENT = CustomerSegment.AT_RISK


def segment_expression(
    rules: Sequence[SegmentRule] = SEGMENT_RULES,
    default: CustomerSegment = DEFAULT_SEGMENT,
) -> pl.Expr:
    """
    Fold a rule table into a single when/then/otherwise expression.

    Args:
        rules: (condition, segment) pairs in priority order
        default: Segment for rows no rule matches

    Returns:
        Expression producing the "segment" column
    """
    expression = None
    for condition, segment in rules:
        label = pl.lit(segment.value)
        if expression is None:
            expression = pl.when(condition).then(label)
        else:
            expression = expression.when(condition).then(label)

    if expression is None:
        return pl.lit(default.value).alias("segment")
    return expression.otherwise(pl.lit(default.value)).alias("segment")


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def customer_frame(rows: Iterable[Any]) -> pl.DataFrame:
    """Build the per-customer frame from grouped order rows."""
    return pl.DataFrame(
        [
            {
                "customer_id": str(row.customer_id),
                "total_spent": float(row.total_spent or 0),
                "order_count": int(row.order_count or 0),
                "last_purchase_at": _as_naive_utc(row.last_purchase_at),
            }
            for row in rows
        ],
        schema=CUSTOMER_SCHEMA,
    )


def classify_customers(frame: pl.DataFrame, now: datetime) -> pl.DataFrame:
    """
    Derive average order value and recency, then assign segments.

    Args:
        frame: Per-customer frame with CUSTOMER_SCHEMA columns
        now: Reference time for recency (naive UTC)

    Returns:
        Frame with average_order_value, days_since_last_purchase and segment
        columns added, ordered by customer_id
    """
    return (
        frame.with_columns(
            pl.when(pl.col("order_count") > 0)
            .then(pl.col("total_spent") / pl.col("order_count"))
            .otherwise(0.0)
            .alias("average_order_value"),
            ((pl.lit(now) - pl.col("last_purchase_at")).dt.total_milliseconds() / MS_PER_DAY)
            .alias("days_since_last_purchase"),
        )
        .with_columns(segment_expression())
        .sort("customer_id")
    )


def to_customer_facts(frame: pl.DataFrame) -> Tuple[CustomerFact, ...]:
    """Convert a classified frame into CustomerFact values."""
    return tuple(CustomerFact(**record) for record in frame.iter_rows(named=True))


async def collect_customer_facts(session: AsyncSession, now: datetime) -> Tuple[CustomerFact, ...]:
    """
    Aggregate orders per customer and classify each customer.

    Args:
        session: Database session
        now: Reference time for recency, taken when the snapshot is computed

    Returns:
        One CustomerFact per customer with at least one order
    """
    result = await session.execute(
        select(
            Order.customer_id,
            func.sum(Order.total_amount).label("total_spent"),
            func.count(Order.order_id).label("order_count"),
            func.max(Order.order_date).label("last_purchase_at"),
        ).group_by(Order.customer_id)
    )

    facts = to_customer_facts(classify_customers(customer_frame(result.all()), now))

    logger.debug(
        "Customers classified",
        customers=len(facts),
        vip=sum(1 for fact in facts if fact.segment == CustomerSegment.VIP),
    )
    return facts
