"""
Metric Collectors

Independent reductions over one record set each, safe to run concurrently
(each takes its own session):

- Population Counter: users and products
- Revenue Aggregator: revenue total and order count
- Monthly Sales Aggregator: revenue and orders per (year, month)
- Inventory Aggregator: stock totals and low/out-of-stock counts

Grouping runs in the store; the invariants on the results (zero defaults,
bucket ordering and uniqueness) are enforced here.
"""

from typing import Any, Iterable, Tuple

import polars as pl
import structlog
from sqlalchemy import case, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard_analytics.analytics.schemas import (
    InventoryMetrics,
    MonthlyBucket,
    PopulationCounts,
    RevenueTotals,
)
from dashboard_analytics.database.models import Order, Product, User

logger = structlog.get_logger(__name__)

# Products with fewer units than this are low on stock
LOW_STOCK_THRESHOLD = 10

MONTHLY_SCHEMA = {
    "year": pl.Int64,
    "month": pl.Int64,
    "revenue": pl.Float64,
    "order_count": pl.Int64,
}


async def count_population(session: AsyncSession) -> PopulationCounts:
    """Count user and product records."""
    active_users = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    total_products = (await session.execute(select(func.count()).select_from(Product))).scalar_one()

    return PopulationCounts(
        active_users=active_users or 0,
        total_products=total_products or 0,
    )


async def aggregate_revenue(session: AsyncSession) -> RevenueTotals:
    """Sum order totals and count orders. An empty order set yields zeros."""
    row = (
        await session.execute(
            select(
                func.sum(Order.total_amount).label("total_revenue"),
                func.count(Order.order_id).label("total_orders"),
            )
        )
    ).one()

    return RevenueTotals(
        total_revenue=float(row.total_revenue or 0),
        total_orders=row.total_orders or 0,
    )


async def aggregate_monthly_sales(session: AsyncSession) -> Tuple[MonthlyBucket, ...]:
    """
    Group orders by calendar month of the order date.

    Returns:
        Buckets in ascending (year, month) order, one per month with orders
    """
    year = extract("year", Order.order_date)
    month = extract("month", Order.order_date)

    result = await session.execute(
        select(
            year.label("year"),
            month.label("month"),
            func.sum(Order.total_amount).label("revenue"),
            func.count(Order.order_id).label("orders"),
        )
        .group_by(year, month)
        .order_by(year, month)
    )

    buckets = build_monthly_buckets(result.all())
    logger.debug("Monthly sales aggregated", buckets=len(buckets))
    return buckets


def build_monthly_buckets(rows: Iterable[Any]) -> Tuple[MonthlyBucket, ...]:
    """
    Normalize grouped month rows into unique, ascending buckets.

    Rows sharing a (year, month) key are merged and the result is sorted,
    regardless of the order the store returned them in.

    Args:
        rows: Objects with year, month, revenue and orders attributes

    Returns:
        Tuple of MonthlyBucket sorted by year, then month
    """
    frame = pl.DataFrame(
        [
            {
                "year": int(row.year),
                "month": int(row.month),
                "revenue": float(row.revenue or 0),
                "order_count": int(row.orders or 0),
            }
            for row in rows
        ],
        schema=MONTHLY_SCHEMA,
    )

    frame = (
        frame.group_by(["year", "month"])
        .agg(
            pl.col("revenue").sum(),
            pl.col("order_count").sum(),
        )
        .sort(["year", "month"])
    )

    return tuple(MonthlyBucket(**record) for record in frame.iter_rows(named=True))


async def aggregate_inventory(session: AsyncSession) -> InventoryMetrics:
    """
    Compute stock health across all products.

    An empty catalog yields all zeros with an average of 0.
    """
    row = (
        await session.execute(
            select(
                func.sum(Product.stock).label("total_stock"),
                func.avg(Product.stock).label("average_stock"),
                func.sum(case((Product.stock < LOW_STOCK_THRESHOLD, 1), else_=0)).label("low_stock"),
                func.sum(case((Product.stock == 0, 1), else_=0)).label("out_of_stock"),
            )
        )
    ).one()

    inventory = InventoryMetrics(
        total_stock=int(row.total_stock or 0),
        average_stock=float(row.average_stock or 0),
        low_stock=int(row.low_stock or 0),
        out_of_stock=int(row.out_of_stock or 0),
    )
    logger.debug("Inventory aggregated", low_stock=inventory.low_stock, out_of_stock=inventory.out_of_stock)
    return inventory
