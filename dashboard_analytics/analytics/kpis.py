"""
KPI Derivation

Ratios derived from already-computed aggregates. Zero denominators produce
zero values rather than errors.
"""

from decimal import ROUND_HALF_UP, Decimal

from dashboard_analytics.analytics.schemas import (
    InventoryMetrics,
    Kpis,
    PopulationCounts,
    RevenueTotals,
)


def format_rate(value: float) -> str:
    """Render a percentage with exactly two decimals, rounding ties upward."""
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def derive_kpis(
    population: PopulationCounts,
    revenue: RevenueTotals,
    inventory: InventoryMetrics,
) -> Kpis:
    """
    Derive dashboard KPIs.

    - average_order_value: revenue per order
    - conversion_rate: orders per 100 users, as a two-decimal string
    - stock_turnover_rate: revenue per unit in stock

    Args:
        population: User and product counts
        revenue: Revenue total and order count
        inventory: Stock metrics

    Returns:
        Kpis with 0 (or "0.00") wherever the denominator is zero
    """
    if revenue.total_orders > 0:
        average_order_value = revenue.total_revenue / revenue.total_orders
    else:
        average_order_value = 0.0

    if population.active_users > 0:
        conversion_rate = format_rate(revenue.total_orders / population.active_users * 100)
    else:
        conversion_rate = format_rate(0)

    if inventory.total_stock > 0:
        stock_turnover_rate = revenue.total_revenue / inventory.total_stock
    else:
        stock_turnover_rate = 0.0

    return Kpis(
        average_order_value=average_order_value,
        conversion_rate=conversion_rate,
        stock_turnover_rate=stock_turnover_rate,
    )
