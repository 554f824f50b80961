"""
Snapshot Assembler

Combines collector outputs, customer facts and KPIs into one AnalyticsSnapshot.
"""

from typing import Sequence

from dashboard_analytics.analytics.schemas import (
    AnalyticsSnapshot,
    CustomerAnalytics,
    CustomerFact,
    InventoryMetrics,
    Kpis,
    MonthlyBucket,
    PopulationCounts,
    RevenueTotals,
)


def summarize_customers(facts: Sequence[CustomerFact]) -> CustomerAnalytics:
    """Customer count and average lifetime value (0 without customers)."""
    total_customers = len(facts)
    if total_customers > 0:
        average_lifetime_value = sum(fact.total_spent for fact in facts) / total_customers
    else:
        average_lifetime_value = 0.0

    return CustomerAnalytics(
        total_customers=total_customers,
        average_lifetime_value=average_lifetime_value,
        customer_segments=tuple(facts),
    )


def assemble_snapshot(
    population: PopulationCounts,
    revenue: RevenueTotals,
    monthly_sales: Sequence[MonthlyBucket],
    inventory: InventoryMetrics,
    customer_facts: Sequence[CustomerFact],
    kpis: Kpis,
) -> AnalyticsSnapshot:
    """
    Build the dashboard snapshot from fully computed parts.

    Callers pass only complete results; nothing here fills in missing parts.
    """
    return AnalyticsSnapshot(
        active_users=population.active_users,
        total_products=population.total_products,
        total_revenue=revenue.total_revenue,
        monthly_sales=tuple(monthly_sales),
        inventory=inventory,
        customer_analytics=summarize_customers(customer_facts),
        kpis=kpis,
    )
