"""
Dashboard API Endpoints

Consolidated analytics snapshot for the dashboard frontend.
"""

from fastapi import APIRouter, Depends
import structlog

from dashboard_analytics.analytics.schemas import AnalyticsSnapshot
from dashboard_analytics.analytics.service import AnalyticsService, get_analytics_service

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get(
    "/analytics",
    response_model=AnalyticsSnapshot,
    response_model_by_alias=True,
)
async def get_dashboard_analytics(
    service: AnalyticsService = Depends(get_analytics_service),
) -> AnalyticsSnapshot:
    """
    Get the dashboard analytics snapshot.

    Served from cache while fresh (10 minutes by default); a miss computes
    every aggregate concurrently. Failures are rendered by the AnalyticsError
    handler as 503 (store unavailable) or 500 (computation failure).
    """
    snapshot = await service.get_dashboard_analytics()
    logger.debug("Dashboard analytics served", customers=snapshot.customer_analytics.total_customers)
    return snapshot
