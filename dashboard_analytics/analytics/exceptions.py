"""
Analytics Errors

Every failure of a dashboard computation surfaces as an AnalyticsError:

- StoreUnavailableError: the raw data store (or snapshot store) cannot be
  reached or a driver-level query failure occurred
- ComputationFailureError: a collector, the classifier, KPI derivation or
  snapshot assembly failed on the data it received
"""

from typing import Any, Dict, Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from dashboard_analytics.database.connection import DatabaseNotInitializedError


class AnalyticsError(Exception):
    """Base class for dashboard analytics failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "ANALYTICS_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class StoreUnavailableError(AnalyticsError):
    """Data store unreachable or query failed (503)."""

    def __init__(self, message: str = "Data store unavailable", **details: Any):
        super().__init__(
            message=message,
            error_code="STORE_UNAVAILABLE",
            status_code=503,
            details=details,
        )


class ComputationFailureError(AnalyticsError):
    """Analytics computation failed (500)."""

    def __init__(self, message: str = "Analytics computation failed", **details: Any):
        super().__init__(
            message=message,
            error_code="COMPUTATION_FAILURE",
            status_code=500,
            details=details,
        )


STORE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    DatabaseNotInitializedError,
    RedisError,
    OSError,
)


def translate_error(error: BaseException, stage: str) -> AnalyticsError:
    """
    Map an exception raised while computing a snapshot onto the error taxonomy.

    Args:
        error: The original exception
        stage: Name of the collector or step that raised it

    Returns:
        AnalyticsError: ``error`` itself if already translated, otherwise a
        StoreUnavailableError or ComputationFailureError wrapping its message
    """
    if isinstance(error, AnalyticsError):
        return error
    if isinstance(error, STORE_ERRORS):
        return StoreUnavailableError(
            f"Data store unavailable during {stage}: {error}",
            stage=stage,
            error_type=type(error).__name__,
        )
    return ComputationFailureError(
        f"Analytics computation failed during {stage}: {error}",
        stage=stage,
        error_type=type(error).__name__,
    )
