"""
Analytics Module
"""
from .exceptions import AnalyticsError, ComputationFailureError, StoreUnavailableError
from .schemas import AnalyticsSnapshot, CacheEntry, CustomerFact, CustomerSegment

__all__ = [
    "AnalyticsError",
    "ComputationFailureError",
    "StoreUnavailableError",
    "AnalyticsSnapshot",
    "CacheEntry",
    "CustomerFact",
    "CustomerSegment",
]
