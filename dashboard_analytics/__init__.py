"""
E-Commerce Dashboard Analytics

Aggregation and caching engine behind the dashboard analytics endpoint.
"""

__version__ = "1.0.0"
