"""
Database Module
"""
from .connection import init_database, close_database, get_db, DatabaseNotInitializedError
from .models import Base, User, Product, Order, ProductCategory

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "DatabaseNotInitializedError",
    "Base",
    "User",
    "Product",
    "Order",
    "ProductCategory",
]
