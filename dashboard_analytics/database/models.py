"""
Database Models - Raw Transactional Records

The dashboard reads three record sets owned by the operational store:

- User: registered accounts, counted as active users
- Product: catalog entries with stock levels
- Order: customer orders with total amount and timestamp

Indexes back the aggregate read paths: order date, customer, stock level
and category.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class ProductCategory(str, Enum):
    """Product category enumeration"""
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    HOME_GARDEN = "home_garden"
    SPORTS = "sports"
    BEAUTY = "beauty"
    BOOKS = "books"
    TOYS = "toys"
    OTHER = "other"


class User(Base):
    """
    User Table

    Registered users. Every user counts towards the active user population;
    users with at least one order are customers.
    """
    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    orders: Mapped[List["Order"]] = relationship(back_populates="customer")

    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
    )


class Product(Base):
    """
    Product Table

    Catalog entries with their current stock quantity.
    """
    __tablename__ = "products"

    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[ProductCategory] = mapped_column(
        SQLEnum(ProductCategory), default=ProductCategory.OTHER, nullable=False
    )
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        Index("ix_products_stock", "stock"),
        Index("ix_products_category", "category"),
    )


class Order(Base):
    """
    Order Table

    One row per customer order; grain is the order, measures are the
    order total and its timestamp.
    """
    __tablename__ = "orders"

    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id"), nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    order_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    customer: Mapped["User"] = relationship(back_populates="orders")

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_amount_non_negative"),
        Index("ix_orders_customer", "customer_id"),
    )


# Descending indexes for recency lookups
Index("ix_users_last_login", User.last_login.desc())
Index("ix_orders_order_date", Order.order_date.desc())
