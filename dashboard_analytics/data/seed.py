"""
Demo Data Loader

Loads synthetic users, products and orders into the configured database.

Usage:
    dashboard-analytics-seed --users 200 --products 100 --orders 1000
    dashboard-analytics-seed --reset --seed 7
"""

import argparse
import asyncio
import uuid
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import polars as pl
import structlog
from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard_analytics.config.logging import configure_logging
from dashboard_analytics.data.generators import DEFAULT_SEED, DataGenerator
from dashboard_analytics.database.connection import close_database, get_db, init_database
from dashboard_analytics.database.models import Order, Product, ProductCategory, User

logger = structlog.get_logger(__name__)

BATCH_SIZE = 1000


def user_rows(frame: pl.DataFrame) -> List[dict]:
    return [
        {**row, "user_id": uuid.UUID(row["user_id"])}
        for row in frame.iter_rows(named=True)
    ]


def product_rows(frame: pl.DataFrame) -> List[dict]:
    return [
        {
            **row,
            "product_id": uuid.UUID(row["product_id"]),
            "category": ProductCategory(row["category"]),
            "unit_price": Decimal(str(row["unit_price"])),
        }
        for row in frame.iter_rows(named=True)
    ]


def order_rows(frame: pl.DataFrame) -> List[dict]:
    return [
        {
            **row,
            "order_id": uuid.UUID(row["order_id"]),
            "customer_id": uuid.UUID(row["customer_id"]),
            "total_amount": Decimal(str(row["total_amount"])),
        }
        for row in frame.iter_rows(named=True)
    ]


async def _insert_batches(session: AsyncSession, model, rows: Sequence[dict]) -> None:
    for start in range(0, len(rows), BATCH_SIZE):
        await session.execute(insert(model), rows[start:start + BATCH_SIZE])


async def seed_database(
    n_users: int = 200,
    n_products: int = 100,
    n_orders: int = 1000,
    seed: int = DEFAULT_SEED,
    reset: bool = False,
) -> Dict[str, int]:
    """
    Generate demo data and insert it in one transaction.

    Args:
        n_users: Number of users
        n_products: Number of products
        n_orders: Number of orders
        seed: Generator seed
        reset: Delete existing orders, products and users first

    Returns:
        Inserted row counts per table
    """
    data = DataGenerator(seed=seed).generate_all(
        n_users=n_users,
        n_products=n_products,
        n_orders=n_orders,
    )

    async with get_db() as db:
        if reset:
            # Orders reference users, so they go first
            for model in (Order, Product, User):
                await db.execute(delete(model))
            logger.info("Existing demo data deleted")
        else:
            existing = await db.scalar(select(func.count()).select_from(User))
            if existing:
                # Generated ids repeat for a given seed
                raise ValueError(
                    f"Database already holds {existing} users; rerun with --reset to replace them"
                )

        await _insert_batches(db, User, user_rows(data["users"]))
        await _insert_batches(db, Product, product_rows(data["products"]))
        await _insert_batches(db, Order, order_rows(data["orders"]))

    counts = {name: len(frame) for name, frame in data.items()}
    logger.info("Demo data loaded", **counts)
    return counts


async def _run(args: argparse.Namespace) -> Dict[str, int]:
    await init_database(create_schema=True)
    try:
        return await seed_database(
            n_users=args.users,
            n_products=args.products,
            n_orders=args.orders,
            seed=args.seed,
            reset=args.reset,
        )
    finally:
        await close_database()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point"""
    parser = argparse.ArgumentParser(description="Load demo data for the analytics dashboard")
    parser.add_argument("--users", type=int, default=200, help="Number of users (default: 200)")
    parser.add_argument("--products", type=int, default=100, help="Number of products (default: 100)")
    parser.add_argument("--orders", type=int, default=1000, help="Number of orders (default: 1000)")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Random seed")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing rows first (required when the database already holds data)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    try:
        asyncio.run(_run(args))
    except ValueError as e:
        parser.exit(1, f"error: {e}\n")


if __name__ == "__main__":
    main()
