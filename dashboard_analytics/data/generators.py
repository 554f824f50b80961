"""
Synthetic Data Generator

Generates demo e-commerce records for the dashboard:
- Users with names, emails and last login times
- Products across categories with uneven stock (some low, some sold out)
- Orders spread over the past year with skewed customer activity

Every generator takes a seed so the same arguments always yield the same data.
"""

import random
import uuid
from datetime import datetime, timedelta
from typing import Optional

import polars as pl
import structlog
from faker import Faker

from dashboard_analytics.analytics.clock import utcnow
from dashboard_analytics.database.models import ProductCategory

logger = structlog.get_logger(__name__)

DEFAULT_SEED = 42


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = {
    ProductCategory.ELECTRONICS: (["Phone", "Laptop", "Tablet", "Headphones", "Camera"], (50, 2000)),
    ProductCategory.CLOTHING: (["Shirt", "Pants", "Dress", "Shoes", "Jacket"], (20, 500)),
    ProductCategory.HOME_GARDEN: (["Chair", "Kettle", "Bedding", "Planter", "Lamp"], (30, 1000)),
    ProductCategory.SPORTS: (["Dumbbells", "Tent", "Football", "Wetsuit", "Helmet"], (25, 800)),
    ProductCategory.BEAUTY: (["Serum", "Lipstick", "Shampoo", "Perfume", "Brush"], (10, 200)),
    ProductCategory.BOOKS: (["Novel", "Biography", "Textbook", "Picture Book", "Comic"], (10, 50)),
    ProductCategory.TOYS: (["Puzzle", "Robot", "Doll", "Board Game", "Blocks"], (10, 150)),
}

# (weight, stock range) - sold out, low stock, healthy
STOCK_LEVELS = [
    (0.10, (0, 0)),
    (0.20, (1, 9)),
    (0.70, (10, 500)),
]

# Share of users who never place an order
NON_BUYER_RATE = 0.25

USER_SCHEMA = {
    "user_id": pl.Utf8,
    "email": pl.Utf8,
    "full_name": pl.Utf8,
    "last_login": pl.Datetime("us"),
    "created_at": pl.Datetime("us"),
}
PRODUCT_SCHEMA = {
    "product_id": pl.Utf8,
    "name": pl.Utf8,
    "category": pl.Utf8,
    "stock": pl.Int64,
    "unit_price": pl.Float64,
}
ORDER_SCHEMA = {
    "order_id": pl.Utf8,
    "customer_id": pl.Utf8,
    "total_amount": pl.Float64,
    "order_date": pl.Datetime("us"),
}


class _SeededGenerator:
    """Shared seeded Faker and random instances"""

    def __init__(self, seed: int = DEFAULT_SEED):
        self.rng = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def _uuid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))


# =============================================================================
# GENERATORS
# =============================================================================

class UserGenerator(_SeededGenerator):
    """Generate registered users"""

    def generate(self, n: int = 200, now: Optional[datetime] = None) -> pl.DataFrame:
        """Generate n users; emails are unique."""
        now = now or utcnow()
        users = []

        for i in range(n):
            first_name = self.fake.first_name()
            last_name = self.fake.last_name()
            created_at = now - timedelta(days=self.rng.randint(30, 3 * 365))
            last_login = created_at + (now - created_at) * self.rng.random()

            users.append({
                "user_id": self._uuid(),
                "email": f"{first_name}.{last_name}.{i}@{self.fake.free_email_domain()}".lower(),
                "full_name": f"{first_name} {last_name}",
                "last_login": last_login.replace(microsecond=0),
                "created_at": created_at.replace(microsecond=0),
            })

        return pl.DataFrame(users, schema=USER_SCHEMA)


class ProductGenerator(_SeededGenerator):
    """Generate a product catalog"""

    def generate(self, n: int = 100) -> pl.DataFrame:
        """Generate n products"""
        products = []
        weights = [weight for weight, _ in STOCK_LEVELS]

        for _ in range(n):
            category = self.rng.choice(list(CATEGORIES))
            kinds, (low_price, high_price) = CATEGORIES[category]
            _, (low_stock, high_stock) = self.rng.choices(STOCK_LEVELS, weights=weights)[0]

            products.append({
                "product_id": self._uuid(),
                "name": f"{self.fake.word().title()} {self.rng.choice(kinds)}",
                "category": category.value,
                "stock": self.rng.randint(low_stock, high_stock),
                "unit_price": round(self.rng.uniform(low_price, high_price), 2),
            })

        return pl.DataFrame(products, schema=PRODUCT_SCHEMA)


class OrderGenerator(_SeededGenerator):
    """
    Generate orders for a set of users.

    A quarter of the users never buy; the rest get Pareto-distributed weights
    so a few customers place most orders.
    """

    def __init__(self, users_df: pl.DataFrame, seed: int = DEFAULT_SEED):
        super().__init__(seed)
        user_ids = users_df["user_id"].to_list()
        self.customer_ids = [uid for uid in user_ids if self.rng.random() >= NON_BUYER_RATE]
        self.weights = [self.rng.paretovariate(1.5) for _ in self.customer_ids]

    def generate(
        self,
        n: int = 1000,
        now: Optional[datetime] = None,
        days: int = 365,
    ) -> pl.DataFrame:
        """Generate n orders dated within the last ``days`` days."""
        if n > 0 and not self.customer_ids:
            raise ValueError("Cannot generate orders without customers")

        now = now or utcnow()
        start = now - timedelta(days=days)
        orders = []

        for _ in range(n):
            order_date = start + (now - start) * self.rng.random()
            orders.append({
                "order_id": self._uuid(),
                "customer_id": self.rng.choices(self.customer_ids, weights=self.weights)[0],
                "total_amount": round(self.rng.uniform(15, 600), 2),
                "order_date": order_date.replace(microsecond=0),
            })

        return pl.DataFrame(orders, schema=ORDER_SCHEMA).sort("order_date")


class DataGenerator:
    """Main data generator orchestrator"""

    def __init__(self, seed: int = DEFAULT_SEED):
        self.seed = seed

    def generate_all(
        self,
        n_users: int = 200,
        n_products: int = 100,
        n_orders: int = 1000,
        now: Optional[datetime] = None,
    ) -> dict:
        """Generate users, products and orders as polars frames"""
        now = now or utcnow()

        users_df = UserGenerator(self.seed).generate(n_users, now=now)
        products_df = ProductGenerator(self.seed + 1).generate(n_products)
        orders_df = OrderGenerator(users_df, seed=self.seed + 2).generate(n_orders, now=now)

        logger.info(
            "Synthetic data generated",
            users=len(users_df),
            products=len(products_df),
            orders=len(orders_df),
            customers=orders_df["customer_id"].n_unique(),
        )
        return {
            "users": users_df,
            "products": products_df,
            "orders": orders_df,
        }
