"""
Demo data seeding.

Creates a handful of promotions, attaches products and expands active days,
all through the engine so every view is written the same way the API would.

Usage:
    python -m promo_catalog.seed
"""

import asyncio
from typing import Any, Dict, List, Tuple

import structlog

from promo_catalog.config import get_settings
from promo_catalog.config.logging import configure_logging
from promo_catalog.database.connection import QueryExecutor
from promo_catalog.engine import PromotionEngine, build_engine

logger = structlog.get_logger(__name__)

PROMOTIONS: List[Dict[str, Any]] = [
    {
        "promo_id": "KM01",
        "name": "Giảm giá cuối năm",
        "type": "Giảm giá %",
        "start_date": "2025-12-01",
        "end_date": "2025-12-31",
        "description": "Year-end percentage discount",
        "stackable": False,
        "min_order_amount": "200000",
        "limit_per_customer": 1,
        "channels": ["online", "store"],
    },
    {
        "promo_id": "KM02",
        "name": "Mua 1 tặng 1",
        "type": "Quà tặng",
        "start_date": "2025-12-15",
        "end_date": "2025-12-25",
        "description": "Gift with purchase",
        "global_quota": 500,
    },
    {
        "promo_id": "KM03",
        "name": "Flash sale Giáng sinh",
        "type": "Giảm giá %",
        "start_date": "2025-12-20",
        "end_date": "2025-12-22",
        "description": "Christmas flash sale",
    },
]

MEMBERSHIPS: List[Tuple[str, Dict[str, Any]]] = [
    ("KM01", {"product_id": "SP001", "discount_percent": 15}),
    ("KM01", {"product_id": "SP002", "discount_percent": 15}),
    ("KM02", {"product_id": "SP002", "gift_product_id": "SP010"}),
    ("KM03", {"product_id": "SP003", "discount_percent": 10}),
    ("KM03", {"product_id": "SP004", "discount_amount": 50000}),
]


async def seed(engine: PromotionEngine) -> Dict[str, int]:
    """Write the demo data. Safe to re-run: every write is an overwrite."""
    days = 0
    for promotion in PROMOTIONS:
        await engine.promotions.create(promotion)
    for promo_id, membership in MEMBERSHIPS:
        await engine.memberships.add(promo_id, membership)
    for promotion in PROMOTIONS:
        days += await engine.active_days.regenerate(promotion["promo_id"])

    counts = {
        "promotions": len(PROMOTIONS),
        "memberships": len(MEMBERSHIPS),
        "active_days": days,
    }
    logger.info("Demo data seeded", **counts)
    return counts


async def run() -> None:
    settings = get_settings()
    executor = QueryExecutor.from_settings(settings)
    await executor.connect()
    try:
        await executor.create_schema()
        await seed(build_engine(executor, settings))
    finally:
        await executor.close()


def main() -> None:
    configure_logging(get_settings())
    logger.info("Starting demo seeding...")
    asyncio.run(run())


if __name__ == "__main__":
    main()
