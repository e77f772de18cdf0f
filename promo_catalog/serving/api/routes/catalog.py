"""
Catalog Read Endpoints

Customer-facing reads, each served by one view.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from promo_catalog.engine import PromotionEngine
from promo_catalog.serving.api.dependencies import get_engine

router = APIRouter()


@router.get("/promos/active")
async def active_promotions(
    day: Optional[str] = Query(None, description="Calendar day YYYY-MM-DD, defaults to today"),
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Promotions active on a day."""
    facts = await engine.active_days.list_for_day(day or date.today())
    return {"ok": True, "data": facts}


@router.get("/promos/type/{promo_type}")
async def promotions_by_type(
    promo_type: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Promotions of one type."""
    return {"ok": True, "data": await engine.promotions.list_by_type(promo_type)}


@router.get("/promos/{promo_id}/products")
async def products_in_promotion(
    promo_id: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Products under a promotion with their discount terms."""
    memberships = await engine.memberships.list_by_promotion(promo_id)
    return {
        "ok": True,
        "data": [m.model_dump(exclude={"type", "start_date", "end_date"}) for m in memberships],
    }


@router.get("/products/{product_id}/promos")
async def promotions_for_product(
    product_id: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Promotions applying to a product."""
    return {"ok": True, "data": await engine.memberships.list_by_product(product_id)}
