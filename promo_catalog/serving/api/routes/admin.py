"""
Admin Endpoints

Promotion CRUD, membership management and active-day maintenance. Each
handler makes exactly one engine call.
"""

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from promo_catalog.engine import PromotionEngine
from promo_catalog.engine.schemas import MembershipCreate, PromotionCreate, PromotionUpdate
from promo_catalog.exceptions import NotFoundError
from promo_catalog.serving.api.dependencies import get_engine

router = APIRouter()


@router.get("/promos/{promo_id}")
async def get_promotion(
    promo_id: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    promotion = await engine.promotions.get(promo_id)
    if promotion is None:
        raise NotFoundError(f"Promotion {promo_id} not found", details={"promo_id": promo_id})
    return {"ok": True, "data": promotion}


@router.post("/promos", status_code=status.HTTP_201_CREATED)
async def create_promotion(
    payload: PromotionCreate,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return {"ok": True, "data": await engine.promotions.create(payload)}


@router.put("/promos/{promo_id}")
async def update_promotion(
    promo_id: str,
    payload: PromotionUpdate,
    refresh_active_days: bool = Query(True, description="Rebuild active days when the range changes"),
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    promotion = await engine.coordinator.update_promotion(
        promo_id, payload, refresh_active_days=refresh_active_days
    )
    return {"ok": True, "data": promotion}


@router.delete("/promos/{promo_id}")
async def delete_promotion(
    promo_id: str,
    purge_active_days: Optional[bool] = Query(None, description="Also delete active-day rows"),
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    report = await engine.coordinator.delete_promotion_cascade(
        promo_id, purge_active_days=purge_active_days
    )
    return {"ok": True, "data": asdict(report)}


@router.get("/promos/{promo_id}/products")
async def list_products_in_promotion(
    promo_id: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return {"ok": True, "data": await engine.memberships.list_by_promotion(promo_id)}


@router.post("/promos/{promo_id}/products", status_code=status.HTTP_201_CREATED)
async def add_product_to_promotion(
    promo_id: str,
    payload: MembershipCreate,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return {"ok": True, "data": await engine.memberships.add(promo_id, payload)}


@router.delete("/promos/{promo_id}/products/{product_id}")
async def remove_product_from_promotion(
    promo_id: str,
    product_id: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    await engine.memberships.remove(promo_id, product_id)
    return {"ok": True}


@router.post("/promos/{promo_id}/generate-active-days")
async def generate_active_days(
    promo_id: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    days = await engine.active_days.regenerate(promo_id)
    return {"ok": True, "data": {"promo_id": promo_id, "days": days}}


@router.delete("/promos/{promo_id}/active-days/{day}")
async def delete_active_day(
    promo_id: str,
    day: str,
    engine: PromotionEngine = Depends(get_engine),
) -> Dict[str, Any]:
    await engine.active_days.delete_day(promo_id, day)
    return {"ok": True}
