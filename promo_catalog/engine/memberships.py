"""
Membership Index Manager

Keeps the two membership views in step:

- ``products_by_promo``: products under a promotion
- ``promos_by_product``: promotions applying to a product, with a snapshot of
  the promotion's type and date range taken at write time

A membership fact must exist in both views or in neither, with identical
discount terms. The two writes are separate statements; if the process dies
between them the views diverge until the pair is re-added or removed. Both
writes are idempotent, so repeating the operation repairs the pair.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from promo_catalog.database.connection import QueryExecutor
from promo_catalog.database.models import ProductByPromo, PromoByProduct
from promo_catalog.engine.promotions import require_promotion
from promo_catalog.engine.schemas import (
    MembershipCreate,
    MembershipFact,
    Promotion,
    coerce,
)
from promo_catalog.exceptions import ValidationError

logger = structlog.get_logger(__name__)


def _require_id(name: str, value: Optional[str]) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{name} is required", details={name: value})
    return value


class MembershipIndexManager:
    """Writes and reads the promotion<->product membership views."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    async def list_by_promotion(self, promo_id: str) -> List[MembershipFact]:
        """All products under a promotion."""
        rows = await self.executor.select_rows(ProductByPromo, promo_id=promo_id)
        return [MembershipFact.model_validate(row) for row in rows]

    async def list_by_product(self, product_id: str) -> List[MembershipFact]:
        """All promotions applying to a product, with their snapshot fields."""
        rows = await self.executor.select_rows(PromoByProduct, product_id=product_id)
        return [MembershipFact.model_validate(row) for row in rows]

    async def add(
        self,
        promo_id: str,
        data: Union[MembershipCreate, Mapping[str, Any]],
    ) -> MembershipFact:
        """
        Add a product to a promotion.

        Writes the promotion-keyed row first, then reads the canonical
        promotion for its type and date range and writes the product-keyed row.

        Raises:
            ValidationError: Malformed discount terms
            NotFoundError: The promotion does not exist (the promotion-keyed
                row has already been written at that point)
        """
        _require_id("promo_id", promo_id)
        membership = coerce(MembershipCreate, data)

        await self.executor.insert(
            ProductByPromo,
            {"promo_id": promo_id, **membership.model_dump()},
        )

        promotion = await require_promotion(self.executor, promo_id)
        fact = await self._write_product_view(promotion, membership.model_dump())

        logger.info(
            "Product added to promotion",
            promo_id=promo_id,
            product_id=membership.product_id,
            discount_percent=membership.discount_percent,
            discount_amount=membership.discount_amount,
        )
        return fact

    async def remove(self, promo_id: str, product_id: str) -> None:
        """Delete both directional rows. Idempotent."""
        _require_id("promo_id", promo_id)
        _require_id("product_id", product_id)

        await self.executor.delete(ProductByPromo, promo_id=promo_id, product_id=product_id)
        await self.executor.delete(PromoByProduct, product_id=product_id, promo_id=promo_id)
        logger.info("Product removed from promotion", promo_id=promo_id, product_id=product_id)

    async def refresh_snapshots(
        self,
        promotion: Promotion,
        memberships: Optional[Iterable[MembershipFact]] = None,
    ) -> int:
        """
        Rewrite the product-keyed rows of ``promotion`` with its current
        type and date range, using the promotion-keyed view as the source of
        discount terms.

        Returns:
            Number of product-keyed rows written
        """
        if memberships is None:
            memberships = await self.list_by_promotion(promotion.promo_id)

        count = 0
        for membership in memberships:
            await self._write_product_view(promotion, membership.model_dump())
            count += 1

        logger.info("Membership snapshots refreshed", promo_id=promotion.promo_id, products=count)
        return count

    async def _write_product_view(self, promotion: Promotion, terms: Dict[str, Any]) -> MembershipFact:
        fact = MembershipFact(
            promo_id=promotion.promo_id,
            product_id=terms["product_id"],
            discount_percent=terms.get("discount_percent", 0),
            discount_amount=terms.get("discount_amount", 0),
            gift_product_id=terms.get("gift_product_id"),
            type=promotion.type,
            start_date=promotion.start_date,
            end_date=promotion.end_date,
        )
        await self.executor.insert(PromoByProduct, fact.model_dump())
        return fact
