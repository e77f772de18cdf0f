"""
Promotion Record Store

Owns the canonical promotion row (``promotions_by_id``). Deleting here removes
only the canonical row; cascading across views is the coordinator's job.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

import structlog
from sqlalchemy import select

from promo_catalog.database.connection import QueryExecutor
from promo_catalog.database.models import PromotionById
from promo_catalog.engine.schemas import (
    Promotion,
    PromotionCreate,
    PromotionSummary,
    PromotionUpdate,
    coerce,
)
from promo_catalog.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


def _to_row(promotion: Union[Promotion, PromotionCreate]) -> Dict[str, Any]:
    row = promotion.model_dump()
    row["channels"] = list(row["channels"] or [])
    return row


async def load_promotion(executor: QueryExecutor, promo_id: str) -> Optional[Promotion]:
    """Read the canonical row for ``promo_id``, or None."""
    row = await executor.select_one(PromotionById, promo_id=promo_id)
    if row is None:
        return None
    row["channels"] = row.get("channels") or []
    return Promotion.model_validate(row)


async def require_promotion(executor: QueryExecutor, promo_id: str) -> Promotion:
    """Read the canonical row for ``promo_id``; raise NotFoundError if absent."""
    promotion = await load_promotion(executor, promo_id)
    if promotion is None:
        raise NotFoundError(
            f"Promotion {promo_id} not found",
            details={"promo_id": promo_id},
        )
    return promotion


class PromotionRecordStore:
    """
    CRUD over the canonical promotion table.

    ``create`` with an existing id overwrites it: the store enforces no
    uniqueness, so callers needing exclusivity must check with ``get`` first.
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    async def get(self, promo_id: str) -> Optional[Promotion]:
        return await load_promotion(self.executor, promo_id)

    async def create(self, data: Union[PromotionCreate, Mapping[str, Any]]) -> Promotion:
        """
        Insert a full promotion row.

        Args:
            data: Promotion input; absent optional fields take their defaults

        Returns:
            The record as written

        Raises:
            ValidationError: Malformed input (bad dates, start after end, ...)
        """
        payload = coerce(PromotionCreate, data)
        promotion = Promotion.model_validate(payload.model_dump())
        await self.executor.insert(PromotionById, _to_row(promotion))
        logger.info("Promotion created", promo_id=promotion.promo_id, type=promotion.type)
        return promotion

    async def update(
        self,
        promo_id: str,
        changes: Union[PromotionUpdate, Mapping[str, Any]],
    ) -> Promotion:
        """
        Read-merge-write: apply the supplied fields over the stored record.

        Fields the caller does not supply keep their stored values. The merged
        record is re-validated and written as a full row.

        Raises:
            NotFoundError: The promotion does not exist
            ValidationError: Malformed input or merged start after end
        """
        current = await require_promotion(self.executor, promo_id)
        record = self.merge(current, changes)
        await self.write(record)
        return record

    @staticmethod
    def merge(
        current: Promotion,
        changes: Union[PromotionUpdate, Mapping[str, Any]],
    ) -> Promotion:
        """
        Apply ``changes`` over ``current`` without writing anything.

        Raises:
            ValidationError: Malformed input or merged start after end
        """
        update = coerce(PromotionUpdate, changes)
        merged = current.model_dump()
        merged.update(update.changes())
        if merged.get("channels") is None:
            merged["channels"] = []
        merged["promo_id"] = current.promo_id
        promotion = coerce(PromotionCreate, merged)
        return Promotion.model_validate(promotion.model_dump())

    async def write(self, record: Promotion) -> None:
        """Overwrite the canonical row with a full, already validated record."""
        await self.executor.insert(PromotionById, _to_row(record))
        logger.info("Promotion row written", promo_id=record.promo_id, type=record.type)

    async def delete(self, promo_id: str) -> None:
        """Remove the canonical row only. Idempotent."""
        await self.executor.delete(PromotionById, promo_id=promo_id)
        logger.info("Promotion row deleted", promo_id=promo_id)

    async def list_by_type(self, promo_type: str) -> List[PromotionSummary]:
        """Promotions of one type, served by the index on ``type``."""
        if not promo_type:
            raise ValidationError("Promotion type is required", details={"type": promo_type})

        table = PromotionById.__table__
        stmt = (
            select(
                table.c.type,
                table.c.promo_id,
                table.c.name,
                table.c.start_date,
                table.c.end_date,
            )
            .where(table.c.type == promo_type)
            .order_by(table.c.start_date, table.c.promo_id)
        )
        rows = await self.executor.fetch_all(stmt, table=table.name)
        return [PromotionSummary.model_validate(row) for row in rows]
