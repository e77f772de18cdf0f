"""
Active-Day Expansion Engine

Derives ``promotions_active_by_day`` from a promotion's date range: one row
per calendar day in ``[start_date, end_date]`` inclusive, each carrying the
promotion's name, type and range. Rows are regenerated from the canonical
record, never authored independently.
"""

import asyncio
from datetime import date, timedelta
from typing import Iterator, List, Optional, Union

import structlog

from promo_catalog.database.connection import QueryExecutor
from promo_catalog.database.models import PromotionActiveByDay
from promo_catalog.engine.promotions import require_promotion
from promo_catalog.engine.schemas import ActiveDayFact, Promotion, parse_day
from promo_catalog.exceptions import ValidationError

logger = structlog.get_logger(__name__)

DayInput = Union[date, str]


def iter_days(start: date, end: date) -> Iterator[date]:
    """Calendar days from start to end, both inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _require_day(value: DayInput) -> date:
    day = parse_day(value)
    if day is None:
        raise ValidationError("Day is required", details={"day": value})
    return day


class ActiveDayExpansionEngine:
    """
    Writes and reads the per-day view.

    Regeneration costs one point write per day of the range. With
    ``concurrency`` above 1 the writes go out in groups of that size; each day
    is still its own independent write.
    """

    def __init__(self, executor: QueryExecutor, concurrency: int = 1):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.executor = executor
        self.concurrency = concurrency

    async def regenerate(self, promo_id: str) -> int:
        """
        Write one active-day row per day of the promotion's current range.

        Re-running with an unchanged range rewrites the same rows. Days that
        fell out of a shrunk range are not touched here (see ``purge``).

        Returns:
            Number of days written

        Raises:
            NotFoundError: The promotion does not exist
            ValidationError: Start or end date missing, or start after end
        """
        promotion = await require_promotion(self.executor, promo_id)
        return await self.expand(promotion)

    async def expand(self, promotion: Promotion) -> int:
        """Write the active-day rows for an already loaded promotion."""
        start, end = promotion.start_date, promotion.end_date
        if start is None or end is None:
            raise ValidationError(
                f"Promotion {promotion.promo_id} is missing start/end date",
                details={"promo_id": promotion.promo_id, "start_date": start, "end_date": end},
            )
        if start > end:
            raise ValidationError(
                f"Promotion {promotion.promo_id} starts after it ends",
                details={"promo_id": promotion.promo_id, "start_date": start, "end_date": end},
            )

        rows = [
            {
                "day": day,
                "promo_id": promotion.promo_id,
                "name": promotion.name,
                "type": promotion.type,
                "start_date": start,
                "end_date": end,
            }
            for day in iter_days(start, end)
        ]

        if self.concurrency == 1:
            for row in rows:
                await self.executor.insert(PromotionActiveByDay, row)
        else:
            for offset in range(0, len(rows), self.concurrency):
                group = rows[offset:offset + self.concurrency]
                results = await asyncio.gather(
                    *(self.executor.insert(PromotionActiveByDay, row) for row in group),
                    return_exceptions=True,
                )
                for result in results:
                    if isinstance(result, BaseException):
                        raise result

        logger.info(
            "Active days regenerated",
            promo_id=promotion.promo_id,
            start_date=str(start),
            end_date=str(end),
            days=len(rows),
        )
        return len(rows)

    async def delete_day(self, promo_id: str, day: DayInput) -> None:
        """Remove exactly one active-day row. Idempotent."""
        target = _require_day(day)
        await self.executor.delete(PromotionActiveByDay, day=target, promo_id=promo_id)
        logger.info("Active day deleted", promo_id=promo_id, day=str(target))

    async def purge(
        self,
        promo_id: str,
        start: Optional[date],
        end: Optional[date],
        keep_start: Optional[date] = None,
        keep_end: Optional[date] = None,
    ) -> int:
        """
        Delete the promotion's rows for every day of ``[start, end]`` except
        those inside ``[keep_start, keep_end]``.

        Returns:
            Number of point deletes issued
        """
        if start is None or end is None or start > end:
            return 0

        count = 0
        for day in iter_days(start, end):
            if keep_start is not None and keep_end is not None and keep_start <= day <= keep_end:
                continue
            await self.executor.delete(PromotionActiveByDay, day=day, promo_id=promo_id)
            count += 1

        logger.info("Active days purged", promo_id=promo_id, days=count)
        return count

    async def list_for_day(self, day: DayInput) -> List[ActiveDayFact]:
        """Promotions active on ``day``."""
        target = _require_day(day)
        rows = await self.executor.select_rows(PromotionActiveByDay, day=target)
        return [ActiveDayFact.model_validate(row) for row in rows]
