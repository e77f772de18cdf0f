"""
Unit Tests - Active-Day Expansion Engine
"""
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from promo_catalog.database.models import PromotionActiveByDay, PromotionById
from promo_catalog.engine.active_days import ActiveDayExpansionEngine, iter_days
from promo_catalog.engine.schemas import Promotion
from promo_catalog.exceptions import NotFoundError, StoreError, ValidationError


async def _days_for(executor, promo_id):
    table_rows = []
    for day in iter_days(date(2025, 12, 1), date(2026, 1, 31)):
        row = await executor.select_one(PromotionActiveByDay, day=day, promo_id=promo_id)
        if row is not None:
            table_rows.append(row)
    return table_rows


class TestIterDays:
    """Tests for day enumeration"""

    def test_inclusive_both_ends(self):
        days = list(iter_days(date(2025, 12, 20), date(2025, 12, 22)))

        assert days == [date(2025, 12, 20), date(2025, 12, 21), date(2025, 12, 22)]

    def test_crosses_month_and_year(self):
        days = list(iter_days(date(2025, 12, 30), date(2026, 1, 2)))

        assert len(days) == 4

    def test_empty_when_reversed(self):
        assert list(iter_days(date(2025, 12, 22), date(2025, 12, 20))) == []


class TestRegenerate:
    """Tests for active-day regeneration"""

    async def test_one_fact_per_day(self, engine, km03):
        """KM03 over 12-20..12-22 yields three facts carrying its fields"""
        written = await engine.active_days.regenerate("KM03")

        assert written == 3
        for day in [date(2025, 12, 20), date(2025, 12, 21), date(2025, 12, 22)]:
            facts = await engine.active_days.list_for_day(day)
            assert len(facts) == 1
            fact = facts[0]
            assert fact.promo_id == "KM03"
            assert fact.name == km03.name
            assert fact.type == "percentage discount"
            assert fact.start_date == date(2025, 12, 20)
            assert fact.end_date == date(2025, 12, 22)

        assert await engine.active_days.list_for_day("2025-12-19") == []
        assert await engine.active_days.list_for_day("2025-12-23") == []

    async def test_count_matches_range_length(self, engine, km03_payload):
        await engine.promotions.create({
            **km03_payload,
            "promo_id": "KM01",
            "start_date": "2025-12-01",
            "end_date": "2026-01-15",
        })

        written = await engine.active_days.regenerate("KM01")

        assert written == (date(2026, 1, 15) - date(2025, 12, 1)).days + 1

    async def test_single_day_range(self, engine, km03_payload):
        await engine.promotions.create({**km03_payload, "end_date": "2025-12-20"})

        assert await engine.active_days.regenerate("KM03") == 1
        assert len(await engine.active_days.list_for_day("2025-12-20")) == 1

    async def test_rerun_does_not_duplicate(self, engine, executor, km03):
        await engine.active_days.regenerate("KM03")
        first = await _days_for(executor, "KM03")

        await engine.active_days.regenerate("KM03")
        second = await _days_for(executor, "KM03")

        assert len(first) == 3
        assert second == first

    async def test_missing_promotion(self, engine):
        with pytest.raises(NotFoundError):
            await engine.active_days.regenerate("NOPE")

    async def test_missing_dates(self, engine):
        await engine.promotions.create({"promo_id": "KM05", "name": "Open ended", "start_date": "2025-12-20"})

        with pytest.raises(ValidationError):
            await engine.active_days.regenerate("KM05")

    async def test_reversed_range_fails_before_any_write(self, engine, executor):
        """A canonical row written outside the engine with start after end"""
        await executor.insert(PromotionById, {
            "promo_id": "KM06",
            "name": "Broken",
            "start_date": date(2025, 12, 22),
            "end_date": date(2025, 12, 20),
            "channels": ["online"],
        })

        with pytest.raises(ValidationError):
            await engine.active_days.regenerate("KM06")

        assert await _days_for(executor, "KM06") == []

    async def test_shrunk_range_leaves_stale_days(self, engine, km03):
        await engine.active_days.regenerate("KM03")
        await engine.promotions.update("KM03", {"end_date": "2025-12-21"})

        assert await engine.active_days.regenerate("KM03") == 2
        assert len(await engine.active_days.list_for_day("2025-12-22")) == 1


class TestParallelExpand:
    """Tests for grouped day writes"""

    def _promotion(self):
        return Promotion(
            promo_id="KM01",
            name="Year end",
            type="percentage discount",
            start_date=date(2025, 12, 1),
            end_date=date(2025, 12, 10),
        )

    async def test_every_day_written_once(self):
        executor = MagicMock()
        executor.insert = AsyncMock()
        expansion = ActiveDayExpansionEngine(executor, concurrency=4)

        written = await expansion.expand(self._promotion())

        assert written == 10
        days = [call.args[1]["day"] for call in executor.insert.await_args_list]
        assert sorted(days) == list(iter_days(date(2025, 12, 1), date(2025, 12, 10)))

    async def test_failure_propagates(self):
        executor = MagicMock()
        executor.insert = AsyncMock(side_effect=[None, StoreError("boom"), None, None] + [None] * 6)
        expansion = ActiveDayExpansionEngine(executor, concurrency=4)

        with pytest.raises(StoreError):
            await expansion.expand(self._promotion())

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            ActiveDayExpansionEngine(MagicMock(), concurrency=0)


class TestDeleteAndPurge:
    """Tests for removing active-day facts"""

    async def test_delete_day(self, engine, km03):
        await engine.active_days.regenerate("KM03")

        await engine.active_days.delete_day("KM03", "2025-12-21")
        await engine.active_days.delete_day("KM03", "2025-12-21")

        assert await engine.active_days.list_for_day("2025-12-21") == []
        assert len(await engine.active_days.list_for_day("2025-12-20")) == 1

    async def test_delete_day_rejects_bad_day(self, engine):
        with pytest.raises(ValidationError):
            await engine.active_days.delete_day("KM03", "21-12-2025")

    async def test_purge_keeps_window(self, engine, executor, km03):
        await engine.active_days.regenerate("KM03")

        removed = await engine.active_days.purge(
            "KM03",
            date(2025, 12, 20),
            date(2025, 12, 22),
            keep_start=date(2025, 12, 21),
            keep_end=date(2025, 12, 30),
        )

        assert removed == 1
        remaining = [row["day"] for row in await _days_for(executor, "KM03")]
        assert remaining == [date(2025, 12, 21), date(2025, 12, 22)]

    async def test_purge_without_range(self, engine):
        assert await engine.active_days.purge("KM03", None, date(2025, 12, 22)) == 0
