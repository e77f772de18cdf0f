"""
Unit Tests - Consistency Coordinator
"""
from datetime import date

import pytest

from promo_catalog.config.settings import EngineSettings
from promo_catalog.engine import build_engine
from promo_catalog.database.models import PromotionById
from promo_catalog.exceptions import NotFoundError, StoreError, ValidationError


async def _seed_km03(engine):
    await engine.memberships.add("KM03", {"product_id": "SP003", "discount_percent": 10})
    await engine.active_days.regenerate("KM03")


class TestDeleteCascade:
    """Tests for cascade delete"""

    async def test_cascade_keeps_active_days_by_default(self, engine, km03):
        """Memberships and canonical row go, the three active days stay"""
        await _seed_km03(engine)

        report = await engine.coordinator.delete_promotion_cascade("KM03")

        assert report.memberships_removed == 1
        assert report.active_days_removed == 0
        assert report.promotion_existed is True
        assert await engine.promotions.get("KM03") is None
        assert await engine.memberships.list_by_promotion("KM03") == []
        assert await engine.memberships.list_by_product("SP003") == []
        for day in ["2025-12-20", "2025-12-21", "2025-12-22"]:
            assert [f.promo_id for f in await engine.active_days.list_for_day(day)] == ["KM03"]

    async def test_cascade_purges_active_days_when_asked(self, engine, km03):
        await _seed_km03(engine)

        report = await engine.coordinator.delete_promotion_cascade("KM03", purge_active_days=True)

        assert report.active_days_removed == 3
        for day in ["2025-12-20", "2025-12-21", "2025-12-22"]:
            assert await engine.active_days.list_for_day(day) == []

    async def test_purge_default_from_settings(self, executor, test_settings, km03_payload):
        settings = test_settings.model_copy(
            update={"engine": EngineSettings(cascade_purge_active_days=True)}
        )
        purging = build_engine(executor, settings)
        await purging.promotions.create(km03_payload)
        await _seed_km03(purging)

        report = await purging.coordinator.delete_promotion_cascade("KM03")

        assert report.active_days_removed == 3
        assert await purging.active_days.list_for_day("2025-12-21") == []

    async def test_cascade_only_touches_its_promotion(self, engine, km03, km03_payload):
        await engine.promotions.create({**km03_payload, "promo_id": "KM01"})
        await engine.memberships.add("KM01", {"product_id": "SP003", "discount_percent": 15})
        await _seed_km03(engine)

        await engine.coordinator.delete_promotion_cascade("KM03")

        remaining = await engine.memberships.list_by_product("SP003")
        assert [(f.promo_id, f.discount_percent) for f in remaining] == [("KM01", 15)]

    async def test_rerun_after_completion(self, engine, km03):
        await _seed_km03(engine)
        await engine.coordinator.delete_promotion_cascade("KM03")

        report = await engine.coordinator.delete_promotion_cascade("KM03")

        assert report.memberships_removed == 0
        assert report.promotion_existed is False

    async def test_rerun_finishes_partial_cascade(self, engine, km03):
        """Only the product-keyed row went before a failure; re-running converges"""
        await engine.memberships.add("KM03", {"product_id": "SP003", "discount_percent": 10})
        await engine.memberships.add("KM03", {"product_id": "SP004", "discount_percent": 5})
        await engine.memberships.remove("KM03", "SP003")

        await engine.coordinator.delete_promotion_cascade("KM03")

        assert await engine.memberships.list_by_promotion("KM03") == []
        assert await engine.memberships.list_by_product("SP004") == []
        assert await engine.promotions.get("KM03") is None


class TestUpdatePromotion:
    """Tests for update with derived-view refresh"""

    async def test_snapshot_refreshed_on_range_change(self, engine, km03):
        await _seed_km03(engine)

        await engine.coordinator.update_promotion("KM03", {"end_date": "2025-12-24"})

        fact = (await engine.memberships.list_by_product("SP003"))[0]
        assert fact.end_date == date(2025, 12, 24)
        assert fact.discount_percent == 10

    async def test_active_days_follow_new_range(self, engine, km03):
        await _seed_km03(engine)

        await engine.coordinator.update_promotion(
            "KM03", {"start_date": "2025-12-21", "end_date": "2025-12-23"}
        )

        assert await engine.active_days.list_for_day("2025-12-20") == []
        for day in ["2025-12-21", "2025-12-22", "2025-12-23"]:
            facts = await engine.active_days.list_for_day(day)
            assert len(facts) == 1
            assert facts[0].start_date == date(2025, 12, 21)
            assert facts[0].end_date == date(2025, 12, 23)

    async def test_rename_rewrites_active_days(self, engine, km03):
        await _seed_km03(engine)

        await engine.coordinator.update_promotion("KM03", {"name": "Renamed"})

        facts = await engine.active_days.list_for_day("2025-12-21")
        assert facts[0].name == "Renamed"

    async def test_active_day_refresh_can_be_skipped(self, engine, km03):
        await _seed_km03(engine)

        await engine.coordinator.update_promotion(
            "KM03", {"end_date": "2025-12-21"}, refresh_active_days=False
        )

        assert len(await engine.active_days.list_for_day("2025-12-22")) == 1
        fact = (await engine.memberships.list_by_product("SP003"))[0]
        assert fact.end_date == date(2025, 12, 21)

    async def test_unrelated_change_leaves_views_alone(self, engine, km03):
        await _seed_km03(engine)
        await engine.active_days.delete_day("KM03", "2025-12-21")

        updated = await engine.coordinator.update_promotion("KM03", {"description": "New copy"})

        assert updated.description == "New copy"
        assert await engine.active_days.list_for_day("2025-12-21") == []

    async def test_missing_promotion(self, engine):
        with pytest.raises(NotFoundError):
            await engine.coordinator.update_promotion("NOPE", {"name": "x"})

    async def test_invalid_merged_range(self, engine, km03):
        await _seed_km03(engine)

        with pytest.raises(ValidationError):
            await engine.coordinator.update_promotion("KM03", {"end_date": "2025-12-01"})

        fact = (await engine.memberships.list_by_product("SP003"))[0]
        assert fact.end_date == date(2025, 12, 22)

    async def test_one_canonical_read_per_update(self, engine, executor, km03, monkeypatch):
        reads = []
        select_one = executor.select_one

        async def counting_select_one(model, **key):
            reads.append(model)
            return await select_one(model, **key)

        monkeypatch.setattr(executor, "select_one", counting_select_one)

        await engine.coordinator.update_promotion("KM03", {"name": "Renamed"})

        assert reads.count(PromotionById) == 1


class TestUpdateRetry:
    """Tests for re-running an update that failed part way"""

    async def test_retry_after_snapshot_failure(self, engine, km03, monkeypatch):
        """The stored range stays old until the views are done, so a retry redoes them"""
        await _seed_km03(engine)
        changes = {"start_date": "2025-12-21", "end_date": "2025-12-23"}

        async def failing_refresh(promotion, memberships=None):
            raise StoreError("store unavailable")

        with monkeypatch.context() as patched:
            patched.setattr(engine.memberships, "refresh_snapshots", failing_refresh)
            with pytest.raises(StoreError):
                await engine.coordinator.update_promotion("KM03", changes)

        assert (await engine.promotions.get("KM03")).end_date == date(2025, 12, 22)

        await engine.coordinator.update_promotion("KM03", changes)

        fact = (await engine.memberships.list_by_product("SP003"))[0]
        assert fact.start_date == date(2025, 12, 21)
        assert fact.end_date == date(2025, 12, 23)
        assert await engine.active_days.list_for_day("2025-12-20") == []
        assert len(await engine.active_days.list_for_day("2025-12-23")) == 1
        assert (await engine.promotions.get("KM03")).end_date == date(2025, 12, 23)

    async def test_retry_after_expand_failure(self, engine, km03, monkeypatch):
        await _seed_km03(engine)
        changes = {"start_date": "2025-12-21", "end_date": "2025-12-23"}

        async def failing_expand(promotion):
            raise StoreError("store unavailable")

        with monkeypatch.context() as patched:
            patched.setattr(engine.active_days, "expand", failing_expand)
            with pytest.raises(StoreError):
                await engine.coordinator.update_promotion("KM03", changes)

        assert (await engine.promotions.get("KM03")).start_date == date(2025, 12, 20)

        await engine.coordinator.update_promotion("KM03", changes)

        for day in ["2025-12-21", "2025-12-22", "2025-12-23"]:
            facts = await engine.active_days.list_for_day(day)
            assert [(f.start_date, f.end_date) for f in facts] == [(date(2025, 12, 21), date(2025, 12, 23))]
        assert await engine.active_days.list_for_day("2025-12-20") == []
