"""
Consistency Coordinator

The only writer allowed to touch more than one table per logical operation.
Each multi-step operation is a fixed sequence of idempotent point writes and
deletes: if it fails part way, re-running it converges on the same end state.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import structlog

from promo_catalog.engine.active_days import ActiveDayExpansionEngine
from promo_catalog.engine.memberships import MembershipIndexManager
from promo_catalog.engine.promotions import PromotionRecordStore
from promo_catalog.engine.schemas import Promotion, PromotionUpdate
from promo_catalog.exceptions import NotFoundError

logger = structlog.get_logger(__name__)


@dataclass
class CascadeReport:
    """What a completed cascade delete removed."""
    promo_id: str
    memberships_removed: int
    active_days_removed: int = 0
    promotion_existed: bool = True


class ConsistencyCoordinator:
    """
    Orchestrates cross-view operations over the record store, the membership
    views and the active-day view.

    Args:
        promotions: Canonical record store
        memberships: Membership view manager
        active_days: Active-day expansion engine
        purge_active_days_on_delete: Default for extending cascade deletes to
            the active-day view
    """

    def __init__(
        self,
        promotions: PromotionRecordStore,
        memberships: MembershipIndexManager,
        active_days: ActiveDayExpansionEngine,
        purge_active_days_on_delete: bool = False,
    ):
        self.promotions = promotions
        self.memberships = memberships
        self.active_days = active_days
        self.purge_active_days_on_delete = purge_active_days_on_delete

    async def delete_promotion_cascade(
        self,
        promo_id: str,
        purge_active_days: Optional[bool] = None,
    ) -> CascadeReport:
        """
        Delete a promotion and its derived facts.

        Order: membership pairs (promotion-keyed row, then product-keyed row),
        then optionally the active-day rows of the stored range, then the
        canonical row last so a retry can still read the range.

        Without purging, active-day rows of the promotion are left in place.

        Args:
            promo_id: Promotion to delete
            purge_active_days: Override the configured purge default
        """
        purge = self.purge_active_days_on_delete if purge_active_days is None else purge_active_days

        memberships = await self.memberships.list_by_promotion(promo_id)
        for membership in memberships:
            await self.memberships.remove(promo_id, membership.product_id)

        promotion = await self.promotions.get(promo_id)
        days_removed = 0
        if purge and promotion is not None:
            days_removed = await self.active_days.purge(
                promo_id, promotion.start_date, promotion.end_date
            )

        await self.promotions.delete(promo_id)

        report = CascadeReport(
            promo_id=promo_id,
            memberships_removed=len(memberships),
            active_days_removed=days_removed,
            promotion_existed=promotion is not None,
        )
        logger.info(
            "Promotion cascade deleted",
            promo_id=promo_id,
            memberships_removed=report.memberships_removed,
            active_days_removed=report.active_days_removed,
            purged_active_days=purge,
        )
        return report

    async def update_promotion(
        self,
        promo_id: str,
        changes: Union[PromotionUpdate, Mapping[str, Any]],
        refresh_active_days: bool = True,
    ) -> Promotion:
        """
        Update a promotion and bring its derived views up to date.

        Steps: merge and validate against the stored row, rewrite the
        type/date snapshot on every product-keyed membership row, drop
        active-day rows for days that left the range, regenerate the new
        range, and write the canonical row last. Until that final write the
        stored row still holds the old range, so re-running the same update
        after a failure redoes every derived step.

        Args:
            promo_id: Promotion to update
            changes: Fields to change; the rest keep their stored values
            refresh_active_days: Skip the active-day steps when False

        Raises:
            NotFoundError: The promotion does not exist
            ValidationError: Malformed input or merged start after end
        """
        before = await self.promotions.get(promo_id)
        if before is None:
            raise NotFoundError(f"Promotion {promo_id} not found", details={"promo_id": promo_id})
        after = self.promotions.merge(before, changes)

        snapshot_changed = (before.type, before.start_date, before.end_date) != (
            after.type,
            after.start_date,
            after.end_date,
        )
        refreshed = 0
        if snapshot_changed:
            refreshed = await self.memberships.refresh_snapshots(after)

        days_purged = 0
        days_written = 0
        day_fields_changed = snapshot_changed or before.name != after.name
        if refresh_active_days and day_fields_changed:
            days_purged = await self.active_days.purge(
                promo_id,
                before.start_date,
                before.end_date,
                keep_start=after.start_date,
                keep_end=after.end_date,
            )
            if after.has_date_range:
                days_written = await self.active_days.expand(after)

        await self.promotions.write(after)

        logger.info(
            "Promotion updated with derived views",
            promo_id=promo_id,
            snapshots_refreshed=refreshed,
            active_days_purged=days_purged,
            active_days_written=days_written,
        )
        return after
