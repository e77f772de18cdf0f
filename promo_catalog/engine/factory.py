"""
Engine assembly.

Builds every component around one injected executor.
"""

from dataclasses import dataclass
from typing import Optional

from promo_catalog.config import Settings, get_settings
from promo_catalog.database.connection import QueryExecutor
from promo_catalog.engine.active_days import ActiveDayExpansionEngine
from promo_catalog.engine.coordinator import ConsistencyCoordinator
from promo_catalog.engine.memberships import MembershipIndexManager
from promo_catalog.engine.promotions import PromotionRecordStore


@dataclass
class PromotionEngine:
    """The engine's components, sharing one executor."""
    executor: QueryExecutor
    promotions: PromotionRecordStore
    memberships: MembershipIndexManager
    active_days: ActiveDayExpansionEngine
    coordinator: ConsistencyCoordinator


def build_engine(executor: QueryExecutor, settings: Optional[Settings] = None) -> PromotionEngine:
    """
    Wire the engine components around ``executor``.

    The executor does not need to be connected yet; it must be before the
    first operation runs.
    """
    settings = settings or get_settings()

    promotions = PromotionRecordStore(executor)
    memberships = MembershipIndexManager(executor)
    active_days = ActiveDayExpansionEngine(
        executor,
        concurrency=settings.engine.regenerate_concurrency,
    )
    coordinator = ConsistencyCoordinator(
        promotions,
        memberships,
        active_days,
        purge_active_days_on_delete=settings.engine.cascade_purge_active_days,
    )
    return PromotionEngine(
        executor=executor,
        promotions=promotions,
        memberships=memberships,
        active_days=active_days,
        coordinator=coordinator,
    )
