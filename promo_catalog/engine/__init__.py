"""
Denormalization Consistency Engine
"""
from .active_days import ActiveDayExpansionEngine
from .coordinator import CascadeReport, ConsistencyCoordinator
from .factory import PromotionEngine, build_engine
from .memberships import MembershipIndexManager
from .promotions import PromotionRecordStore

__all__ = [
    "ActiveDayExpansionEngine",
    "CascadeReport",
    "ConsistencyCoordinator",
    "PromotionEngine",
    "build_engine",
    "MembershipIndexManager",
    "PromotionRecordStore",
]
