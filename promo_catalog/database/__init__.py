"""
Database Module
"""
from .connection import QueryExecutor
from .models import (
    Base,
    PromotionById,
    ProductByPromo,
    PromoByProduct,
    PromotionActiveByDay,
)

__all__ = [
    "QueryExecutor",
    "Base",
    "PromotionById",
    "ProductByPromo",
    "PromoByProduct",
    "PromotionActiveByDay",
]
