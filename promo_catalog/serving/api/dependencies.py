"""
Route dependencies.
"""

from fastapi import Request

from promo_catalog.engine import PromotionEngine


def get_engine(request: Request) -> PromotionEngine:
    """The engine wired onto the application at creation time."""
    return request.app.state.engine
