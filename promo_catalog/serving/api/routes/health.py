"""
Health Check Endpoints

Liveness and store readiness checks.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from promo_catalog.engine import PromotionEngine
from promo_catalog.serving.api.dependencies import get_engine

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    ok: bool
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    response: Response,
    engine: PromotionEngine = Depends(get_engine),
) -> HealthResponse:
    """Store connectivity, latency and server version."""
    settings = request.app.state.settings
    store = await engine.executor.health()
    healthy = store.get("status") == "healthy"
    if not healthy:
        response.status_code = 503

    return HealthResponse(
        ok=healthy,
        status="healthy" if healthy else "unhealthy",
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks={"store": store},
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}
