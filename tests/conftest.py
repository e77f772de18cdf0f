"""
Test Suite Configuration
"""
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from promo_catalog.config import Settings
from promo_catalog.config.settings import DatabaseSettings, EngineSettings
from promo_catalog.database.connection import QueryExecutor
from promo_catalog.engine import PromotionEngine, build_engine
from promo_catalog.main import create_app

TEST_STORE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        APP_ENV="testing",
        database=DatabaseSettings(url=TEST_STORE_URL),
        engine=EngineSettings(cascade_purge_active_days=False, regenerate_concurrency=1),
    )


@pytest.fixture
async def executor() -> AsyncGenerator[QueryExecutor, None]:
    """Connected executor over an in-memory store with the schema created"""
    executor = QueryExecutor(TEST_STORE_URL, poolclass=StaticPool)
    await executor.connect()
    await executor.create_schema()

    yield executor

    await executor.close()


@pytest.fixture
def engine(executor: QueryExecutor, test_settings: Settings) -> PromotionEngine:
    """Engine components wired around the test executor"""
    return build_engine(executor, test_settings)


@pytest.fixture
def km03_payload() -> dict:
    """Three-day percentage discount promotion"""
    return {
        "promo_id": "KM03",
        "name": "Flash sale Giáng sinh",
        "type": "percentage discount",
        "start_date": "2025-12-20",
        "end_date": "2025-12-22",
        "description": "Christmas flash sale",
    }


@pytest.fixture
async def km03(engine: PromotionEngine, km03_payload: dict):
    """KM03 stored in the canonical table"""
    return await engine.promotions.create(km03_payload)


@pytest.fixture
async def client(executor: QueryExecutor, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app bound to the test executor"""
    app = create_app(test_settings, executor)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
