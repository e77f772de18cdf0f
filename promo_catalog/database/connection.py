"""
Store Connection Management

Async query executor over SQLAlchemy 2.0. One instance is created at process
start, connected once, injected into every engine component and closed at
shutdown.

Every write runs in its own short transaction and touches exactly one row:
the store offers no multi-table transactions, so none are used here.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Type

import structlog
from sqlalchemy import Table, delete, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable

from promo_catalog.config import Settings, get_settings
from promo_catalog.database.models import Base
from promo_catalog.exceptions import StoreError

logger = structlog.get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class QueryExecutor:
    """
    Issues parameterized point reads, point writes and point deletes.

    Writes follow wide-column semantics: an insert overwrites any existing row
    with the same primary key, a delete of a missing row is a no-op.

    Example:
        executor = QueryExecutor.from_settings()
        await executor.connect()
        await executor.insert(PromotionById, {"promo_id": "KM03", ...})
        row = await executor.select_one(PromotionById, promo_id="KM03")
        await executor.close()
    """

    def __init__(self, url: str, **engine_options: Any) -> None:
        self.url = url
        self._engine_options = engine_options
        self._engine: Optional[AsyncEngine] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "QueryExecutor":
        """Build an executor from application settings."""
        settings = settings or get_settings()
        db = settings.database
        options: Dict[str, Any] = {
            "echo": db.echo,
            "pool_pre_ping": True,
        }
        if db.async_url.startswith("postgresql"):
            options["pool_timeout"] = db.pool_timeout
        return cls(db.async_url, **options)

    @property
    def engine(self) -> AsyncEngine:
        """
        Get the connected engine.

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self._engine is None:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> AsyncEngine:
        """
        Create the engine and verify the store answers.

        Returns:
            AsyncEngine: The connected engine

        Raises:
            StoreError: If the store cannot be reached
        """
        if self._engine is not None:
            logger.warning("Store already connected")
            return self._engine

        engine = create_async_engine(self.url, **self._engine_options)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.error("Failed to connect to store", error=str(e))
            raise StoreError("Failed to connect to store", details={"error": str(e)}) from e

        self._engine = engine
        logger.info("Store connection established", dialect=engine.dialect.name)
        return engine

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Store connection closed")

    async def create_schema(self) -> None:
        """Create any missing tables."""
        async with self._guard("create_schema"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("Store schema ensured", tables=sorted(Base.metadata.tables))

    # -------------------------------------------------------------------------
    # Statement execution
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _guard(self, operation: str, table: Optional[str] = None) -> AsyncIterator[None]:
        """Translate driver failures into StoreError."""
        try:
            yield
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Store statement failed",
                operation=operation,
                table=table,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreError(
                f"Store {operation} failed" + (f" on {table}" if table else ""),
                details={"operation": operation, "table": table, "error": str(e)},
            ) from e

    async def execute(
        self,
        statement: Executable,
        params: Optional[Mapping[str, Any]] = None,
        *,
        table: Optional[str] = None,
    ) -> None:
        """Execute a write statement in its own transaction."""
        async with self._guard("write", table):
            async with self.engine.begin() as conn:
                await conn.execute(statement, params)

    async def fetch_all(
        self,
        statement: Executable,
        params: Optional[Mapping[str, Any]] = None,
        *,
        table: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Execute a read statement and return every row as a dict."""
        async with self._guard("read", table):
            async with self.engine.connect() as conn:
                result = await conn.execute(statement, params)
                return [dict(row) for row in result.mappings()]

    # -------------------------------------------------------------------------
    # Table helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _table(model: Type[Base]) -> Table:
        return model.__table__

    def _key_clause(self, table: Table, key: Mapping[str, Any]) -> list:
        return [table.c[name] == value for name, value in key.items()]

    def _upsert(self, table: Table, values: Mapping[str, Any]):
        dialect = self.engine.dialect.name
        insert_fn = _UPSERT_DIALECTS.get(dialect)
        if insert_fn is None:
            raise StoreError(f"Unsupported store dialect: {dialect}", details={"dialect": dialect})

        stmt = insert_fn(table).values(**values)
        keys = [column.name for column in table.primary_key.columns]
        updates = {name: stmt.excluded[name] for name in values if name not in keys}
        if not updates:
            return stmt.on_conflict_do_nothing(index_elements=keys)
        return stmt.on_conflict_do_update(index_elements=keys, set_=updates)

    async def insert(self, model: Type[Base], values: Mapping[str, Any]) -> None:
        """Write one row, overwriting any row with the same primary key."""
        table = self._table(model)
        await self.execute(self._upsert(table, values), table=table.name)

    async def delete(self, model: Type[Base], **key: Any) -> None:
        """Delete the row(s) matching the key. Missing rows are not an error."""
        table = self._table(model)
        stmt = delete(table).where(*self._key_clause(table, key))
        await self.execute(stmt, table=table.name)

    async def select_rows(
        self,
        model: Type[Base],
        columns: Optional[Sequence[str]] = None,
        **key: Any,
    ) -> List[Dict[str, Any]]:
        """
        Read all rows under a key, in primary key order.

        Args:
            model: Table model
            columns: Column names to return (all when omitted)
            **key: Equality restrictions, normally the partition key
        """
        table = self._table(model)
        selected = [table.c[name] for name in columns] if columns else [table]
        stmt = (
            select(*selected)
            .where(*self._key_clause(table, key))
            .order_by(*table.primary_key.columns)
        )
        return await self.fetch_all(stmt, table=table.name)

    async def select_one(self, model: Type[Base], **key: Any) -> Optional[Dict[str, Any]]:
        """Point lookup by full primary key."""
        rows = await self.select_rows(model, **key)
        return rows[0] if rows else None

    async def health(self) -> Dict[str, Any]:
        """
        Check store health.

        Returns:
            dict: Health status with latency and server version
        """
        try:
            start = time.perf_counter()
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            version_info = self.engine.dialect.server_version_info
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy",
                "latency_ms": round(latency_ms, 2),
                "dialect": self.engine.dialect.name,
                "server_version": ".".join(str(part) for part in version_info) if version_info else "unknown",
            }
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            return {
                "status": "unhealthy",
                "error": str(e),
            }
