import asyncio
import logging

from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from db.enums import EntityType
from migrations.sql_models import SOURCE_MODELS
from utils.exceptions import SourceUnavailable

logger = logging.getLogger(__name__)

SOURCE_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


class SourceReader:
    """Read-only access to the legacy relational tables.

    Every round trip is bounded by ``query_timeout`` seconds and any driver
    failure is reported as SourceUnavailable for the entity type involved.
    """

    def __init__(self, sql_uri: str, query_timeout: float = 30):
        self.sql_uri = sql_uri
        self.query_timeout = query_timeout
        self.engine: AsyncEngine | None = None

    async def connect(self):
        """Create the engine and make sure the server answers"""
        try:
            self.engine = create_async_engine(self.sql_uri, echo=False, pool_pre_ping=True)
            async with asyncio.timeout(self.query_timeout):
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        except SOURCE_ERRORS as e:
            raise SourceUnavailable("source database", str(e)) from e
        logger.info("Connected to source database")

    def _get_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError("SourceReader.connect() must be awaited before reading")
        return self.engine

    async def fetch_all(self, entity_type: EntityType) -> list[SQLModel]:
        """Return every row of the entity's table as typed records, ascending by id"""
        model = SOURCE_MODELS[entity_type]
        engine = self._get_engine()
        try:
            async with asyncio.timeout(self.query_timeout):
                async with AsyncSession(engine, expire_on_commit=False) as session:
                    result = await session.exec(select(model).order_by(model.id))
                    records = list(result.all())
        except SOURCE_ERRORS as e:
            raise SourceUnavailable(entity_type, str(e)) from e

        logger.info(f"Read {len(records):,} {entity_type} records from {model.__tablename__}")
        return records

    async def count(self, entity_type: EntityType) -> int:
        model = SOURCE_MODELS[entity_type]
        engine = self._get_engine()
        try:
            async with asyncio.timeout(self.query_timeout):
                async with AsyncSession(engine) as session:
                    total = await session.scalar(select(func.count()).select_from(model))
        except SOURCE_ERRORS as e:
            raise SourceUnavailable(entity_type, str(e)) from e
        return total or 0

    async def close(self):
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
