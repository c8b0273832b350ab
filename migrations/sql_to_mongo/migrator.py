"""
Relational to MongoDB migration of users, tasks and subtasks.

Each entity type is read from the source store, projected into sparse
documents, upserted by business id and finally used to seed the entity's
id counter so that live allocation continues above every migrated id.
"""

import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from tqdm.asyncio import tqdm

from db.config import settings
from db.database import create_client, ensure_indexes
from db.enums import MIGRATION_ORDER, PRIMARY_ENTITY_TYPES, EntityType
from db.sequence import get_counter_value, max_persisted_id, seed_counter
from migrations.sql_models import SOURCE_MODELS
from migrations.sql_to_mongo.projector import project_record
from migrations.sql_to_mongo.reader import SourceReader
from migrations.sql_to_mongo.stats import (
    EntityStatus,
    EntitySummary,
    HighWatermarkTracker,
    MigrationStats,
)
from migrations.sql_to_mongo.upserter import DocumentUpserter
from utils.exceptions import ProjectionRangeError, SourceUnavailable, WriteFailure

logger = logging.getLogger(__name__)


class SqlToMongoMigration:
    """One-shot migration pass with connection handling and batched upserts"""

    def __init__(
        self,
        sql_uri: str,
        mongo_uri: str,
        dry_run: bool = False,
        batch_size: int = 100,
        concurrency: int = 10,
        query_timeout: float | None = None,
    ):
        self.sql_uri = sql_uri
        self.mongo_uri = mongo_uri
        self.dry_run = dry_run
        self.batch_size = max(1, batch_size)
        self.concurrency = max(1, concurrency)
        self.query_timeout = query_timeout or settings.source_query_timeout
        self.reader: SourceReader | None = None
        self.mongo_client: AsyncIOMotorClient | None = None
        self.database: AsyncIOMotorDatabase | None = None
        self.upserter: DocumentUpserter | None = None
        self.tracker = HighWatermarkTracker()
        self.stats = MigrationStats(dry_run=dry_run)

    async def init_connections(self, database: AsyncIOMotorDatabase | None = None):
        """Connect to both stores. ``database`` replaces the Motor connection when given."""
        try:
            self.reader = SourceReader(self.sql_uri, self.query_timeout)
            await self.reader.connect()

            if database is None:
                self.mongo_client = create_client(self.mongo_uri)
                await self.mongo_client.admin.command("ping")
                database = self.mongo_client[settings.mongo_db_name]
            self.database = database

            if not self.dry_run:
                await ensure_indexes(self.database)
        except Exception as e:
            logger.exception(f"Failed to initialize connections: {str(e)}")
            raise

        self.upserter = DocumentUpserter(self.database, dry_run=self.dry_run)

    async def close_connections(self):
        """Close database connections"""
        try:
            if self.mongo_client:
                self.mongo_client.close()
        except Exception as e:
            logger.exception(f"Error closing MongoDB connection: {str(e)}")

        try:
            if self.reader:
                await self.reader.close()
        except Exception as e:
            logger.exception(f"Error closing source connection: {str(e)}")

    async def migrate_entity(self, entity_type: EntityType) -> EntitySummary:
        """Migrate every record of one entity type and seed its counter.

        Failures on primary entity types propagate and abort the run. For
        auxiliary types an unreadable table skips the type and a failed
        record is logged and counted, and the run carries on.
        """
        primary = entity_type in PRIMARY_ENTITY_TYPES
        summary = self.stats.summary_for(entity_type)

        try:
            records = await self.reader.fetch_all(entity_type)
        except SourceUnavailable as e:
            if primary:
                raise
            logger.warning(f"⚠️  Could not read {entity_type.collection}: {e} (continuing)")
            summary.skipped = True
            self.stats.add_error(f"{entity_type}_source", str(e))
            return summary

        summary.read = len(records)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def migrate_record(record):
            async with semaphore:
                # Every id read counts towards the watermark, written or not.
                self.tracker.observe(entity_type, record.id)
                try:
                    document = project_record(entity_type, record)
                    await self.upserter.upsert(entity_type, document)
                except (ProjectionRangeError, WriteFailure) as e:
                    if primary:
                        raise
                    logger.warning(f"⚠️  Skipping {entity_type} id={record.id}: {e}")
                    summary.failed += 1
                    self.stats.add_error(entity_type.value, str(e))
                    return
                summary.migrated += 1

        with tqdm(total=len(records), desc=f"Migrating {entity_type.collection}") as pbar:
            for start in range(0, len(records), self.batch_size):
                batch = records[start : start + self.batch_size]
                results = await asyncio.gather(*(migrate_record(r) for r in batch), return_exceptions=True)
                pbar.update(len(batch))
                for result in results:
                    if isinstance(result, BaseException):
                        raise result

        summary.max_id = self.tracker.get(entity_type)
        if summary.max_id is None:
            logger.info(f"No {entity_type.collection} found, counter '{entity_type.counter_key}' left untouched")
        elif summary.max_id <= 0:
            # Live ids start at 1.
            logger.warning(
                f"⚠️  Highest {entity_type} id is {summary.max_id}, counter '{entity_type.counter_key}' left untouched"
            )
        else:
            try:
                summary.counter = await seed_counter(self.database, entity_type, summary.max_id, dry_run=self.dry_run)
            except WriteFailure as e:
                if primary:
                    raise
                logger.warning(f"⚠️  Could not seed counter for {entity_type.collection}: {e}")
                self.stats.add_error(f"{entity_type}_counter", str(e))

        logger.info(
            f"{'DRY RUN: ' if self.dry_run else ''}migrated {summary.migrated} {entity_type.collection} "
            f"(max id={summary.max_id})"
        )
        return summary

    async def run(self) -> MigrationStats:
        """Migrate users, tasks and subtasks in dependency order"""
        if self.dry_run:
            logger.info("DRY RUN: no writes will be performed to MongoDB")

        for entity_type in MIGRATION_ORDER:
            await self.migrate_entity(entity_type)

        self.stats.log_summary()
        return self.stats

    async def collect_status(self) -> list[EntityStatus]:
        """Compare source and target state for every entity type"""
        statuses = []
        for entity_type in EntityType:
            source_count = None
            if entity_type in SOURCE_MODELS:
                try:
                    source_count = await self.reader.count(entity_type)
                except SourceUnavailable as e:
                    logger.warning(f"⚠️  {e}")

            statuses.append(
                EntityStatus(
                    entity_type=entity_type,
                    source_count=source_count,
                    target_count=await self.database[entity_type.collection].count_documents({}),
                    max_id=await max_persisted_id(self.database, entity_type),
                    counter=await get_counter_value(self.database, entity_type),
                )
            )
        return statuses
