import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import PyMongoError

from db.config import settings
from db.enums import EntityType

logger = logging.getLogger(__name__)

# Every entity collection is looked up by its business id, never by _id.
COLLECTION_INDEXES: dict[EntityType, list[IndexModel]] = {
    EntityType.USER: [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("name", ASCENDING)]),
    ],
    EntityType.TASK: [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("pinned", DESCENDING), ("created_at", DESCENDING)]),
        IndexModel([("archived", ASCENDING), ("created_at", DESCENDING)]),
    ],
    EntityType.SUBTASK: [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("task_id", ASCENDING)]),
    ],
    EntityType.ATTACHMENT: [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("task_id", ASCENDING), ("created_at", DESCENDING)]),
    ],
}

_client: AsyncIOMotorClient | None = None


def create_client(mongo_uri: str) -> AsyncIOMotorClient:
    """Create a Motor client whose operations are bounded by ``mongo_timeout_ms``.

    A stalled server therefore surfaces as a PyMongoError instead of hanging
    the request or the migration.
    """
    return AsyncIOMotorClient(
        mongo_uri,
        maxPoolSize=settings.db_max_connections,
        serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        connectTimeoutMS=settings.mongo_timeout_ms,
        timeoutMS=settings.mongo_timeout_ms,
        tz_aware=True,
    )


async def ensure_indexes(database: AsyncIOMotorDatabase):
    for entity_type, indexes in COLLECTION_INDEXES.items():
        await database[entity_type.collection].create_indexes(indexes)


def get_database() -> AsyncIOMotorDatabase:
    """FastAPI dependency returning the application database."""
    if _client is None:
        raise RuntimeError("MongoDB client is not initialized, call database.init() first")
    return _client[settings.mongo_db_name]


async def init():
    """Initialize the MongoDB connection and verify connectivity"""
    global _client
    _client = create_client(settings.mongo_uri)
    retries = 5
    for i in range(retries):
        try:
            await _client.admin.command("ping")
            logger.info("MongoDB connection initialized successfully.")
            break
        except PyMongoError as e:
            if i < retries - 1:
                wait_time = 2**i
                logger.exception(f"Error initializing MongoDB: {e}, retrying in {wait_time} seconds...")
                await asyncio.sleep(wait_time)
            else:
                logger.error("Failed to initialize MongoDB after several attempts.")
                raise e

    await ensure_indexes(get_database())


async def close():
    """Close the MongoDB connection pool"""
    global _client
    if _client is not None:
        _client.close()
        _client = None
    logger.info("MongoDB connection closed.")
