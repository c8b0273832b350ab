"""
Business id sequences backed by the ``counters`` collection.

Each entity type owns one counter document ``{"_id": "<type>id", "seq": n}``.
The migration seeds it from the highest id it copied, and the live API
allocates new ids from it. Both paths are a single atomic round trip to
MongoDB, so concurrent callers (possibly in different processes) never
observe the same value and the counter never moves backwards.
"""

import logging
from collections.abc import Iterable

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from db.enums import EntityType
from utils.exceptions import AllocationFailure, WriteFailure

logger = logging.getLogger(__name__)

COUNTERS_COLLECTION = "counters"


def _as_sequence_value(value) -> int | None:
    # Counters written by other tools may come back as doubles.
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    return None


async def allocate_next_id(database: AsyncIOMotorDatabase, entity_type: EntityType) -> int:
    """Atomically increment the counter of ``entity_type`` and return the new value.

    A missing counter is created at 0 first, so the first id handed out is 1.
    Raises AllocationFailure instead of ever returning a zero or reused value.
    """
    try:
        counter = await database[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": entity_type.counter_key},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        raise AllocationFailure(entity_type, str(e)) from e

    seq = _as_sequence_value(counter.get("seq")) if counter else None
    if seq is None or seq <= 0:
        raise AllocationFailure(
            entity_type,
            f"counter '{entity_type.counter_key}' returned an invalid value: {counter!r}",
        )
    return seq


async def get_counter_value(database: AsyncIOMotorDatabase, entity_type: EntityType) -> int | None:
    counter = await database[COUNTERS_COLLECTION].find_one({"_id": entity_type.counter_key})
    if not counter:
        return None
    return _as_sequence_value(counter.get("seq"))


async def seed_counter(
    database: AsyncIOMotorDatabase,
    entity_type: EntityType,
    watermark: int,
    dry_run: bool = False,
) -> int:
    """Raise the counter of ``entity_type`` to at least ``watermark``.

    Uses ``$max`` so that re-running a migration after live traffic has
    advanced the counter leaves it where it is. Returns the counter value
    after seeding (or the value it would have in dry-run mode).
    """
    key = entity_type.counter_key
    try:
        if dry_run:
            current = await get_counter_value(database, entity_type)
            target = max(current or 0, watermark)
            logger.info(f"DRY RUN: would raise counter '{key}' to {target} (current={current})")
            return target

        counter = await database[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": key},
            {"$max": {"seq": watermark}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        raise WriteFailure(entity_type, key, str(e)) from e

    value = _as_sequence_value(counter.get("seq")) if counter else None
    if value is None:
        raise WriteFailure(entity_type, key, f"counter has an invalid value after seeding: {counter!r}")
    logger.info(f"Counter '{key}' seeded to {value} (watermark={watermark})")
    return value


async def max_persisted_id(database: AsyncIOMotorDatabase, entity_type: EntityType) -> int | None:
    document = await database[entity_type.collection].find_one(
        {"id": {"$type": "number"}},
        projection={"id": 1},
        sort=[("id", DESCENDING)],
    )
    if not document:
        return None
    return _as_sequence_value(document.get("id"))


async def reconcile_counters(
    database: AsyncIOMotorDatabase,
    entity_types: Iterable[EntityType] = tuple(EntityType),
) -> dict[EntityType, int]:
    """Make sure no counter sits below the highest id already persisted.

    Run before serving traffic so the first allocation after a migration can
    never hand out an id that a migrated document already uses.
    """
    reconciled = {}
    for entity_type in entity_types:
        highest = await max_persisted_id(database, entity_type)
        if highest is None or highest <= 0:
            continue
        current = await get_counter_value(database, entity_type)
        if current is None or current < highest:
            logger.warning(
                f"Counter '{entity_type.counter_key}' is {current}, below the highest persisted "
                f"{entity_type} id {highest}; raising it"
            )
        reconciled[entity_type] = await seed_counter(database, entity_type, highest)
    return reconciled
