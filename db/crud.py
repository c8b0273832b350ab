import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from db import schemas
from db.enums import EntityType
from db.sequence import allocate_next_id
from utils.exceptions import WriteFailure

# Fields that may be absent from a stored document; a null in an update removes them.
OPTIONAL_TASK_FIELDS = {
    "description",
    "priority",
    "type",
    "main_assignee_id",
    "supporting_assignees",
    "schedule",
}
OPTIONAL_SUBTASK_FIELDS = {"main_assignee_id", "supporting_assignees", "schedule"}


def _collection(database: AsyncIOMotorDatabase, entity_type: EntityType):
    return database[entity_type.collection]


def build_update(update: BaseModel, optional_fields: set[str]) -> dict:
    """Translate a partial update into ``$set`` / ``$unset`` operators"""
    set_fields, unset_fields = {}, {}
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is not None:
            set_fields[field] = value
        elif field in optional_fields:
            unset_fields[field] = ""

    operations = {}
    if set_fields:
        operations["$set"] = set_fields
    if unset_fields:
        operations["$unset"] = unset_fields
    return operations


async def _insert_with_new_id(database: AsyncIOMotorDatabase, entity_type: EntityType, document: dict) -> dict:
    # The id is allocated before the write: a failed insert only wastes an id.
    document = {"id": await allocate_next_id(database, entity_type), **document}
    try:
        await _collection(database, entity_type).insert_one(dict(document))
    except PyMongoError as e:
        raise WriteFailure(entity_type, document["id"], str(e)) from e
    logging.info(f"Created {entity_type} id={document['id']}")
    return document


async def _attach_subtasks(database: AsyncIOMotorDatabase, tasks: list[dict]) -> list[dict]:
    if not tasks:
        return tasks
    subtasks_by_task: dict[int, list[dict]] = {task["id"]: [] for task in tasks}
    try:
        cursor = _collection(database, EntityType.SUBTASK).find(
            {"task_id": {"$in": list(subtasks_by_task)}}
        ).sort("id", ASCENDING)
        async for subtask in cursor:
            subtasks_by_task[subtask["task_id"]].append(subtask)
    except PyMongoError as e:
        # Tasks are still served, just without their subtasks.
        logging.error(f"Failed to load subtasks: {e}")
    for task in tasks:
        task["subtasks"] = subtasks_by_task[task["id"]]
    return tasks


async def list_tasks(database: AsyncIOMotorDatabase) -> list[dict]:
    cursor = _collection(database, EntityType.TASK).find({}).sort(
        [("pinned", DESCENDING), ("created_at", DESCENDING)]
    )
    tasks = await cursor.to_list(length=None)
    return await _attach_subtasks(database, tasks)


async def list_recent_tasks(database: AsyncIOMotorDatabase, limit: int) -> list[dict]:
    cursor = (
        _collection(database, EntityType.TASK)
        .find({"archived": False})
        .sort("created_at", DESCENDING)
        .limit(limit)
    )
    return await cursor.to_list(length=None)


async def get_task(database: AsyncIOMotorDatabase, task_id: int, with_subtasks: bool = True) -> dict | None:
    task = await _collection(database, EntityType.TASK).find_one({"id": task_id})
    if task and with_subtasks:
        await _attach_subtasks(database, [task])
    return task


async def create_task(database: AsyncIOMotorDatabase, task: schemas.TaskCreate) -> dict:
    document = task.model_dump(exclude_none=True)
    document.setdefault("created_at", datetime.now(timezone.utc))
    return await _insert_with_new_id(database, EntityType.TASK, document)


async def update_task(database: AsyncIOMotorDatabase, task_id: int, update: schemas.TaskUpdate) -> dict | None:
    operations = build_update(update, OPTIONAL_TASK_FIELDS)
    if operations:
        await _collection(database, EntityType.TASK).update_one({"id": task_id}, operations)
    return await get_task(database, task_id)


async def delete_task(database: AsyncIOMotorDatabase, task_id: int) -> int:
    result = await _collection(database, EntityType.TASK).delete_one({"id": task_id})
    return result.deleted_count


async def clear_tasks(database: AsyncIOMotorDatabase) -> int:
    """Delete every task that is not archived"""
    result = await _collection(database, EntityType.TASK).delete_many({"archived": False})
    logging.info(f"Cleared {result.deleted_count} active tasks")
    return result.deleted_count


async def create_subtask(database: AsyncIOMotorDatabase, task_id: int, subtask: schemas.SubtaskCreate) -> dict:
    document = {"task_id": task_id, **subtask.model_dump(exclude_none=True)}
    return await _insert_with_new_id(database, EntityType.SUBTASK, document)


async def update_subtask(
    database: AsyncIOMotorDatabase,
    task_id: int,
    subtask_id: int,
    update: schemas.SubtaskUpdate,
) -> dict | None:
    query = {"id": subtask_id, "task_id": task_id}
    collection = _collection(database, EntityType.SUBTASK)
    operations = build_update(update, OPTIONAL_SUBTASK_FIELDS)
    if operations:
        await collection.update_one(query, operations)
    return await collection.find_one(query)


async def delete_subtask(database: AsyncIOMotorDatabase, task_id: int, subtask_id: int) -> int:
    result = await _collection(database, EntityType.SUBTASK).delete_one({"id": subtask_id, "task_id": task_id})
    return result.deleted_count


async def list_attachments(database: AsyncIOMotorDatabase, task_id: int) -> list[dict]:
    cursor = _collection(database, EntityType.ATTACHMENT).find({"task_id": task_id}).sort("created_at", DESCENDING)
    return await cursor.to_list(length=None)


async def create_attachment(
    database: AsyncIOMotorDatabase, task_id: int, attachment: schemas.AttachmentCreate
) -> dict:
    document = {"task_id": task_id, **attachment.model_dump(exclude_none=True)}
    document.setdefault("created_at", datetime.now(timezone.utc))
    return await _insert_with_new_id(database, EntityType.ATTACHMENT, document)


async def delete_attachment(database: AsyncIOMotorDatabase, task_id: int, attachment_id: int) -> int:
    result = await _collection(database, EntityType.ATTACHMENT).delete_one(
        {"id": attachment_id, "task_id": task_id}
    )
    return result.deleted_count


async def list_users(database: AsyncIOMotorDatabase) -> list[dict]:
    cursor = _collection(database, EntityType.USER).find({}).sort("name", ASCENDING)
    return await cursor.to_list(length=None)
