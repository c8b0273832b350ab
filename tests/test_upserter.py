"""
Tests for idempotent document upserts.
"""

from datetime import datetime

import pytest
from pymongo.errors import DuplicateKeyError

from db.enums import EntityType
from migrations.sql_to_mongo.upserter import DocumentUpserter
from utils.exceptions import WriteFailure

TASK = {
    "id": 7,
    "title": "Review budget",
    "description": "",
    "completed": False,
    "archived": False,
    "pinned": False,
    "created_at": datetime(2024, 3, 2, 14, 0),
}


def stored_tasks(mongo_db):
    return list(mongo_db["tasks"].sync.find({}, {"_id": 0}))


class TestDocumentUpserter:
    @pytest.mark.asyncio
    async def test_first_upsert_creates_document(self, mongo_db):
        result = await DocumentUpserter(mongo_db).upsert(EntityType.TASK, dict(TASK))

        assert result.applied
        assert result.created
        assert stored_tasks(mongo_db) == [TASK]

    @pytest.mark.asyncio
    async def test_repeated_upsert_is_idempotent(self, mongo_db):
        upserter = DocumentUpserter(mongo_db)
        await upserter.upsert(EntityType.TASK, dict(TASK))
        before = stored_tasks(mongo_db)

        result = await upserter.upsert(EntityType.TASK, dict(TASK))

        assert not result.created
        assert not result.modified
        assert stored_tasks(mongo_db) == before

    @pytest.mark.asyncio
    async def test_existing_fields_not_in_document_are_kept(self, mongo_db):
        mongo_db["tasks"].sync.insert_one({"id": 7, "title": "Old title", "priority": "Low"})

        result = await DocumentUpserter(mongo_db).upsert(EntityType.TASK, dict(TASK))

        (stored,) = stored_tasks(mongo_db)
        assert result.modified
        assert stored["title"] == "Review budget"
        assert stored["priority"] == "Low"

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, mongo_db):
        result = await DocumentUpserter(mongo_db, dry_run=True).upsert(EntityType.TASK, dict(TASK))

        assert not result.applied
        assert result.fields == sorted(TASK)
        assert stored_tasks(mongo_db) == []

    @pytest.mark.asyncio
    async def test_store_failure_raises_write_failure(self, mongo_db):
        mongo_db["tasks"].failures["update_one"] = lambda f: f.get("id") == 7

        with pytest.raises(WriteFailure) as exc_info:
            await DocumentUpserter(mongo_db).upsert(EntityType.TASK, dict(TASK))

        assert exc_info.value.record_id == 7

    @pytest.mark.asyncio
    async def test_duplicate_key_on_insert_retries_as_update(self, mongo_db):
        collection = mongo_db["tasks"]
        calls = []
        original = collection.update_one

        async def racing_update_one(filter, update, upsert=False):
            calls.append(upsert)
            if upsert:
                # Another writer inserted the document first.
                collection.sync.insert_one({"id": 7, "title": "Inserted elsewhere"})
                raise DuplicateKeyError("E11000 duplicate key error")
            return await original(filter, update, upsert=upsert)

        collection.update_one = racing_update_one

        result = await DocumentUpserter(mongo_db).upsert(EntityType.TASK, dict(TASK))

        assert calls == [True, False]
        assert result.modified
        assert stored_tasks(mongo_db) == [TASK]
