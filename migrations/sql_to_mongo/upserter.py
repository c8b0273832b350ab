import logging
from dataclasses import dataclass

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from db.enums import EntityType
from migrations.sql_to_mongo.projector import planned_fields
from utils.exceptions import WriteFailure

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    """The write performed (or planned, in dry-run mode) for one document"""

    entity_type: EntityType
    record_id: int
    fields: list[str]
    applied: bool
    created: bool = False
    modified: bool = False


class DocumentUpserter:
    """Idempotent ``$set`` upserts keyed by the business ``id`` field.

    Fields missing from the supplied document are left untouched on the
    stored one, and applying the same document twice changes nothing the
    second time.
    """

    def __init__(self, database: AsyncIOMotorDatabase, dry_run: bool = False):
        self.database = database
        self.dry_run = dry_run

    async def upsert(self, entity_type: EntityType, document: dict) -> UpsertResult:
        record_id = document["id"]
        fields = planned_fields(document)

        if self.dry_run:
            logger.info(f"DRY RUN: would upsert {entity_type} id={record_id} fields={fields}")
            return UpsertResult(entity_type, record_id, fields, applied=False)

        collection = self.database[entity_type.collection]
        try:
            try:
                result = await collection.update_one({"id": record_id}, {"$set": document}, upsert=True)
            except DuplicateKeyError:
                # Lost an insert race on the unique id index, the document exists now.
                result = await collection.update_one({"id": record_id}, {"$set": document})
        except PyMongoError as e:
            raise WriteFailure(entity_type, record_id, str(e)) from e

        return UpsertResult(
            entity_type,
            record_id,
            fields,
            applied=True,
            created=result.upserted_id is not None,
            modified=result.modified_count > 0,
        )
