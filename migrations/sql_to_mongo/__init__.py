"""
Relational (SQL Server) to MongoDB migration for the task tracker.

Copies users, tasks and subtasks into sparse MongoDB documents keyed by
their business id, then seeds the ``counters`` collection so that ids
allocated by the live API continue above the migrated ones.

CLI Usage:
    python -m migrations.sql_to_mongo migrate --sql ... --mongo ... [--dry-run]
    python -m migrations.sql_to_mongo status --sql ... --mongo ...
"""

from migrations.sql_to_mongo.cli import app
from migrations.sql_to_mongo.migrator import SqlToMongoMigration
from migrations.sql_to_mongo.projector import project_record
from migrations.sql_to_mongo.reader import SourceReader
from migrations.sql_to_mongo.stats import (
    EntityStatus,
    EntitySummary,
    HighWatermarkTracker,
    MigrationStats,
)
from migrations.sql_to_mongo.upserter import DocumentUpserter, UpsertResult

__all__ = [
    "app",
    "SqlToMongoMigration",
    "SourceReader",
    "DocumentUpserter",
    "UpsertResult",
    "HighWatermarkTracker",
    "MigrationStats",
    "EntitySummary",
    "EntityStatus",
    "project_record",
]
