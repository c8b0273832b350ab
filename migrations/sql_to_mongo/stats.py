"""
Migration statistics, status reporting and high-watermark tracking.
"""

import logging
import threading
from dataclasses import dataclass

from db.enums import EntityType

logger = logging.getLogger(__name__)


class HighWatermarkTracker:
    """Highest business id observed per entity type during one migration pass.

    Observations may come from concurrent upsert workers, so the running
    maximum is updated under a lock.
    """

    def __init__(self):
        self._watermarks: dict[EntityType, int] = {}
        self._lock = threading.Lock()

    def observe(self, entity_type: EntityType, record_id: int):
        with self._lock:
            current = self._watermarks.get(entity_type)
            if current is None or record_id > current:
                self._watermarks[entity_type] = record_id

    def get(self, entity_type: EntityType) -> int | None:
        with self._lock:
            return self._watermarks.get(entity_type)

    def items(self) -> dict[EntityType, int]:
        with self._lock:
            return dict(self._watermarks)


@dataclass
class EntitySummary:
    """Outcome of migrating one entity type"""

    entity_type: EntityType
    read: int = 0
    migrated: int = 0
    failed: int = 0
    skipped: bool = False
    max_id: int | None = None
    counter: int | None = None

    def summary_line(self) -> str:
        name = self.entity_type.collection
        if self.skipped:
            return f"{name}: skipped (source unavailable)"
        return (
            f"{name}: read={self.read} migrated={self.migrated} failed={self.failed} "
            f"max_id={self.max_id if self.max_id is not None else '-'}"
        )


@dataclass
class MigrationStats:
    """Track migration statistics and errors"""

    dry_run: bool = False
    entities: dict[EntityType, EntitySummary] = None
    errors: dict[str, list[str]] = None

    def __post_init__(self):
        self.entities = {}
        self.errors = {}

    def summary_for(self, entity_type: EntityType) -> EntitySummary:
        if entity_type not in self.entities:
            self.entities[entity_type] = EntitySummary(entity_type)
        return self.entities[entity_type]

    def add_error(self, category: str, error: str):
        if category not in self.errors:
            self.errors[category] = []
        self.errors[category].append(error)

    @property
    def migrated(self) -> int:
        return sum(s.migrated for s in self.entities.values())

    @property
    def failed(self) -> int:
        return sum(s.failed for s in self.entities.values())

    def summary_lines(self) -> list[str]:
        return [summary.summary_line() for summary in self.entities.values()]

    def log_summary(self):
        logger.info("\n" + "=" * 60)
        logger.info("📊 MIGRATION SUMMARY" + (" (DRY RUN)" if self.dry_run else ""))
        logger.info("=" * 60)
        for line in self.summary_lines():
            logger.info(f"  {line}")
        logger.info(f"  Total Migrated: {self.migrated:,}")
        logger.info(f"  Failed/Skipped: {self.failed:,}")

        if self.errors:
            logger.info("\n📋 Errors by Category:")
            for category, errors in self.errors.items():
                logger.info(f"  {category}: {len(errors):,} records")
                # Show first 5 as samples
                for error in errors[:5]:
                    logger.info(f"    - {error}")
                if len(errors) > 5:
                    logger.info(f"    ... and {len(errors) - 5} more")

        logger.info("=" * 60 + "\n")


@dataclass
class EntityStatus:
    """Source vs. target state of one entity type"""

    entity_type: EntityType
    source_count: int | None
    target_count: int
    max_id: int | None
    counter: int | None

    @property
    def is_complete(self) -> bool:
        return self.source_count is not None and self.target_count >= self.source_count

    @property
    def counter_behind(self) -> bool:
        return self.max_id is not None and (self.counter is None or self.counter < self.max_id)


def log_status_summary(statuses: list[EntityStatus]):
    """Log a summary table of all entity statuses"""
    logger.info("\n" + "=" * 78)
    logger.info("📊 MIGRATION STATUS CHECK")
    logger.info("=" * 78)
    logger.info(f"{'Entity':<14} {'Source':<10} {'MongoDB':<10} {'Max ID':<10} {'Counter':<10} {'Status':<20}")
    logger.info("-" * 78)

    for status in statuses:
        source = "n/a" if status.source_count is None else str(status.source_count)
        if status.counter_behind:
            status_text = "⚠️  COUNTER BEHIND"
        elif status.is_complete:
            status_text = "✅ DONE"
        else:
            status_text = "⏳ PENDING"
        logger.info(
            f"{status.entity_type.collection:<14} {source:<10} {status.target_count:<10} "
            f"{str(status.max_id if status.max_id is not None else '-'):<10} "
            f"{str(status.counter if status.counter is not None else '-'):<10} {status_text:<20}"
        )

    logger.info("=" * 78 + "\n")
