from enum import StrEnum


# Enums
class EntityType(StrEnum):
    USER = "user"
    TASK = "task"
    SUBTASK = "subtask"
    ATTACHMENT = "attachment"

    @property
    def collection(self) -> str:
        return f"{self.value}s"

    @property
    def counter_key(self) -> str:
        """Key of this type's document in the ``counters`` collection."""
        return f"{self.value}id"


# Migrated in dependency order: referents before the records pointing at them.
MIGRATION_ORDER = (EntityType.USER, EntityType.TASK, EntityType.SUBTASK)

# A failure on these aborts the migration; the rest are skipped with a warning.
PRIMARY_ENTITY_TYPES = frozenset({EntityType.TASK, EntityType.SUBTASK})
