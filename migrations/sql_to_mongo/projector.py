"""
Projection of relational records into sparse MongoDB documents.

Mandatory columns are always copied. Nullable columns are copied only when
they hold a value and are left out of the document otherwise, so "no value"
(missing key) and "empty value" ("" or 0) stay distinguishable. Integer
columns that are narrowed on the document side are range checked instead of
being silently truncated.
"""

from dataclasses import dataclass, field

from sqlmodel import SQLModel

from db.enums import EntityType
from utils.exceptions import ProjectionRangeError

INT32_RANGE = (-(2**31), 2**31 - 1)
INT64_RANGE = (-(2**63), 2**63 - 1)


@dataclass(frozen=True)
class Projection:
    mandatory: tuple[str, ...]
    optional: tuple[str, ...] = ()
    int_ranges: dict[str, tuple[int, int]] = field(default_factory=dict)


PROJECTIONS: dict[EntityType, Projection] = {
    EntityType.USER: Projection(
        mandatory=("id", "name"),
        int_ranges={"id": INT64_RANGE},
    ),
    EntityType.TASK: Projection(
        mandatory=("id", "title", "completed", "archived", "pinned", "created_at"),
        optional=(
            "description",
            "priority",
            "type",
            "main_assignee_id",
            "supporting_assignees",
            "schedule",
        ),
        int_ranges={"id": INT64_RANGE, "main_assignee_id": INT32_RANGE},
    ),
    EntityType.SUBTASK: Projection(
        mandatory=("id", "task_id", "title", "completed"),
        optional=("main_assignee_id", "supporting_assignees", "schedule"),
        int_ranges={
            "id": INT64_RANGE,
            "task_id": INT64_RANGE,
            "main_assignee_id": INT32_RANGE,
        },
    ),
}


def _check_range(entity_type: EntityType, record_id, name: str, value: int, bounds: tuple[int, int]):
    low, high = bounds
    if not low <= value <= high:
        raise ProjectionRangeError(entity_type, record_id, name, value)


def project_record(entity_type: EntityType, record: SQLModel) -> dict:
    """Map one source record to the document stored for it"""
    projection = PROJECTIONS[entity_type]
    record_id = getattr(record, "id")

    document = {name: getattr(record, name) for name in projection.mandatory}
    for name in projection.optional:
        value = getattr(record, name)
        if value is not None:
            document[name] = value

    for name, bounds in projection.int_ranges.items():
        value = document.get(name)
        if isinstance(value, int) and not isinstance(value, bool):
            _check_range(entity_type, record_id, name, value, bounds)

    return document


def planned_fields(document: dict) -> list[str]:
    return sorted(document)
