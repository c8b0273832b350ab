import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def encode_json_text(value: Any) -> Any:
    """Store structured assignee / schedule values as their JSON text"""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return value


class User(BaseModel):
    id: int
    name: str


class Subtask(BaseModel):
    id: int
    task_id: int
    title: str = ""
    completed: bool = False
    main_assignee_id: int | None = None
    supporting_assignees: str | None = None
    schedule: str | None = None


class Task(BaseModel):
    id: int
    title: str = ""
    description: str | None = None
    priority: str | None = None
    type: str | None = None
    completed: bool = False
    archived: bool = False
    pinned: bool = False
    created_at: datetime | None = None
    main_assignee_id: int | None = None
    supporting_assignees: str | None = None
    schedule: str | None = None
    subtasks: list[Subtask] | None = None


class Attachment(BaseModel):
    id: int
    task_id: int
    type: str
    name: str
    url: str
    size: int | str | None = None
    mime_type: str | None = None
    created_at: datetime | None = None


class AssigneeFields(BaseModel):
    main_assignee_id: int | None = Field(default=None, ge=INT32_MIN, le=INT32_MAX)
    supporting_assignees: str | None = None
    schedule: str | None = None

    @field_validator("supporting_assignees", "schedule", mode="before")
    def validate_json_text(cls, v):
        return encode_json_text(v)


class TaskCreate(AssigneeFields):
    title: str = ""
    description: str | None = None
    priority: str | None = None
    type: str | None = None
    completed: bool = False
    archived: bool = False
    pinned: bool = False
    created_at: datetime | None = None


class TaskUpdate(AssigneeFields):
    """Partial task update. Fields sent as null are removed from the document."""

    title: str | None = None
    description: str | None = None
    priority: str | None = None
    type: str | None = None
    completed: bool | None = None
    archived: bool | None = None
    pinned: bool | None = None
    created_at: datetime | None = None


class SubtaskCreate(AssigneeFields):
    title: str = ""
    completed: bool = False


class SubtaskUpdate(AssigneeFields):
    title: str | None = None
    completed: bool | None = None


class AttachmentCreate(BaseModel):
    type: Literal["link", "document", "image"] = "link"
    name: str = ""
    url: str = ""
    size: int | str | None = None
    mime_type: str | None = None
    created_at: datetime | None = None
