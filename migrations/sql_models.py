"""Read models for the legacy relational task database (SQL Server)."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime
from sqlmodel import Field, SQLModel

from db.enums import EntityType


class SqlUser(SQLModel, table=True):
    __tablename__ = "Users"

    id: int = Field(primary_key=True, sa_type=BigInteger)
    name: str


class SqlTask(SQLModel, table=True):
    __tablename__ = "Tasks"

    id: int = Field(primary_key=True, sa_type=BigInteger)
    title: str
    description: str | None = None
    priority: str | None = None
    type: str | None = None
    completed: bool = False
    archived: bool = False
    pinned: bool = False
    created_at: datetime = Field(sa_type=DateTime)
    main_assignee_id: int | None = Field(default=None, sa_type=BigInteger)
    supporting_assignees: str | None = None
    schedule: str | None = None


class SqlSubtask(SQLModel, table=True):
    __tablename__ = "Subtasks"

    id: int = Field(primary_key=True, sa_type=BigInteger)
    task_id: int = Field(sa_type=BigInteger, index=True)
    title: str
    completed: bool = False
    main_assignee_id: int | None = Field(default=None, sa_type=BigInteger)
    supporting_assignees: str | None = None
    schedule: str | None = None


SOURCE_MODELS: dict[EntityType, type[SQLModel]] = {
    EntityType.USER: SqlUser,
    EntityType.TASK: SqlTask,
    EntityType.SUBTASK: SqlSubtask,
}
