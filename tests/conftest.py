"""
Pytest configuration and shared fixtures for the task tracker tests.

MongoDB is replaced by an awaitable wrapper around mongomock, and the legacy
relational store by a SQLite file read through aiosqlite.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime

import mongomock
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pymongo.errors import OperationFailure
from sqlalchemy import Engine
from sqlmodel import Session, SQLModel, create_engine

from api.app import create_app
from db.database import get_database
from migrations.sql_models import SqlSubtask, SqlTask, SqlUser


class AsyncCursor:
    """Motor-style cursor over a mongomock cursor"""

    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, key_or_list, direction=None):
        self._cursor.sort(key_or_list, direction)
        return self

    def limit(self, count):
        self._cursor.limit(count)
        return self

    async def to_list(self, length=None):
        await asyncio.sleep(0)
        documents = list(self._cursor)
        return documents if length is None else documents[:length]

    def __aiter__(self):
        return self

    async def __anext__(self):
        await asyncio.sleep(0)
        try:
            return next(self._cursor)
        except StopIteration:
            raise StopAsyncIteration


class AsyncCollection:
    """Awaitable facade over a mongomock collection.

    Every call yields to the event loop once before it runs, so concurrent
    callers interleave between separate round trips the way they do against
    a real server.

    ``failures`` maps a method name to a predicate on the filter; a matching
    call raises OperationFailure instead of touching the data.
    """

    def __init__(self, collection):
        self.sync = collection
        self.failures = {}

    def _maybe_fail(self, method, filter):
        predicate = self.failures.get(method)
        if predicate and predicate(filter or {}):
            raise OperationFailure(f"injected {method} failure")

    async def insert_one(self, document):
        await asyncio.sleep(0)
        self._maybe_fail("insert_one", document)
        return self.sync.insert_one(document)

    async def update_one(self, filter, update, upsert=False):
        await asyncio.sleep(0)
        self._maybe_fail("update_one", filter)
        return self.sync.update_one(filter, update, upsert=upsert)

    async def find_one(self, filter=None, *args, **kwargs):
        await asyncio.sleep(0)
        self._maybe_fail("find_one", filter)
        return self.sync.find_one(filter, *args, **kwargs)

    def find(self, filter=None, *args, **kwargs):
        self._maybe_fail("find", filter)
        return AsyncCursor(self.sync.find(filter, *args, **kwargs))

    async def find_one_and_update(self, filter, update, **kwargs):
        await asyncio.sleep(0)
        self._maybe_fail("find_one_and_update", filter)
        return self.sync.find_one_and_update(filter, update, **kwargs)

    async def delete_one(self, filter):
        await asyncio.sleep(0)
        self._maybe_fail("delete_one", filter)
        return self.sync.delete_one(filter)

    async def delete_many(self, filter):
        await asyncio.sleep(0)
        self._maybe_fail("delete_many", filter)
        return self.sync.delete_many(filter)

    async def count_documents(self, filter):
        await asyncio.sleep(0)
        return self.sync.count_documents(filter)

    async def create_indexes(self, indexes):
        await asyncio.sleep(0)
        return self.sync.create_indexes(indexes)


class AsyncDatabase:
    def __init__(self, database):
        self.sync = database
        self._collections = {}

    def __getitem__(self, name) -> AsyncCollection:
        if name not in self._collections:
            self._collections[name] = AsyncCollection(self.sync[name])
        return self._collections[name]


@dataclass
class SourceDatabase:
    """A populated legacy database: ``url`` for the async reader, ``engine`` for setup"""

    url: str
    engine: Engine

    def add(self, *records):
        with Session(self.engine) as session:
            session.add_all(records)
            session.commit()


SOURCE_TABLES = {
    "Users": SqlUser.__table__,
    "Tasks": SqlTask.__table__,
    "Subtasks": SqlSubtask.__table__,
}


def make_source(path, tables=tuple(SOURCE_TABLES)) -> SourceDatabase:
    engine = create_engine(f"sqlite:///{path}")
    SQLModel.metadata.create_all(engine, tables=[SOURCE_TABLES[name] for name in tables])
    return SourceDatabase(url=f"sqlite+aiosqlite:///{path}", engine=engine)


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------


@pytest.fixture
def mongo_db():
    """Empty task_manager_db on a fresh in-memory client"""
    return AsyncDatabase(mongomock.MongoClient()["task_manager_db"])


# ---------------------------------------------------------------------------
# Relational source
# ---------------------------------------------------------------------------


@pytest.fixture
def empty_source(tmp_path):
    source = make_source(tmp_path / "source.db")
    yield source
    source.engine.dispose()


@pytest.fixture
def partial_source(tmp_path):
    """Factory for legacy databases that only hold some of the tables"""
    created = []

    def factory(*tables):
        source = make_source(tmp_path / f"partial_{len(created)}.db", tables)
        created.append(source)
        return source

    yield factory
    for source in created:
        source.engine.dispose()


@pytest.fixture
def source(empty_source):
    """Three users, three tasks and three subtasks with a mix of null and empty columns."""
    empty_source.add(
        SqlUser(id=1, name="Alice"),
        SqlUser(id=2, name="Bob"),
        SqlUser(id=3, name="Carol"),
        SqlTask(
            id=3,
            title="Write report",
            description=None,
            priority="High",
            completed=False,
            archived=False,
            pinned=True,
            created_at=datetime(2024, 3, 1, 9, 30),
            main_assignee_id=1,
            supporting_assignees="[2,3]",
        ),
        SqlTask(
            id=7,
            title="Review budget",
            description="",
            type="finance",
            created_at=datetime(2024, 3, 2, 14, 0),
            schedule='{"due":"2024-03-09"}',
        ),
        SqlTask(
            id=12,
            title="Archive old tickets",
            description="Everything before 2023",
            archived=True,
            created_at=datetime(2024, 3, 3, 8, 15),
        ),
        SqlSubtask(id=4, task_id=3, title="Collect numbers", completed=True, main_assignee_id=2),
        SqlSubtask(id=5, task_id=3, title="Draft summary"),
        SqlSubtask(id=9, task_id=7, title="Check invoices", supporting_assignees="[1]"),
    )
    return empty_source


# ---------------------------------------------------------------------------
# HTTP API
# ---------------------------------------------------------------------------


@pytest.fixture
def app(mongo_db):
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_database] = lambda: mongo_db
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
