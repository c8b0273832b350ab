"""
Tests for database selection.
"""

import pytest
from motor.motor_asyncio import AsyncIOMotorClient

from db import database
from db.config import settings


class TestGetDatabase:
    @pytest.mark.asyncio
    async def test_configured_name_wins_over_uri_path(self, monkeypatch):
        client = AsyncIOMotorClient("mongodb://localhost:27017/issues_tasks_db", connect=False)
        monkeypatch.setattr(database, "_client", client)

        try:
            assert database.get_database().name == settings.mongo_db_name
        finally:
            client.close()

    def test_uninitialized_client_raises(self, monkeypatch):
        monkeypatch.setattr(database, "_client", None)

        with pytest.raises(RuntimeError):
            database.get_database()
