"""Application lifecycle management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from db import database
from db.config import settings
from db.sequence import reconcile_counters


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan context manager.

    Handles:
    - Database initialization and index creation
    - Raising id counters above the highest persisted ids before any
      allocation is served
    - Graceful shutdown
    """
    # Startup logic
    await database.init()

    if settings.reconcile_counters_on_startup:
        reconciled = await reconcile_counters(database.get_database())
        logging.info(f"Id counters verified: {({str(k): v for k, v in reconciled.items()})}")

    yield

    # Shutdown logic
    await database.close()
