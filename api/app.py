"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from api.exception_handlers import (
    allocation_failure_handler,
    database_error_handler,
    write_failure_handler,
)
from api.lifespan import lifespan
from api.routers import attachments, tasks, users
from db.config import settings
from utils.exceptions import AllocationFailure, WriteFailure


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        use_lifespan: Connect to MongoDB on startup. Disabled when the
            database dependency is provided by the caller.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_exception_handler(AllocationFailure, allocation_failure_handler)
    app.add_exception_handler(WriteFailure, write_failure_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)

    # Configure CORS so the frontend can be served from anywhere on the network
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    _register_routers(app)

    return app


def _register_routers(app: FastAPI) -> None:
    app.include_router(tasks.router)
    app.include_router(attachments.router)
    app.include_router(users.router)
