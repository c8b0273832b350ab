"""Exception handlers mapping store failures to JSON error responses.

Every error body has the shape ``{"error": "<message>"}`` so the frontend
can show it without special casing.
"""

import logging

from fastapi import Request
from pymongo.errors import PyMongoError
from starlette.responses import JSONResponse

from utils.exceptions import AllocationFailure, WriteFailure

logger = logging.getLogger(__name__)


async def allocation_failure_handler(request: Request, exc: AllocationFailure) -> JSONResponse:
    """No fallback id source exists, the request fails as a whole."""
    logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"error": "failed to generate id"})


async def write_failure_handler(request: Request, exc: WriteFailure) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"error": exc.message})


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path}: database error: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})
