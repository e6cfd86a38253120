"""
Exception handlers translating domain and database failures into JSON responses
"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from circlebuy.config import settings
from circlebuy.core.errors import CircleBuyError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


async def handle_domain_error(request: Request, exc: CircleBuyError):
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_database_error(request: Request, exc: APIError):
    # Concurrent duplicate writes lose the race at the unique index
    if exc.code == UNIQUE_VIOLATION:
        return JSONResponse(status_code=409, content={"detail": "Resource already exists", "code": "CONFLICT"})
    logger.error("Database error on %s %s: [%s] %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=502, content={"detail": "Database request failed", "code": "DATABASE_ERROR"})


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"detail": detail})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(CircleBuyError, handle_domain_error)
    app.add_exception_handler(APIError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
