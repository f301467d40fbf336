"""Map domain exceptions to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..exceptions import (
    AuthorizationError,
    NotFoundError,
    RateLimitExceededError,
    StorageError,
    SubmissionValidationError,
)

logger = logging.getLogger(__name__)

STORAGE_UNAVAILABLE = "Storage temporarily unavailable. Please retry."


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def handle_validation_error(request: Request, exc: SubmissionValidationError):
    return _error(400, exc.message)


async def handle_not_found(request: Request, exc: NotFoundError):
    return _error(404, exc.message)


async def handle_authorization_error(request: Request, exc: AuthorizationError):
    return _error(403, exc.message)


async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
    headers = None
    if exc.retry_after is not None:
        headers = {"Retry-After": str(int(exc.retry_after) + 1)}
    return _error(429, exc.message, headers=headers)


async def handle_storage_error(request: Request, exc: StorageError):
    logger.error("Storage failure during %s %s: %s", request.method, request.url.path, exc.message)
    return _error(503, STORAGE_UNAVAILABLE)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(SubmissionValidationError, handle_validation_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(AuthorizationError, handle_authorization_error)
    app.add_exception_handler(RateLimitExceededError, handle_rate_limit)
    app.add_exception_handler(StorageError, handle_storage_error)
