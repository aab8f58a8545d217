# middleware/error_handler.py
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging
from typing import Callable

from pymongo.errors import ConnectionFailure
from redis.exceptions import ConnectionError as RedisConnectionError

from errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

# Mongo or Redis unreachable
BACKEND_DOWN = (ConnectionError, ConnectionFailure, RedisConnectionError)

# (exception, status, error label, log level); first match wins
DOMAIN_ERRORS = (
    (NotFoundError, 404, "Not Found", logging.INFO),
    (PermissionError, 403, "Forbidden", logging.WARNING),
    (ConflictError, 409, "Conflict", logging.WARNING),
    (ValueError, 400, "Validation Error", logging.WARNING),
)


def _error_response(status_code: int, error: str, message: str, request: Request) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "path": str(request.url.path)
        }
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turns domain errors raised by services and repos into JSON responses of
    the form {error, message, path}. HTTPExceptions are left to FastAPI.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        try:
            return await call_next(request)

        except HTTPException:
            raise

        except BACKEND_DOWN as e:
            logger.error(f"Connection error on {request.method} {request.url.path}: {str(e)}")
            return _error_response(503, "Service Unavailable", "Database connection error", request)

        except Exception as e:
            for exc_type, status_code, label, level in DOMAIN_ERRORS:
                if isinstance(e, exc_type):
                    logger.log(level, f"{label} on {request.method} {request.url.path}: {str(e)}")
                    return _error_response(status_code, label, str(e), request)

            logger.exception(f"Unexpected error on {request.method} {request.url.path}")
            return _error_response(500, "Internal Server Error", "An unexpected error occurred", request)
