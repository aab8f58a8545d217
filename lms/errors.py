# errors.py
"""
Domain errors raised by repos and services.

Routers let these bubble up; ErrorHandlerMiddleware maps them to HTTP codes:
NotFoundError -> 404, PermissionError -> 403, ConflictError -> 409,
ValueError -> 400.
"""


class NotFoundError(LookupError):
    pass


class ConflictError(Exception):
    pass
