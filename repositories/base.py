"""Shared helpers for the MongoDB repositories."""

from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, TypeVar

from bson import ObjectId
from pymongo.errors import PyMongoError

from errors import PersistenceError
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def to_object_id(value: str) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(value):
        raise PersistenceError("Invalid record id")
    return ObjectId(value)


def translate_pymongo_errors(
    fn: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Surface driver failures (including timeoutMS expiry) as PersistenceError."""

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except PyMongoError as e:
            if e.timeout:
                log.error("mongo_timeout", operation=fn.__qualname__, error=str(e))
                raise PersistenceError("The database did not respond in time") from e
            log.error(
                "mongo_operation_failed",
                operation=fn.__qualname__,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceError("A database error occurred") from e

    return wrapper
