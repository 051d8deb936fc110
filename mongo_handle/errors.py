"""
Error taxonomy for MongoDB handles and driver wrappers.

Every failure is raised to the caller. Driver exceptions are translated
once, at the pymongo boundary, by the ``store_operation`` decorator:

- pymongo DuplicateKeyError -> DuplicateKeyError
- any other PyMongoError    -> StoreError (original kept as ``cause``)

Nothing in this package retries, logs or swallows a failure.
"""

from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from pymongo import errors as pymongo_errors

# Type variable for generic return types
T = TypeVar("T")

# Server error code for unique index violations
DUPLICATE_KEY_CODE = 11000


class MongoHandleError(Exception):
    """Base class for all errors raised by mongo_handle."""


class NotLinkedError(MongoHandleError):
    """Raised when a handle operation runs before link() was called."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"handle for collection '{name}' is not linked")


class NotFoundError(MongoHandleError):
    """Raised when a lookup, update or remove matches no document."""

    def __init__(self, collection: str, selector: Any = None):
        self.collection = collection
        self.selector = selector
        super().__init__(f"not found in '{collection}': {selector!r}")


class DuplicateKeyError(MongoHandleError):
    """Raised when an insert collides with an existing identifier."""

    def __init__(self, collection: str, key: Any = None, cause: Optional[Exception] = None):
        self.collection = collection
        self.key = key
        self.cause = cause
        super().__init__(f"duplicate key in '{collection}': {key!r}")


class DecodeError(MongoHandleError):
    """Raised when a mapping cannot populate the target document shape."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class StoreError(MongoHandleError):
    """
    Any failure surfaced by the underlying connection.

    Network, authentication and server-side errors end up here untouched;
    the driver exception is available on ``cause`` and ``__cause__``.
    """

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"[{operation}] {type(cause).__name__}: {cause}")


def translate_error(name: str, operation: str, error: Exception) -> MongoHandleError:
    """
    Map a pymongo exception onto the mongo_handle taxonomy.

    Args:
        name: Collection or database name the call targeted
        operation: Operation name (e.g., "insert")
        error: Exception raised by pymongo

    Returns:
        DuplicateKeyError for key collisions, StoreError for anything else
    """
    if isinstance(error, pymongo_errors.DuplicateKeyError):
        key = (error.details or {}).get("keyValue")
        return DuplicateKeyError(name, key, cause=error)
    if isinstance(error, pymongo_errors.BulkWriteError):
        for write_error in (error.details or {}).get("writeErrors", []):
            if write_error.get("code") == DUPLICATE_KEY_CODE:
                return DuplicateKeyError(name, write_error.get("keyValue"), cause=error)
    return StoreError(f"{name}.{operation}", error)


def store_operation(operation_name: str):
    """
    Decorator translating pymongo exceptions raised by a wrapper method.

    The decorated method must belong to an object exposing ``name`` (the
    collection or database name), used to label the raised errors.

    Args:
        operation_name: Human-readable operation name (e.g., "insert")

    Usage:
        @store_operation("remove_all")
        def remove_all(self, selector):
            return self._collection.delete_many(selector)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            try:
                return func(self, *args, **kwargs)
            except pymongo_errors.PyMongoError as e:
                raise translate_error(self.name, operation_name, e) from e

        return wrapper

    return decorator
