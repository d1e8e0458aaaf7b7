"""Error kinds surfaced by the todo and category stores."""

import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import structlog

logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")


class TaskNestError(Exception):
    """Base class for every error a caller is allowed to see."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(TaskNestError):
    """No valid caller identity was presented."""

    kind = "authentication_error"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthorizationError(TaskNestError):
    """The entity exists but belongs to someone else."""

    kind = "authorization_error"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(TaskNestError):
    """A referenced entity does not exist."""

    kind = "not_found"

    def __init__(self, resource: str, resource_id: str | None = None):
        suffix = f" with id {resource_id}" if resource_id else ""
        super().__init__(f"{resource}{suffix} not found")
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(TaskNestError):
    """Input failed a required, format or length rule."""

    kind = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConflictError(TaskNestError):
    """The operation would break a uniqueness or reference invariant."""

    kind = "conflict"


class OperationFailedError(TaskNestError):
    """Unexpected storage failure; the original cause is only logged."""

    kind = "operation_failed"

    def __init__(self, message: str = "Operation failed"):
        super().__init__(message)


def guard(message: str) -> Callable[
    [Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]
]:
    """Wrap an async service method so only known error kinds escape.

    Anything that is not a TaskNestError is logged with its traceback and
    replaced by OperationFailedError(message).
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except TaskNestError:
                raise
            except Exception as exc:
                logger.exception(
                    "operation_failed",
                    operation=func.__qualname__,
                    error=str(exc),
                )
                raise OperationFailedError(message) from exc

        return wrapper

    return decorator
