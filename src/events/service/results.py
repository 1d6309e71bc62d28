"""Success/failure results returned by the registration engine."""

import functools
import typing as t
from dataclasses import dataclass

import structlog
from django.db import DatabaseError

from events.exceptions import InfrastructureError, RegistrationError

logger = structlog.get_logger(__name__)

T = t.TypeVar("T")
P = t.ParamSpec("P")


@dataclass(frozen=True, slots=True)
class Result(t.Generic[T]):
    """Either a value or a typed RegistrationError, never both."""

    value: T | None = None
    error: RegistrationError | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        """Wrap a successful value."""
        return cls(value=value)

    @classmethod
    def failure(cls, error: RegistrationError) -> "Result[T]":
        """Wrap a typed failure."""
        return cls(error=error)

    @property
    def ok(self) -> bool:
        """True if the operation succeeded."""
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the failure."""
        if self.error is not None:
            raise self.error
        return t.cast(T, self.value)


def returns_result(func: t.Callable[P, T]) -> t.Callable[P, Result[T]]:
    """Turn RegistrationErrors raised by func into failure results.

    Database failures are not domain outcomes: they are re-raised as InfrastructureError.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Result.success(func(*args, **kwargs))
        except RegistrationError as e:
            logger.info("registration_operation_failed", operation=func.__name__, code=e.code, reason=e.message)
            return Result.failure(e)
        except DatabaseError as e:
            logger.exception("registration_storage_failure", operation=func.__name__)
            raise InfrastructureError(str(e)) from e

    return wrapper
