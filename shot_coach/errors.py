"""
Error taxonomy and the tagged result type returned by every coaching operation.

Raising vs returning
--------------------
Coaching operations never raise past their boundary. They return either
``Ok(value)`` or ``Err(CoachError)`` so the caller is forced to look at both
paths::

    result = calculate_adjustment("15.0", 22, TastePrimary.SOUR, profile)
    if not result.is_ok:
        logger.warning("No advice: %s", result.error)
        return
    rec = result.value

``Err.unwrap()`` raises ``CoachFailure`` for call sites (CLI, tests) that want
a hard failure instead of a branch.

Error kinds
-----------
  VALIDATION                 malformed grind setting, negative extraction time
  NOT_FOUND                  shot or bean missing
  ASSOCIATED_BEAN_NOT_FOUND  the shot exists but its bean does not
                             (a sub-kind of NOT_FOUND)
  CONFIGURATION              no grinder profile configured
  STORAGE                    SQLite / filesystem failure
  UNKNOWN                    anything unexpected; original exception kept as cause

Failures coming back from a collaborator (catalog, store) are passed through
as the *same* ``Err`` object. Only unexpected exceptions get wrapped.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, NoReturn, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Failure categories surfaced by the coaching core."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    ASSOCIATED_BEAN_NOT_FOUND = "associated_bean_not_found"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    UNKNOWN = "unknown"

    @property
    def is_not_found(self) -> bool:
        """True for NOT_FOUND and its more specific sub-kinds."""
        return self in (ErrorKind.NOT_FOUND, ErrorKind.ASSOCIATED_BEAN_NOT_FOUND)


@dataclass(frozen=True)
class CoachError:
    """A typed failure.

    Attributes:
        kind:    Failure category.
        message: Human-readable description.
        cause:   Original exception, if the failure wraps one.
    """

    kind:    ErrorKind
    message: str
    cause:   BaseException | None = None

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.kind.value}: {self.message} ({type(self.cause).__name__}: {self.cause})"
        return f"{self.kind.value}: {self.message}"


class CoachFailure(RuntimeError):
    """Raised by ``Err.unwrap()``.

    Attributes:
        error: The ``CoachError`` that was unwrapped.
    """

    def __init__(self, error: CoachError) -> None:
        self.error = error
        super().__init__(str(error))


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: Any) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a ``CoachError``."""

    error: CoachError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def unwrap(self) -> NoReturn:
        raise CoachFailure(self.error)

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err]


def failure(
    kind: ErrorKind,
    message: str,
    cause: BaseException | None = None,
) -> Err:
    """Shorthand for ``Err(CoachError(kind, message, cause))``."""
    return Err(CoachError(kind=kind, message=message, cause=cause))


def unexpected(message: str, exc: BaseException) -> Err:
    """Wrap an unexpected exception as an UNKNOWN failure and log it."""
    logger.exception("%s", message, exc_info=exc)
    return failure(ErrorKind.UNKNOWN, message, exc)


def storage_call(
    fn: Callable[..., T],
    *args: Any,
    message: str = "Storage operation failed",
    **kwargs: Any,
) -> Result[T]:
    """Run a persistence call and convert its exceptions into a ``Result``.

    ``sqlite3.Error`` and ``OSError`` become STORAGE failures; any other
    exception becomes UNKNOWN. No retries are attempted.

    Args:
        fn:      Callable to invoke.
        message: Failure message used when ``fn`` raises.

    Returns:
        ``Ok(fn(*args, **kwargs))`` or an ``Err``.
    """
    try:
        return Ok(fn(*args, **kwargs))
    except (sqlite3.Error, OSError) as exc:
        logger.error("%s: %s", message, exc)
        return failure(ErrorKind.STORAGE, message, exc)
    except Exception as exc:
        return unexpected(message, exc)
