"""
Tagged outcome of an orchestrated transition: Success(value) or Error(kind, message).
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from orderflow.core.state_machine import (
    InvalidTransition,
    OrderNotFoundError,
    PersistenceFailure,
    StateMachineError,
    SyncFailure,
    VanishedDuringTransition,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    SYNC_FAILURE = "SYNC_FAILURE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    VANISHED_DURING_TRANSITION = "VANISHED_DURING_TRANSITION"


_EXCEPTIONS = {
    ErrorKind.SYNC_FAILURE: SyncFailure,
    ErrorKind.PERSISTENCE_FAILURE: PersistenceFailure,
}


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    is_success = True

    def on_success(self, action: Callable[[T], Any]) -> "Success[T]":
        action(self.value)
        return self

    def on_error(self, action: Callable[["Error"], Any]) -> "Success[T]":
        return self

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Error:
    kind: ErrorKind
    message: str
    exception: Optional[BaseException] = None

    is_success = False

    def on_success(self, action: Callable[[Any], Any]) -> "Error":
        return self

    def on_error(self, action: Callable[["Error"], Any]) -> "Error":
        action(self)
        return self

    def unwrap(self) -> Any:
        """Raise the exception carried by this error (or one matching its kind)."""
        if isinstance(self.exception, StateMachineError):
            raise self.exception
        exc_cls = _EXCEPTIONS.get(self.kind)
        if exc_cls is not None:
            raise exc_cls(self.message) from self.exception
        # kinds whose exceptions need structured args always carry them
        raise StateMachineError(self.message) from self.exception

    @classmethod
    def from_exception(cls, kind: ErrorKind, exc: BaseException) -> "Error":
        return cls(kind=kind, message=str(exc) or exc.__class__.__name__, exception=exc)


Result = Union[Success[T], Error]


def error_kind_for(exc: BaseException) -> Optional[ErrorKind]:
    """Map an engine exception to its error kind (None for foreign exceptions)."""
    if isinstance(exc, OrderNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, InvalidTransition):
        return ErrorKind.INVALID_TRANSITION
    if isinstance(exc, SyncFailure):
        return ErrorKind.SYNC_FAILURE
    if isinstance(exc, VanishedDuringTransition):
        return ErrorKind.VANISHED_DURING_TRANSITION
    if isinstance(exc, PersistenceFailure):
        return ErrorKind.PERSISTENCE_FAILURE
    return None
