"""
Outcome values returned by the mutation executor.

Every executor call returns either ``Ok(value)`` or ``Err(error)``. The
gateway rolls back when it sees an ``Err`` and commits on ``Ok``; routers
turn the error kind into a status code (see ``app.util.http``).
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class MutationError:
    kind: str = "error"
    message: str


@dataclass(frozen=True)
class ValidationFailed(MutationError):
    message: str
    kind: str = "validation"


@dataclass(frozen=True)
class NotFound(MutationError):
    message: str
    kind: str = "not_found"


@dataclass(frozen=True)
class InvalidState(MutationError):
    """Entity exists but its status forbids the transition (e.g. paying a Paid check)."""
    message: str
    kind: str = "invalid_state"


@dataclass(frozen=True)
class PersistenceFailure(MutationError):
    message: str
    retryable: bool = False
    committed: bool = False  # the write landed; only reading it back failed
    kind: str = "persistence"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: MutationError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[Any], Err]
