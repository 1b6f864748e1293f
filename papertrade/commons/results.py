"""
Operation results

Every ledger operation returns one of these variants instead of raising for
business outcomes. Callers branch with ``isinstance`` (or ``match``):

    Ok(value)                 operation applied
    NoChange(value)           nothing to do, not an error
    Rejected(reason)          malformed / missing input
    NotFound(reason)          unknown symbol, currency, portfolio, ...
    Conflict(reason)          business-rule refusal, nothing mutated
    DependencyFailure(reason) quote provider / store outage, retryable
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class NoChange(Generic[T]):
    value: Optional[T] = None


@dataclass(frozen=True)
class Rejected:
    reason: str


@dataclass(frozen=True)
class NotFound:
    reason: str


@dataclass(frozen=True)
class Conflict:
    reason: str


@dataclass(frozen=True)
class DependencyFailure:
    reason: str


Failure = Union[Rejected, NotFound, Conflict, DependencyFailure]
OperationResult = Union[Ok[T], NoChange[T], Rejected, NotFound, Conflict, DependencyFailure]


def is_success(result: "OperationResult") -> bool:
    return isinstance(result, (Ok, NoChange))


class AbortTransaction(Exception):
    """
    Raised inside a ``session.begin()`` block to roll back and hand a failure
    result back to the caller.
    """

    def __init__(self, result: Failure):
        super().__init__(result.reason)
        self.result = result
