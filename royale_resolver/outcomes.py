"""
Operation outcomes for the Wordle Royale resolver.

Every session operation resolves to exactly one of two shapes: a success
value, or a Failure naming one Reason. Each Reason belongs to exactly one
ErrorKind, and the HTTP layer maps kinds (not reasons) to status codes.

Authentication has a single reason: an unknown instance, an
evicted instance, a missing credential and a wrong credential all produce
INVALID_SESSION.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure taxonomy."""
    ADMISSION = "ADMISSION"               # Rejected before any state is read
    AUTHENTICATION = "AUTHENTICATION"     # Credential did not verify
    STATE_CONFLICT = "STATE_CONFLICT"     # Valid caller, wrong game state
    UNAVAILABLE = "UNAVAILABLE"           # Required collaborator unreachable


class Reason(str, Enum):
    """Specific failure reason."""
    RATE_LIMIT = "RATE_LIMIT"
    INVALID_PARTICIPANT = "INVALID_PARTICIPANT"
    INVALID_ROUND_ID = "INVALID_ROUND_ID"
    INVALID_INSTANCE_ID = "INVALID_INSTANCE_ID"
    INVALID_GUESS = "INVALID_GUESS"

    INVALID_SESSION = "INVALID_SESSION"

    GAME_COMPLETED = "GAME_COMPLETED"
    GAME_NOT_COMPLETED = "GAME_NOT_COMPLETED"
    GAME_NOT_WON = "GAME_NOT_WON"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    ALREADY_RESOLVED = "ALREADY_RESOLVED"

    SETTLEMENT_UNAVAILABLE = "SETTLEMENT_UNAVAILABLE"


REASON_KINDS = {
    Reason.RATE_LIMIT: ErrorKind.ADMISSION,
    Reason.INVALID_PARTICIPANT: ErrorKind.ADMISSION,
    Reason.INVALID_ROUND_ID: ErrorKind.ADMISSION,
    Reason.INVALID_INSTANCE_ID: ErrorKind.ADMISSION,
    Reason.INVALID_GUESS: ErrorKind.ADMISSION,
    Reason.INVALID_SESSION: ErrorKind.AUTHENTICATION,
    Reason.GAME_COMPLETED: ErrorKind.STATE_CONFLICT,
    Reason.GAME_NOT_COMPLETED: ErrorKind.STATE_CONFLICT,
    Reason.GAME_NOT_WON: ErrorKind.STATE_CONFLICT,
    Reason.ALREADY_CLAIMED: ErrorKind.STATE_CONFLICT,
    Reason.ALREADY_RESOLVED: ErrorKind.STATE_CONFLICT,
    Reason.SETTLEMENT_UNAVAILABLE: ErrorKind.UNAVAILABLE,
}


@dataclass(frozen=True)
class Failure:
    """A rejected operation."""
    reason: Reason
    retry_after: Optional[float] = None

    @property
    def kind(self) -> ErrorKind:
        return REASON_KINDS[self.reason]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success value or Failure, never both."""
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: Any) -> "Outcome":
        return cls(value=value)

    @classmethod
    def reject(
        cls,
        reason: Reason,
        retry_after: Optional[float] = None
    ) -> "Outcome":
        return cls(failure=Failure(reason=reason, retry_after=retry_after))
