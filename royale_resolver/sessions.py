"""
Game session storage for the Wordle Royale resolver.

The store is the only owner of game state and credentials. Callers get
immutable snapshots back; the mutable GameInstance never leaves the store.

Locking:
- A store-wide lock guards the index maps (instance id -> game,
  (participant, round) -> instance id, instance id -> credential).
- Each game has its own lock, held for the duration of one mutation.
- Mutations look the game up under the store lock, release it, then take
  the game lock. Creation and the eviction sweep take the store lock and
  then a game lock. No path takes the store lock while holding a game lock.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .auth import Authenticator
from .deriver import SecretDeriver
from .evaluator import Verdict, evaluate, is_solved
from .outcomes import Outcome, Reason
from .util import generate_id, generate_nonce


class GameOutcome(str, Enum):
    """Game state machine."""
    IN_PROGRESS = "in_progress"
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class Attempt:
    """One recorded guess."""
    guess: str
    verdict: Tuple[Verdict, ...]
    timestamp: float


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of a game at one point in time."""
    instance_id: str
    participant: str
    round_id: str
    target: str
    attempts: Tuple[Attempt, ...]
    outcome: GameOutcome
    attestation_issued: bool
    created_at: float

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not GameOutcome.IN_PROGRESS

    @property
    def won(self) -> bool:
        return self.outcome is GameOutcome.WON


@dataclass(frozen=True)
class CreatedSession:
    """Result of a create call."""
    snapshot: GameSnapshot
    credential: str
    created: bool  # False when an existing live game was returned


@dataclass(frozen=True)
class GuessResult:
    """Result of a recorded guess."""
    verdict: Tuple[Verdict, ...]
    attempt_number: int
    snapshot: GameSnapshot


@dataclass
class GameInstance:
    """Mutable game state. Only touched while holding `lock`."""
    instance_id: str
    participant: str
    round_id: str
    target: str
    nonce: str
    created_at: float
    attempts: List[Attempt] = field(default_factory=list)
    outcome: GameOutcome = GameOutcome.IN_PROGRESS
    attestation_issued: bool = False
    removed: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            instance_id=self.instance_id,
            participant=self.participant,
            round_id=self.round_id,
            target=self.target,
            attempts=tuple(self.attempts),
            outcome=self.outcome,
            attestation_issued=self.attestation_issued,
            created_at=self.created_at,
        )


class SessionStore(ABC):
    """Abstract interface for game session storage."""

    @abstractmethod
    def create(self, round_id: str, participant: str) -> CreatedSession:
        """
        Create a game, or return the live one for (round, participant).

        A finished game (won or lost) is still live: it keeps being returned,
        with `created=False`, until the sweep evicts it.
        """

    @abstractmethod
    def get(self, instance_id: str) -> Optional[GameSnapshot]:
        """Snapshot of a live game, or None."""

    @abstractmethod
    def append_attempt(self, instance_id: str, guess: str) -> Outcome:
        """Record a guess and update the outcome; Outcome[GuessResult]."""

    @abstractmethod
    def mark_attestation_issued(self, instance_id: str) -> bool:
        """Flip the claimed flag; True only for the call that flipped it."""

    @abstractmethod
    def credential_for(self, instance_id: str) -> Optional[str]:
        """Stored credential for a live game, or None."""

    @abstractmethod
    def sweep(self, now: Optional[float] = None) -> int:
        """Evict games older than the TTL; returns the number evicted."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of live games."""


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    State does not survive a restart.
    """

    def __init__(
        self,
        deriver: SecretDeriver,
        max_attempts: int = 6,
        ttl_seconds: int = 3600,
        credential_factory: Callable[[], str] = Authenticator.issue,
        clock: Callable[[], float] = time.time
    ):
        self._deriver = deriver
        self._max_attempts = max_attempts
        self._ttl = ttl_seconds
        self._credential_factory = credential_factory
        self._clock = clock
        self._games: Dict[str, GameInstance] = {}
        self._credentials: Dict[str, str] = {}
        self._index: Dict[Tuple[str, str], str] = {}
        self._lock = threading.RLock()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _lookup(self, instance_id: str) -> Optional[GameInstance]:
        with self._lock:
            return self._games.get(instance_id)

    def create(self, round_id: str, participant: str) -> CreatedSession:
        participant = participant.lower()
        key = (participant, round_id)

        with self._lock:
            existing_id = self._index.get(key)
            game = self._games.get(existing_id) if existing_id else None
            if game is not None:
                with game.lock:
                    snap = game.snapshot()
                return CreatedSession(snap, self._credentials[game.instance_id], created=False)

            instance_id = generate_id(16)
            while instance_id in self._games:
                instance_id = generate_id(16)

            nonce = generate_nonce(16)
            game = GameInstance(
                instance_id=instance_id,
                participant=participant,
                round_id=round_id,
                target=self._deriver.derive(round_id, participant, nonce),
                nonce=nonce,
                created_at=self._clock(),
            )
            credential = self._credential_factory()

            self._games[instance_id] = game
            self._credentials[instance_id] = credential
            self._index[key] = instance_id

            return CreatedSession(game.snapshot(), credential, created=True)

    def get(self, instance_id: str) -> Optional[GameSnapshot]:
        game = self._lookup(instance_id)
        if game is None:
            return None
        with game.lock:
            if game.removed:
                return None
            return game.snapshot()

    def append_attempt(self, instance_id: str, guess: str) -> Outcome:
        game = self._lookup(instance_id)
        if game is None:
            return Outcome.reject(Reason.INVALID_SESSION)

        with game.lock:
            if game.removed:
                return Outcome.reject(Reason.INVALID_SESSION)
            if game.outcome is not GameOutcome.IN_PROGRESS:
                return Outcome.reject(Reason.GAME_COMPLETED)
            if len(guess) != len(game.target):
                return Outcome.reject(Reason.INVALID_GUESS)

            verdict = tuple(evaluate(guess, game.target))
            game.attempts.append(Attempt(guess=guess, verdict=verdict, timestamp=self._clock()))

            if is_solved(verdict):
                game.outcome = GameOutcome.WON
            elif len(game.attempts) >= self._max_attempts:
                game.outcome = GameOutcome.LOST

            return Outcome.success(GuessResult(
                verdict=verdict,
                attempt_number=len(game.attempts),
                snapshot=game.snapshot(),
            ))

    def mark_attestation_issued(self, instance_id: str) -> bool:
        game = self._lookup(instance_id)
        if game is None:
            return False

        with game.lock:
            if game.removed or game.outcome is not GameOutcome.WON:
                return False
            if game.attestation_issued:
                return False
            game.attestation_issued = True
            return True

    def credential_for(self, instance_id: str) -> Optional[str]:
        with self._lock:
            return self._credentials.get(instance_id)

    def sweep(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        removed = 0

        with self._lock:
            expired = [g for g in self._games.values() if now - g.created_at > self._ttl]

            for game in expired:
                with game.lock:
                    game.removed = True
                    self._games.pop(game.instance_id, None)
                    self._credentials.pop(game.instance_id, None)
                    key = (game.participant, game.round_id)
                    if self._index.get(key) == game.instance_id:
                        del self._index[key]
                removed += 1

        return removed

    def reset(self) -> None:
        """Drop every game (test isolation)."""
        with self._lock:
            for game in self._games.values():
                with game.lock:
                    game.removed = True
            self._games.clear()
            self._credentials.clear()
            self._index.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
