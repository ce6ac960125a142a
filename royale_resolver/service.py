"""
Resolution service for the Wordle Royale resolver.

Sequences the components into the externally observable protocol:

    admission (rate limit) -> input validation -> credential check
        -> session store -> evaluator / deriver / signer -> response

Each operation returns an Outcome whose success value is the response
body. The service never touches a game before its credential verifies,
and never calls the signer unless it has just flipped the game's claim
flag itself.
"""

import logging
from typing import Any, Dict, Optional

from .attestation import AttestationSigner
from .auth import Authenticator
from .logging_config import AuditLogger, audit_log
from .outcomes import Outcome, Reason
from .rate_limit import RateLimiter
from .security import is_valid_instance_id, normalize_guess, normalize_participant, normalize_round_id
from .sessions import GameSnapshot, SessionStore
from .settlement import MODE_FAIL_CLOSED, MODE_WARN, SettlementChecker, SettlementStatus

logger = logging.getLogger(__name__)


class ResolutionService:
    """Transport-agnostic game resolution protocol."""

    def __init__(
        self,
        store: SessionStore,
        authenticator: Authenticator,
        signer: AttestationSigner,
        limiter: RateLimiter,
        settlement: SettlementChecker,
        word_length: int = 5,
        max_attempts: int = 6,
        settlement_mode: str = MODE_WARN,
        audit: AuditLogger = audit_log
    ):
        self.store = store
        self.authenticator = authenticator
        self.signer = signer
        self.limiter = limiter
        self.settlement = settlement
        self.word_length = word_length
        self.max_attempts = max_attempts
        self.settlement_mode = settlement_mode
        self._audit = audit

    # ============================================================
    # Admission
    # ============================================================

    def admit(self, caller_id: str, endpoint: str) -> Outcome:
        """Apply the per-caller rate limit."""
        result = self.limiter.check(caller_id)
        if not result.allowed:
            self._audit.rate_limit_exceeded(caller_id, endpoint)
            return Outcome.reject(Reason.RATE_LIMIT, retry_after=result.retry_after)
        return Outcome.success(result)

    def _authenticate(self, instance_id: str, credential: Optional[str], endpoint: str) -> Optional[Outcome]:
        """Return a rejection if the credential does not verify, else None."""
        if self.authenticator.verify(instance_id, credential):
            return None
        self._audit.security_event(
            "INVALID_SESSION",
            severity="low",
            instance_id=instance_id,
            endpoint=endpoint
        )
        return Outcome.reject(Reason.INVALID_SESSION)

    # ============================================================
    # Operations
    # ============================================================

    def signer_identity(self) -> Dict[str, str]:
        """Public identity of the attestation key."""
        return {"address": self.signer.identity, "scheme": self.signer.scheme}

    def create(self, round_id: Any, participant: Any) -> Outcome:
        """Start a game, or return the live game for (round, participant)."""
        player = normalize_participant(participant)
        if player is None:
            return Outcome.reject(Reason.INVALID_PARTICIPANT)
        round_key = normalize_round_id(round_id)
        if round_key is None:
            return Outcome.reject(Reason.INVALID_ROUND_ID)

        created = self.store.create(round_key, player)
        snap = created.snapshot
        self._audit.session_created(snap.instance_id, round_key, player, resumed=not created.created)

        return Outcome.success({
            "instanceId": snap.instance_id,
            "credential": created.credential,
            "wordLength": len(snap.target),
            "maxAttempts": self.max_attempts,
            "attemptCount": snap.attempt_count,
            "resumed": not created.created,
        })

    def guess(self, instance_id: Any, credential: Optional[str], guess: Any) -> Outcome:
        """Judge one guess."""
        if not is_valid_instance_id(instance_id):
            return Outcome.reject(Reason.INVALID_INSTANCE_ID)
        word = normalize_guess(guess, self.word_length)
        if word is None:
            return Outcome.reject(Reason.INVALID_GUESS)

        rejected = self._authenticate(instance_id, credential, "guess")
        if rejected:
            return rejected

        appended = self.store.append_attempt(instance_id, word)
        if not appended.ok:
            return appended

        result = appended.value
        snap = result.snapshot
        self._audit.guess_recorded(instance_id, result.attempt_number, snap.outcome.value)

        body = {
            "guess": word,
            "verdict": [v.value for v in result.verdict],
            "attemptNumber": result.attempt_number,
            "isTerminal": snap.is_terminal,
            "won": snap.won,
        }
        if snap.is_terminal:
            body["target"] = snap.target
        return Outcome.success(body)

    def state(self, instance_id: Any, credential: Optional[str]) -> Outcome:
        """Read a game's history and outcome."""
        if not is_valid_instance_id(instance_id):
            return Outcome.reject(Reason.INVALID_INSTANCE_ID)

        rejected = self._authenticate(instance_id, credential, "state")
        if rejected:
            return rejected

        snap = self.store.get(instance_id)
        if snap is None:
            return Outcome.reject(Reason.INVALID_SESSION)
        return Outcome.success(_state_body(snap))

    def attestation(self, instance_id: Any, credential: Optional[str]) -> Outcome:
        """Issue the signed resolution for a won game, at most once."""
        if not is_valid_instance_id(instance_id):
            return Outcome.reject(Reason.INVALID_INSTANCE_ID)

        rejected = self._authenticate(instance_id, credential, "attestation")
        if rejected:
            return rejected

        snap = self.store.get(instance_id)
        if snap is None:
            return Outcome.reject(Reason.INVALID_SESSION)

        conflict = _attestation_conflict(snap)
        if conflict is not None:
            self._audit.attestation_rejected(instance_id, conflict.value)
            return Outcome.reject(conflict)

        check = self.settlement.is_resolved(self.signer.identity, snap.round_id)
        if check.status is SettlementStatus.RESOLVED:
            self.store.mark_attestation_issued(instance_id)
            self._audit.attestation_rejected(instance_id, Reason.ALREADY_RESOLVED.value)
            return Outcome.reject(Reason.ALREADY_RESOLVED)
        if check.status is SettlementStatus.UNKNOWN:
            self._audit.settlement_check_failed(instance_id, snap.round_id, check.error, self.settlement_mode)
            if self.settlement_mode == MODE_FAIL_CLOSED:
                return Outcome.reject(Reason.SETTLEMENT_UNAVAILABLE)

        if not self.store.mark_attestation_issued(instance_id):
            self._audit.attestation_rejected(instance_id, Reason.ALREADY_CLAIMED.value)
            return Outcome.reject(Reason.ALREADY_CLAIMED)

        try:
            signed = self.signer.sign(snap.round_id, snap.participant, snap.attempt_count)
        except Exception:
            logger.exception("Signing failed for %s; claim flag stays set", instance_id)
            raise

        self._audit.attestation_issued(
            instance_id,
            snap.round_id,
            snap.participant,
            snap.attempt_count,
            check.status.value
        )
        return Outcome.success(signed.to_dict())

    # ============================================================
    # Maintenance
    # ============================================================

    def sweep(self) -> int:
        """Evict expired games and stale rate-limit entries."""
        evicted = self.store.sweep()
        self.limiter.cleanup_expired()
        if evicted:
            self._audit.sessions_evicted(evicted)
        return evicted


def _attestation_conflict(snap: GameSnapshot) -> Optional[Reason]:
    if not snap.is_terminal:
        return Reason.GAME_NOT_COMPLETED
    if not snap.won:
        return Reason.GAME_NOT_WON
    if snap.attestation_issued:
        return Reason.ALREADY_CLAIMED
    return None


def _state_body(snap: GameSnapshot) -> Dict[str, Any]:
    body = {
        "attempts": [
            {"guess": a.guess, "verdict": [v.value for v in a.verdict]}
            for a in snap.attempts
        ],
        "outcome": snap.outcome.value,
        "attemptCount": snap.attempt_count,
        "isTerminal": snap.is_terminal,
        "won": snap.won,
        "attestationIssued": snap.attestation_issued,
    }
    if snap.is_terminal:
        body["target"] = snap.target
    return body
