"""
Logging setup for the Wordle Royale resolver.

Every log line can carry the id of the HTTP request that produced it. Audit
events go through `audit_log`, which attaches event fields to the record
and masks anything sensitive before it reaches a handler.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .security import sanitize_for_logging

request_id_var: ContextVar[str] = ContextVar("resolver_request_id", default="")

_SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}

_PLAIN_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with audit fields merged in at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        rid = request_id_var.get()
        if rid:
            entry["request_id"] = rid

        entry.update(getattr(record, "extra_fields", {}))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class AuditLogger:
    """
    Audit trail for game and attestation events.

    Provides one method per security-relevant event: session creation,
    guesses, attestation decisions, settlement check failures and
    admission rejections. Targets of live games and credentials are never
    passed in; anything sensitive that slips through is masked.
    """

    def __init__(self, name: str = "royale_resolver.audit"):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event_type: str, message: str, **fields) -> None:
        if not self._logger.isEnabledFor(level):
            return
        payload = sanitize_for_logging({
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **fields
        })
        self._logger.log(level, "%s: %s", event_type, message, extra={"extra_fields": payload})

    def session_created(self, instance_id: str, round_id: str, participant: str, resumed: bool) -> None:
        verb = "Resumed" if resumed else "Started"
        self._emit(
            logging.INFO, "SESSION_CREATED", f"{verb} game {instance_id} for round {round_id}",
            instance_id=instance_id, round_id=round_id, participant=participant, resumed=resumed
        )

    def guess_recorded(self, instance_id: str, attempt_number: int, outcome: str) -> None:
        self._emit(
            logging.INFO, "GUESS_RECORDED", f"Guess {attempt_number} on {instance_id}: {outcome}",
            instance_id=instance_id, attempt_number=attempt_number, outcome=outcome
        )

    def attestation_issued(
        self,
        instance_id: str,
        round_id: str,
        participant: str,
        attempt_count: int,
        settlement_status: str
    ) -> None:
        """Log a signed attestation (never the signature itself)."""
        self._emit(
            logging.INFO, "ATTESTATION_ISSUED", f"Attestation signed for round {round_id}",
            instance_id=instance_id,
            round_id=round_id,
            participant=participant,
            attempt_count=attempt_count,
            settlement_status=settlement_status
        )

    def attestation_rejected(self, instance_id: str, reason: str) -> None:
        self._emit(
            logging.WARNING, "ATTESTATION_REJECTED", f"Attestation refused: {reason}",
            instance_id=instance_id, reason=reason
        )

    def settlement_check_failed(self, instance_id: str, round_id: str, error: Optional[str], mode: str) -> None:
        """Log a settlement pre-check that got no answer."""
        self._emit(
            logging.WARNING, "SETTLEMENT_CHECK_FAILED",
            f"Settlement pre-check unavailable for round {round_id} ({mode})",
            instance_id=instance_id, round_id=round_id, error=error, mode=mode
        )

    def security_event(self, event: str, severity: str = "medium", **details) -> None:
        """
        Log a security-relevant event.

        Args:
            event: Short event name, e.g. INVALID_SESSION
            severity: low | medium | high | critical
            **details: Extra fields (masked if sensitive)
        """
        self._emit(
            _SEVERITY_LEVELS.get(severity, logging.WARNING), "SECURITY_EVENT", event,
            security_event=event, severity=severity, **details
        )

    def rate_limit_exceeded(self, client_id: str, endpoint: str) -> None:
        self._emit(
            logging.WARNING, "RATE_LIMIT_EXCEEDED", f"{client_id} throttled on {endpoint}",
            client_id=client_id, endpoint=endpoint
        )

    def sessions_evicted(self, count: int) -> None:
        self._emit(logging.INFO, "SESSIONS_EVICTED", f"Evicted {count} expired games", count=count)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ...)
        json_format: JSON lines when True, plain text otherwise
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if json_format else logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id (a new uuid4 if none given) to the current context."""
    rid = request_id or uuid.uuid4().hex
    request_id_var.set(rid)
    return rid


audit_log = AuditLogger()
