"""
Security module for the Wordle Royale resolver.

Provides input validation, caller identification, and log sanitization.

Validators return the normalized value, or None when the input is
malformed; they never raise on bad input.
"""

import re
from typing import Any, Dict, Iterable, Mapping, Optional

from .util import mask_sensitive


# ============================================================
# Input Validation
# ============================================================

ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
INSTANCE_ID_PATTERN = re.compile(r'^0x[a-f0-9]{32}$')
ROUND_ID_PATTERN = re.compile(r'^[0-9]{1,78}$')
GUESS_PATTERN = re.compile(r'^[A-Za-z]+$')

UINT256_MAX = 2 ** 256 - 1


def normalize_participant(value: Any) -> Optional[str]:
    """
    Validate a participant address.

    Returns:
        The lower-cased address, or None if it is not 0x + 40 hex digits
    """
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not ADDRESS_PATTERN.match(value):
        return None
    return value.lower()


def normalize_round_id(value: Any) -> Optional[str]:
    """
    Validate a round identifier (the settlement layer's uint256 game id).

    Accepts a non-negative integer or its decimal string.

    Returns:
        Canonical decimal string without leading zeros, or None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and ROUND_ID_PATTERN.match(value.strip()):
        number = int(value.strip())
    else:
        return None

    if number < 0 or number > UINT256_MAX:
        return None
    return str(number)


def normalize_guess(value: Any, length: int) -> Optional[str]:
    """
    Validate a guess: exactly `length` ASCII letters.

    No dictionary check is made.

    Returns:
        The upper-cased guess, or None
    """
    if not isinstance(value, str) or len(value) != length:
        return None
    if not (value.isascii() and GUESS_PATTERN.match(value)):
        return None
    return value.upper()


def is_valid_instance_id(value: Any) -> bool:
    """Check the shape of an instance id (0x + 32 lowercase hex)."""
    return isinstance(value, str) and bool(INSTANCE_ID_PATTERN.match(value))


# ============================================================
# Rate Limiting Helpers
# ============================================================

def extract_client_id(
    headers: Mapping[str, str],
    peer_host: Optional[str],
    trust_forwarded_for: bool = False
) -> str:
    """
    Identify the caller for rate limiting.

    Uses the first X-Forwarded-For hop only when the service sits behind a
    trusted proxy; otherwise the socket peer address.
    """
    if trust_forwarded_for:
        forwarded = headers.get("x-forwarded-for", "")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return f"ip:{first}"

    if peer_host:
        return f"ip:{peer_host}"

    return "anonymous"


# ============================================================
# Log redaction
# ============================================================

SENSITIVE_LOG_FIELDS = frozenset({"credential", "signature", "private_key", "secret", "target", "token"})


def _redact(value: Any) -> str:
    if isinstance(value, str) and len(value) > 8:
        return mask_sensitive(value)
    return "[REDACTED]"


def sanitize_for_logging(data: Dict[str, Any], sensitive_fields: Iterable[str] = SENSITIVE_LOG_FIELDS) -> Dict[str, Any]:
    """
    Copy `data` with sensitive fields masked, recursing into nested dicts
    and into dicts inside lists. Short secrets are fully redacted.
    """
    hidden = frozenset(sensitive_fields)

    def clean(value: Any) -> Any:
        if isinstance(value, dict):
            return sanitize_for_logging(value, hidden)
        if isinstance(value, list):
            return [clean(item) for item in value]
        return value

    return {k: (_redact(v) if k in hidden else clean(v)) for k, v in data.items()}
