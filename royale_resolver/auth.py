"""
Session credential handling for the Wordle Royale resolver.

Each game gets an opaque bearer credential when it is created. Every
session-bound request must present it; verification is constant-time and
treats "no such game" exactly like "wrong credential".
"""

import secrets
from typing import Callable, Optional

from .util import constant_time_compare

CREDENTIAL_BYTES = 32

# Compared against when the instance has no credential, so the failure path
# does the same amount of work as a real mismatch.
_DUMMY_CREDENTIAL = "0" * (CREDENTIAL_BYTES * 2)


class Authenticator:
    """Issues and verifies per-game bearer credentials."""

    def __init__(self, lookup: Callable[[str], Optional[str]]):
        """
        Args:
            lookup: Returns the stored credential for an instance id, or
                None if the instance does not exist
        """
        self._lookup = lookup

    @staticmethod
    def issue() -> str:
        """Generate a new opaque credential."""
        return secrets.token_hex(CREDENTIAL_BYTES)

    def verify(self, instance_id: str, supplied: Optional[str]) -> bool:
        """
        Check a supplied credential against the one stored for the instance.

        Returns False for a missing instance, a missing credential, or a
        mismatch, without distinguishing between them.
        """
        stored = self._lookup(instance_id) if instance_id else None
        candidate = supplied if isinstance(supplied, str) else ""
        if stored is None:
            constant_time_compare(_DUMMY_CREDENTIAL, candidate)
            return False
        matched = constant_time_compare(stored, candidate)
        return matched and bool(candidate)
