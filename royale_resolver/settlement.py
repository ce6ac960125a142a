"""
Settlement layer pre-check for the Wordle Royale resolver.

Before signing, the resolver asks the settlement contract whether the
round was already resolved for this resolver:

    isGameResolved(address resolver, uint256 gameId) view returns (bool)

The answer is advisory. The contract is the final judge of any signature.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

logger = logging.getLogger(__name__)

IS_GAME_RESOLVED_SELECTOR = function_signature_to_4byte_selector("isGameResolved(address,uint256)")

MODE_WARN = "warn"
MODE_FAIL_CLOSED = "fail_closed"
CHECK_MODES = (MODE_WARN, MODE_FAIL_CLOSED)


class SettlementStatus(str, Enum):
    """Result of a settlement pre-check."""
    RESOLVED = "RESOLVED"   # Round already consumed on the settlement layer
    OPEN = "OPEN"           # Round not yet consumed
    UNKNOWN = "UNKNOWN"     # Query failed (timeout, unreachable, bad reply)
    SKIPPED = "SKIPPED"     # Check not configured or not applicable


@dataclass(frozen=True)
class SettlementCheck:
    """Status plus the failure cause for UNKNOWN."""
    status: SettlementStatus
    error: Optional[str] = None


class SettlementCheckError(Exception):
    """The settlement layer could not answer."""


class SettlementChecker:
    """Read-only JSON-RPC client for the settlement contract."""

    def __init__(
        self,
        rpc_url: Optional[str],
        contract_address: str,
        timeout: float = 3.0,
        session: Optional[requests.Session] = None
    ):
        self._rpc_url = rpc_url or ""
        self._contract = contract_address
        self._timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    @property
    def enabled(self) -> bool:
        return bool(self._rpc_url)

    def is_resolved(self, resolver: str, round_id: str) -> SettlementCheck:
        """
        Ask whether (resolver, round) was already resolved.

        Never raises for transport or decoding problems; those are reported
        as UNKNOWN with the cause in `error`.
        """
        if not self.enabled or not is_address(resolver):
            return SettlementCheck(SettlementStatus.SKIPPED)

        try:
            resolved = self._call_is_game_resolved(resolver, int(round_id))
        except (requests.RequestException, SettlementCheckError, DecodingError, ValueError) as e:
            error = f"{type(e).__name__}: {e}"
            logger.warning("Settlement check failed for round %s: %s", round_id, error)
            return SettlementCheck(SettlementStatus.UNKNOWN, error)

        return SettlementCheck(SettlementStatus.RESOLVED if resolved else SettlementStatus.OPEN)

    def _call_is_game_resolved(self, resolver: str, game_id: int) -> bool:
        calldata = IS_GAME_RESOLVED_SELECTOR + encode(
            ["address", "uint256"],
            [to_checksum_address(resolver), game_id]
        )
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "eth_call",
            "params": [
                {"to": to_checksum_address(self._contract), "data": "0x" + calldata.hex()},
                "latest",
            ],
        }

        r = self._session.post(self._rpc_url, json=payload, timeout=self._timeout)
        r.raise_for_status()
        body = r.json()
        if not isinstance(body, dict):
            raise SettlementCheckError("malformed JSON-RPC reply")

        if body.get("error"):
            err = body["error"]
            raise SettlementCheckError(str(err.get("message", err) if isinstance(err, dict) else err))

        result = body.get("result")
        if not isinstance(result, str) or not result.startswith("0x"):
            raise SettlementCheckError(f"unexpected eth_call result: {result!r}")

        (resolved,) = decode(["bool"], bytes.fromhex(result[2:]))
        return bool(resolved)
