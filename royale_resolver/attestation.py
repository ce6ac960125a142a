"""
Resolution attestation builder for the Wordle Royale resolver.

An attestation authorizes the settlement contract to pay one winner for
one round. It is a domain-separated structured signature over:

    Resolve(address resolver, uint256 gameId, address winner, uint8 guessCount
            [, uint256 payout])

under the domain {name, version, chainId, verifyingContract}. The signer is
stateless: at-most-once issuance is enforced by the session store's claim
flag before `sign` is ever called.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_utils import is_address, to_checksum_address

from .keys import KeyProvider, SCHEME_EIP712, SCHEME_ED25519, TypeSpec, ed25519_payload, \
    recover_eip712_signer, verify_ed25519

PRIMARY_TYPE = "Resolve"

UINT8_MAX = 2 ** 8 - 1


@dataclass(frozen=True)
class AttestationDomain:
    """Domain separator shared with the settlement contract."""
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": to_checksum_address(self.verifying_contract),
        }


@dataclass(frozen=True)
class SignedAttestation:
    """A signed resolution, as returned to the winner."""
    signature: str
    scheme: str
    resolver: str
    participant: str
    attempt_count: int
    round_id: str
    payout: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "signature": self.signature,
            "scheme": self.scheme,
            "resolver": self.resolver,
            "participant": self.participant,
            "attemptCount": self.attempt_count,
            "roundId": self.round_id,
        }
        if self.payout is not None:
            body["payout"] = str(self.payout)
        return body


def resolve_types(scheme: str, with_payout: bool) -> TypeSpec:
    """Struct definition for the signed message."""
    resolver_type = "address" if scheme == SCHEME_EIP712 else "string"
    fields: List[Dict[str, str]] = [
        {"name": "resolver", "type": resolver_type},
        {"name": "gameId", "type": "uint256"},
        {"name": "winner", "type": "address"},
        {"name": "guessCount", "type": "uint8"},
    ]
    if with_payout:
        fields.append({"name": "payout", "type": "uint256"})
    return {PRIMARY_TYPE: fields}


def resolve_message(
    resolver: str,
    round_id: str,
    participant: str,
    attempt_count: int,
    payout: Optional[int] = None
) -> Dict[str, Any]:
    """Struct values for the signed message."""
    message = {
        "resolver": to_checksum_address(resolver) if is_address(resolver) else resolver,
        "gameId": int(round_id),
        "winner": to_checksum_address(participant),
        "guessCount": int(attempt_count),
    }
    if payout is not None:
        message["payout"] = int(payout)
    return message


class AttestationSigner:
    """Signs resolutions with the service's long-lived key."""

    def __init__(self, keys: KeyProvider, domain: AttestationDomain, payout: Optional[int] = None):
        self._keys = keys
        self._domain = domain
        self._payout = payout

    @property
    def identity(self) -> str:
        return self._keys.identity()

    @property
    def scheme(self) -> str:
        return self._keys.scheme

    @property
    def domain(self) -> AttestationDomain:
        return self._domain

    def sign(self, round_id: str, participant: str, attempts: int) -> SignedAttestation:
        """
        Sign a resolution for one won game.

        Callers must have verified the game is won and must have just
        flipped its claim flag.

        Args:
            round_id: Canonical decimal round identifier
            participant: Winner address
            attempts: Number of guesses the winner used

        Returns:
            SignedAttestation
        """
        if not 1 <= attempts <= UINT8_MAX:
            raise ValueError(f"attempt count out of range: {attempts}")

        resolver = self._keys.identity()
        types = resolve_types(self._keys.scheme, self._payout is not None)
        message = resolve_message(resolver, round_id, participant, attempts, self._payout)
        signature = self._keys.sign_typed(self._domain.to_dict(), types, PRIMARY_TYPE, message)

        return SignedAttestation(
            signature=signature,
            scheme=self._keys.scheme,
            resolver=resolver,
            participant=participant.lower(),
            attempt_count=attempts,
            round_id=round_id,
            payout=self._payout,
        )


def verify_attestation(
    attestation: Dict[str, Any],
    domain: AttestationDomain,
    expected_resolver: str
) -> bool:
    """
    Verify a signed attestation as the settlement layer would.

    Args:
        attestation: Attestation dict as returned by the claim endpoint
        domain: Domain the settlement layer expects
        expected_resolver: Identity the settlement layer trusts

    Returns:
        True if the signature binds exactly these fields to the resolver
    """
    try:
        scheme = attestation["scheme"]
        payout = int(attestation["payout"]) if attestation.get("payout") is not None else None
        types = resolve_types(scheme, payout is not None)
        message = resolve_message(
            expected_resolver,
            str(attestation["roundId"]),
            attestation["participant"],
            int(attestation["attemptCount"]),
            payout,
        )
        signature = attestation["signature"]
    except (KeyError, ValueError, TypeError):
        return False

    if scheme == SCHEME_EIP712:
        signer = recover_eip712_signer(domain.to_dict(), types, PRIMARY_TYPE, message, signature)
        return signer is not None and signer.lower() == expected_resolver.lower()

    if scheme == SCHEME_ED25519:
        parts = expected_resolver.split(":", 2)
        if len(parts) != 3:
            return False
        payload = ed25519_payload(domain.to_dict(), types, PRIMARY_TYPE, message)
        return verify_ed25519(signature, payload, parts[2])

    return False
