"""
Key management module for the Wordle Royale resolver.

Provides the signing keys behind resolution attestations:
- EIP-712 typed-data signatures with a secp256k1 key (what the on-chain
  settlement contract recovers)
- Ed25519 signatures over canonical JSON, for settlement layers that
  verify Ed25519
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from nacl.signing import SigningKey, VerifyKey
from nacl.exceptions import BadSignatureError

from .config import ConfigurationError
from .util import b64d, b64e, canonicalize

SCHEME_EIP712 = "eip712"
SCHEME_ED25519 = "ed25519"

TypeSpec = Dict[str, List[Dict[str, str]]]


class KeyProvider(ABC):
    """Abstract interface for resolution signing."""

    scheme: str = ""

    @abstractmethod
    def identity(self) -> str:
        """Public identity counterpart of the signing key."""
        pass

    @abstractmethod
    def sign_typed(
        self,
        domain: Dict[str, Any],
        types: TypeSpec,
        primary_type: str,
        message: Dict[str, Any]
    ) -> str:
        """
        Sign a domain-separated structured message.

        Args:
            domain: Domain separator fields
            types: Struct definitions (without the domain type)
            primary_type: Name of the signed struct
            message: Struct values

        Returns:
            Encoded signature string
        """
        pass


class Eip712KeyProvider(KeyProvider):
    """secp256k1 key signing EIP-712 typed data."""

    scheme = SCHEME_EIP712

    def __init__(self, private_key_hex: str):
        try:
            self._account = Account.from_key(private_key_hex)
        except Exception as e:
            raise ConfigurationError("RESOLVER_PRIVATE_KEY is not a valid secp256k1 key") from e

    def identity(self) -> str:
        return self._account.address

    def sign_typed(
        self,
        domain: Dict[str, Any],
        types: TypeSpec,
        primary_type: str,
        message: Dict[str, Any]
    ) -> str:
        signable = encode_typed_data(
            domain_data=domain,
            message_types={primary_type: types[primary_type]},
            message_data=message
        )
        signed = self._account.sign_message(signable)
        return "0x" + bytes(signed.signature).hex()


class Ed25519KeyProvider(KeyProvider):
    """
    File-based Ed25519 key.

    The key file is JSON: {"kid": ..., "private_key_b64": ...}. The signed
    payload is the canonical JSON of the domain, types, primary type and
    message, so the domain separation matches the EIP-712 scheme.
    """

    scheme = SCHEME_ED25519

    def __init__(self, signing_key_path: str):
        try:
            with open(signing_key_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self._kid = raw["kid"]
            self._sk = SigningKey(b64d(raw["private_key_b64"]))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ConfigurationError(f"Ed25519 signing key unavailable: {signing_key_path}") from e

    @property
    def kid(self) -> str:
        return self._kid

    def identity(self) -> str:
        return f"ed25519:{self._kid}:{b64e(bytes(self._sk.verify_key))}"

    def sign_typed(
        self,
        domain: Dict[str, Any],
        types: TypeSpec,
        primary_type: str,
        message: Dict[str, Any]
    ) -> str:
        payload = ed25519_payload(domain, types, primary_type, message)
        return b64e(self._sk.sign(payload).signature)


def ed25519_payload(
    domain: Dict[str, Any],
    types: TypeSpec,
    primary_type: str,
    message: Dict[str, Any]
) -> bytes:
    """Canonical bytes signed by the Ed25519 scheme."""
    return canonicalize({
        "domain": domain,
        "types": types,
        "primaryType": primary_type,
        "message": message,
    })


def recover_eip712_signer(
    domain: Dict[str, Any],
    types: TypeSpec,
    primary_type: str,
    message: Dict[str, Any],
    signature: str
) -> Optional[str]:
    """
    Recover the address that produced an EIP-712 signature.

    Returns:
        Checksummed address, or None if the signature is malformed
    """
    signable = encode_typed_data(
        domain_data=domain,
        message_types={primary_type: types[primary_type]},
        message_data=message
    )
    try:
        return Account.recover_message(signable, signature=signature)
    except Exception:
        return None


def verify_ed25519(signature_b64: str, payload: bytes, public_key_b64: str) -> bool:
    """
    Verify an Ed25519 signature.

    Args:
        signature_b64: Base64-encoded signature
        payload: The signed data
        public_key_b64: Base64-encoded public key

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        vk = VerifyKey(b64d(public_key_b64))
        vk.verify(payload, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def generate_eip712_key() -> str:
    """Generate a fresh secp256k1 private key as 0x-prefixed hex."""
    return "0x" + bytes(Account.create().key).hex()


def generate_ed25519_key_file(path: str, kid: str = "resolver-ed25519-01") -> str:
    """
    Write a fresh Ed25519 key file.

    Returns:
        Base64-encoded public key
    """
    sk = SigningKey.generate()
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"kid": kid, "private_key_b64": b64e(bytes(sk))}, f, indent=2)
    return b64e(bytes(sk.verify_key))


def get_key_provider(
    signer_type: str = SCHEME_EIP712,
    private_key_hex: Optional[str] = None,
    ed25519_key_path: Optional[str] = None
) -> KeyProvider:
    """
    Factory function to create the configured key provider.

    Args:
        signer_type: "eip712" or "ed25519"
        private_key_hex: secp256k1 key (for eip712)
        ed25519_key_path: Path to the Ed25519 key file (for ed25519)

    Returns:
        Configured KeyProvider instance

    Raises:
        ConfigurationError: If the key is missing or the type is unknown
    """
    if signer_type == SCHEME_ED25519:
        if not ed25519_key_path:
            raise ConfigurationError("ED25519_KEY_PATH required for ed25519 signer")
        return Ed25519KeyProvider(ed25519_key_path)

    if signer_type == SCHEME_EIP712:
        if not private_key_hex:
            raise ConfigurationError("RESOLVER_PRIVATE_KEY not configured")
        return Eip712KeyProvider(private_key_hex)

    raise ConfigurationError(f"unknown SIGNER_TYPE: {signer_type}")
