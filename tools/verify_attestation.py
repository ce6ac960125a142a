import json
import sys
from typing import List, Optional

from royale_resolver import config
from royale_resolver.attestation import AttestationDomain, verify_attestation
from royale_resolver.config import ConfigurationError
from royale_resolver.keys import get_key_provider


def load(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def trusted_resolver(explicit: Optional[str] = None) -> Optional[str]:
    """The identity to verify against: the argument, else the configured signing key."""
    if explicit:
        return explicit
    try:
        return get_key_provider(config.SIGNER_TYPE, config.RESOLVER_PRIVATE_KEY, config.ED25519_KEY_PATH).identity()
    except ConfigurationError:
        return None


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) not in (1, 2):
        print("Usage: python tools/verify_attestation.py <attestation.json> [expected_resolver]")
        return 2

    attestation = load(argv[0])
    resolver = trusted_resolver(argv[1] if len(argv) == 2 else None)
    if not resolver:
        print("INVALID: no trusted resolver identity (pass one or configure the signing key)")
        return 1

    domain = AttestationDomain(
        name=config.DOMAIN_NAME,
        version=config.DOMAIN_VERSION,
        chain_id=config.CHAIN_ID,
        verifying_contract=config.CONTRACT_ADDRESS,
    )
    if not verify_attestation(attestation, domain, resolver):
        print("INVALID: bad signature")
        return 1

    print("VALID")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
