"""
Configuration module for the Wordle Royale resolver.

Centralizes all configuration with environment variable support
and startup validation.
"""

import os
from pathlib import Path
from typing import Dict, List

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("RESOLVER_ENV", "dev")  # dev|stage|prod

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))

# Game rules
WORD_LENGTH = int(os.getenv("WORD_LENGTH", "5"))
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", "6"))

# Session lifecycle (seconds)
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "60"))

# Rate limits (requests per window, per caller IP)
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "30"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# Paths
WORDS_PATH = os.getenv("WORDS_PATH", str(Path(__file__).parent / "words.txt"))

# Secret derivation
SERVER_SECRET = os.getenv("SERVER_SECRET", "")

# Signing configuration
SIGNER_TYPE = os.getenv("SIGNER_TYPE", "eip712")  # eip712|ed25519
RESOLVER_PRIVATE_KEY = os.getenv("RESOLVER_PRIVATE_KEY", "")
ED25519_KEY_PATH = os.getenv("ED25519_KEY_PATH", "secrets/resolver_ed25519_key.json")

# Attestation domain (must match the settlement contract)
CHAIN_ID = int(os.getenv("CHAIN_ID", "143"))
CONTRACT_ADDRESS = os.getenv("CONTRACT_ADDRESS", "0x6FBB86d5940B11E23056a66a948d97289Bd320eB")
DOMAIN_NAME = os.getenv("DOMAIN_NAME", "WordleRoyaleFree")
DOMAIN_VERSION = os.getenv("DOMAIN_VERSION", "1")
ATTESTATION_PAYOUT = os.getenv("ATTESTATION_PAYOUT", "")

# Settlement layer pre-check
SETTLEMENT_RPC_URL = os.getenv("SETTLEMENT_RPC_URL", "")
SETTLEMENT_TIMEOUT_SECONDS = float(os.getenv("SETTLEMENT_TIMEOUT_SECONDS", "3"))
SETTLEMENT_CHECK_MODE = os.getenv("SETTLEMENT_CHECK_MODE", "warn")  # warn|fail_closed

# HTTP surface
ALLOWED_ORIGINS: List[str] = [
    o.strip() for o in os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:5173,http://localhost:3000,https://wrdl.fun,https://www.wrdl.fun"
    ).split(",") if o.strip()
]
TRUST_FORWARDED_FOR = os.getenv("TRUST_FORWARDED_FOR", "").lower() in ("1", "true", "yes")
MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", "10240"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")


class ConfigurationError(RuntimeError):
    """Raised at startup when the service cannot be configured safely."""


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Report which required settings are present.
    Returns dict of setting name -> present.
    """
    checks = {
        "words": Path(WORDS_PATH).exists(),
        "server_secret": bool(SERVER_SECRET),
    }

    if SIGNER_TYPE == "ed25519":
        checks["signing_key"] = Path(ED25519_KEY_PATH).exists()
    else:
        checks["signing_key"] = bool(RESOLVER_PRIVATE_KEY)

    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("RESOLVER_DEBUG", "").lower() in ("1", "true", "yes")
