"""
Small helpers shared across the resolver: canonical JSON, HMAC, base64,
timing-safe comparison and random identifiers.
"""

import base64
import hashlib
import hmac
import json
import secrets
import time
from typing import Any, Union

BytesLike = Union[bytes, str]


def _as_bytes(value: BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def canonicalize(obj: Any) -> bytes:
    """
    Serialize to canonical JSON: sorted keys, no insignificant whitespace,
    UTF-8. Two equal objects always produce identical bytes.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def hmac_sha256(key: BytesLike, data: BytesLike) -> bytes:
    """Raw HMAC-SHA256 digest."""
    return hmac.new(_as_bytes(key), _as_bytes(data), hashlib.sha256).digest()


def constant_time_compare(a: BytesLike, b: BytesLike) -> bool:
    return hmac.compare_digest(_as_bytes(a), _as_bytes(b))


def now_millis() -> int:
    return int(time.time() * 1000)


def b64e(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def b64d(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"))


def generate_nonce(length: int = 16) -> str:
    """Hex nonce from `length` random bytes."""
    return secrets.token_hex(length)


def generate_id(length: int = 16) -> str:
    """0x-prefixed hex id from `length` random bytes."""
    return "0x" + secrets.token_hex(length)


def mask_sensitive(value: str, visible_chars: int = 4) -> str:
    """Replace all but the last `visible_chars` characters with '*'."""
    hidden = max(0, len(value) - visible_chars)
    if hidden == 0:
        return "*" * len(value)
    return "*" * hidden + value[hidden:]
