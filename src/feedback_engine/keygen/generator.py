"""
Secret generation and one-way hashing for game API keys and beta keys.

Plaintext secrets are returned exactly once to the caller that created them.
Only the SHA-256 hex digest (and a short display prefix) is ever persisted, so
lookups are hash equality and a leaked table yields no usable credential.

Formats:
- Game API key:    fb_{32 hex chars}
- Beta access key: beta_{32 hex chars}
"""

import hashlib
import secrets

API_KEY_PREFIX = "fb_"
BETA_KEY_PREFIX = "beta_"
KEY_BYTES = 16
BETA_KEY_MIN_LENGTH = 20
# Prefix plus this many secret chars are kept for admin identification
DISPLAY_CHARS = 8


def key_hash(key: str) -> str:
    """Compute SHA-256 hash of a key for DB indexing (never store raw key)."""
    return hashlib.sha256(key.encode()).hexdigest()


def display_prefix(key: str, prefix: str) -> str:
    return key[: len(prefix) + DISPLAY_CHARS]


def generate_api_key() -> str:
    return f"{API_KEY_PREFIX}{secrets.token_hex(KEY_BYTES)}"


def generate_beta_key() -> str:
    return f"{BETA_KEY_PREFIX}{secrets.token_hex(KEY_BYTES)}"


def looks_like_beta_key(key: str | None) -> bool:
    """Cheap structural filter applied before any hashing or I/O."""
    if not key or not isinstance(key, str):
        return False
    return key.startswith(BETA_KEY_PREFIX) and len(key) >= BETA_KEY_MIN_LENGTH
