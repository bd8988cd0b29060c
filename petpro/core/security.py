"""
Password hashing and verification utilities.

- Always use a strong, salted, adaptive hash (bcrypt) with a fixed work factor
- NEVER log plaintext passwords or hashes
- Verification never raises: a malformed or empty hash simply does not match
"""
from __future__ import annotations
from functools import lru_cache
from typing import Optional

import bcrypt

from petpro.core.config import settings

# bcrypt only consumes the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _to_bytes(x) -> bytes:
    if x is None:
        return b""
    if isinstance(x, (bytes, bytearray)):
        return bytes(x)
    return str(x).encode("utf-8")


def hash_password(plain: str, rounds: Optional[int] = None) -> str:
    """
    Hash a plaintext password using bcrypt.

    Args:
        plain: Plaintext password
        rounds: Work factor; defaults to settings.BCRYPT_ROUNDS

    Returns:
        Hashed password string
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_to_bytes(plain)[:_BCRYPT_MAX_BYTES], salt).decode()


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    """
    Verify a plaintext password against a hash.

    Returns:
        True if password matches, False otherwise (including empty or malformed hashes)
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_to_bytes(plain)[:_BCRYPT_MAX_BYTES], _to_bytes(hashed))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=None)
def dummy_hash(rounds: Optional[int] = None) -> str:
    """Hash compared against when the login email is unknown, so both failures cost the same."""
    return hash_password("petpro-timing-equalizer", rounds=rounds)
