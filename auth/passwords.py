"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug probe
builds a password longer than 72 bytes, which bcrypt 4.x rejects.

Cost factor defaults to 10 rounds. Settings.bcrypt_rounds lets deployments
raise it; callers pass the value through explicitly.

Layer rule: stdlib + bcrypt only.
"""

from __future__ import annotations

from functools import lru_cache
from typing import NewType

import bcrypt

DEFAULT_ROUNDS = 10

# bcrypt only reads this many bytes of input; bcrypt 5 raises ValueError past it.
MAX_PASSWORD_BYTES = 72

# A bcrypt digest. Only hash_password() produces one, so a value typed as
# PasswordHash is never a plaintext password.
PasswordHash = NewType("PasswordHash", str)


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> PasswordHash:
    """Return a salted bcrypt hash of the plaintext password.

    Raises ValueError for input longer than MAX_PASSWORD_BYTES once encoded;
    User.new() rejects such passwords before they get here.
    """
    if password_too_long(plain):
        raise ValueError(f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds)
    return PasswordHash(bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8"))


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the hash.

    False on mismatch, on a malformed hash, and on a plaintext too long to
    have been hashed in the first place.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=None)
def dummy_hash(rounds: int = DEFAULT_ROUNDS) -> PasswordHash:
    """A throwaway hash at the given cost.

    Login checks the password against this when the email is unknown, so
    response time does not reveal whether an account exists. It must share
    the cost of real hashes, hence one per rounds value.
    """
    return hash_password("oak_timing_dummy", rounds)
