"""Password hashing: bcrypt over a SHA-256 pre-hash.

bcrypt only looks at the first 72 bytes of its input (newer releases of the
`bcrypt` package refuse longer input outright). Hashing the password with
SHA-256 first makes every password, however long, contribute to the hash.
The digest is base64-encoded because bcrypt inputs must not contain NUL bytes.
"""

import base64
import hashlib

import bcrypt

DEFAULT_ROUNDS = 12


def _prehash(password: str) -> bytes:
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a plain-text password for storage."""
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("ascii")


def check_password(password: str, password_hash: str) -> bool:
    """Constant-time check of a plain-text password against a stored hash."""
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash
        return False
