"""Password hashing and verification using bcrypt."""

import secrets
import string

import bcrypt

_ALPHABET = string.ascii_letters + string.digits


def hash_password(plain: str) -> str:
    """Hash a plain password. Returns bcrypt hash string."""
    if not plain:
        raise ValueError("password cannot be empty")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Verify plain password against stored hash."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def generate_password(length: int = 8) -> str:
    """Random alphanumeric password for admin-issued accounts."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
