# handwriting/persistence/credentials.py
"""
Credential helpers for the in-memory persistence backend.
Handles password hashing and stripping secrets from user records.
"""
from passlib.context import CryptContext

# Argon2 only; the remote service keeps its own scheme
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

SECRET_FIELDS = ("password", "passwordHash", "passwordSalt")


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Note: Never store plain text passwords. Always use this function before saving.
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plain text password against a stored hash."""
    return pwd_context.verify(plain, hashed)


def sanitize_user(user: dict) -> dict:
    """Return a copy of a stored user record without any secret field."""
    return {k: v for k, v in user.items() if k not in SECRET_FIELDS}
