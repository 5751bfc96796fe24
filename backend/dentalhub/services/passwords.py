"""
Password hashing helpers.

PBKDF2-SHA256 via passlib. The hash string embeds algorithm, rounds and salt,
so ``verify_password`` needs nothing but the stored value.
"""

from passlib.hash import pbkdf2_sha256 as hasher


def hash_password(password: str) -> str:
    return hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """False for a wrong password or a malformed stored hash."""
    try:
        return hasher.verify(password, hashed)
    except ValueError:
        return False
