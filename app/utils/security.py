"""
SGI Compliance Tracker - Security Utilities

Password hashing for the user registry. Session handling and login are
provided by the hosting platform.
"""

from typing import Optional

from passlib.context import CryptContext


# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storing."""
    return pwd_context.hash(password)
