# Overview: Service-layer operations for user accounts and password hashing.

"""
Account management for the storefront.

Authentication is a thin collaborator of the order core: it only has to
produce a User whose role resolves to an AuthContext.

SECURITY:
- Passwords hashed with bcrypt (cost factor 12 by default)
- Password strength enforced at creation time
"""

import re

import bcrypt
from sqlalchemy.orm import Session

from ..errors import ConflictError, ValidationError
from ..models import User
from ..permissions import is_known_role
from storefront.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    session: Session,
    *,
    email: str,
    password: str,
    role: str = "USER",
    first_name: str | None = None,
    last_name: str | None = None,
    bcrypt_rounds: int = 12,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: unknown role or weak password
        ConflictError: email already registered
    """
    if not is_known_role(role):
        raise ValidationError(f"Unknown role '{role}'")
    validate_password_strength(password)

    email = email.strip().lower()
    if session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        role=role.upper(),
        is_active=True,
    )
    session.add(user)
    session.commit()
    return user


def authenticate(session: Session, email: str, password: str) -> User | None:
    """Return the active user for these credentials, or None."""
    user = session.query(User).filter_by(email=email.strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    session.commit()
    return user
