# Overview: Service-layer operations for session tokens.

"""
Session Token Management Service

Session tokens with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout
"""

import hashlib
import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from ..models import SessionToken, User
from storefront.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


def generate_token() -> str:
    """Generate a 64-character hex token (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are high-entropy random values, so a plain digest suffices.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    session: Session,
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    record = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    session.add(record)
    session.commit()

    return record, plaintext_token


def _revoke(record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason


def validate_session(session: Session, token: str) -> User | None:
    """
    Validate session token and return its active user.

    Returns None if the token is unknown, expired, idle too long or revoked,
    or if the user was deactivated. Updates last_used_at on success.
    """
    now = utcnow()

    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not record:
        return None

    if record.expires_at < now:
        return None

    if now - record.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(record, "Idle timeout")
        session.commit()
        return None

    user = record.user
    if not user or not user.is_active:
        _revoke(record, "User account deactivated")
        session.commit()
        return None

    record.last_used_at = now
    session.commit()
    return user


def revoke_session(session: Session, token: str, reason: str = "Logout") -> bool:
    """Revoke a session. Returns False when the token was not active."""
    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return False

    _revoke(record, reason)
    session.commit()
    return True
