# Overview: Service-layer operations for account sessions; bearer token issue, validation, revocation and cleanup.

"""
Account sessions.

A login issues a random bearer token. Only its SHA-256 hash is stored
(session_tokens.token_hash), so a database dump cannot be replayed.

TIMEOUTS:
- absolute: a session ends 30 days after login, whatever the activity
- idle: a session unused for 7 days is revoked on its next use

A deactivated account loses its sessions on their next use as well.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from facturflow.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(days=30)
SESSION_IDLE_TIMEOUT = timedelta(days=7)
SESSION_RETENTION = timedelta(days=30)
TOKEN_BYTES = 32


@dataclass
class SessionContext:
    """What require_auth puts on flask.g."""
    user: User
    session: SessionToken


def generate_token() -> str:
    # 32 random bytes -> 64 hex characters, handed to the client only
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _active_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session for user_id. Returns (row, plaintext token)."""
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its account, or None when the token is
    unknown, revoked, past either timeout, or its account is inactive.
    A successful check refreshes last_used_at.
    """
    session = _active_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None
    if session.user is None or not session.user.is_active:
        _revoke(session, "Account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=session.user, session=session)


def revoke_session(token: str, reason: str = "Logout") -> bool:
    """Revoke the session of token. False when there was none to revoke."""
    session = _active_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    return True


def cleanup_expired_sessions(retention: timedelta = SESSION_RETENTION) -> int:
    """Delete expired or revoked sessions created more than `retention` ago."""
    now = utcnow()
    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < now - retention,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
