# Overview: Service-layer operations for bearer session tokens.

"""
Session Token Management Service

- Cryptographically secure random tokens (32 bytes)
- Only the SHA-256 hash of a token is stored
- Absolute timeout of SESSION_TTL_HOURS (config)
- Revocable on logout
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from autoshop.time_utils import utcnow
from .concurrency import commit_with_retry


DEFAULT_SESSION_TTL = timedelta(hours=24)


@dataclass
class SessionContext:
    user: User
    session: SessionToken


def _session_ttl() -> timedelta:
    hours = current_app.config.get("SESSION_TTL_HOURS")
    return timedelta(hours=hours) if hours else DEFAULT_SESSION_TTL


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _session_ttl(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    commit_with_retry()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a plaintext token to its user.

    Returns None if the token is unknown, revoked or expired, or the user
    has been deactivated. Updates last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    user = session.user
    if not user or not user.is_active:
        session.is_revoked = True
        session.revoked_at = now
        commit_with_retry()
        return None

    session.last_used_at = now
    commit_with_retry()

    return SessionContext(user=user, session=session)


def revoke_session(token: str) -> bool:
    """Returns True if a live session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    commit_with_retry()
    return True
