# Overview: Service-layer operations for user accounts and password authentication.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12); bcrypt.checkpw does the
timing-safe comparison. Session tokens are handled separately
(see session_service.py).

get_user is the user lookup the appointment workflow relies on.
"""

from __future__ import annotations

import bcrypt

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User, USER_ROLES
from autoshop.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if password.isdigit() or password.isalpha():
        raise ValidationError("Password must contain both letters and digits")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str = "client",
    phone: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash and commit it.

    Raises:
        ValidationError: bad role, missing names, weak password
        ConflictError: email already registered
    """
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(USER_ROLES)}")
    if not (first_name or "").strip() or not (last_name or "").strip():
        raise ValidationError("First and last name are required")

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        role=role,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Check credentials of an active user.

    Returns the User and stamps last_login_at on success, None otherwise.
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter(
        User.email == email,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_user(user_id: int, *, session=None) -> User:
    session = session if session is not None else db.session
    user = session.query(User).filter_by(id=user_id).first()
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user
