"""User accounts, login sessions and lockout."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from fbms.backend.core.auth.security import (
    hash_password,
    is_valid_email,
    new_token,
    validate_password_strength,
    verify_password,
)
from fbms.backend.core.errors import (
    AuthenticationError,
    ConflictError,
    Issue,
    NotFoundError,
    ValidationError,
)
from fbms.backend.db.models import AuthSession, User, utcnow
from fbms.backend.schemas.auth import RegisterIn, UserUpdateIn
from fbms.backend.services import audit

logger = logging.getLogger(__name__)


def _auth_settings(config: dict[str, Any] | None) -> dict[str, Any]:
    defaults = {"token_ttl_hours": 12, "max_failed_logins": 5, "lockout_minutes": 15}
    return {**defaults, **((config or {}).get("auth") or {})}


def _check_password(password: str, field: str = "password") -> None:
    problems = validate_password_strength(password)
    if problems:
        raise ValidationError(
            "Password is too weak", [Issue(field, message, "WEAK_PASSWORD") for message in problems]
        )


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))


def register(session: Session, data: RegisterIn, created_by: str | None = None) -> User:
    email = data.email.strip().lower()
    if not is_valid_email(email):
        raise ValidationError("Invalid email", [Issue("email", "Invalid email format", "INVALID_EMAIL")])
    if get_user_by_email(session, email):
        raise ConflictError(f"A user with email {email} already exists")
    _check_password(data.password)

    user = User(
        email=email,
        password_hash=hash_password(data.password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        role=data.role,
    )
    session.add(user)
    session.flush()
    audit.record(session, created_by or user.id, "create", "user", user.id, None, {"email": email, "role": user.role})
    logger.info("Registered user %s (%s)", email, user.role)
    return user


def login(session: Session, email: str, password: str, config: dict[str, Any] | None = None) -> AuthSession:
    """
    Authenticate and open a session.

    Raises:
        AuthenticationError: Unknown user, wrong password, inactive or locked account
    """
    settings = _auth_settings(config)
    user = get_user_by_email(session, email)
    if user is None:
        raise AuthenticationError("Invalid email or password")

    now = utcnow()
    if user.locked_until and user.locked_until > now:
        raise AuthenticationError("Account is locked. Try again later.")
    if not user.is_active:
        raise AuthenticationError("Account is inactive")

    if not verify_password(password, user.password_hash):
        user.failed_login_attempts += 1
        if user.failed_login_attempts >= int(settings["max_failed_logins"]):
            user.locked_until = now + timedelta(minutes=int(settings["lockout_minutes"]))
            user.failed_login_attempts = 0
            logger.warning("Locked account %s after repeated failed logins", user.email)
        session.flush()
        raise AuthenticationError("Invalid email or password")

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login = now
    auth_session = AuthSession(
        token=new_token(),
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(hours=float(settings["token_ttl_hours"])),
    )
    session.add(auth_session)
    session.flush()
    audit.record(session, user.id, "login", "user", user.id)
    return auth_session


def logout(session: Session, token: str) -> None:
    session.execute(delete(AuthSession).where(AuthSession.token == token))
    session.flush()


def resolve_token(session: Session, token: str | None) -> User:
    if not token:
        raise AuthenticationError("Not authenticated")
    auth_session = session.get(AuthSession, token)
    if auth_session is None:
        raise AuthenticationError("Invalid session token")
    if auth_session.expires_at <= utcnow():
        session.delete(auth_session)
        session.flush()
        raise AuthenticationError("Session expired")
    user = auth_session.user
    if not user.is_active:
        raise AuthenticationError("Account is inactive")
    return user


def change_password(session: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    _check_password(new_password, "new_password")
    user.password_hash = hash_password(new_password)
    session.execute(delete(AuthSession).where(AuthSession.user_id == user.id))
    session.flush()
    audit.record(session, user.id, "change_password", "user", user.id)


def list_users(session: Session) -> list[User]:
    return list(session.scalars(select(User).order_by(User.last_name, User.first_name)))


def update_user(session: Session, user_id: str, data: UserUpdateIn, performed_by: str | None = None) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    fields = ("first_name", "last_name", "role", "is_active")
    old = audit.snapshot(user, fields)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    if user.is_active is False:
        session.execute(delete(AuthSession).where(AuthSession.user_id == user.id))
    session.flush()
    audit.record(session, performed_by, "update", "user", user.id, old, audit.snapshot(user, fields))
    return user
