"""Request-scoped dependencies: database session, config and the signed-in user."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fbms.backend.core.auth.permissions import require_permission
from fbms.backend.core.pos.cart import CartRegister
from fbms.backend.db.models import User
from fbms.backend.services import auth

_bearer = HTTPBearer(auto_error=False)


def get_session(request: Request) -> Iterator[Session]:
    """One session per request; commit when the handler succeeds."""
    session = request.app.state.database.session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_config(request: Request) -> dict[str, Any]:
    return request.app.state.config


def get_token(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> str | None:
    return credentials.credentials if credentials else None


def current_user(
    token: str | None = Depends(get_token), session: Session = Depends(get_session)
) -> User:
    return auth.resolve_token(session, token)


def require(module: str, action: str = "read") -> Callable[..., User]:
    """Dependency factory: the current user, provided their role grants ``module:action``."""

    def dependency(user: User = Depends(current_user)) -> User:
        require_permission(user.role, module, action)
        return user

    return dependency


def cart_register(request: Request, user: User = Depends(require("pos", "write"))) -> CartRegister:
    return request.app.state.cart_store.get(user.id)
