"""Sign-in, sessions and user management."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fbms.backend.api.deps import current_user, get_config, get_session, get_token, require
from fbms.backend.core.errors import AuthenticationError
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    ChangePasswordIn,
    LoginIn,
    MessageOut,
    RegisterIn,
    TokenOut,
    UserOut,
    UserUpdateIn,
)
from fbms.backend.services import auth

router = APIRouter()


@router.post("/login", response_model=TokenOut)
def login(data: LoginIn, session: Session = Depends(get_session), config: dict = Depends(get_config)):
    try:
        auth_session = auth.login(session, data.email, data.password, config)
    except AuthenticationError:
        # keep the failed-attempt counter
        session.commit()
        raise
    return TokenOut(
        access_token=auth_session.token,
        expires_at=auth_session.expires_at,
        user=UserOut.model_validate(auth_session.user),
    )


@router.post("/logout", response_model=MessageOut)
def logout(
    token: str | None = Depends(get_token),
    session: Session = Depends(get_session),
    _: User = Depends(current_user),
):
    auth.logout(session, token)
    return MessageOut(detail="Signed out")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return user


@router.post("/change-password", response_model=MessageOut)
def change_password(
    data: ChangePasswordIn, session: Session = Depends(get_session), user: User = Depends(current_user)
):
    auth.change_password(session, user, data.current_password, data.new_password)
    return MessageOut(detail="Password changed; please sign in again")


@router.post("/register", response_model=UserOut, status_code=201)
def register(
    data: RegisterIn, session: Session = Depends(get_session), admin: User = Depends(require("users", "write"))
):
    return auth.register(session, data, created_by=admin.id)


@router.get("/users", response_model=list[UserOut])
def list_users(session: Session = Depends(get_session), _: User = Depends(require("users", "read"))):
    return auth.list_users(session)


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    data: UserUpdateIn,
    session: Session = Depends(get_session),
    admin: User = Depends(require("users", "write")),
):
    return auth.update_user(session, user_id, data, performed_by=admin.id)
