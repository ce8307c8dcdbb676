"""Schemas for users and sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from fbms.backend.schemas.base import ORMModel

Role = Literal["admin", "manager", "cashier", "accountant", "employee"]


class RegisterIn(BaseModel):
    email: str
    password: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Role = "employee"


class LoginIn(BaseModel):
    email: str
    password: str


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str


class UserUpdateIn(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    role: Role | None = None
    is_active: bool | None = None


class UserOut(ORMModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserOut
