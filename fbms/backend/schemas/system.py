"""Schemas for health, settings, backups and the audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from fbms.backend.schemas.base import ORMModel


class HealthOut(BaseModel):
    status: str = "ok"
    version: str = "1.0.0"
    database: str = "ok"


class SettingsIn(BaseModel):
    name: str | None = None
    address: str | None = None
    tin: str | None = None
    rdo_code: str | None = None
    vat_registered: bool | None = None
    receipt_footer: str | None = None


class SettingsOut(ORMModel):
    name: str
    address: str
    tin: str | None = None
    rdo_code: str | None = None
    vat_registered: bool
    receipt_footer: str | None = None
    updated_at: datetime


class BackupIn(BaseModel):
    label: str | None = None


class BackupOut(BaseModel):
    filename: str
    created_at: datetime | None = None
    size_bytes: int
    tables: dict[str, int] = {}
    label: str | None = None


class BackupVerifyOut(BaseModel):
    filename: str
    is_valid: bool
    errors: list[str] = []


class BackupStatusOut(BaseModel):
    count: int
    total_size_bytes: int
    last_backup: datetime | None = None
    directory: str


class AuditLogOut(ORMModel):
    id: str
    user_id: str | None = None
    action: str
    entity: str
    entity_id: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    created_at: datetime
