"""Health, business settings, audit trail and backups."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text
from sqlalchemy.orm import Session

from fbms.backend.api.deps import get_config, get_session, require
from fbms.backend.core.errors import FBMSError
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    AuditLogOut,
    BackupIn,
    BackupOut,
    BackupStatusOut,
    BackupVerifyOut,
    HealthOut,
    SettingsIn,
    SettingsOut,
)
from fbms.backend.services import audit, backup, settings

logger = logging.getLogger(__name__)

router = APIRouter()


def _backup_dir(config: dict[str, Any]) -> str:
    return config.get("backup", {}).get("directory", "backups")


# ── Health ─────────────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthOut, include_in_schema=False)
def health_check(session: Session = Depends(get_session)) -> HealthOut:
    """Liveness probe (suppressed from access log via log filter)."""
    session.execute(text("SELECT 1"))
    return HealthOut()


# ── Settings ───────────────────────────────────────────────────────────────


@router.get("/settings", response_model=SettingsOut, tags=["settings"])
def read_settings(
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    _: User = Depends(require("settings", "read")),
):
    return settings.get_settings(session, config)


@router.put("/settings", response_model=SettingsOut, tags=["settings"])
def write_settings(
    data: SettingsIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("settings", "write")),
):
    return settings.update_settings(session, data, config, user.id)


# ── Audit ──────────────────────────────────────────────────────────────────


@router.get("/audit", response_model=list[AuditLogOut], tags=["audit"])
def audit_trail(
    entity: str | None = None,
    entity_id: str | None = None,
    user_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(200, ge=1, le=1000),
    session: Session = Depends(get_session),
    _: User = Depends(require("audit", "read")),
):
    return audit.list_audit_logs(session, entity, entity_id, user_id, start, end, limit)


# ── Backups ────────────────────────────────────────────────────────────────


@router.get("/backups", response_model=list[BackupOut], tags=["backup"])
def list_backups(config: dict = Depends(get_config), _: User = Depends(require("backup", "read"))):
    return backup.list_backups(_backup_dir(config))


@router.get("/backups/status", response_model=BackupStatusOut, tags=["backup"])
def backup_status(config: dict = Depends(get_config), _: User = Depends(require("backup", "read"))):
    return backup.backup_status(_backup_dir(config))


@router.post("/backups", response_model=BackupOut, status_code=201, tags=["backup"])
def create_backup(
    data: BackupIn | None = None,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("backup", "write")),
):
    label = data.label if data else None
    try:
        result = backup.create_backup(session, _backup_dir(config), label)
    except FBMSError:
        raise
    except Exception as exc:
        logger.exception("Backup failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    audit.record(session, user.id, "create", "backup", None, None, {"filename": result["filename"]})
    return result


@router.post("/backups/prune", tags=["backup"])
def prune_backups(
    keep: int | None = Query(None, ge=0),
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("backup", "write")),
) -> dict[str, list[str]]:
    keep = keep if keep is not None else int(config.get("backup", {}).get("keep", 10))
    removed = backup.prune_backups(_backup_dir(config), keep)
    audit.record(session, user.id, "prune", "backup", None, None, {"removed": len(removed)})
    return {"removed": removed}


@router.post("/backups/{filename}/verify", response_model=BackupVerifyOut, tags=["backup"])
def verify_backup(
    filename: str, config: dict = Depends(get_config), _: User = Depends(require("backup", "read"))
):
    return backup.verify_backup(_backup_dir(config), filename)


@router.post("/backups/{filename}/restore", tags=["backup"])
def restore_backup(
    filename: str,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("backup", "restore")),
) -> dict[str, Any]:
    """Replace the database contents with a backup. Every user is signed out."""
    user_id = user.id
    try:
        restored = backup.restore_backup(session, _backup_dir(config), filename)
    except FBMSError:
        raise
    except Exception as exc:
        logger.exception("Restore from %s failed", filename)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    audit.record(session, user_id, "restore", "backup", None, None, {"filename": filename})
    logger.warning("Database restored from %s by %s", filename, user_id)
    return {"filename": filename, "tables": restored}
