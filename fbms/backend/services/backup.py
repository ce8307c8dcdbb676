"""
File-based database snapshots.

A backup is one JSON document::

    {"metadata": {"format_version": 1, "created_at": ..., "tables": {name: rows},
                  "checksum": sha256, "label": ...},
     "tables": {name: [row, ...]}}

The checksum covers the canonical (sorted-key, compact) JSON of ``tables``.
Login sessions are not part of a backup; restoring one logs everybody out.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy import Date, DateTime, Numeric, Table, delete, select
from sqlalchemy.orm import Session

from fbms.backend.core.errors import Issue, NotFoundError, ValidationError
from fbms.backend.db.models import Base, utcnow

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
FILENAME_PREFIX = "fbms-backup-"
EXCLUDED_TABLES = ("auth_sessions",)


def _tables() -> list[Table]:
    """Tables in foreign-key dependency order (parents first)."""
    return [t for t in Base.metadata.sorted_tables if t.name not in EXCLUDED_TABLES]


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _decode(table: Table, row: dict[str, Any]) -> dict[str, Any]:
    decoded = {}
    for column in table.columns:
        if column.name not in row:
            continue
        value = row[column.name]
        if value is not None:
            if isinstance(column.type, DateTime):
                value = datetime.fromisoformat(value)
            elif isinstance(column.type, Date):
                value = date.fromisoformat(value)
            elif isinstance(column.type, Numeric):
                value = Decimal(str(value))
        decoded[column.name] = value
    return decoded


def checksum(tables: dict[str, list[dict[str, Any]]]) -> str:
    payload = json.dumps(tables, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _slug(label: str | None) -> str | None:
    if not label:
        return None
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", label).strip("-").lower()
    return slug or None


def _self_ref_order(table: Table, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Put parent rows ahead of their children for self-referencing tables."""
    self_fks = [fk.parent.name for fk in table.foreign_keys if fk.column.table is table]
    if not self_fks:
        return rows
    pk = [c.name for c in table.primary_key.columns][0]
    fk = self_fks[0]
    ordered: list[dict[str, Any]] = []
    placed: set = set()
    pending = list(rows)
    while pending:
        ready = [r for r in pending if r.get(fk) is None or r[fk] in placed]
        if not ready:
            # dangling parent references
            ordered.extend(pending)
            break
        for row in ready:
            ordered.append(row)
            placed.add(row[pk])
        pending = [r for r in pending if r[pk] not in placed]
    return ordered


# ── Create / inspect ────────────────────────────────────────────────────────


def snapshot_tables(session: Session) -> dict[str, list[dict[str, Any]]]:
    tables = {}
    for table in _tables():
        rows = session.execute(select(table)).mappings().all()
        tables[table.name] = [{key: _encode(value) for key, value in row.items()} for row in rows]
    return tables


def create_backup(session: Session, backup_dir: str | Path, label: str | None = None) -> dict[str, Any]:
    """
    Write a snapshot of every table to ``backup_dir``.

    Returns:
        Backup description (filename, created_at, size_bytes, tables, label)
    """
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)

    session.flush()
    tables = snapshot_tables(session)
    created_at = utcnow().replace(microsecond=0)
    slug = _slug(label)
    stem = f"{FILENAME_PREFIX}{created_at.strftime('%Y%m%d-%H%M%S')}" + (f"-{slug}" if slug else "")
    path = backup_dir / f"{stem}.json"
    suffix = 1
    while path.exists():
        path = backup_dir / f"{stem}-{suffix}.json"
        suffix += 1

    metadata = {
        "format_version": FORMAT_VERSION,
        "created_at": created_at.isoformat(),
        "label": label,
        "tables": {name: len(rows) for name, rows in tables.items()},
        "checksum": checksum(tables),
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"metadata": metadata, "tables": tables}, f, indent=1, default=str)

    logger.info("Backup written to %s (%d rows)", path, sum(metadata["tables"].values()))
    return _describe(path, metadata)


def _describe(path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
    created = metadata.get("created_at")
    return {
        "filename": path.name,
        "created_at": datetime.fromisoformat(created) if created else None,
        "size_bytes": path.stat().st_size,
        "tables": metadata.get("tables", {}),
        "label": metadata.get("label"),
    }


def _resolve(backup_dir: str | Path, filename: str) -> Path:
    path = Path(backup_dir) / Path(filename).name
    if not path.exists():
        raise NotFoundError("Backup", filename)
    return path


def _load(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def list_backups(backup_dir: str | Path) -> list[dict[str, Any]]:
    """Backups in the directory, newest first."""
    backup_dir = Path(backup_dir)
    if not backup_dir.exists():
        return []
    backups = []
    for path in backup_dir.glob(f"{FILENAME_PREFIX}*.json"):
        try:
            metadata = _load(path).get("metadata", {})
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable backup %s: %s", path.name, e)
            metadata = {}
        backups.append(_describe(path, metadata))
    backups.sort(key=lambda b: (b["created_at"] or datetime.min, b["filename"]), reverse=True)
    return backups


def verify_backup(backup_dir: str | Path, filename: str) -> dict[str, Any]:
    path = _resolve(backup_dir, filename)
    errors: list[str] = []
    try:
        document = _load(path)
    except (OSError, json.JSONDecodeError) as e:
        return {"filename": path.name, "is_valid": False, "errors": [f"Unreadable backup: {e}"]}

    metadata = document.get("metadata")
    tables = document.get("tables")
    if not isinstance(metadata, dict) or not isinstance(tables, dict):
        errors.append("Missing metadata or tables section")
    else:
        if metadata.get("format_version") != FORMAT_VERSION:
            errors.append(f"Unsupported format version: {metadata.get('format_version')}")
        if metadata.get("checksum") != checksum(tables):
            errors.append("Checksum mismatch")
        known = {t.name for t in _tables()}
        unknown = sorted(set(tables) - known)
        if unknown:
            errors.append(f"Unknown tables: {', '.join(unknown)}")
        for name, count in metadata.get("tables", {}).items():
            if len(tables.get(name, [])) != count:
                errors.append(f"Row count mismatch for {name}")
    return {"filename": path.name, "is_valid": not errors, "errors": errors}


# ── Restore / prune ─────────────────────────────────────────────────────────


def restore_backup(session: Session, backup_dir: str | Path, filename: str) -> dict[str, int]:
    """
    Replace every table's rows with the backup's.

    Runs inside the caller's transaction; nothing is committed here, so a
    failure part-way leaves the database untouched once the caller rolls
    back.

    Raises:
        NotFoundError: No such backup file
        ValidationError: The backup fails verification
    """
    check = verify_backup(backup_dir, filename)
    if not check["is_valid"]:
        raise ValidationError(
            f"Backup {filename} failed verification",
            [Issue("backup", e, "INVALID_BACKUP") for e in check["errors"]],
        )

    tables = _load(_resolve(backup_dir, filename))["tables"]
    session.flush()
    session.expunge_all()

    for table in reversed(Base.metadata.sorted_tables):
        session.execute(delete(table))

    restored = {}
    for table in _tables():
        rows = [_decode(table, row) for row in tables.get(table.name, [])]
        rows = _self_ref_order(table, rows)
        if rows:
            session.execute(table.insert(), rows)
        restored[table.name] = len(rows)
    session.flush()
    logger.info("Restored %s (%d rows)", filename, sum(restored.values()))
    return restored


def prune_backups(backup_dir: str | Path, keep: int = 10) -> list[str]:
    """Delete all but the newest ``keep`` backups; returns deleted filenames."""
    if keep < 0:
        raise ValueError("keep must not be negative")
    removed = []
    for backup in list_backups(backup_dir)[keep:]:
        (Path(backup_dir) / backup["filename"]).unlink()
        removed.append(backup["filename"])
    if removed:
        logger.info("Pruned %d old backups", len(removed))
    return removed


def backup_status(backup_dir: str | Path) -> dict[str, Any]:
    backups = list_backups(backup_dir)
    return {
        "count": len(backups),
        "total_size_bytes": sum(b["size_bytes"] for b in backups),
        "last_backup": backups[0]["created_at"] if backups else None,
        "directory": str(Path(backup_dir)),
    }
