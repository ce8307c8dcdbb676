"""Business profile stored as a single settings row."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from fbms.backend.core.compliance.bir import validate_tin
from fbms.backend.core.errors import Issue, ValidationError
from fbms.backend.db.models import BusinessSetting
from fbms.backend.schemas.system import SettingsIn
from fbms.backend.services import audit

_FIELDS = ("name", "address", "tin", "rdo_code", "vat_registered", "receipt_footer")


def get_settings(session: Session, config: dict[str, Any]) -> BusinessSetting:
    """Return the settings row, creating it from the config defaults on first use."""
    settings = session.get(BusinessSetting, 1)
    if settings is None:
        business = config.get("business", {})
        settings = BusinessSetting(
            id=1,
            name=business.get("name", "My Business"),
            address=business.get("address", ""),
            tin=business.get("tin"),
            rdo_code=str(business["rdo_code"]) if business.get("rdo_code") is not None else None,
            vat_registered=bool(business.get("vat_registered", True)),
            receipt_footer=business.get("receipt_footer"),
        )
        session.add(settings)
        session.flush()
    return settings


def update_settings(
    session: Session, data: SettingsIn, config: dict[str, Any], user_id: str | None = None
) -> BusinessSetting:
    changes = data.model_dump(exclude_unset=True)
    if changes.get("tin") and not validate_tin(changes["tin"]):
        raise ValidationError(
            "Invalid TIN", [Issue("tin", "TIN must look like XXX-XXX-XXX-XXX", "INVALID_TIN")]
        )
    if "name" in changes and not changes["name"]:
        raise ValidationError("Business name is required", [Issue("name", "Required", "REQUIRED")])

    settings = get_settings(session, config)
    old = audit.snapshot(settings, _FIELDS)
    for key, value in changes.items():
        setattr(settings, key, value)
    session.flush()
    audit.record(session, user_id, "update", "settings", "1", old, audit.snapshot(settings, _FIELDS))
    return settings


def business_profile(session: Session, config: dict[str, Any]) -> dict[str, Any]:
    settings = get_settings(session, config)
    return {field: getattr(settings, field) for field in _FIELDS}


def vat_rate(config: dict[str, Any]) -> Decimal:
    return Decimal(str(config.get("tax", {}).get("vat_rate", "0.12")))
