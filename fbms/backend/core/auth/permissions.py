"""Role-based permission matrix."""

from __future__ import annotations

from fbms.backend.core.errors import PermissionDeniedError

ROLES = ("admin", "manager", "cashier", "accountant", "employee")

MODULES = (
    "pos",
    "inventory",
    "customers",
    "purchases",
    "expenses",
    "payroll",
    "accounting",
    "reports",
    "settings",
    "users",
    "backup",
    "audit",
)

_ALL = "*"


def _grant(*pairs: str) -> frozenset[str]:
    return frozenset(pairs)


ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": _grant(*(f"{module}:{_ALL}" for module in MODULES)),
    "manager": _grant(
        "pos:*",
        "inventory:*",
        "customers:*",
        "purchases:*",
        "expenses:*",
        "payroll:read",
        "payroll:write",
        "accounting:read",
        "reports:read",
        "settings:read",
        "backup:read",
        "backup:write",
        "audit:read",
    ),
    "cashier": _grant(
        "pos:read",
        "pos:write",
        "inventory:read",
        "customers:read",
        "customers:write",
        "settings:read",
    ),
    "accountant": _grant(
        "accounting:*",
        "expenses:*",
        "payroll:read",
        "reports:read",
        "purchases:read",
        "inventory:read",
        "customers:read",
        "pos:read",
        "settings:read",
        "audit:read",
    ),
    "employee": _grant("inventory:read", "customers:read", "settings:read"),
}


def has_permission(role: str, module: str, action: str) -> bool:
    granted = ROLE_PERMISSIONS.get(role, frozenset())
    return f"{module}:{action}" in granted or f"{module}:{_ALL}" in granted


def require_permission(role: str, module: str, action: str) -> None:
    if not has_permission(role, module, action):
        raise PermissionDeniedError(f"Role '{role}' may not {action} {module}")
