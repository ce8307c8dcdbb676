"""Services package – one module per business area.

Service functions take an SQLAlchemy ``Session`` as their first argument and
only flush; committing is left to the caller (the API session dependency or
``Database.session_scope``).
"""

from __future__ import annotations

from fbms.backend.services import (
    accounting,
    audit,
    auth,
    backup,
    compliance,
    customers,
    expenses,
    inventory,
    payroll,
    purchasing,
    reports,
    sales,
    settings,
)

__all__ = [
    "accounting",
    "audit",
    "auth",
    "backup",
    "compliance",
    "customers",
    "expenses",
    "inventory",
    "payroll",
    "purchasing",
    "reports",
    "sales",
    "settings",
]
