"""API route aggregation.

Every area's router is included here so ``app.py`` mounts a single router
under ``/api``.
"""

from __future__ import annotations

from fastapi import APIRouter

from fbms.backend.api.routes import (
    accounting,
    auth,
    customers,
    finance,
    inventory,
    pos,
    purchasing,
    reports,
    system,
)

router = APIRouter()

router.include_router(system.router)
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(inventory.router, tags=["inventory"])
router.include_router(customers.router, prefix="/customers", tags=["customers"])
router.include_router(pos.router, tags=["pos"])
router.include_router(purchasing.router, tags=["purchasing"])
router.include_router(finance.router, tags=["finance"])
router.include_router(accounting.router, tags=["accounting"])
router.include_router(reports.router, tags=["reports"])
