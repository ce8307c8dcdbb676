"""Customer records, purchase history and loyalty points."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fbms.backend.api.deps import get_session, require
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    CustomerIn,
    CustomerOut,
    CustomerStatsOut,
    CustomerUpdate,
    LoyaltyAdjustIn,
    SaleOut,
)
from fbms.backend.services import customers

router = APIRouter()


@router.get("", response_model=list[CustomerOut])
def list_customers(
    search: str | None = None,
    active_only: bool = True,
    session: Session = Depends(get_session),
    _: User = Depends(require("customers", "read")),
):
    return customers.list_customers(session, search, active_only)


@router.post("", response_model=CustomerOut, status_code=201)
def create_customer(
    data: CustomerIn, session: Session = Depends(get_session), user: User = Depends(require("customers", "write"))
):
    return customers.create_customer(session, data, user.id)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: str, session: Session = Depends(get_session), _: User = Depends(require("customers", "read"))
):
    return customers.get_customer(session, customer_id)


@router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(require("customers", "write")),
):
    return customers.update_customer(session, customer_id, data, user.id)


@router.delete("/{customer_id}", response_model=CustomerOut)
def delete_customer(
    customer_id: str, session: Session = Depends(get_session), user: User = Depends(require("customers", "write"))
):
    return customers.delete_customer(session, customer_id, user.id)


@router.get("/{customer_id}/purchases", response_model=list[SaleOut])
def purchase_history(
    customer_id: str,
    limit: int = Query(100, ge=1, le=1000),
    session: Session = Depends(get_session),
    _: User = Depends(require("customers", "read")),
):
    return customers.purchase_history(session, customer_id, limit)


@router.get("/{customer_id}/stats", response_model=CustomerStatsOut)
def customer_stats(
    customer_id: str, session: Session = Depends(get_session), _: User = Depends(require("customers", "read"))
):
    return customers.customer_stats(session, customer_id)


@router.post("/{customer_id}/loyalty", response_model=CustomerOut)
def adjust_loyalty(
    customer_id: str,
    data: LoyaltyAdjustIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("customers", "write")),
):
    return customers.adjust_loyalty_points(session, customer_id, data.points, data.reason, user.id)
