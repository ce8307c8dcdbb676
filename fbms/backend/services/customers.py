"""Customer records, purchase history and loyalty points."""

from __future__ import annotations

import re
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from fbms.backend.core.auth.security import is_valid_email
from fbms.backend.core.errors import ConflictError, Issue, NotFoundError, ValidationError
from fbms.backend.core.utils.money import money
from fbms.backend.db.models import Customer, Sale
from fbms.backend.schemas.sales import CustomerIn, CustomerUpdate
from fbms.backend.services import audit

PHONE_RE = re.compile(r"^(\+63|0)9\d{9}$")
_FIELDS = ("first_name", "last_name", "email", "phone", "customer_type", "loyalty_points", "is_active")


def loyalty_tier(points: int) -> str:
    if points >= 5000:
        return "gold"
    if points >= 1000:
        return "silver"
    return "bronze"


def _normalise(values: dict) -> dict:
    if "email" in values:
        values["email"] = (values["email"] or "").strip().lower() or None
    if "phone" in values:
        values["phone"] = re.sub(r"[\s-]", "", values["phone"] or "") or None
    return values


def _validate(session: Session, values: dict, exclude_id: str | None = None) -> None:
    issues = []
    if values.get("email") and not is_valid_email(values["email"]):
        issues.append(Issue("email", "Invalid email format", "INVALID_EMAIL"))
    if values.get("phone") and not PHONE_RE.match(values["phone"]):
        issues.append(Issue("phone", "Phone must look like 09XXXXXXXXX or +639XXXXXXXXX", "INVALID_PHONE"))
    if values.get("credit_limit") is not None and values["credit_limit"] < 0:
        issues.append(Issue("credit_limit", "Credit limit cannot be negative", "NEGATIVE_VALUE"))
    if issues:
        raise ValidationError("Invalid customer", issues)

    if values.get("email"):
        stmt = select(Customer.id).where(Customer.email == values["email"])
        if exclude_id:
            stmt = stmt.where(Customer.id != exclude_id)
        if session.scalar(stmt):
            raise ConflictError(f"A customer with email {values['email']} already exists")


def get_customer(session: Session, customer_id: str) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    return customer


def list_customers(session: Session, search: str | None = None, active_only: bool = True) -> list[Customer]:
    stmt = select(Customer)
    if active_only:
        stmt = stmt.where(Customer.is_active.is_(True))
    if search:
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Customer.first_name).like(term),
                func.lower(Customer.last_name).like(term),
                func.lower(func.coalesce(Customer.email, "")).like(term),
                func.coalesce(Customer.phone, "").like(term),
            )
        )
    return list(session.scalars(stmt.order_by(Customer.last_name, Customer.first_name)))


def create_customer(session: Session, data: CustomerIn, user_id: str | None = None) -> Customer:
    values = _normalise(data.model_dump())
    _validate(session, values)
    customer = Customer(**values)
    session.add(customer)
    session.flush()
    audit.record(session, user_id, "create", "customer", customer.id, None, audit.snapshot(customer, _FIELDS))
    return customer


def update_customer(session: Session, customer_id: str, data: CustomerUpdate, user_id: str | None = None) -> Customer:
    customer = get_customer(session, customer_id)
    changes = _normalise(data.model_dump(exclude_unset=True))
    _validate(session, changes, exclude_id=customer.id)
    old = audit.snapshot(customer, _FIELDS)
    for key, value in changes.items():
        setattr(customer, key, value)
    session.flush()
    audit.record(session, user_id, "update", "customer", customer.id, old, audit.snapshot(customer, _FIELDS))
    return customer


def delete_customer(session: Session, customer_id: str, user_id: str | None = None) -> Customer:
    customer = get_customer(session, customer_id)
    customer.is_active = False
    session.flush()
    audit.record(session, user_id, "delete", "customer", customer.id)
    return customer


def purchase_history(session: Session, customer_id: str, limit: int = 100) -> list[Sale]:
    get_customer(session, customer_id)
    stmt = (
        select(Sale)
        .where(Sale.customer_id == customer_id)
        .order_by(Sale.created_at.desc())
        .limit(limit)
    )
    return list(session.scalars(stmt))


def customer_stats(session: Session, customer_id: str) -> dict:
    customer = get_customer(session, customer_id)
    count, total = session.execute(
        select(func.count(Sale.id), func.coalesce(func.sum(Sale.total_amount), 0)).where(
            Sale.customer_id == customer_id, Sale.status == "completed"
        )
    ).one()
    total = money(total)
    return {
        "customer_id": customer.id,
        "total_purchases": total,
        "order_count": int(count),
        "average_order_value": money(total / count) if count else money(0),
        "last_purchase": customer.last_purchase,
        "loyalty_points": customer.loyalty_points,
        "loyalty_tier": loyalty_tier(customer.loyalty_points),
    }


def adjust_loyalty_points(
    session: Session, customer_id: str, points: int, reason: str | None = None, user_id: str | None = None
) -> Customer:
    """Add (or with a negative value, remove) points; the balance never drops below zero."""
    customer = get_customer(session, customer_id)
    old = customer.loyalty_points
    customer.loyalty_points = max(old + points, 0)
    session.flush()
    audit.record(
        session, user_id, "loyalty_adjust", "customer", customer.id,
        {"loyalty_points": old}, {"loyalty_points": customer.loyalty_points, "reason": reason},
    )
    return customer


def record_purchase(session: Session, customer: Customer, total: Decimal, earned: int, redeemed: int, when) -> None:
    customer.total_purchases = money(customer.total_purchases + total)
    customer.last_purchase = when
    customer.loyalty_points = max(customer.loyalty_points - redeemed + earned, 0)
    session.flush()
