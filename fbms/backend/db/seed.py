"""
Starter data for a fresh database.

Every step checks for existing rows first, so running the seed twice adds
nothing the second time.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fbms.backend.db.models import Category, Customer, ExpenseCategory, Product, Supplier
from fbms.backend.schemas.auth import RegisterIn
from fbms.backend.schemas.finance import ExpenseCategoryIn
from fbms.backend.schemas.inventory import CategoryIn, ProductIn
from fbms.backend.schemas.purchasing import SupplierIn
from fbms.backend.schemas.sales import CustomerIn
from fbms.backend.services import accounting, auth, customers, expenses, inventory, purchasing, settings

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@fbms.local"
DEFAULT_ADMIN_PASSWORD = "Admin@12345"

CATEGORIES = [
    ("Beverages", "Softdrinks, juices, coffee and water"),
    ("Snacks", "Chips, biscuits and candies"),
    ("Canned Goods", "Sardines, corned beef and canned meat"),
    ("Rice & Grains", "Rice, noodles and grains"),
    ("Household", "Cleaning and personal care"),
]

# (category, name, sku, barcode, price, cost, stock, min_stock, unit)
PRODUCTS = [
    ("Beverages", "Coca-Cola 1.5L", "BEV-COKE-15", "4801981118502", "75.00", "60.00", 48, 12, "bottle"),
    ("Beverages", "Nescafe Classic 50g", "BEV-NESC-50", "4800361002363", "65.00", "52.00", 30, 10, "jar"),
    ("Snacks", "Piattos Cheese 85g", "SNK-PIAT-85", "4800016644306", "38.00", "30.00", 60, 15, "pack"),
    ("Snacks", "SkyFlakes Crackers 250g", "SNK-SKYF-250", "4800092110139", "55.00", "44.00", 40, 10, "pack"),
    ("Canned Goods", "Ligo Sardines 155g", "CAN-LIGO-155", "4800249510016", "24.00", "19.00", 100, 24, "can"),
    ("Canned Goods", "Purefoods Corned Beef 150g", "CAN-PURE-150", "4800024554015", "48.00", "39.00", 50, 12, "can"),
    ("Rice & Grains", "Dinorado Rice 5kg", "RIC-DINO-5", None, "320.00", "270.00", 20, 5, "sack"),
    ("Rice & Grains", "Lucky Me Pancit Canton", "RIC-LMPC-60", "4807770270017", "16.00", "12.50", 120, 30, "pack"),
    ("Household", "Surf Powder 1kg", "HSH-SURF-1K", "4800888141125", "110.00", "88.00", 25, 8, "pack"),
    ("Household", "Safeguard Soap 130g", "HSH-SAFE-130", "4902430432735", "52.00", "41.00", 36, 12, "bar"),
]

CUSTOMERS = [
    ("Juan", "Dela Cruz", "juan.delacruz@example.ph", "09171234567", "retail"),
    ("Maria", "Santos", "maria.santos@example.ph", "09181234567", "retail"),
    ("Sari-Sari", "Store Bayanihan", "bayanihan.store@example.ph", "09191234567", "wholesale"),
]

SUPPLIERS = [
    ("Metro Manila Distributors Inc.", "Pedro Reyes", "orders@mmdist.example.ph", "Net 30"),
    ("Luzon Rice Traders", "Ana Villanueva", "sales@luzonrice.example.ph", "COD"),
]

# (name, BIR classification, account code)
EXPENSE_CATEGORIES = [
    ("Rent", "Rental", "6100"),
    ("Utilities", "Utilities", "6100"),
    ("Office Supplies", "Operating Expenses", "6100"),
    ("Transportation", "Transportation and Travel", "6100"),
    ("Repairs & Maintenance", "Repairs and Maintenance", "6100"),
]


def _count(session: Session, model) -> int:
    return session.scalar(select(func.count()).select_from(model)) or 0


def seed_admin(session: Session, password: str | None = None) -> bool:
    if auth.get_user_by_email(session, ADMIN_EMAIL):
        return False
    auth.register(
        session,
        RegisterIn(
            email=ADMIN_EMAIL,
            password=password or os.getenv("FBMS_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
            first_name="System",
            last_name="Administrator",
            role="admin",
        ),
    )
    return True


def seed_catalog(session: Session, user_id: str | None = None) -> int:
    if _count(session, Product) or _count(session, Category):
        return 0
    categories = {
        name: inventory.create_category(session, CategoryIn(name=name, description=desc), user_id)
        for name, desc in CATEGORIES
    }
    for category, name, sku, barcode, price, cost, stock, min_stock, unit in PRODUCTS:
        inventory.create_product(
            session,
            ProductIn(
                name=name,
                sku=sku,
                barcode=barcode,
                category_id=categories[category].id,
                price=Decimal(price),
                cost=Decimal(cost),
                stock=stock,
                min_stock=min_stock,
                unit=unit,
            ),
            user_id,
        )
    return len(PRODUCTS)


def seed_customers(session: Session, user_id: str | None = None) -> int:
    if _count(session, Customer):
        return 0
    for first, last, email, phone, kind in CUSTOMERS:
        customers.create_customer(
            session,
            CustomerIn(first_name=first, last_name=last, email=email, phone=phone, customer_type=kind),
            user_id,
        )
    return len(CUSTOMERS)


def seed_suppliers(session: Session, user_id: str | None = None) -> int:
    if _count(session, Supplier):
        return 0
    for name, contact, email, terms in SUPPLIERS:
        purchasing.create_supplier(
            session, SupplierIn(name=name, contact_person=contact, email=email, payment_terms=terms), user_id
        )
    return len(SUPPLIERS)


def seed_expense_categories(session: Session, user_id: str | None = None) -> int:
    if _count(session, ExpenseCategory):
        return 0
    for name, classification, code in EXPENSE_CATEGORIES:
        expenses.create_expense_category(
            session, ExpenseCategoryIn(name=name, bir_classification=classification, account_code=code), user_id
        )
    return len(EXPENSE_CATEGORIES)


def seed_database(session: Session, config: dict[str, Any], sample_data: bool = True) -> dict[str, int]:
    """
    Create the chart of accounts, business settings, the admin user and
    (optionally) sample catalog, customers, suppliers and expense categories.

    Returns:
        Rows added per group
    """
    added = {"accounts": accounting.ensure_default_chart(session)}
    settings.get_settings(session, config)
    added["admin"] = int(seed_admin(session, config.get("auth", {}).get("admin_password")))
    admin = auth.get_user_by_email(session, ADMIN_EMAIL)
    user_id = admin.id if admin else None

    added["expense_categories"] = seed_expense_categories(session, user_id)
    if sample_data:
        added["products"] = seed_catalog(session, user_id)
        added["customers"] = seed_customers(session, user_id)
        added["suppliers"] = seed_suppliers(session, user_id)
    session.flush()
    logger.info("Seed complete: %s", added)
    return added
