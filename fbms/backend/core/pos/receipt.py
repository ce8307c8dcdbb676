"""Receipt data and plain-text rendering for completed sales."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fbms.backend.core.compliance.bir import BIRReceipt, BIRReceiptItem
from fbms.backend.core.utils.money import format_peso, money, to_decimal

RECEIPT_WIDTH = 40


def build_receipt(sale: Any, business: dict[str, Any], cashier: str | None = None) -> BIRReceipt:
    """Turn a persisted sale into BIR receipt data."""
    discounted = money(to_decimal(sale.subtotal) - to_decimal(sale.discount_amount))
    return BIRReceipt(
        or_number=sale.or_number,
        tin=business.get("tin") or "",
        business_name=business.get("name") or "",
        business_address=business.get("address") or "",
        date=sale.created_at,
        items=[
            BIRReceiptItem(
                description=item.product_name,
                quantity=item.quantity,
                unit_price=money(item.unit_price),
                amount=money(item.total_price),
            )
            for item in sale.items
        ],
        vatable_amount=money(0) if sale.vat_exempt else discounted,
        vat_amount=money(sale.tax_amount),
        total_amount=money(sale.total_amount),
        customer_name=sale.customer_name,
        cashier=cashier,
        payment_method=sale.payment_method,
        exempt_amount=discounted if sale.vat_exempt else money(0),
        discount_amount=money(sale.discount_amount),
    )


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    space = max(width - len(left) - len(right), 1)
    return f"{left}{' ' * space}{right}"


def render_text_receipt(
    receipt: BIRReceipt,
    footer: str | None = None,
    cash_received: Decimal | None = None,
    change: Decimal | None = None,
) -> str:
    rule = "-" * RECEIPT_WIDTH
    lines = [
        receipt.business_name.center(RECEIPT_WIDTH),
        receipt.business_address.center(RECEIPT_WIDTH),
        f"VAT REG TIN: {receipt.tin}".center(RECEIPT_WIDTH),
        rule,
        "OFFICIAL RECEIPT".center(RECEIPT_WIDTH),
        f"OR No: {receipt.or_number}",
        f"Date: {receipt.date:%Y-%m-%d %H:%M}" if receipt.date else "Date:",
    ]
    if receipt.customer_name:
        lines.append(f"Customer: {receipt.customer_name}")
    if receipt.cashier:
        lines.append(f"Cashier: {receipt.cashier}")
    lines.append(rule)

    for item in receipt.items:
        lines.append(item.description[:RECEIPT_WIDTH])
        lines.append(
            _row(f"  {item.quantity} x {format_peso(item.unit_price)}", format_peso(item.amount))
        )

    lines.append(rule)
    if receipt.discount_amount:
        lines.append(_row("Discount", f"-{format_peso(receipt.discount_amount)}"))
    lines.append(_row("VATable Sales", format_peso(receipt.vatable_amount)))
    lines.append(_row("VAT-Exempt Sales", format_peso(receipt.exempt_amount)))
    lines.append(_row("VAT (12%)", format_peso(receipt.vat_amount)))
    lines.append(_row("TOTAL", format_peso(receipt.total_amount)))
    if receipt.payment_method:
        lines.append(_row("Payment", receipt.payment_method.upper()))
    if cash_received is not None:
        lines.append(_row("Cash", format_peso(cash_received)))
        lines.append(_row("Change", format_peso(change or 0)))
    lines.append(rule)
    if footer:
        lines.append(footer.center(RECEIPT_WIDTH))
    lines.append("THIS SERVES AS AN OFFICIAL RECEIPT".center(RECEIPT_WIDTH))
    return "\n".join(lines)
