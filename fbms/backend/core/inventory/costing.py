"""Weighted average costing and purchase price variance."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fbms.backend.core.utils.money import money, rate, to_decimal

SIGNIFICANT_VARIANCE_PCT = Decimal("10")


@dataclass(frozen=True)
class CostUpdate:
    previous_cost: Decimal
    new_cost: Decimal
    previous_stock: int
    new_stock: int
    incoming_quantity: int
    incoming_cost: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class CostVariance:
    expected_cost: Decimal
    actual_cost: Decimal
    variance: Decimal
    variance_pct: Decimal
    quantity: int
    total_variance: Decimal
    significant: bool


def weighted_average_cost(
    current_stock: int, current_cost, incoming_quantity: int, incoming_cost
) -> CostUpdate:
    """
    Blend incoming units into the running average cost.

    Args:
        current_stock: Units on hand before the receipt
        current_cost: Average unit cost of the units on hand
        incoming_quantity: Units received
        incoming_cost: Unit cost of the received units

    Returns:
        CostUpdate with the new cost rounded to 4 decimal places

    Raises:
        ValueError: On negative stock or costs, or a non-positive receipt
    """
    cost = to_decimal(current_cost)
    in_cost = to_decimal(incoming_cost)
    if current_stock < 0:
        raise ValueError("Current stock cannot be negative")
    if incoming_quantity <= 0:
        raise ValueError("Incoming quantity must be positive")
    if cost < 0 or in_cost < 0:
        raise ValueError("Costs cannot be negative")

    new_stock = current_stock + incoming_quantity
    total_value = current_stock * cost + incoming_quantity * in_cost
    return CostUpdate(
        previous_cost=cost,
        new_cost=rate(total_value / new_stock),
        previous_stock=current_stock,
        new_stock=new_stock,
        incoming_quantity=incoming_quantity,
        incoming_cost=in_cost,
        total_value=money(total_value),
    )


def cost_variance(
    expected_cost, actual_cost, quantity: int, threshold_pct=SIGNIFICANT_VARIANCE_PCT
) -> CostVariance:
    """Compare a received unit cost with the product's current cost."""
    expected = to_decimal(expected_cost)
    actual = to_decimal(actual_cost)
    variance = actual - expected
    pct = money(variance / expected * 100) if expected > 0 else money(0)
    return CostVariance(
        expected_cost=expected,
        actual_cost=actual,
        variance=rate(variance),
        variance_pct=pct,
        quantity=quantity,
        total_variance=money(variance * quantity),
        significant=abs(pct) > to_decimal(threshold_pct),
    )
