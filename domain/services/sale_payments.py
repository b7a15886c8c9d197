"""Sale financials and payment reconciliation.

Received and pending are two views of one amount: whatever partial data a
sale record holds, the reconciled pair always adds up to the effective
sale value. Legacy records are healed instead of rejected.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any, Optional

from config.constants import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_PENDING,
)
from domain.exceptions import InvalidSaleError
from domain.models import PaymentSplit, Sale, SaleFinancials
from domain.services.money import (
    ZERO,
    approx_equal,
    clamp_non_negative,
    is_blank,
    parse_money_or_none,
    parse_user_number,
    to_decimal,
)

SALE_EDITABLE_FIELDS = (
    "quantity",
    "unit_price",
    "ganancia_unit",
    "real_sale_value",
    "payment_received",
    "payment_pending",
)


def normalize_payments(total: Any, received: Any, pending: Any) -> PaymentSplit:
    """Reconcile received/pending against ``total``.

    When ``total`` is positive the returned pair sums exactly to it:
    a consistent pair is kept, a pending-only legacy pair keeps the
    pending amount, anything else keeps received (capped at total) and
    derives pending.
    """
    safe_total = clamp_non_negative(total)
    safe_received = clamp_non_negative(received)
    safe_pending = clamp_non_negative(pending)

    if safe_total > 0:
        if approx_equal(safe_received + safe_pending, safe_total):
            safe_pending = clamp_non_negative(safe_total - safe_received)
        elif approx_equal(safe_pending, safe_total) and approx_equal(safe_received, ZERO):
            safe_pending = safe_total
            safe_received = clamp_non_negative(safe_total - safe_pending)
        else:
            safe_received = min(safe_received, safe_total)
            safe_pending = clamp_non_negative(safe_total - safe_received)

    return PaymentSplit(
        total=safe_total,
        payment_received=safe_received,
        payment_pending=safe_pending,
    )


def determine_payment_status(total: Any, received: Any, pending: Any = None) -> str:
    safe_total = clamp_non_negative(total)
    safe_received = clamp_non_negative(received)
    if safe_total <= 0:
        if safe_received > 0:
            return PAYMENT_STATUS_PAID
        if not is_blank(pending) and clamp_non_negative(pending) > 0:
            return PAYMENT_STATUS_PENDING
        return PAYMENT_STATUS_PAID
    if approx_equal(safe_received, safe_total):
        return PAYMENT_STATUS_PAID
    if approx_equal(safe_received, ZERO):
        return PAYMENT_STATUS_PENDING
    return PAYMENT_STATUS_PARTIAL


def compute_sale_financials(sale: Sale) -> SaleFinancials:
    """Canonical totals, reconciled payments and status for ``sale``."""
    quantity = to_decimal(sale.quantity)
    unit_cost = to_decimal(sale.unit_price)
    estimated_gain = to_decimal(sale.ganancia_unit)

    cost_materials = clamp_non_negative(quantity * unit_cost)
    computed_total = clamp_non_negative(quantity * (unit_cost + estimated_gain))
    fallback_total = clamp_non_negative(sale.total)
    real_sale_value = parse_money_or_none(sale.real_sale_value)

    if real_sale_value is not None and real_sale_value >= 0:
        effective = real_sale_value
    elif computed_total > 0:
        effective = computed_total
    else:
        effective = fallback_total

    has_received = not is_blank(sale.payment_received)
    has_pending = not is_blank(sale.payment_pending)
    if has_received:
        base_received = sale.payment_received
    elif has_pending:
        base_received = ZERO
    else:
        # Nothing recorded: assume the sale was paid in full
        base_received = effective
    base_pending = sale.payment_pending if has_pending else ZERO

    split = normalize_payments(effective, base_received, base_pending)
    status = determine_payment_status(effective, split.payment_received, split.payment_pending)

    return SaleFinancials(
        quantity=quantity,
        unit_cost=unit_cost,
        estimated_gain=estimated_gain,
        cost_materials=cost_materials,
        computed_total=computed_total,
        fallback_total=fallback_total,
        real_sale_value=real_sale_value,
        effective_sale_value=effective,
        payment_received=split.payment_received,
        payment_pending=split.payment_pending,
        payment_status=status,
    )


def with_financials(sale: Sale, financials: Optional[SaleFinancials] = None) -> Sale:
    """Copy of ``sale`` with the reconciled payment fields written back."""
    fin = financials or compute_sale_financials(sale)
    return replace(
        sale,
        payment_received=fin.payment_received,
        payment_pending=fin.payment_pending,
        payment_status=fin.payment_status,
    )


def apply_sale_edit(sale: Sale, field_name: str, value: Any) -> tuple[Sale, SaleFinancials]:
    """Apply one edit and re-run the whole reconciliation.

    Editing pending derives received from the new total; editing any other
    field keeps received and derives pending.

    Raises:
        InvalidSaleError: If the field is not editable or the value is not numeric
    """
    if field_name not in SALE_EDITABLE_FIELDS:
        raise InvalidSaleError(f"Sale field is not editable: {field_name}")

    if field_name == "real_sale_value":
        edited = replace(sale, real_sale_value=parse_money_or_none(value))
    else:
        number = parse_user_number(value)
        if number is None or not number.is_finite():
            if not (field_name.startswith("payment_") and is_blank(value)):
                raise InvalidSaleError(f"{field_name} must be numeric: {value!r}")
            number = None
        if field_name == "quantity" and number != number.to_integral_value():
            raise InvalidSaleError(f"quantity must be a whole number of units: {value!r}")
        edited = replace(sale, **{field_name: number})

    if field_name == "payment_pending":
        total = compute_sale_financials(edited).effective_sale_value
        pending = min(clamp_non_negative(edited.payment_pending), total)
        edited = replace(
            edited,
            payment_pending=pending,
            payment_received=clamp_non_negative(total - pending),
        )
    elif not is_blank(edited.payment_received):
        # Received is the source of truth; pending is derived from the total
        edited = replace(edited, payment_pending=None)

    financials = compute_sale_financials(edited)
    return with_financials(edited, financials), financials


def is_sale_fully_paid(sale: Sale) -> bool:
    return compute_sale_financials(sale).payment_status == PAYMENT_STATUS_PAID


def validate_new_sale(product_id: Any, quantity: Any, unit_price: Any, ganancia_unit: Any = None) -> None:
    """Reject sale input that must not reach the financial computation.

    Raises:
        InvalidSaleError: On a missing product or non-positive/non-numeric amounts
    """
    if is_blank(product_id):
        raise InvalidSaleError("A product is required")
    qty = to_decimal(quantity, default=None)
    if qty is None or qty <= 0:
        raise InvalidSaleError(f"Quantity must be a positive number: {quantity!r}")
    if qty != qty.to_integral_value():
        raise InvalidSaleError(f"Quantity must be a whole number of units: {quantity!r}")
    price = to_decimal(unit_price, default=None)
    if price is None or price <= 0:
        raise InvalidSaleError(f"Unit price must be a positive number: {unit_price!r}")
    if not is_blank(ganancia_unit) and to_decimal(ganancia_unit, default=None) is None:
        raise InvalidSaleError(f"Gain must be numeric: {ganancia_unit!r}")
