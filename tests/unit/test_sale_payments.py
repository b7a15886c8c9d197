"""Tests for sale financials and payment reconciliation."""

from decimal import Decimal

import pytest

from domain.exceptions import InvalidSaleError
from domain.models import Sale
from domain.services.sale_payments import (
    apply_sale_edit,
    compute_sale_financials,
    determine_payment_status,
    is_sale_fully_paid,
    normalize_payments,
    validate_new_sale,
)


@pytest.fixture
def sale() -> Sale:
    """Two units at cost 100 plus 20 gain each (computed total 240)."""
    return Sale(
        id="s1",
        product_id="p1",
        quantity=Decimal("2"),
        unit_price=Decimal("100"),
        ganancia_unit=Decimal("20"),
        total=Decimal("240"),
    )


class TestNormalizePayments:
    """Test the received/pending reducer."""

    @pytest.mark.parametrize("total", ["0.01", "99.99", "240", "1000"])
    @pytest.mark.parametrize(
        "received, pending",
        [(None, None), ("0", "0"), ("50", None), (None, "50"), ("5000", "3"), ("-20", "-5"), ("10", "10")],
    )
    def test_pair_always_adds_up_to_total(self, total, received, pending) -> None:
        split = normalize_payments(total, received, pending)

        assert abs(split.payment_received + split.payment_pending - Decimal(total)) < Decimal("0.01")
        assert split.payment_received >= 0
        assert split.payment_pending >= 0

    def test_consistent_pair_is_kept(self) -> None:
        split = normalize_payments(240, 40, 200)

        assert (split.payment_received, split.payment_pending) == (Decimal("40"), Decimal("200"))

    def test_pending_only_legacy_pair(self) -> None:
        split = normalize_payments(240, 0, 240)

        assert (split.payment_received, split.payment_pending) == (Decimal("0"), Decimal("240"))

    def test_received_capped_at_total(self) -> None:
        split = normalize_payments(240, 500, 0)

        assert (split.payment_received, split.payment_pending) == (Decimal("240"), Decimal("0"))

    def test_zero_total_keeps_inputs(self) -> None:
        split = normalize_payments(0, 10, 5)

        assert (split.total, split.payment_received, split.payment_pending) == (
            Decimal("0"),
            Decimal("10"),
            Decimal("5"),
        )


class TestPaymentStatus:
    @pytest.mark.parametrize(
        "total, received, pending, expected",
        [
            (240, 240, 0, "Pagado"),
            (240, "239.995", 0, "Pagado"),
            (240, 0, 240, "Pendiente de Pago"),
            (240, 100, 140, "Pago parcial"),
            (0, 5, None, "Pagado"),
            (0, 0, 5, "Pendiente de Pago"),
            (0, 0, None, "Pagado"),
        ],
    )
    def test_status(self, total, received, pending, expected) -> None:
        assert determine_payment_status(total, received, pending) == expected


class TestSaleFinancials:
    """Test compute_sale_financials."""

    def test_defaults_to_paid_in_full(self, sale: Sale) -> None:
        fin = compute_sale_financials(sale)

        assert fin.cost_materials == Decimal("200")
        assert fin.computed_total == Decimal("240")
        assert fin.effective_sale_value == Decimal("240")
        assert fin.payment_received == Decimal("240")
        assert fin.payment_pending == Decimal("0")
        assert fin.payment_status == "Pagado"

    def test_real_value_override(self, sale: Sale) -> None:
        sale.real_sale_value = Decimal("300")

        fin = compute_sale_financials(sale)

        assert fin.effective_sale_value == Decimal("300")
        assert fin.payment_received == Decimal("300")
        assert fin.payment_pending == Decimal("0")
        assert fin.payment_status == "Pagado"
        assert fin.real_profit == Decimal("100")

    def test_partial_payment(self, sale: Sale) -> None:
        sale.real_sale_value = Decimal("300")
        sale.payment_received = Decimal("100")

        fin = compute_sale_financials(sale)

        assert fin.payment_received == Decimal("100")
        assert fin.payment_pending == Decimal("200")
        assert fin.payment_status == "Pago parcial"

    def test_pending_only_record(self, sale: Sale) -> None:
        sale.payment_pending = Decimal("240")

        fin = compute_sale_financials(sale)

        assert fin.payment_received == Decimal("0")
        assert fin.payment_pending == Decimal("240")
        assert fin.payment_status == "Pendiente de Pago"
        assert not is_sale_fully_paid(sale)

    def test_stored_total_is_fallback(self) -> None:
        legacy = Sale(product_id="p1", quantity=Decimal("1"), total=Decimal("80"))

        fin = compute_sale_financials(legacy)

        assert fin.computed_total == Decimal("0")
        assert fin.effective_sale_value == Decimal("80")

    def test_negative_real_value_is_ignored(self, sale: Sale) -> None:
        sale.real_sale_value = Decimal("-1")

        assert compute_sale_financials(sale).effective_sale_value == Decimal("240")


class TestApplySaleEdit:
    """Test the edit reducer."""

    def test_editing_pending_derives_received(self, sale: Sale) -> None:
        edited, fin = apply_sale_edit(sale, "payment_pending", "40")

        assert edited.payment_pending == Decimal("40")
        assert edited.payment_received == Decimal("200")
        assert fin.payment_status == "Pago parcial"

    def test_pending_is_capped_at_total(self, sale: Sale) -> None:
        edited, _ = apply_sale_edit(sale, "payment_pending", 1000)

        assert edited.payment_pending == Decimal("240")
        assert edited.payment_received == Decimal("0")
        assert edited.payment_status == "Pendiente de Pago"

    def test_editing_received_derives_pending(self, sale: Sale) -> None:
        edited, fin = apply_sale_edit(sale, "payment_received", "90")

        assert edited.payment_received == Decimal("90")
        assert edited.payment_pending == Decimal("150")
        assert fin.payment_status == "Pago parcial"

    def test_editing_quantity_keeps_received(self, sale: Sale) -> None:
        partial, _ = apply_sale_edit(sale, "payment_received", "100")

        edited, fin = apply_sale_edit(partial, "quantity", "3")

        assert fin.effective_sale_value == Decimal("360")
        assert edited.payment_received == Decimal("100")
        assert edited.payment_pending == Decimal("260")

    def test_clearing_real_value_reverts_to_computed_total(self, sale: Sale) -> None:
        sale.real_sale_value = Decimal("300")

        _, fin = apply_sale_edit(sale, "real_sale_value", "")

        assert fin.real_sale_value is None
        assert fin.effective_sale_value == Decimal("240")

    def test_does_not_mutate_input(self, sale: Sale) -> None:
        apply_sale_edit(sale, "payment_received", "10")

        assert sale.payment_received is None

    def test_rejects_non_numeric_values(self, sale: Sale) -> None:
        with pytest.raises(InvalidSaleError, match="must be numeric"):
            apply_sale_edit(sale, "quantity", "muchos")

    def test_rejects_fractional_quantity(self, sale: Sale) -> None:
        with pytest.raises(InvalidSaleError, match="whole number"):
            apply_sale_edit(sale, "quantity", "1,5")

    def test_rejects_unknown_fields(self, sale: Sale) -> None:
        with pytest.raises(InvalidSaleError, match="not editable"):
            apply_sale_edit(sale, "product_id", "p2")


class TestValidateNewSale:
    def test_valid_sale(self) -> None:
        validate_new_sale("p1", "2", "100,50", None)

    @pytest.mark.parametrize(
        "product_id, quantity, unit_price, gain",
        [
            ("", 1, 100, None),
            ("p1", 0, 100, None),
            ("p1", "dos", 100, None),
            ("p1", "1.5", 100, None),
            ("p1", 1, 0, None),
            ("p1", 1, 100, "abc"),
        ],
    )
    def test_invalid_sale(self, product_id, quantity, unit_price, gain) -> None:
        with pytest.raises(InvalidSaleError):
            validate_new_sale(product_id, quantity, unit_price, gain)
