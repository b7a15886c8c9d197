"""Tests for product cost aggregation."""

from decimal import Decimal

import pytest

from domain.models import (
    CompositeItem,
    CompositeProduct,
    FabricRow,
    OtherMaterialRow,
    SimpleProduct,
)
from domain.services.product_costing import (
    build_product_map,
    compute_product_cost_summary,
    effective_confeccion_cost,
    total_with_confeccion,
)


def _simple(product_id: str, cost: str, gain: str) -> SimpleProduct:
    """Simple product with one material row worth ``cost`` and manual labor ``gain``."""
    return SimpleProduct(
        id=product_id,
        name=f"Producto {product_id}",
        costo_confeccion=Decimal(gain),
        otros=[OtherMaterialRow(component_id="m", unidades=Decimal("1"), precio_unitario=Decimal(cost))],
    )


@pytest.fixture
def products() -> dict:
    return build_product_map(
        [
            _simple("p1", "10", "2"),
            _simple("p2", "20", "3"),
            CompositeProduct(
                id="set",
                name="Conjunto",
                composite_items=[CompositeItem("p1"), CompositeItem("p2")],
            ),
        ]
    )


class TestSimpleProducts:
    """Test simple product costing."""

    def test_legacy_manual_price(self) -> None:
        product = SimpleProduct(id="x", name="Legacy", price=Decimal("500"), costo_confeccion=Decimal("50"))

        summary = compute_product_cost_summary(product, {})

        assert summary.cost_materials == Decimal("500")
        assert summary.estimated_gain == Decimal("50")
        assert summary.is_composite is False
        assert summary.breakdown == ()

    def test_rows_replace_manual_price(self) -> None:
        product = SimpleProduct(
            id="x",
            name="Bolso",
            price=Decimal("999"),
            costo_confeccion=Decimal("40"),
            telas=[FabricRow(component_id="t", costo_material=Decimal("14.74"))],
            otros=[OtherMaterialRow(component_id="h", unidades=Decimal("3"), precio_unitario=Decimal("2.5"))],
        )

        summary = compute_product_cost_summary(product, {})

        assert summary.cost_materials == Decimal("22.24")
        assert summary.estimated_gain == Decimal("40")
        assert total_with_confeccion(summary) == Decimal("62.24")

    def test_confeccion_rows_override_manual_labor(self) -> None:
        product = SimpleProduct(
            id="x",
            name="Saco",
            costo_confeccion=Decimal("40"),
            otros=[
                OtherMaterialRow(component_id="h", unidades=Decimal("2"), precio_unitario=Decimal("5")),
                OtherMaterialRow(
                    component_id="k",
                    unidades=Decimal("1"),
                    precio_unitario=Decimal("4500"),
                    tag_confeccion=True,
                ),
            ],
        )

        summary = compute_product_cost_summary(product, {})

        assert summary.cost_materials == Decimal("10")
        assert summary.estimated_gain == Decimal("4500")
        assert effective_confeccion_cost(product) == Decimal("4500")

    def test_unselected_rows_cost_nothing(self) -> None:
        product = SimpleProduct(
            id="x",
            name="Draft",
            costo_confeccion=Decimal("5"),
            telas=[FabricRow(costo_material=Decimal("14"))],
        )

        summary = compute_product_cost_summary(product, {})

        assert summary.cost_materials == Decimal("0")
        assert summary.estimated_gain == Decimal("5")

    def test_none_product(self) -> None:
        assert compute_product_cost_summary(None, {}).total == Decimal("0")


class TestCompositeProducts:
    """Test recursive composite costing."""

    def test_sums_children(self, products: dict) -> None:
        summary = compute_product_cost_summary(products["set"], products)

        assert summary.cost_materials == Decimal("30")
        assert summary.estimated_gain == Decimal("5")
        assert summary.is_composite is True
        assert len(summary.breakdown) == 2
        assert [entry.id for entry in summary.breakdown] == ["p1", "p2"]
        assert summary.breakdown[1].type == "simple"

    def test_missing_children_are_skipped(self, products: dict) -> None:
        products["set"].composite_items.append(CompositeItem("deleted"))

        summary = compute_product_cost_summary(products["set"], products)

        assert summary.cost_materials == Decimal("30")
        assert len(summary.breakdown) == 2

    def test_self_reference_contributes_zero(self, products: dict) -> None:
        products["set"].composite_items.append(CompositeItem("set"))

        summary = compute_product_cost_summary(products["set"], products)

        assert summary.cost_materials == Decimal("30")
        assert summary.estimated_gain == Decimal("5")

    def test_indirect_cycle_terminates(self) -> None:
        products = build_product_map(
            [
                CompositeProduct(id="a", name="A", composite_items=[CompositeItem("b"), CompositeItem("p")]),
                CompositeProduct(id="b", name="B", composite_items=[CompositeItem("a")]),
                _simple("p", "7", "1"),
            ]
        )

        summary = compute_product_cost_summary(products["a"], products)

        assert summary.cost_materials == Decimal("7")
        assert summary.estimated_gain == Decimal("1")
        assert [entry.id for entry in summary.breakdown] == ["b", "p"]
        assert summary.breakdown[0].cost_materials == Decimal("0")

    def test_nested_composites(self, products: dict) -> None:
        products["outer"] = CompositeProduct(
            id="outer",
            name="Outer",
            composite_items=[CompositeItem("set"), CompositeItem("p1")],
        )

        summary = compute_product_cost_summary(products["outer"], products)

        assert summary.cost_materials == Decimal("40")
        assert summary.estimated_gain == Decimal("7")

    def test_composite_category_is_locked(self) -> None:
        product = CompositeProduct(id="s", name="Set", category="Remeras")

        assert product.category == "Set / Conjuntos"
        assert not product.has_material_rows
