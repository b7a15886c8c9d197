"""Integration tests for use cases.

Tests use cases against an in-memory record store with the real document
mapping and calculators (external price lookups are mocked).
"""

import logging
from dataclasses import replace
from decimal import Decimal
from unittest.mock import Mock

import pytest
from openpyxl import load_workbook

from application.price_refresh import RunState
from config.container import Container
from config.settings import Settings
from domain.exceptions import (
    ComponentNotFoundError,
    InvalidDocumentError,
    InvalidSaleError,
    PriceLookupHTTPError,
    ProductNotFoundError,
    SaleNotFoundError,
)
from domain.models import FabricRow, OtherMaterialRow, PriceAdjustment
from infrastructure.persistence.record_store import InMemoryRecordStore


def _seed() -> dict:
    return {
        "components": [
            {"id": "t1", "name": "Lino crudo", "category": "telas", "price": 1000, "unitDivisor": 10,
             "link": "https://shop.example/lino"},
            {"id": "h1", "name": "Hilo", "category": "mercería", "price": 25, "unitDivisor": 1,
             "link": "https://shop.example/hilo"},
            {"id": "k1", "name": "Confección bolso", "category": "mano de obra", "price": 4000},
        ],
        "products": [
            {
                "id": "p1",
                "name": "Bolso",
                "category": "Bolsos",
                "type": "simple",
                "available": 5,
                "costoConfeccion": 0,
                "componentes": {
                    "telas": [
                        {"componentId": "t1", "anchoTelaCm": 150, "anchoCm": 50, "largoCm": 40,
                         "porcentajeDesperdicio": 10},
                    ],
                    "otros": [
                        {"componentId": "h1", "unidades": 2, "precioUnitario": 25},
                        {"componentId": "k1", "unidades": 1, "precioUnitario": 4000},
                    ],
                },
                "defaultsMigrated": True,
            },
            {
                "id": "p2",
                "name": "Cartuchera",
                "category": "Accesorios",
                "available": 1,
                "price": 500,
                "costoConfeccion": 50,
                "modificadores": {"Efectivo": -0.1, "Tarjeta": 0.2},
            },
            {
                "id": "set",
                "name": "Set viaje",
                "type": "composite",
                "available": 2,
                "compositeItems": [{"productId": "p1"}, {"productId": "p2"}],
                "defaultsMigrated": True,
            },
        ],
        "sales": [],
    }


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(_seed())


@pytest.fixture
def lookup() -> Mock:
    return Mock()


@pytest.fixture
def container(store: InMemoryRecordStore, lookup: Mock) -> Container:
    return Container(settings=Settings(), store=store, price_lookup=lookup)


class TestComponents:
    def test_list_by_category(self, container: Container) -> None:
        components = container.list_components.execute("TELAS")

        assert [c.id for c in components] == ["t1"]

    def test_delete_missing_component(self, container: Container) -> None:
        with pytest.raises(ComponentNotFoundError):
            container.delete_component.execute("nope")


class TestProductDetail:
    """Test load/save/copy of products."""

    def test_load_migrates_adjustments_once(self, container: Container, store) -> None:
        product = container.load_product_detail.execute("p2")

        assert [a.name for a in product.price_adjustments] == [
            "En dos veces",
            "Inflación",
            "Con cuenta DNI",
            "Con transferencia",
        ]
        assert product.price_adjustments[0].percent == Decimal("20.00")
        assert store.get("products", "p2")["defaultsMigrated"] is True

        # A removed default stays removed on the next load
        trimmed = [a for a in product.price_adjustments if a.name != "Inflación"]
        container.save_product_detail.execute(replace(product, price_adjustments=trimmed))
        reloaded = container.load_product_detail.execute("p2")
        assert "Inflación" not in [a.name for a in reloaded.price_adjustments]

    def test_save_recomputes_rows_from_components(self, container: Container, store) -> None:
        product = container.load_product_detail.execute("p1")
        product.telas.append(FabricRow())
        product.otros.append(OtherMaterialRow(unidades=Decimal("1")))
        product.price_adjustments.append(PriceAdjustment("", Decimal("5")))

        saved = container.save_product_detail.execute(product)

        assert len(saved.telas) == 1
        assert len(saved.otros) == 2
        assert saved.telas[0].costo_material == Decimal("14.74")
        assert [row.tag_confeccion for row in saved.otros] == [False, True]
        assert saved.costo_confeccion == Decimal("4000")
        assert saved.price_adjustments == []

        document = store.get("products", "p1")
        assert document["costoConfeccion"] == 4000
        assert document["componentes"]["telas"][0]["valorCm2"] == 0.67

    def test_copy_product(self, container: Container, store) -> None:
        copy = container.copy_product.execute("p1", available=0)

        assert copy.id != "p1"
        assert copy.name == "Copia de Bolso"
        assert copy.available == 0
        assert len(store.get("products")) == 4
        assert store.get("products", "p1")["available"] == 5

    def test_missing_product(self, container: Container) -> None:
        with pytest.raises(ProductNotFoundError):
            container.load_product_detail.execute("nope")


class TestProductCost:
    def test_simple_product(self, container: Container) -> None:
        container.save_product_detail.execute(container.load_product_detail.execute("p1"))

        pricing = container.compute_product_cost.execute(
            "p1", adjustments=[PriceAdjustment("Tarjeta", Decimal("10"))]
        )

        # 14.74 fabric + 50 thread, 4000 tailoring
        assert pricing.summary.cost_materials == Decimal("64.74")
        assert pricing.summary.estimated_gain == Decimal("4000")
        assert pricing.base_total == Decimal("64.74")
        # Tailoring is not marked up
        assert pricing.adjusted_prices[0].corrected == Decimal("71.21")

    def test_invalid_documents_are_skipped(self, container: Container, store, caplog) -> None:
        store.put("products", {"id": "bad", "type": "composite",
                               "componentes": {"telas": [{"componentId": "t1"}]}})
        store.put("products", {"id": "odd", "type": "kit"})

        with caplog.at_level(logging.WARNING, logger="application.use_cases"):
            pricing = container.compute_product_cost.execute("p2")
            exported = container.compute_product_cost.execute_all()

        assert pricing.summary.cost_materials == Decimal("500")
        assert sorted(p.product.id for p in exported) == ["p1", "p2", "set"]
        assert "Skipping invalid products document" in caplog.text
        with pytest.raises(InvalidDocumentError):
            container.load_product_detail.execute("bad")

    def test_composite_product(self, container: Container) -> None:
        container.save_product_detail.execute(container.load_product_detail.execute("p1"))

        pricing = container.compute_product_cost.execute("set")

        assert pricing.summary.is_composite
        assert pricing.summary.cost_materials == Decimal("564.74")
        assert pricing.summary.estimated_gain == Decimal("4050")
        assert len(pricing.summary.breakdown) == 2


class TestSales:
    """Test sale registration, edits and deletion."""

    def test_register_snapshots_cost_and_decrements_stock(self, container: Container, store) -> None:
        result = container.register_sale.execute("p2", quantity="2", customer_name="  ana ")

        assert result.sale.unit_price == Decimal("500")
        assert result.sale.ganancia_unit == Decimal("50")
        assert result.sale.total == Decimal("1100")
        assert result.sale.customer_name == "Ana"
        assert result.financials.payment_status == "Pagado"

        stored = store.get("sales", result.sale.id)
        assert stored["paymentReceived"] == 1100
        assert stored["paymentPending"] == 0
        assert store.get("products", "p2")["available"] == 0

    def test_stock_is_floored_at_zero(self, container: Container, store) -> None:
        container.register_sale.execute("p2", quantity=5, unit_price=10)

        assert store.get("products", "p2")["available"] == 0

    def test_partial_payment_and_edit(self, container: Container, store) -> None:
        result = container.register_sale.execute("p2", quantity=1, payment_received="100")

        assert result.financials.payment_pending == Decimal("450")
        assert result.financials.payment_status == "Pago parcial"

        edited = container.update_sale.execute(result.sale.id, "payment_pending", "0")

        assert edited.sale.payment_received == Decimal("550")
        assert edited.financials.payment_status == "Pagado"
        assert store.get("sales", result.sale.id)["paymentStatus"] == "Pagado"

    def test_real_value_override(self, container: Container) -> None:
        result = container.register_sale.execute("p2", quantity=1)

        edited = container.update_sale.execute(result.sale.id, "real_sale_value", "600")

        assert edited.financials.effective_sale_value == Decimal("600")
        assert edited.sale.payment_received == Decimal("550")
        assert edited.sale.payment_pending == Decimal("50")

    def test_invalid_sale(self, container: Container, store) -> None:
        with pytest.raises(InvalidSaleError):
            container.register_sale.execute("p2", quantity=0)
        with pytest.raises(ProductNotFoundError):
            container.register_sale.execute("nope", quantity=1)
        assert store.get("sales") == []

    def test_fractional_quantity_is_rejected(self, container: Container, store) -> None:
        with pytest.raises(InvalidSaleError, match="whole number"):
            container.register_sale.execute("p1", quantity="1.5", unit_price=100)

        assert store.get("products", "p1")["available"] == 5
        assert store.get("sales") == []

    def test_deleting_legacy_fractional_sale_rounds_stock(self, container: Container, store) -> None:
        store.put("sales", {"id": "old", "productId": "p1", "quantity": 1.5, "unitPrice": 10})

        container.delete_sale.execute("old")

        # 5 + 1.5 rounds half up
        assert store.get("products", "p1")["available"] == 7

    def test_delete_restores_stock(self, container: Container, store) -> None:
        result = container.register_sale.execute("set", quantity=1, unit_price=100)
        assert store.get("products", "set")["available"] == 1

        container.delete_sale.execute(result.sale.id)

        assert store.get("products", "set")["available"] == 2
        with pytest.raises(SaleNotFoundError):
            container.delete_sale.execute(result.sale.id)

    def test_update_details(self, container: Container) -> None:
        result = container.register_sale.execute("p2", quantity=1)

        sale = container.update_sale_details.execute(result.sale.id, payment_method="Transferencia")

        assert sale.payment_method == "Transferencia"
        assert [r.sale.id for r in container.list_sales.execute()] == [result.sale.id]


class TestPriceRefresh:
    def test_refresh_updates_components(self, container: Container, store, lookup: Mock) -> None:
        lookup.fetch_price.side_effect = [PriceLookupHTTPError("HTTP 404", status_code=404), Decimal("1200")]
        components = container.list_components.execute()

        report = container.price_refresh().run(components)

        assert report.state == RunState.DONE
        assert [(item.component_id, item.status.value) for item in report.items] == [
            ("h1", "error"),
            ("t1", "success"),
        ]
        assert store.get("components", "t1")["price"] == 1200
        assert store.get("components", "h1")["price"] == 25


class TestReports:
    def test_sales_report_export(self, container: Container, tmp_path) -> None:
        container.register_sale.execute("p2", quantity=1, sale_date="2024-05-02", payment_received=0)
        container.register_sale.execute("p2", quantity=1, sale_date="2024-07-01")
        output = tmp_path / "ventas.xlsx"

        report = container.sales_report.export(output, start="2024-05-01", end="2024-05-31")

        assert report.kpis["count"] == 1
        assert report.kpis["pending_sum"] == 550.0
        workbook = load_workbook(output)
        assert workbook.sheetnames == ["Resumen", "Ventas", "Por categoría", "Por producto", "Por fecha", "Medios de pago"]
        assert workbook["Ventas"]["A2"].value == "2024-05-02"

    def test_product_cost_export(self, container: Container, tmp_path) -> None:
        output = tmp_path / "productos.xlsx"

        container.export_product_costs.execute(output)

        sheet = load_workbook(output)["Productos"]
        assert sheet.max_row == 4
        assert sheet["A1"].value == "Producto"
