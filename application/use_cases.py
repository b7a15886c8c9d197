"""Application use cases.

Use cases orchestrate domain services and infrastructure to fulfill
business workflows. Every use case reads fresh snapshots from the record
store; nothing is cached between calls.
"""

import copy
import logging
from dataclasses import dataclass, replace
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from config.constants import (
    COLLECTION_COMPONENTS,
    COLLECTION_PRODUCTS,
    COLLECTION_SALES,
    DEFAULT_PAYMENT_METHOD,
)
from domain.exceptions import (
    ComponentNotFoundError,
    InvalidDocumentError,
    InvalidSaleError,
    PersistenceError,
    ProductNotFoundError,
    RecordNotFoundError,
    SaleNotFoundError,
)
from domain.models import (
    AdjustedPrice,
    Component,
    PriceAdjustment,
    Product,
    ProductCostSummary,
    Sale,
    SaleFinancials,
    SimpleProduct,
)
from domain.services.fabric_calculator import refresh_fabric_row
from domain.services.material_calculator import tag_other_rows
from domain.services.money import is_blank, round_money, to_decimal
from domain.services.price_adjustments import (
    apply_adjustments,
    clean_adjustments_for_save,
    normalize_adjustments,
    prepare_adjustments_for_edit,
)
from domain.services.product_costing import (
    build_product_map,
    compute_product_cost_summary,
    effective_confeccion_cost,
)
from domain.services.sale_payments import (
    apply_sale_edit,
    compute_sale_financials,
    validate_new_sale,
    with_financials,
)
from domain.services.sales_stats import (
    compute_kpis,
    filter_by_date,
    payment_method_breakdown,
    sales_frame,
    totals_by,
)
from infrastructure.persistence.documents import (
    component_from_document,
    component_to_document,
    product_from_document,
    product_modifiers,
    product_to_document,
    sale_from_document,
    sale_to_document,
)
from infrastructure.persistence.excel_exporter import ExcelExporter
from infrastructure.persistence.record_store import RecordStore

logger = logging.getLogger(__name__)


def _load_documents(store: RecordStore, collection: str, parse: Callable[[Any], Any]) -> List[Any]:
    """Parse every stored document, skipping the ones that fail validation."""
    records = []
    for document in store.get_all(collection):
        try:
            records.append(parse(document))
        except InvalidDocumentError as exc:
            logger.warning("Skipping invalid %s document: %s", collection, exc)
    return records


def _load_components(store: RecordStore) -> List[Component]:
    return _load_documents(store, COLLECTION_COMPONENTS, component_from_document)


def _load_products(store: RecordStore) -> List[Product]:
    return _load_documents(store, COLLECTION_PRODUCTS, product_from_document)


def _load_product(store: RecordStore, product_id: str) -> Dict[str, Any]:
    try:
        return store.get(COLLECTION_PRODUCTS, str(product_id))
    except RecordNotFoundError as exc:
        raise ProductNotFoundError(f"Product not found: {product_id}") from exc


def _load_sale(store: RecordStore, sale_id: str) -> Sale:
    try:
        return sale_from_document(store.get(COLLECTION_SALES, str(sale_id)))
    except RecordNotFoundError as exc:
        raise SaleNotFoundError(f"Sale not found: {sale_id}") from exc


def _capitalize_name(name: Optional[str]) -> Optional[str]:
    text = str(name or "").strip()
    if not text:
        return None
    return text[0].upper() + text[1:]


# ============================================================================
# Components
# ============================================================================


class ListComponentsUseCase:
    """List components, optionally from one category."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, category: Optional[str] = None) -> List[Component]:
        components = _load_components(self._store)
        if category:
            wanted = category.strip().lower()
            components = [c for c in components if (c.category or "").strip().lower() == wanted]
        return sorted(components, key=lambda c: (c.name or "").lower())


class SaveComponentUseCase:
    """Create or update a component."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, component: Component) -> Component:
        """Save component.

        Args:
            component: Component to save (unit divisor below 1 is stored as 1)

        Returns:
            The stored component
        """
        stored = self._store.put(COLLECTION_COMPONENTS, component_to_document(component))
        return component_from_document(stored)


class DeleteComponentUseCase:
    """Delete a component. Product rows that reference it then cost 0."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, component_id: str) -> None:
        try:
            self._store.delete(COLLECTION_COMPONENTS, str(component_id))
        except RecordNotFoundError as exc:
            raise ComponentNotFoundError(f"Component not found: {component_id}") from exc


# ============================================================================
# Products
# ============================================================================


class LoadProductDetailUseCase:
    """Load a product ready for editing.

    Legacy adjustment forms are merged, renamed and migrated; when the
    migration flag flips, the product is saved back right away so defaults
    the user removes later are not re-added.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, product_id: str) -> Product:
        document = _load_product(self._store, product_id)
        product = product_from_document(document)
        adjustments, migrated = prepare_adjustments_for_edit(product, product_modifiers(document))
        was_migrated = product.defaults_migrated
        product = replace(product, price_adjustments=adjustments, defaults_migrated=migrated)

        if migrated and not was_migrated:
            logger.info("Default price adjustments added to product %s", product.id)
            self._store.put(COLLECTION_PRODUCTS, product_to_document(product))
        return product


class SaveProductDetailUseCase:
    """Persist an edited product with every derived field recomputed."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, product: Product) -> Product:
        """Save product.

        Args:
            product: Edited product

        Returns:
            The product as stored
        """
        adjustments = clean_adjustments_for_save(normalize_adjustments(product.price_adjustments))
        adjustments = [adj for adj in adjustments if adj.name.strip()]

        if isinstance(product, SimpleProduct):
            components_by_id = {c.id: c for c in _load_components(self._store)}
            telas = [
                refresh_fabric_row(row, components_by_id)
                for row in product.telas
                if row.is_selected
            ]
            otros = tag_other_rows((row for row in product.otros if row.is_selected), components_by_id)
            product = replace(product, telas=telas, otros=otros, price_adjustments=adjustments)
            product = replace(product, costo_confeccion=effective_confeccion_cost(product))
        else:
            product = replace(product, price_adjustments=adjustments)

        stored = self._store.put(COLLECTION_PRODUCTS, product_to_document(product))
        logger.debug("Saved product %s", stored.get("id"))
        return product_from_document(stored)


class CopyProductUseCase:
    """Duplicate a product under a new id."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(
        self,
        product_id: str,
        name: Optional[str] = None,
        category: Optional[str] = None,
        available: Optional[int] = None,
    ) -> Product:
        """Copy product.

        Args:
            product_id: Product to copy
            name: Name for the copy (default "Copia de <name>")
            category: Category for the copy (ignored for composites)
            available: Stock for the copy (default: same as the source)

        Returns:
            The new product
        """
        document = copy.deepcopy(_load_product(self._store, product_id))
        document.pop("id", None)
        document["name"] = name if name else f"Copia de {document.get('name') or ''}"
        if category is not None:
            document["category"] = category
        if available is not None:
            document["available"] = available
        document.setdefault("componentes", {"telas": [], "otros": []})
        document.setdefault("priceAdjustments", [])

        product = product_from_document(document)
        stored = self._store.put(COLLECTION_PRODUCTS, product_to_document(product))
        return product_from_document(stored)


class DeleteProductUseCase:
    """Delete a product. Composites that reference it skip it from then on."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, product_id: str) -> None:
        try:
            self._store.delete(COLLECTION_PRODUCTS, str(product_id))
        except RecordNotFoundError as exc:
            raise ProductNotFoundError(f"Product not found: {product_id}") from exc


@dataclass(frozen=True)
class ProductPricing:
    """Cost summary plus the corrected price for each adjustment."""

    product: Product
    summary: ProductCostSummary
    base_total: Decimal
    adjusted_prices: List[AdjustedPrice]


class ComputeProductCostUseCase:
    """Cost a product against a fresh snapshot of every product."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(
        self,
        product_id: str,
        adjustments: Optional[List[PriceAdjustment]] = None,
    ) -> ProductPricing:
        """Compute cost summary and adjusted prices.

        Args:
            product_id: Product to cost
            adjustments: Adjustments being edited (default: the stored ones)
        """
        products_by_id = build_product_map(_load_products(self._store))
        product = products_by_id.get(str(product_id))
        if product is None:
            raise ProductNotFoundError(f"Product not found: {product_id}")
        return self.price(product, products_by_id, adjustments)

    def execute_all(self) -> List[ProductPricing]:
        """Price every product (used for the product cost export)."""
        products_by_id = build_product_map(_load_products(self._store))
        return [self.price(product, products_by_id) for product in products_by_id.values()]

    @staticmethod
    def price(
        product: Product,
        products_by_id: Dict[str, Product],
        adjustments: Optional[List[PriceAdjustment]] = None,
    ) -> ProductPricing:
        summary = compute_product_cost_summary(product, products_by_id)
        # Adjustments apply to the material cost, not to confección
        base_total = summary.cost_materials
        chosen = product.price_adjustments if adjustments is None else adjustments
        return ProductPricing(
            product=product,
            summary=summary,
            base_total=base_total,
            adjusted_prices=apply_adjustments(base_total, chosen),
        )


# ============================================================================
# Sales
# ============================================================================


@dataclass(frozen=True)
class SaleResult:
    sale: Sale
    financials: SaleFinancials


class RegisterSaleUseCase:
    """Record a sale and take its quantity out of the product stock."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(
        self,
        product_id: str,
        quantity: Any,
        unit_price: Any = None,
        ganancia_unit: Any = None,
        sale_date: Optional[str] = None,
        customer_name: Optional[str] = None,
        payment_method: str = DEFAULT_PAYMENT_METHOD,
        payment_received: Any = None,
        payment_notes: str = "",
    ) -> SaleResult:
        """Register sale.

        Args:
            product_id: Product sold
            quantity: Units sold (must be positive)
            unit_price: Material cost per unit (default: current product cost)
            ganancia_unit: Labor/gain per unit (default: current product gain)
            sale_date: ISO date (default: today)
            customer_name: Optional customer
            payment_method: Payment method label
            payment_received: Amount received so far (default: paid in full)
            payment_notes: Free text

        Raises:
            InvalidSaleError: If the input is not a valid sale
            ProductNotFoundError: If the product does not exist
        """
        if is_blank(product_id):
            raise InvalidSaleError("A product is required")
        products_by_id = build_product_map(_load_products(self._store))
        product = products_by_id.get(str(product_id))
        if product is None:
            raise ProductNotFoundError(f"Product not found: {product_id}")

        summary = compute_product_cost_summary(product, products_by_id)
        if is_blank(unit_price):
            unit_price = summary.cost_materials
        if is_blank(ganancia_unit):
            ganancia_unit = summary.estimated_gain
        validate_new_sale(product_id, quantity, unit_price, ganancia_unit)

        qty = to_decimal(quantity)
        unit = round_money(unit_price)
        gain = round_money(ganancia_unit)
        sale = Sale(
            product_id=str(product_id),
            quantity=qty,
            unit_price=unit,
            ganancia_unit=gain,
            date=sale_date or date_type.today().isoformat(),
            customer_name=_capitalize_name(customer_name),
            total=round_money(qty * (unit + gain)),
            payment_received=None if is_blank(payment_received) else to_decimal(payment_received),
            payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
            payment_notes=payment_notes or "",
        )
        financials = compute_sale_financials(sale)
        sale = with_financials(sale, financials)

        stored = self._store.put(COLLECTION_SALES, sale_to_document(sale))
        sale = replace(sale, id=str(stored["id"]))
        logger.info("Registered sale %s: %s x %s", sale.id, qty, product.name)

        _adjust_stock(self._store, str(product.id), -qty)
        return SaleResult(sale=sale, financials=financials)


def _adjust_stock(store: RecordStore, product_id: str, delta: Decimal) -> None:
    """Move product stock by ``delta``, floored at 0.

    The sale is already stored at this point; a failed stock update is
    logged and does not undo it.
    """
    try:
        document = store.get(COLLECTION_PRODUCTS, product_id)
        current = to_decimal(document.get("available"))
        moved = (current + delta).to_integral_value(rounding=ROUND_HALF_UP)
        document["available"] = max(int(moved), 0)
        store.put(COLLECTION_PRODUCTS, document)
    except PersistenceError as exc:
        logger.warning("Could not update stock for product %s: %s", product_id, exc)


class UpdateSaleUseCase:
    """Edit one field of a stored sale and re-reconcile its payments."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, sale_id: str, field_name: str, value: Any) -> SaleResult:
        """Update sale.

        Args:
            sale_id: Sale to edit
            field_name: One of ``SALE_EDITABLE_FIELDS``
            value: New raw value

        Raises:
            SaleNotFoundError: If the sale does not exist
            InvalidSaleError: If the edit is invalid
        """
        sale = _load_sale(self._store, sale_id)
        updated, financials = apply_sale_edit(sale, field_name, value)
        self._store.put(COLLECTION_SALES, sale_to_document(updated))
        return SaleResult(sale=updated, financials=financials)


class UpdateSaleDetailsUseCase:
    """Edit the non-financial fields of a sale."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(
        self,
        sale_id: str,
        payment_method: Optional[str] = None,
        payment_notes: Optional[str] = None,
        customer_name: Optional[str] = None,
        sale_date: Optional[str] = None,
    ) -> Sale:
        sale = _load_sale(self._store, sale_id)
        changes: Dict[str, Any] = {}
        if payment_method is not None:
            changes["payment_method"] = payment_method or DEFAULT_PAYMENT_METHOD
        if payment_notes is not None:
            changes["payment_notes"] = payment_notes
        if customer_name is not None:
            changes["customer_name"] = _capitalize_name(customer_name)
        if sale_date is not None:
            changes["date"] = sale_date or None
        updated = with_financials(replace(sale, **changes))
        self._store.put(COLLECTION_SALES, sale_to_document(updated))
        return updated


class DeleteSaleUseCase:
    """Delete a sale and put its quantity back into stock."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self, sale_id: str) -> None:
        sale = _load_sale(self._store, sale_id)
        self._store.delete(COLLECTION_SALES, str(sale_id))
        logger.info("Deleted sale %s", sale_id)

        _adjust_stock(self._store, sale.product_id, to_decimal(sale.quantity))


class ListSalesUseCase:
    """Stored sales with their reconciled financials, newest first."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def execute(self) -> List[SaleResult]:
        results = []
        for sale in _load_documents(self._store, COLLECTION_SALES, sale_from_document):
            financials = compute_sale_financials(sale)
            results.append(SaleResult(sale=with_financials(sale, financials), financials=financials))
        return sorted(results, key=lambda r: r.sale.date or "", reverse=True)


# ============================================================================
# Reports
# ============================================================================


@dataclass(frozen=True)
class SalesReport:
    kpis: Dict[str, float]
    by_category: Any
    by_product: Any
    by_date: Any
    payment_methods: Any
    sales: Any


class SalesReportUseCase:
    """Sales statistics over a date range, optionally exported to Excel."""

    def __init__(self, store: RecordStore, exporter: ExcelExporter) -> None:
        self._store = store
        self._exporter = exporter

    def execute(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        metric: str = "profit",
    ) -> SalesReport:
        """Build sales statistics.

        Args:
            start: First day included (ISO date)
            end: Last day included (ISO date)
            metric: ``profit`` or ``cost`` for the grouped totals ordering
        """
        products_by_id = build_product_map(_load_products(self._store))
        sales = _load_documents(self._store, COLLECTION_SALES, sale_from_document)
        frame = filter_by_date(sales_frame(sales, products_by_id), start, end)
        return SalesReport(
            kpis=compute_kpis(frame),
            by_category=totals_by(frame, "category", metric),
            by_product=totals_by(frame, "product", metric),
            by_date=totals_by(frame, "date", metric),
            payment_methods=payment_method_breakdown(frame),
            sales=frame,
        )

    def export(
        self,
        output_path: Path | str,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> SalesReport:
        """Build the report and write it to an Excel workbook."""
        report = self.execute(start, end)
        self._exporter.export_sales_report(
            report.sales,
            report.kpis,
            {
                "Por categoría": report.by_category,
                "Por producto": report.by_product,
                "Por fecha": report.by_date,
                "Medios de pago": report.payment_methods,
            },
            output_path,
        )
        logger.info("Sales report exported to %s", output_path)
        return report


class ExportProductCostsUseCase:
    """Export every product's cost and adjusted prices to Excel."""

    def __init__(self, costing: ComputeProductCostUseCase, exporter: ExcelExporter) -> None:
        self._costing = costing
        self._exporter = exporter

    def execute(self, output_path: Path | str) -> None:
        pricings = self._costing.execute_all()
        self._exporter.export_product_costs(
            ((p.product, p.summary, p.adjusted_prices) for p in pricings),
            output_path,
        )
