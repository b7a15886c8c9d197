"""Product cost aggregation.

Simple products are costed from their rows; composite products are the
sum of the products they reference. Lookups that fail (missing or cyclic
children) contribute nothing instead of raising, since partial data is
normal while a product is being edited.
"""

from __future__ import annotations

from decimal import Decimal
from typing import AbstractSet, Iterable, Mapping, Optional

from domain.models import CostBreakdownEntry, Product, ProductCostSummary, SimpleProduct
from domain.services.fabric_calculator import fabric_row_cost
from domain.services.material_calculator import other_row_total
from domain.services.money import ZERO, round_money, to_decimal


def build_product_map(products: Iterable[Product]) -> dict[str, Product]:
    """Index products by string id, skipping products without one."""
    product_map: dict[str, Product] = {}
    for product in products:
        if product is None or product.id is None:
            continue
        product_map[str(product.id)] = product
    return product_map


def _simple_totals(product: SimpleProduct) -> tuple[Decimal, Decimal, Decimal, bool]:
    telas_total = sum((fabric_row_cost(row) for row in product.telas), ZERO)
    otros_no_confeccion = ZERO
    otros_confeccion = ZERO
    has_confeccion = False
    for row in product.otros:
        if not row.is_selected:
            continue
        if row.tag_confeccion:
            has_confeccion = True
            otros_confeccion += other_row_total(row)
        else:
            otros_no_confeccion += other_row_total(row)
    return telas_total, otros_no_confeccion, otros_confeccion, has_confeccion


def effective_confeccion_cost(product: SimpleProduct) -> Decimal:
    """Labor cost: sum of confección rows if any, else the manual value."""
    _, _, otros_confeccion, has_confeccion = _simple_totals(product)
    if has_confeccion:
        return round_money(otros_confeccion)
    return round_money(product.costo_confeccion)


def compute_simple_product_costs(product: SimpleProduct) -> ProductCostSummary:
    if not product.has_material_rows:
        # Legacy flat-price products
        return ProductCostSummary(
            cost_materials=round_money(product.price),
            estimated_gain=round_money(product.costo_confeccion),
            is_composite=False,
        )

    telas_total, otros_no_confeccion, otros_confeccion, has_confeccion = _simple_totals(product)
    gain = otros_confeccion if has_confeccion else to_decimal(product.costo_confeccion)
    return ProductCostSummary(
        cost_materials=round_money(telas_total + otros_no_confeccion),
        estimated_gain=round_money(gain),
        is_composite=False,
    )


def compute_product_cost_summary(
    product: Optional[Product],
    products_by_id: Mapping[str, Product],
    visited_ids: Optional[AbstractSet[str]] = None,
) -> ProductCostSummary:
    """Compute material cost and estimated gain for ``product``.

    Args:
        product: Product to cost (``None`` yields an empty summary)
        products_by_id: Snapshot of every product, keyed by string id
        visited_ids: Ids already on the current resolution path

    Returns:
        Summary with every amount rounded to cents. Composite summaries
        carry one breakdown entry per resolved child.
    """
    if product is None:
        return ProductCostSummary()

    visited = frozenset(visited_ids or ())
    product_id = str(product.id) if product.id is not None else None
    if product_id is not None and product_id in visited:
        return ProductCostSummary(is_composite=product.is_composite)

    if not product.is_composite:
        return compute_simple_product_costs(product)

    path = visited | {product_id} if product_id is not None else visited
    total_cost = ZERO
    total_gain = ZERO
    breakdown: list[CostBreakdownEntry] = []
    for item in product.composite_items:
        child_id = item.product_id
        if child_id is None or str(child_id) == "":
            continue
        child = products_by_id.get(str(child_id))
        if child is None or str(child.id) in path:
            continue
        child_summary = compute_product_cost_summary(child, products_by_id, path)
        total_cost += child_summary.cost_materials
        total_gain += child_summary.estimated_gain
        breakdown.append(
            CostBreakdownEntry(
                id=child.id,
                name=child.name or "",
                type=child.type,
                cost_materials=round_money(child_summary.cost_materials),
                estimated_gain=round_money(child_summary.estimated_gain),
            )
        )

    return ProductCostSummary(
        cost_materials=round_money(total_cost),
        estimated_gain=round_money(total_gain),
        is_composite=True,
        breakdown=tuple(breakdown),
    )


def total_with_confeccion(summary: ProductCostSummary) -> Decimal:
    """Product total shown next to the cost: materials plus labor."""
    return round_money(summary.cost_materials + summary.estimated_gain)
