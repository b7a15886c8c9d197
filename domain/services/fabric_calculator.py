"""Fabric row costing.

A fabric row describes one cut piece: the roll width and per-meter price
give a price per cm2, the cut dimensions plus a waste percentage give the
area consumed, and their product is the row's material cost.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any, Mapping, Optional

from config.constants import FABRIC_INPUT_FIELDS
from domain.models import Component, FabricRow
from domain.services.money import ZERO, round_money, round_optional

_HUNDRED = Decimal("100")


def recompute_fabric_row(row: FabricRow) -> FabricRow:
    """Recompute the derived fields of ``row`` in dependency order.

    Each step only runs when its inputs are present, so a half-filled row
    keeps whatever it already had for the steps it cannot compute yet.
    """
    valor_cm2 = row.valor_cm2
    if row.precio_por_metro is not None and row.ancho_tela_cm:
        valor_cm2 = round_money(row.precio_por_metro / row.ancho_tela_cm)

    material_puro = row.material_puro_cm2
    if row.ancho_cm is not None and row.largo_cm is not None:
        material_puro = round_money(row.ancho_cm * row.largo_cm / _HUNDRED)

    total_material = row.total_material_cm2
    if material_puro is not None and row.porcentaje_desperdicio is not None:
        total_material = round_money(
            material_puro * (1 + row.porcentaje_desperdicio / _HUNDRED)
        )

    costo = row.costo_material
    if total_material is not None and valor_cm2 is not None:
        costo = round_money(total_material * valor_cm2)

    return replace(
        row,
        valor_cm2=valor_cm2,
        material_puro_cm2=material_puro,
        total_material_cm2=total_material,
        costo_material=costo,
    )


def apply_component(row: FabricRow, component: Optional[Component]) -> FabricRow:
    """Import the effective per-meter price of ``component`` (0 when missing)."""
    if component is None:
        return replace(row, precio_por_metro=ZERO)
    return replace(row, precio_por_metro=round_money(component.effective_unit_price))


def update_fabric_row(
    row: FabricRow,
    field_name: str,
    value: Any,
    component: Optional[Component] = None,
) -> FabricRow:
    """Return ``row`` with one input edited and everything downstream recomputed.

    Args:
        row: Row being edited
        field_name: FabricRow attribute name
        value: New raw value (numeric inputs are rounded to cents)
        component: Component matching ``value`` when ``field_name`` is
            ``component_id``; ``None`` if it could not be found

    Raises:
        ValueError: If ``field_name`` is not an editable input
    """
    if field_name == "component_id":
        updated = replace(row, component_id=str(value) if value else None)
        updated = apply_component(updated, component)
    elif field_name in FABRIC_INPUT_FIELDS:
        updated = replace(row, **{field_name: round_optional(value)})
    elif field_name == "precio_por_metro":
        updated = replace(row, precio_por_metro=round_optional(value))
    else:
        raise ValueError(f"Fabric row field is not editable: {field_name}")
    return recompute_fabric_row(updated)


def refresh_fabric_row(row: FabricRow, components_by_id: Mapping[str, Component]) -> FabricRow:
    """Re-import the component price from a fresh snapshot and recompute."""
    if not row.is_selected:
        return row
    component = components_by_id.get(str(row.component_id))
    if component is None:
        return recompute_fabric_row(row)
    return recompute_fabric_row(apply_component(row, component))


def fabric_row_cost(row: FabricRow) -> Decimal:
    """Cost contributed by ``row``; unselected rows contribute nothing."""
    if not row.is_selected or row.costo_material is None:
        return ZERO
    return row.costo_material
