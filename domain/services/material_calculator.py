from __future__ import annotations

import unicodedata
from dataclasses import replace
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from config.constants import CONFECCION_MARKER
from domain.models import Component, OtherMaterialRow
from domain.services.money import ZERO, round_money, round_optional, to_decimal


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(name: Any) -> str:
    """Accent-stripped, lower-case, trimmed version of ``name``."""
    return _strip_accents(str(name or "")).strip().lower()


def is_confeccion_name(name: Any) -> bool:
    """True when a component name denotes tailoring labor."""
    return CONFECCION_MARKER in normalize_name(name)


def update_other_row(
    row: OtherMaterialRow,
    field_name: str,
    value: Any,
    component: Optional[Component] = None,
) -> OtherMaterialRow:
    """Return ``row`` with one field edited.

    Selecting a component imports its effective unit price, defaults the
    quantity to 1 and derives the confección tag from its name.
    """
    if field_name == "component_id":
        updated = replace(row, component_id=str(value) if value else None)
        if component is not None:
            updated = replace(
                updated,
                precio_unitario=round_money(component.effective_unit_price),
                tag_confeccion=is_confeccion_name(component.name),
            )
        if updated.unidades is None:
            updated = replace(updated, unidades=Decimal("1"))
        return updated
    if field_name == "precio_unitario":
        return replace(row, precio_unitario=round_optional(value))
    if field_name == "unidades":
        return replace(row, unidades=to_decimal(value, default=None))
    raise ValueError(f"Material row field is not editable: {field_name}")


def tag_other_rows(
    rows: Iterable[OtherMaterialRow],
    components_by_id: Mapping[str, Component],
) -> list[OtherMaterialRow]:
    """Recompute ``tag_confeccion`` from the current component registry.

    Stored tags may be stale (a component can be renamed), so they are never
    trusted at save time. Rows whose component is gone lose the tag.
    """
    tagged: list[OtherMaterialRow] = []
    for row in rows:
        component = components_by_id.get(str(row.component_id)) if row.component_id else None
        is_conf = is_confeccion_name(component.name) if component is not None else False
        tagged.append(replace(row, tag_confeccion=is_conf))
    return tagged


def other_row_total(row: OtherMaterialRow) -> Decimal:
    if not row.is_selected:
        return ZERO
    return row.total
