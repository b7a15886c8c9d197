"""Price adjustment engine.

Adjustments are named percentages ("Inflación" 2 means +2 %) applied
independently to the same base price. Older records stored them as a
``name -> fraction`` map instead of a list; both shapes are merged when a
product is loaded, and legacy names are renamed or dropped.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

from config.constants import (
    DEFAULT_PRICE_ADJUSTMENTS,
    MODIFIER_QUANTUM,
    PERCENT_QUANTUM,
    PRICE_ADJUSTMENT_ALIASES,
    PRICE_ADJUSTMENTS_TO_DROP,
)
from domain.models import AdjustedPrice, PriceAdjustment, Product
from domain.services.material_calculator import normalize_name
from domain.services.money import ZERO, round_money, to_decimal

_HUNDRED = Decimal("100")


def apply_adjustments(
    base_total: Any, adjustments: Iterable[PriceAdjustment]
) -> list[AdjustedPrice]:
    """Corrected price for each adjustment, all computed from ``base_total``."""
    base = to_decimal(base_total)
    results: list[AdjustedPrice] = []
    for adjustment in adjustments:
        percent = to_decimal(adjustment.percent)
        results.append(
            AdjustedPrice(
                name=adjustment.name,
                percent=percent,
                corrected=round_money(base * (1 + percent / _HUNDRED)),
            )
        )
    return results


def modifiers_from_adjustments(adjustments: Iterable[PriceAdjustment]) -> dict[str, Decimal]:
    """Legacy ``name -> fraction`` map; blank names are skipped."""
    modifiers: dict[str, Decimal] = {}
    for adjustment in adjustments:
        name = (adjustment.name or "").strip()
        if not name:
            continue
        fraction = to_decimal(adjustment.percent) / _HUNDRED
        modifiers[name] = fraction.quantize(MODIFIER_QUANTUM, rounding=ROUND_HALF_UP)
    return modifiers


def merge_adjustments(
    adjustments: Iterable[PriceAdjustment],
    modifiers: Optional[Mapping[str, Any]],
) -> list[PriceAdjustment]:
    """Combine list and map forms; list entries win on a case-insensitive name match."""
    merged: dict[str, PriceAdjustment] = {}
    for adjustment in adjustments:
        merged[str(adjustment.name or "").lower()] = PriceAdjustment(
            name=adjustment.name or "",
            percent=to_decimal(adjustment.percent),
        )
    for name, fraction in (modifiers or {}).items():
        key = str(name or "").lower()
        if key in merged:
            continue
        percent = (to_decimal(fraction) * _HUNDRED).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
        merged[key] = PriceAdjustment(name=str(name), percent=percent)
    return list(merged.values())


def canonical_adjustment_name(name: str) -> Optional[str]:
    """Current name for ``name``, or ``None`` when the name is obsolete."""
    key = normalize_name(name)
    if key in PRICE_ADJUSTMENTS_TO_DROP:
        return None
    return PRICE_ADJUSTMENT_ALIASES.get(key, name)


def normalize_adjustments(adjustments: Iterable[PriceAdjustment]) -> list[PriceAdjustment]:
    """Rename legacy entries, drop obsolete ones and keep the first of duplicates.

    Rows with a blank name are kept: they are rows the user has just added.
    """
    seen: set[str] = set()
    normalized: list[PriceAdjustment] = []
    for adjustment in adjustments:
        name = adjustment.name or ""
        if not name.strip():
            normalized.append(adjustment)
            continue
        canonical = canonical_adjustment_name(name.strip())
        if canonical is None:
            continue
        key = normalize_name(canonical)
        if key in seen:
            continue
        seen.add(key)
        normalized.append(PriceAdjustment(name=canonical, percent=adjustment.percent))
    return normalized


def ensure_default_adjustments(
    adjustments: Iterable[PriceAdjustment], defaults_migrated: bool
) -> tuple[list[PriceAdjustment], bool]:
    """Append the default adjustments a never-migrated product is missing.

    Returns the adjustment list and the new migration flag. Once a product
    has been migrated its list is left alone, so a default the user deleted
    is not brought back.
    """
    current = list(adjustments)
    if defaults_migrated:
        return current, True
    present = {normalize_name(adj.name) for adj in current}
    for name, percent in DEFAULT_PRICE_ADJUSTMENTS:
        if normalize_name(name) not in present:
            current.append(PriceAdjustment(name=name, percent=percent))
    return current, True


def prepare_adjustments_for_edit(
    product: Product, modifiers: Optional[Mapping[str, Any]] = None
) -> tuple[list[PriceAdjustment], bool]:
    """Merge, normalize and migrate the adjustments of a loaded product."""
    merged = merge_adjustments(product.price_adjustments, modifiers)
    normalized = normalize_adjustments(merged)
    return ensure_default_adjustments(normalized, product.defaults_migrated)


def update_adjustment(
    adjustments: list[PriceAdjustment], index: int, field_name: str, value: Any
) -> list[PriceAdjustment]:
    """Return a copy of ``adjustments`` with one row edited (percent rounded to cents)."""
    if not 0 <= index < len(adjustments):
        raise IndexError(f"Invalid adjustment index: {index}")
    current = adjustments[index]
    if field_name == "percent":
        edited = PriceAdjustment(name=current.name, percent=round_money(value))
    elif field_name == "name":
        edited = PriceAdjustment(name=str(value or ""), percent=current.percent)
    else:
        raise ValueError(f"Adjustment field is not editable: {field_name}")
    updated = list(adjustments)
    updated[index] = edited
    return updated


def clean_adjustments_for_save(adjustments: Iterable[PriceAdjustment]) -> list[PriceAdjustment]:
    """Coerce each adjustment to ``(str name, Decimal percent)``."""
    return [
        PriceAdjustment(name=adj.name or "", percent=to_decimal(adj.percent, default=ZERO))
        for adj in adjustments
    ]
