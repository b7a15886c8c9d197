"""Record store document mapping.

Documents are the camelCase JSON blobs kept by the record store. They are
validated and converted to domain models here, at the boundary, and keys
this module does not know about are carried through untouched.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from config.constants import DEFAULT_PAYMENT_METHOD, PRODUCT_TYPE_COMPOSITE, PRODUCT_TYPE_SIMPLE
from domain.exceptions import InvalidDocumentError
from domain.models import (
    Component,
    CompositeItem,
    CompositeProduct,
    FabricRow,
    OtherMaterialRow,
    PriceAdjustment,
    Product,
    Sale,
    SimpleProduct,
)
from domain.services.money import is_blank, parse_money_or_none, to_decimal
from domain.services.price_adjustments import modifiers_from_adjustments

_COMPONENT_KEYS = {"id", "name", "category", "price", "unitDivisor", "available", "link", "featured"}
_PRODUCT_KEYS = {
    "id",
    "name",
    "category",
    "type",
    "available",
    "featured",
    "comment",
    "image",
    "price",
    "costoConfeccion",
    "componentes",
    "compositeItems",
    "priceAdjustments",
    "modificadores",
    "defaultsMigrated",
}
_SALE_KEYS = {
    "id",
    "productId",
    "quantity",
    "date",
    "customerName",
    "unitPrice",
    "gananciaUnit",
    "total",
    "realSaleValue",
    "paymentReceived",
    "paymentPending",
    "paymentMethod",
    "paymentNotes",
    "paymentStatus",
}

_FABRIC_FIELDS = {
    "ancho_tela_cm": "anchoTelaCm",
    "precio_por_metro": "precioPorMetro",
    "valor_cm2": "valorCm2",
    "ancho_cm": "anchoCm",
    "largo_cm": "largoCm",
    "material_puro_cm2": "materialPuroCm2",
    "porcentaje_desperdicio": "porcentajeDesperdicio",
    "total_material_cm2": "totalMaterialCm2",
    "costo_material": "costoMaterial",
}


def _extra(document: Mapping[str, Any], known: set[str]) -> Dict[str, Any]:
    return {key: value for key, value in document.items() if key not in known}


def _number_or_none(value: Any) -> Optional[Decimal]:
    return to_decimal(value, default=None)


def _number(value: Any) -> Decimal:
    return to_decimal(value)


def _json_number(value: Optional[Decimal]) -> Any:
    """Decimal -> int/float for JSON documents; ``None`` passes through."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _id_or_none(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value)


def _require_mapping(document: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(document, Mapping):
        raise InvalidDocumentError(f"{kind} document must be an object, got {type(document).__name__}")
    return document


# ============================================================================
# Components
# ============================================================================


def component_from_document(document: Any) -> Component:
    doc = _require_mapping(document, "Component")
    divisor = _number(doc.get("unitDivisor", 1))
    try:
        return Component(
            id=_id_or_none(doc.get("id")),
            name=str(doc.get("name") or ""),
            category=str(doc.get("category") or ""),
            price=_number(doc.get("price")),
            unit_divisor=int(divisor) if divisor >= 1 else 1,
            available=_number(doc.get("available")),
            link=str(doc.get("link") or "").strip() or None,
            featured=bool(doc.get("featured", False)),
            extra=_extra(doc, _COMPONENT_KEYS),
        )
    except ValueError as exc:
        raise InvalidDocumentError(f"Invalid component document: {exc}") from exc


def component_to_document(component: Component) -> Dict[str, Any]:
    document = dict(component.extra)
    document.update(
        {
            "id": component.id,
            "name": component.name,
            "category": component.category,
            "price": _json_number(component.price),
            "unitDivisor": component.unit_divisor,
            "available": _json_number(component.available),
            "link": component.link or "",
            "featured": component.featured,
        }
    )
    return document


# ============================================================================
# Product rows
# ============================================================================


def fabric_row_from_document(document: Any) -> FabricRow:
    doc = _require_mapping(document, "Fabric row")
    values = {field: _number_or_none(doc.get(key)) for field, key in _FABRIC_FIELDS.items()}
    return FabricRow(component_id=_id_or_none(doc.get("componentId")), **values)


def fabric_row_to_document(row: FabricRow) -> Dict[str, Any]:
    document: Dict[str, Any] = {"componentId": row.component_id or ""}
    for field, key in _FABRIC_FIELDS.items():
        document[key] = _json_number(getattr(row, field))
    return document


def other_row_from_document(document: Any) -> OtherMaterialRow:
    doc = _require_mapping(document, "Material row")
    return OtherMaterialRow(
        component_id=_id_or_none(doc.get("componentId")),
        unidades=_number_or_none(doc.get("unidades")),
        precio_unitario=_number_or_none(doc.get("precioUnitario")),
        tag_confeccion=bool(doc.get("tagConfeccion", False)),
    )


def other_row_to_document(row: OtherMaterialRow) -> Dict[str, Any]:
    return {
        "componentId": row.component_id or "",
        "unidades": _json_number(row.unidades),
        "precioUnitario": _json_number(row.precio_unitario),
        "tagConfeccion": row.tag_confeccion,
    }


def _adjustments_from_document(raw: Any) -> list[PriceAdjustment]:
    if not isinstance(raw, list):
        return []
    adjustments = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        adjustments.append(
            PriceAdjustment(name=str(entry.get("name") or ""), percent=_number(entry.get("percent")))
        )
    return adjustments


# ============================================================================
# Products
# ============================================================================


def product_type(document: Mapping[str, Any]) -> str:
    raw = document.get("type")
    kind = str(raw or PRODUCT_TYPE_SIMPLE).strip().lower()
    if kind not in (PRODUCT_TYPE_SIMPLE, PRODUCT_TYPE_COMPOSITE):
        raise InvalidDocumentError(f"Unknown product type: {raw!r}")
    return kind


def product_modifiers(document: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Legacy ``name -> fraction`` map, from ``pricing`` or the document root."""
    pricing = document.get("pricing")
    if isinstance(pricing, Mapping) and isinstance(pricing.get("modificadores"), Mapping):
        return dict(pricing["modificadores"])
    if isinstance(document.get("modificadores"), Mapping):
        return dict(document["modificadores"])
    return None


def product_from_document(document: Any) -> Product:
    """Build the product variant selected by the document's ``type``.

    Raises:
        InvalidDocumentError: On an unknown type or a composite with material rows
    """
    doc = _require_mapping(document, "Product")
    kind = product_type(doc)
    componentes = doc.get("componentes") if isinstance(doc.get("componentes"), Mapping) else {}
    raw_telas = componentes.get("telas") if isinstance(componentes.get("telas"), list) else []
    raw_otros = componentes.get("otros") if isinstance(componentes.get("otros"), list) else []

    common = {
        "id": _id_or_none(doc.get("id")),
        "name": str(doc.get("name") or ""),
        "available": int(_number(doc.get("available"))),
        "featured": bool(doc.get("featured", False)),
        "comment": str(doc.get("comment") or ""),
        "image": doc.get("image"),
        "price_adjustments": _adjustments_from_document(doc.get("priceAdjustments")),
        "defaults_migrated": bool(doc.get("defaultsMigrated", False)),
        "extra": _extra(doc, _PRODUCT_KEYS),
    }

    if kind == PRODUCT_TYPE_COMPOSITE:
        if raw_telas or raw_otros:
            raise InvalidDocumentError(
                f"Composite product {common['id']!r} cannot contain material rows"
            )
        items = []
        for entry in doc.get("compositeItems") or []:
            if not isinstance(entry, Mapping) or is_blank(entry.get("productId")):
                continue
            items.append(
                CompositeItem(
                    product_id=str(entry["productId"]),
                    extra={k: v for k, v in entry.items() if k != "productId"},
                )
            )
        return CompositeProduct(composite_items=items, **common)

    return SimpleProduct(
        category=str(doc.get("category") or ""),
        price=_number(doc.get("price")),
        costo_confeccion=_number(doc.get("costoConfeccion")),
        telas=[fabric_row_from_document(row) for row in raw_telas],
        otros=[other_row_from_document(row) for row in raw_otros],
        **common,
    )


def product_to_document(product: Product) -> Dict[str, Any]:
    document = dict(product.extra)
    modifiers = {
        name: float(fraction) for name, fraction in modifiers_from_adjustments(product.price_adjustments).items()
    }
    pricing = dict(document.get("pricing") or {})
    pricing["modificadores"] = modifiers
    document.update(
        {
            "id": product.id,
            "name": product.name,
            "category": product.category,
            "type": product.type,
            "available": product.available,
            "featured": product.featured,
            "comment": product.comment,
            "priceAdjustments": [
                {"name": adj.name, "percent": _json_number(adj.percent)}
                for adj in product.price_adjustments
            ],
            "modificadores": modifiers,
            "pricing": pricing,
            "defaultsMigrated": product.defaults_migrated,
        }
    )
    if product.image is not None:
        document["image"] = product.image
    if product.id is None:
        document.pop("id")

    if isinstance(product, CompositeProduct):
        document["compositeItems"] = [
            {**item.extra, "productId": item.product_id} for item in product.composite_items
        ]
        document["componentes"] = {"telas": [], "otros": []}
        return document

    document.update(
        {
            "price": _json_number(product.price),
            "costoConfeccion": _json_number(product.costo_confeccion),
            "componentes": {
                "telas": [fabric_row_to_document(row) for row in product.telas],
                "otros": [other_row_to_document(row) for row in product.otros],
            },
        }
    )
    return document


# ============================================================================
# Sales
# ============================================================================


def sale_from_document(document: Any) -> Sale:
    doc = _require_mapping(document, "Sale")
    return Sale(
        id=_id_or_none(doc.get("id")),
        product_id=str(doc.get("productId") or ""),
        quantity=_number(doc.get("quantity")),
        date=doc.get("date") or None,
        customer_name=doc.get("customerName") or None,
        unit_price=_number(doc.get("unitPrice")),
        ganancia_unit=_number(doc.get("gananciaUnit")),
        total=_number_or_none(doc.get("total")),
        real_sale_value=parse_money_or_none(doc.get("realSaleValue")),
        payment_received=_number_or_none(doc.get("paymentReceived")),
        payment_pending=_number_or_none(doc.get("paymentPending")),
        payment_method=str(doc.get("paymentMethod") or DEFAULT_PAYMENT_METHOD),
        payment_notes=str(doc.get("paymentNotes") or ""),
        payment_status=doc.get("paymentStatus") or None,
        extra=_extra(doc, _SALE_KEYS),
    )


def sale_to_document(sale: Sale) -> Dict[str, Any]:
    document = dict(sale.extra)
    document.update(
        {
            "productId": sale.product_id,
            "quantity": _json_number(sale.quantity),
            "date": sale.date,
            "customerName": sale.customer_name,
            "unitPrice": _json_number(sale.unit_price),
            "gananciaUnit": _json_number(sale.ganancia_unit),
            "total": _json_number(sale.total),
            "realSaleValue": _json_number(sale.real_sale_value),
            "paymentReceived": _json_number(sale.payment_received),
            "paymentPending": _json_number(sale.payment_pending),
            "paymentMethod": sale.payment_method,
            "paymentNotes": sale.payment_notes,
            "paymentStatus": sale.payment_status,
        }
    )
    if sale.id is not None:
        document["id"] = sale.id
    return document
