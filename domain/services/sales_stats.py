"""Sales statistics.

Flattens sales and their reconciled financials into a DataFrame and
derives the KPIs and groupings shown on the stats screen.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Mapping, Optional

import pandas as pd

from config.constants import OTHER_PAYMENT_METHOD, UNCATEGORIZED_LABEL
from domain.models import Product, Sale
from domain.services.sale_payments import compute_sale_financials

SALES_COLUMNS = [
    "sale_id",
    "date",
    "product_id",
    "product",
    "category",
    "customer",
    "payment_method",
    "quantity",
    "cost",
    "sale_value",
    "profit",
    "received",
    "pending",
    "status",
]

_GROUP_KEYS = {"category": "category", "product": "product", "date": "date"}
_METRICS = {"profit": "profit", "cost": "cost"}


def sales_frame(sales: Iterable[Sale], products_by_id: Mapping[str, Product]) -> pd.DataFrame:
    """One row per sale joined with its product.

    ``profit`` is the real (or effective) sale value minus material cost.
    """
    rows = []
    for sale in sales:
        fin = compute_sale_financials(sale)
        product = products_by_id.get(str(sale.product_id))
        sale_value = fin.real_sale_value if fin.real_sale_value is not None else fin.effective_sale_value
        rows.append(
            {
                "sale_id": sale.id,
                "date": sale.date or None,
                "product_id": sale.product_id,
                "product": product.name if product is not None else f"#{sale.product_id}",
                "category": (product.category if product is not None else "") or UNCATEGORIZED_LABEL,
                "customer": sale.customer_name or "",
                "payment_method": sale.payment_method or OTHER_PAYMENT_METHOD,
                "quantity": float(fin.quantity),
                "cost": float(fin.cost_materials),
                "sale_value": float(sale_value),
                "profit": float(fin.real_profit),
                "received": float(fin.payment_received),
                "pending": float(fin.payment_pending),
                "status": fin.payment_status,
            }
        )
    frame = pd.DataFrame(rows, columns=SALES_COLUMNS)
    frame["date"] = pd.to_datetime(frame["date"], errors="coerce")
    return frame


def filter_by_date(
    frame: pd.DataFrame,
    start: Optional[date | str] = None,
    end: Optional[date | str] = None,
) -> pd.DataFrame:
    """Keep sales dated within [start, end]; undated sales are dropped when a bound is set.

    Bounds given in the wrong order are swapped.
    """
    if start is None and end is None:
        return frame
    start_ts = pd.Timestamp(start) if start is not None else None
    end_ts = pd.Timestamp(end) if end is not None else None
    if start_ts is not None and end_ts is not None and start_ts > end_ts:
        start_ts, end_ts = end_ts, start_ts

    mask = frame["date"].notna()
    if start_ts is not None:
        mask &= frame["date"] >= start_ts
    if end_ts is not None:
        mask &= frame["date"] <= end_ts
    return frame[mask]


def compute_kpis(frame: pd.DataFrame) -> Dict[str, float]:
    count = int(len(frame))
    profit_sum = float(frame["profit"].sum()) if count else 0.0
    cost_sum = float(frame["cost"].sum()) if count else 0.0
    return {
        "count": count,
        "profit_sum": round(profit_sum, 2),
        "profit_avg": round(profit_sum / count, 2) if count else 0.0,
        "cost_sum": round(cost_sum, 2),
        "cost_avg": round(cost_sum / count, 2) if count else 0.0,
        "received_sum": round(float(frame["received"].sum()), 2) if count else 0.0,
        "pending_sum": round(float(frame["pending"].sum()), 2) if count else 0.0,
    }


def payment_method_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Sale count and share per payment method, most used first."""
    if frame.empty:
        return pd.DataFrame(columns=["method", "count", "pct"])
    counts = frame.groupby("payment_method").size().reset_index(name="count")
    counts = counts.rename(columns={"payment_method": "method"})
    counts["pct"] = (counts["count"] * 100.0 / counts["count"].sum()).round(2)
    return counts.sort_values(["count", "method"], ascending=[False, True]).reset_index(drop=True)


def totals_by(frame: pd.DataFrame, key: str, metric: str = "profit") -> pd.DataFrame:
    """Profit and cost totals grouped by category, product or date.

    Date groupings are chronological; the others are sorted by ``metric``
    descending.

    Raises:
        ValueError: If ``key`` or ``metric`` is unknown
    """
    if key not in _GROUP_KEYS:
        raise ValueError(f"Unknown grouping: {key}")
    if metric not in _METRICS:
        raise ValueError(f"Unknown metric: {metric}")

    column = _GROUP_KEYS[key]
    if frame.empty:
        return pd.DataFrame(columns=[column, "profit", "cost"])

    source = frame
    if key == "date":
        source = frame.assign(date=frame["date"].dt.strftime("%Y-%m-%d").fillna("Sin fecha"))
    grouped = source.groupby(column, as_index=False)[["profit", "cost"]].sum()
    grouped[["profit", "cost"]] = grouped[["profit", "cost"]].round(2)
    if key == "date":
        return grouped.sort_values(column).reset_index(drop=True)
    return grouped.sort_values([_METRICS[metric], column], ascending=[False, True]).reset_index(drop=True)
