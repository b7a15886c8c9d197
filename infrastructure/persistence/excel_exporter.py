"""Excel export functionality.

Exports the sales statistics and product cost lists to Excel with formatting.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from domain.exceptions import ExportError
from domain.models import AdjustedPrice, Product, ProductCostSummary
from domain.services.product_costing import total_with_confeccion

_HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
_MONEY_FORMAT = "#,##0.00"

_SALES_HEADERS = {
    "date": "Fecha",
    "product": "Producto",
    "category": "Categoría",
    "customer": "Cliente",
    "payment_method": "Medio de pago",
    "quantity": "Cantidad",
    "cost": "Costo materiales",
    "sale_value": "Valor venta",
    "profit": "Ganancia real",
    "received": "Cobrado",
    "pending": "Pendiente",
    "status": "Estado",
}

_KPI_LABELS = {
    "count": "Ventas",
    "profit_sum": "Ganancia total",
    "profit_avg": "Ganancia promedio",
    "cost_sum": "Costo total",
    "cost_avg": "Costo promedio",
    "received_sum": "Cobrado",
    "pending_sum": "Pendiente de cobro",
}


class ExcelExporter:
    """Export ledger reports to Excel format."""

    def export_sales_report(
        self,
        sales: pd.DataFrame,
        kpis: Dict[str, float],
        groupings: Dict[str, pd.DataFrame],
        output_path: Path | str,
    ) -> None:
        """Export the sales list, KPIs and grouped totals.

        Args:
            sales: Frame built by ``sales_frame`` (already filtered)
            kpis: Output of ``compute_kpis``
            groupings: Sheet title -> grouped frame (one sheet each)
            output_path: Path to save Excel file

        Raises:
            ExportError: If export fails
        """
        try:
            wb = Workbook()
            wb.remove(wb.active)  # Remove default sheet

            self._create_summary_sheet(wb, kpis)
            self._create_sales_sheet(wb, sales)
            for title, frame in groupings.items():
                self._create_frame_sheet(wb, title, frame)

            wb.save(output_path)

        except Exception as exc:
            raise ExportError(f"Failed to export to Excel: {exc}") from exc

    def export_product_costs(
        self,
        rows: Iterable[tuple[Product, ProductCostSummary, Sequence[AdjustedPrice]]],
        output_path: Path | str,
    ) -> None:
        """Export one line per product with its cost and corrected prices.

        Raises:
            ExportError: If export fails
        """
        try:
            rows = list(rows)
            adjustment_names: List[str] = []
            for _, _, adjusted in rows:
                for price in adjusted:
                    if price.name and price.name not in adjustment_names:
                        adjustment_names.append(price.name)

            wb = Workbook()
            ws = wb.active
            ws.title = "Productos"
            headers = ["Producto", "Categoría", "Tipo", "Costo materiales", "Confección", "Total"]
            headers.extend(adjustment_names)
            self._write_header(ws, headers)

            for product, summary, adjusted in rows:
                by_name = {price.name: float(price.corrected) for price in adjusted}
                ws.append(
                    [
                        product.name,
                        product.category,
                        product.type,
                        float(summary.cost_materials),
                        float(summary.estimated_gain),
                        float(total_with_confeccion(summary)),
                    ]
                    + [by_name.get(name, "") for name in adjustment_names]
                )

            self._format_money(ws, first_col=4, last_col=len(headers))
            self._autosize(ws)
            wb.save(output_path)

        except Exception as exc:
            raise ExportError(f"Failed to export to Excel: {exc}") from exc

    def _create_summary_sheet(self, wb: Workbook, kpis: Dict[str, float]) -> None:
        ws = wb.create_sheet("Resumen")
        self._write_header(ws, ["Indicador", "Valor"])
        for key, label in _KPI_LABELS.items():
            ws.append([label, kpis.get(key, 0)])
        self._format_money(ws, first_col=2, last_col=2, first_row=3)
        self._autosize(ws)

    def _create_sales_sheet(self, wb: Workbook, sales: pd.DataFrame) -> None:
        ws = wb.create_sheet("Ventas")
        columns = [column for column in _SALES_HEADERS if column in sales.columns]
        self._write_header(ws, [_SALES_HEADERS[column] for column in columns])

        for record in sales[columns].to_dict("records"):
            ws.append([self._cell_value(column, record[column]) for column in columns])

        # Total row
        if not sales.empty:
            ws.append(
                [
                    "TOTAL" if index == 0 else (
                        round(float(sales[column].sum()), 2)
                        if column in ("cost", "sale_value", "profit", "received", "pending")
                        else ""
                    )
                    for index, column in enumerate(columns)
                ]
            )
            for cell in ws[ws.max_row]:
                cell.font = Font(bold=True)

        money_cols = [i for i, column in enumerate(columns, 1) if column in ("cost", "sale_value", "profit", "received", "pending")]
        if money_cols:
            self._format_money(ws, first_col=min(money_cols), last_col=max(money_cols))
        self._autosize(ws)

    def _create_frame_sheet(self, wb: Workbook, title: str, frame: pd.DataFrame) -> None:
        ws = wb.create_sheet(title[:31])
        self._write_header(ws, [str(column) for column in frame.columns])
        for record in frame.itertuples(index=False):
            ws.append([value.item() if hasattr(value, "item") else value for value in record])
        self._autosize(ws)

    def _cell_value(self, column: str, value: Any) -> Any:
        if column == "date":
            return value.strftime("%Y-%m-%d") if not pd.isna(value) else ""
        if hasattr(value, "item"):
            return value.item()
        return value

    def _write_header(self, ws: Worksheet, headers: List[str]) -> None:
        ws.append(headers)
        for col_num, _ in enumerate(headers, 1):
            cell = ws.cell(1, col_num)
            cell.fill = _HEADER_FILL
            cell.font = Font(bold=True, color="FFFFFF")
            cell.alignment = Alignment(horizontal="center", vertical="center")

    def _format_money(self, ws: Worksheet, first_col: int, last_col: int, first_row: int = 2) -> None:
        for row in ws.iter_rows(min_row=first_row, min_col=first_col, max_col=last_col):
            for cell in row:
                if isinstance(cell.value, (int, float)):
                    cell.number_format = _MONEY_FORMAT

    def _autosize(self, ws: Worksheet) -> None:
        for column in ws.columns:
            max_length = 0
            column_letter = get_column_letter(column[0].column)
            for cell in column:
                if cell.value:
                    max_length = max(max_length, len(str(cell.value)))
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)
