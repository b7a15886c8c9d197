from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config.container import Container  # noqa: E402
from config.logging_config import configure_logging  # noqa: E402
from domain.exceptions import ExportError  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Print sales KPIs and optionally export the full report to Excel.",
    )
    parser.add_argument("--start", default=None, help="First day included (YYYY-MM-DD).")
    parser.add_argument("--end", default=None, help="Last day included (YYYY-MM-DD).")
    parser.add_argument(
        "--out",
        dest="out_path",
        default=None,
        help="Write an .xlsx report to this path.",
    )
    parser.add_argument(
        "--products",
        dest="products_path",
        default=None,
        help="Write product costs and adjusted prices to this .xlsx path.",
    )
    args = parser.parse_args()

    container = Container()
    configure_logging(container.settings.log_level)

    try:
        if args.out_path:
            report = container.sales_report.export(args.out_path, args.start, args.end)
        else:
            report = container.sales_report.execute(args.start, args.end)
        if args.products_path:
            container.export_product_costs.execute(args.products_path)
    except ExportError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    for key, value in report.kpis.items():
        print(f"{key:>14}: {value}")
    if not report.payment_methods.empty:
        print()
        print(report.payment_methods.to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
