from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from application.price_refresh import (  # noqa: E402
    CancellationToken,
    PriceRefreshItem,
    RefreshStatus,
    RunState,
)
from config.container import Container  # noqa: E402
from config.logging_config import configure_logging  # noqa: E402


def _print_progress(item: PriceRefreshItem, index: int, total: int) -> None:
    if item.status == RefreshStatus.UPDATING:
        return
    prefix = f"[{index + 1}/{total}] {item.name}"
    if item.status == RefreshStatus.SUCCESS:
        print(f"{prefix}: {item.old_price} -> {item.new_price}")
    else:
        print(f"{prefix}: ERROR {item.error}", file=sys.stderr)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Refresh component prices from their vendor links.",
    )
    parser.add_argument(
        "--category",
        default=None,
        help="Only refresh components of this category (case-insensitive).",
    )
    parser.add_argument(
        "--component",
        dest="component_id",
        default=None,
        help="Refresh a single component by id.",
    )
    args = parser.parse_args()

    container = Container()
    configure_logging(container.settings.log_level)
    components = container.list_components.execute()
    refresh = container.price_refresh(on_progress=_print_progress)

    if args.component_id:
        matches = [c for c in components if c.id == str(args.component_id)]
        if not matches:
            raise SystemExit(f"Component not found: {args.component_id}")
        item = refresh.refresh_single(matches[0])
        _print_progress(item, 0, 1)
        return 0 if item.status == RefreshStatus.SUCCESS else 1

    # Ctrl+C stops after the item in flight
    token = CancellationToken()
    signal.signal(signal.SIGINT, lambda *_: token.cancel())

    report = refresh.run(components, category=args.category, token=token)
    print(
        f"\n{len(report.succeeded)} updated, {len(report.failed)} failed, "
        f"{len(report.pending)} not reached ({report.state.value})"
    )
    if report.state == RunState.CANCELLED or report.failed:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
