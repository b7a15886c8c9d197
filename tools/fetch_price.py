from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config.logging_config import configure_logging  # noqa: E402
from config.settings import load_settings  # noqa: E402
from domain.exceptions import PriceLookupError  # noqa: E402
from infrastructure.api.price_lookup import HTTPPriceLookup  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Ask the price lookup endpoint for one vendor product URL.",
    )
    parser.add_argument("url", help="Vendor product page URL.")
    parser.add_argument(
        "--endpoint",
        default=None,
        help="Override the lookup endpoint (defaults to PRICE_LOOKUP_URL env var).",
    )
    parser.add_argument(
        "--read-timeout",
        type=float,
        default=None,
        help="Read timeout in seconds.",
    )
    parser.add_argument(
        "--minor-units",
        action="store_true",
        help="The endpoint answers price x 100.",
    )
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(settings.log_level)
    endpoint = args.endpoint or settings.price_lookup_url
    if not endpoint:
        raise SystemExit("PRICE_LOOKUP_URL not set. Add it to .env or pass --endpoint.")

    try:
        lookup = HTTPPriceLookup(
            endpoint=endpoint,
            timeout=args.read_timeout or settings.price_lookup_timeout,
            minor_units=args.minor_units or settings.price_lookup_minor_units,
        )
        price = lookup.fetch_price(args.url)
    except PriceLookupError as exc:
        print(f"{exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(f"{price}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
