"""External price lookup.

The vendor page is scraped by a separate endpoint; this client only asks
it for the price of one product URL and validates the answer.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from config.constants import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    PRICE_LOOKUP_READ_TIMEOUT,
    PRICE_LOOKUP_USER_AGENT,
    VENDOR_MINOR_UNIT_DIVISOR,
)
from domain.exceptions import (
    PriceLookupHTTPError,
    PriceLookupNotConfiguredError,
    PriceLookupTimeoutError,
    PriceNotNumericError,
)
from domain.services.money import to_decimal

logger = logging.getLogger(__name__)


def parse_price_payload(payload: Any, minor_units: bool = False) -> Decimal:
    """Extract the price from a lookup response body.

    Args:
        payload: Decoded JSON body, expected ``{"price": number}``
        minor_units: Whether the price comes as price x 100

    Raises:
        PriceNotNumericError: If the body has no finite numeric price
    """
    if not isinstance(payload, dict) or "price" not in payload:
        raise PriceNotNumericError("Price not found in lookup response")
    raw = payload.get("price")
    if isinstance(raw, bool):
        raise PriceNotNumericError(f"Price value is not numeric: {raw!r}")
    price = to_decimal(raw, default=None)
    if price is None:
        raise PriceNotNumericError(f"Price value is not numeric: {raw!r}")
    if minor_units:
        price = price / VENDOR_MINOR_UNIT_DIVISOR
    return price


class PriceLookup(ABC):
    """Abstract external price lookup."""

    @abstractmethod
    def fetch_price(self, url: str) -> Decimal:
        """Get the current price published at a vendor product page.

        Args:
            url: Vendor product page URL

        Returns:
            Price as a Decimal in the store currency

        Raises:
            PriceLookupError: If the page is unreachable or has no price
        """


class HTTPPriceLookup(PriceLookup):
    """Price lookup through a scraper endpoint (``GET endpoint?url=...``)."""

    def __init__(
        self,
        endpoint: Optional[str],
        timeout: float = PRICE_LOOKUP_READ_TIMEOUT,
        minor_units: bool = False,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize lookup.

        Args:
            endpoint: Scraper endpoint URL
            timeout: Read timeout in seconds
            minor_units: Whether the endpoint answers price x 100
            session: Pre-configured session (if None, a pooled one is created)
        """
        if not endpoint:
            raise PriceLookupNotConfiguredError(
                "PRICE_LOOKUP_URL not found. Set environment variable or pass to constructor."
            )
        self._endpoint = endpoint
        self._timeout = (HTTP_CONNECT_TIMEOUT, timeout)
        self._minor_units = minor_units
        self._session = session if session is not None else self._create_session()

    def _create_session(self) -> requests.Session:
        # No retries: one vendor request per item keeps the vendor site unloaded
        session = requests.Session()
        adapter = HTTPAdapter(
            max_retries=0,
            pool_connections=HTTP_POOL_CONNECTIONS,
            pool_maxsize=HTTP_POOL_MAXSIZE,
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({"User-Agent": PRICE_LOOKUP_USER_AGENT})
        return session

    def fetch_price(self, url: str) -> Decimal:
        if not url or not str(url).strip():
            raise PriceLookupHTTPError("Missing product URL")

        params: Dict[str, Any] = {"url": str(url).strip()}
        try:
            response = self._session.get(self._endpoint, params=params, timeout=self._timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise PriceLookupTimeoutError(f"Price lookup timed out for {url}") from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise PriceLookupHTTPError(
                f"Price lookup answered HTTP {status} for {url}",
                status_code=status,
            ) from exc
        except requests.RequestException as exc:
            raise PriceLookupHTTPError(f"Network error during price lookup: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise PriceNotNumericError(f"Price lookup answered invalid JSON for {url}") from exc

        price = parse_price_payload(payload, minor_units=self._minor_units)
        logger.debug("Price lookup %s -> %s", url, price)
        return price
