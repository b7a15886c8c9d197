"""Runtime settings read from the environment (.env supported)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from config.constants import PRICE_LOOKUP_READ_TIMEOUT, STORE_DIRECTORY

_TRUE_VALUES = {"1", "true", "yes", "si", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration values."""

    store_path: str = STORE_DIRECTORY
    api_url: Optional[str] = None
    price_lookup_url: Optional[str] = None
    price_lookup_timeout: float = PRICE_LOOKUP_READ_TIMEOUT
    price_lookup_minor_units: bool = False
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from environment variables.

    Reads a local .env file first so the variables can live next to the data.
    """
    load_dotenv()
    return Settings(
        store_path=os.getenv("LEDGER_STORE_PATH") or STORE_DIRECTORY,
        api_url=os.getenv("LEDGER_API_URL") or None,
        price_lookup_url=os.getenv("PRICE_LOOKUP_URL") or None,
        price_lookup_timeout=_env_float("PRICE_LOOKUP_TIMEOUT", PRICE_LOOKUP_READ_TIMEOUT),
        price_lookup_minor_units=_env_bool("PRICE_LOOKUP_MINOR_UNITS"),
        log_level=(os.getenv("LEDGER_LOG_LEVEL") or "INFO").upper(),
    )
