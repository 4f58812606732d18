"""Runtime configuration for the laundry management service.

Settings are read from the process environment, optionally primed from a
``.env`` file. The inventory consumption table can be replaced by pointing
``LAUNDRY_CONSUMPTION_TABLE`` at a JSON file shaped like
``{"wash": {"Detergent": 0.05}}``.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .domain import ServiceType

logger = logging.getLogger(__name__)

ConsumptionTable = Mapping[str, Mapping[str, float]]

# Quantity of each consumable used per kilogram of laundry.
DEFAULT_CONSUMPTION_TABLE: Dict[str, Dict[str, float]] = {
    ServiceType.WASH.value: {"Detergent": 0.05, "Bleach": 0.01},
    ServiceType.DRY.value: {},
    ServiceType.FOLD.value: {"Starch": 0.02},
    ServiceType.WASH_DRY.value: {"Detergent": 0.05, "Bleach": 0.01},
    ServiceType.WASH_DRY_FOLD.value: {
        "Detergent": 0.05,
        "Bleach": 0.01,
        "Fabric Softener": 0.03,
        "Starch": 0.02,
    },
}

# (base_price, price_per_kg) seeded into an empty price list.
DEFAULT_PRICING: Dict[str, Tuple[float, float]] = {
    ServiceType.WASH.value: (10.0, 25.0),
    ServiceType.DRY.value: (10.0, 20.0),
    ServiceType.FOLD.value: (5.0, 10.0),
    ServiceType.WASH_DRY.value: (12.0, 30.0),
    ServiceType.WASH_DRY_FOLD.value: (12.0, 35.0),
}

DEFAULT_ENV_FILE = Path(".env")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass(slots=True)
class Settings:
    """Values controlling storage, serving and business defaults."""

    database_path: str = "laundry.sqlite3"
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    default_payment_method: str = "cash"
    seed_demo_data: bool = False
    top_customers_limit: int = 20
    consumption_table: ConsumptionTable = field(
        default_factory=lambda: {
            service: dict(items) for service, items in DEFAULT_CONSUMPTION_TABLE.items()
        }
    )


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from exc


def _env_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {raw!r}")


def load_consumption_table(path: str) -> Dict[str, Dict[str, float]]:
    """Read a consumption table from a JSON file and validate its shape."""

    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read consumption table {path!r}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Consumption table {path!r} is not valid JSON") from exc

    if not isinstance(data, dict):
        raise ConfigurationError("Consumption table must map service types to items")
    table: Dict[str, Dict[str, float]] = {}
    for service_type, items in data.items():
        if not isinstance(items, dict):
            raise ConfigurationError(
                f"Consumption entry for {service_type!r} must map item names to rates"
            )
        rates: Dict[str, float] = {}
        for item_name, rate in items.items():
            if (
                isinstance(rate, bool)
                or not isinstance(rate, (int, float))
                or not math.isfinite(rate)
                or rate < 0
            ):
                raise ConfigurationError(
                    f"Rate for {item_name!r} in {service_type!r} must be a finite non-negative number"
                )
            rates[str(item_name)] = float(rate)
        table[str(service_type)] = rates
    logger.info("Loaded consumption table for %d service types from %s", len(table), path)
    return table


def load_settings(
    env_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from the environment.

    When ``environ`` is omitted the ``.env`` file (if present) is loaded into
    ``os.environ`` first; existing variables are not overridden.
    """

    if environ is None:
        load_dotenv(env_file or DEFAULT_ENV_FILE)
        environ = os.environ

    defaults = Settings()
    log_level = environ.get("LAUNDRY_LOG_LEVEL", defaults.log_level).strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"Unknown log level {log_level!r}")
    top_customers_limit = _env_int(
        environ, "LAUNDRY_TOP_CUSTOMERS_LIMIT", defaults.top_customers_limit
    )
    if top_customers_limit < 1:
        raise ConfigurationError("LAUNDRY_TOP_CUSTOMERS_LIMIT must be at least 1")

    consumption_path = environ.get("LAUNDRY_CONSUMPTION_TABLE", "").strip()
    consumption_table = (
        load_consumption_table(consumption_path)
        if consumption_path
        else defaults.consumption_table
    )

    return Settings(
        database_path=environ.get("LAUNDRY_DATABASE_PATH", defaults.database_path),
        host=environ.get("LAUNDRY_HOST", defaults.host),
        port=_env_int(environ, "LAUNDRY_PORT", defaults.port),
        log_level=log_level,
        default_payment_method=environ.get(
            "LAUNDRY_DEFAULT_PAYMENT_METHOD", defaults.default_payment_method
        ).strip()
        or defaults.default_payment_method,
        seed_demo_data=_env_bool(environ, "LAUNDRY_SEED_DEMO_DATA", defaults.seed_demo_data),
        top_customers_limit=top_customers_limit,
        consumption_table=consumption_table,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


__all__ = [
    "ConsumptionTable",
    "DEFAULT_CONSUMPTION_TABLE",
    "DEFAULT_PRICING",
    "ConfigurationError",
    "Settings",
    "load_consumption_table",
    "load_settings",
    "configure_logging",
]
