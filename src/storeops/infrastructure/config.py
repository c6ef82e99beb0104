"""Runtime configuration.

Settings are read once from ``STOREOPS_*`` environment variables (after
python-dotenv has loaded a ``.env`` file, if any) into a frozen
``StoreSettings`` that is handed to whatever needs it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from storeops.domain.exceptions import ValidationError
from storeops.domain.model.order import DEFAULT_ORDER_NUMBER_PREFIX
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.product import DEFAULT_LOW_STOCK_THRESHOLD

ENV_PREFIX = "STOREOPS_"
DEFAULT_DATA_DIR = Path("data")
STORE_FILENAME = "store.json"


@dataclass(frozen=True)
class StoreSettings:
    currency: str = "USD"
    tax_rate: Decimal = Decimal("0.10")
    shipping_fee: Decimal = Decimal("10.00")
    free_shipping_threshold: Decimal | None = None
    order_number_prefix: str = DEFAULT_ORDER_NUMBER_PREFIX
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    max_commit_attempts: int = 3
    retry_backoff: float = 0.05
    data_dir: Path = field(default=DEFAULT_DATA_DIR)
    log_level: str = "WARNING"

    @property
    def store_path(self) -> Path:
        return self.data_dir / STORE_FILENAME

    def pricing_policy(self) -> PricingPolicy:
        return PricingPolicy(
            currency=self.currency,
            tax_rate=self.tax_rate,
            shipping_fee=self.shipping_fee,
            free_shipping_threshold=self.free_shipping_threshold,
        )


def load_settings(
    environ: Mapping[str, str] | None = None,
    dotenv_path: str | Path | None = None,
) -> StoreSettings:
    """Build settings from the environment.

    With no ``environ`` the process environment is used, after loading
    ``.env`` (existing variables win).  An explicit mapping is read as-is.
    """
    if environ is None:
        load_dotenv(dotenv_path)
        environ = os.environ

    def get(name: str) -> str | None:
        value = environ.get(ENV_PREFIX + name)
        if value is None or not value.strip():
            return None
        return value.strip()

    defaults = StoreSettings()
    threshold = get("FREE_SHIPPING_THRESHOLD")
    log_level = (get("LOG_LEVEL") or defaults.log_level).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValidationError(f"Invalid {ENV_PREFIX}LOG_LEVEL: {log_level!r}")

    settings = StoreSettings(
        currency=(get("CURRENCY") or defaults.currency).upper(),
        tax_rate=_decimal(get("TAX_RATE"), "TAX_RATE", defaults.tax_rate),
        shipping_fee=_decimal(get("SHIPPING_FEE"), "SHIPPING_FEE", defaults.shipping_fee),
        free_shipping_threshold=(
            _decimal(threshold, "FREE_SHIPPING_THRESHOLD", None) if threshold else None
        ),
        order_number_prefix=get("ORDER_NUMBER_PREFIX") or defaults.order_number_prefix,
        low_stock_threshold=_int(
            get("LOW_STOCK_THRESHOLD"), "LOW_STOCK_THRESHOLD", defaults.low_stock_threshold
        ),
        max_commit_attempts=_int(
            get("MAX_COMMIT_ATTEMPTS"), "MAX_COMMIT_ATTEMPTS", defaults.max_commit_attempts
        ),
        retry_backoff=float(
            _decimal(get("RETRY_BACKOFF"), "RETRY_BACKOFF", Decimal(str(defaults.retry_backoff)))
        ),
        data_dir=Path(get("DATA_DIR") or defaults.data_dir),
        log_level=log_level,
    )
    if settings.max_commit_attempts < 1:
        raise ValidationError(f"{ENV_PREFIX}MAX_COMMIT_ATTEMPTS must be at least 1")
    if settings.low_stock_threshold < 0:
        raise ValidationError(f"{ENV_PREFIX}LOW_STOCK_THRESHOLD cannot be negative")
    # Validates tax rate and shipping fee.
    settings.pricing_policy()
    return settings


def _decimal(raw: str | None, name: str, default: Decimal | None) -> Decimal | None:
    if raw is None:
        return default
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid {ENV_PREFIX}{name}: {raw!r}") from exc


def _int(raw: str | None, name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid {ENV_PREFIX}{name}: {raw!r}") from exc


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
