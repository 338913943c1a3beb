"""Configuration for the Scryfall lookup and the Shopify catalog output."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Scryfall accepts at most 75 identifiers per collection call
MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 75


def load_env_file(path: Optional[Path] = None) -> None:
    """Load KEY=VALUE (or KEY: VALUE) lines into os.environ.

    Existing environment variables always win over the file.
    """
    env_path = path or PROJECT_ROOT / ".env"
    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            # Support both KEY=VALUE and KEY: VALUE formats
            if "=" in line:
                key, _, value = line.partition("=")
            elif ": " in line:
                key, _, value = line.partition(": ")
            else:
                continue
            os.environ.setdefault(key.strip(), value.strip())


def _env_float(name: str, default: float, positive: bool = False) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default
    if positive and value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def _env_int(
    name: str,
    default: int,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        logger.warning(
            f"Ignoring out-of-range {name}={value} (allowed {minimum}..{maximum}), using {default}"
        )
        return default
    return value


@dataclass
class ScryfallConfig:
    """Configuration for the Scryfall collection lookup."""
    base_url: str = "https://api.scryfall.com"
    user_agent: str = "ScryfallCatalog/1.0"
    batch_size: int = MAX_BATCH_SIZE
    rate_limit_per_second: float = 10.0
    dispatch_delay_seconds: float = 0.2
    retry_backoff_seconds: float = 2.0
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if not MIN_BATCH_SIZE <= self.batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, "
                f"got {self.batch_size}"
            )
        if self.rate_limit_per_second <= 0:
            raise ValueError(
                f"rate_limit_per_second must be positive, got {self.rate_limit_per_second}"
            )

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "ScryfallConfig":
        """Build a config from SCRYFALL_* environment variables.

        A .env file in the project root is loaded first if present.
        """
        load_env_file(env_path)
        defaults = cls()
        return cls(
            base_url=os.environ.get("SCRYFALL_BASE_URL", defaults.base_url).rstrip("/"),
            user_agent=os.environ.get("SCRYFALL_USER_AGENT", defaults.user_agent),
            batch_size=_env_int(
                "SCRYFALL_BATCH_SIZE", defaults.batch_size, MIN_BATCH_SIZE, MAX_BATCH_SIZE
            ),
            rate_limit_per_second=_env_float(
                "SCRYFALL_RATE_LIMIT_PER_SECOND", defaults.rate_limit_per_second, positive=True
            ),
            dispatch_delay_seconds=_env_float(
                "SCRYFALL_DISPATCH_DELAY_SECONDS", defaults.dispatch_delay_seconds
            ),
            retry_backoff_seconds=_env_float(
                "SCRYFALL_RETRY_BACKOFF_SECONDS", defaults.retry_backoff_seconds
            ),
            timeout_seconds=_env_float("SCRYFALL_TIMEOUT_SECONDS", defaults.timeout_seconds),
        )


@dataclass
class CatalogConfig:
    """Fixed Shopify product values written into every catalog row."""
    vendor: str = "Wizards of the Coast"
    product_category: str = (
        "Arts & Entertainment > Hobbies & Creative Arts > Collectibles"
        " > Collectible Trading Cards"
    )
    product_type: str = "MTG Single"
    published: str = "TRUE"
    grams: int = 2
    weight_unit: str = "g"
    inventory_tracker: str = "shopify"
    inventory_policy: str = "deny"
    fulfillment_service: str = "manual"
    requires_shipping: str = "TRUE"
    taxable: str = "TRUE"
    status: str = "active"
