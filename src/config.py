"""
Environment driven settings.

All knobs are read from ``CHECKOUT_*`` environment variables so the CLI
and tests can change behaviour without code changes:

``CHECKOUT_SHIPPING_POLICY``
    ``flat`` (default) or ``weight``.
``CHECKOUT_SHIPPING_RATE``
    Rate for the chosen policy; defaults to the policy's own default.
``CHECKOUT_LOG_DIR``
    Directory for the rotating log file (``logs``).  Empty disables it.
``CHECKOUT_LOG_LEVEL``
    Root logger level name (``INFO``).
``CHECKOUT_CATALOG_PATH``
    Optional CSV/JSON catalog feed loaded by the CLI.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from errors import InvalidArgument
from fees import ShippingFeePolicy, select_fee_policy

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SHIPPING_POLICY = "flat"


@dataclass(frozen=True)
class Settings:
    shipping_policy: str = DEFAULT_SHIPPING_POLICY
    shipping_rate: Optional[float] = None
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    catalog_path: Optional[str] = None

    @property
    def log_level_number(self) -> int:
        return _parse_level(self.log_level)

    def fee_policy(self) -> ShippingFeePolicy:
        return select_fee_policy(self.shipping_policy, self.shipping_rate)


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise InvalidArgument(f"Unknown log level: {name}")
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from ``environ`` (defaults to ``os.environ``).

    :raises InvalidArgument: on a malformed rate, policy or log level.
    """
    env = os.environ if environ is None else environ

    raw_rate = env.get("CHECKOUT_SHIPPING_RATE", "").strip()
    try:
        rate = float(raw_rate) if raw_rate else None
    except ValueError:
        raise InvalidArgument(f"CHECKOUT_SHIPPING_RATE must be a number, got {raw_rate!r}")

    log_level = env.get("CHECKOUT_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip() or DEFAULT_LOG_LEVEL
    _parse_level(log_level)

    settings = Settings(
        shipping_policy=env.get("CHECKOUT_SHIPPING_POLICY", DEFAULT_SHIPPING_POLICY).strip() or DEFAULT_SHIPPING_POLICY,
        shipping_rate=rate,
        log_dir=env.get("CHECKOUT_LOG_DIR", DEFAULT_LOG_DIR).strip(),
        log_level=log_level,
        catalog_path=env.get("CHECKOUT_CATALOG_PATH") or None,
    )
    # Fail on a bad policy or rate here rather than at the first checkout
    settings.fee_policy()
    return settings
