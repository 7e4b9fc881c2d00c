"""
Runtime configuration and wiring.

Configuration comes from environment variables or a YAML file:

    EXCHANGE_VENUE_ADDRESS       venue address bound into every order hash (required)
    EXCHANGE_FEE_ASSET_ADDRESS   asset fees are paid in (optional)
    EXCHANGE_LOG_LEVEL           logging level name (default INFO)

YAML files use the same keys in lowercase without the prefix
(`venue_address`, `fee_asset_address`, `log_level`).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

import yaml

from ..core.exchange import Exchange
from ..core.settlement import BalanceSettlement
from ..core.signatures import Secp256k1SignatureVerifier
from ..state.balances import BalanceTable
from ..state.canonical import canonical_address
from ..state.fill_ledger import FillLedger

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _optional_address(value: Any, *, name: str) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return canonical_address(value, name=name)


@dataclass(frozen=True)
class ExchangeConfig:
    venue_address: str
    fee_asset_address: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        object.__setattr__(self, "venue_address", canonical_address(self.venue_address, name="venue_address"))
        object.__setattr__(
            self, "fee_asset_address", _optional_address(self.fee_asset_address, name="fee_asset_address"),
        )
        level = str(self.log_level).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}: {self.log_level!r}")
        object.__setattr__(self, "log_level", level)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExchangeConfig":
        if not isinstance(data, Mapping):
            raise TypeError("config must be a mapping")
        unknown = set(data) - {"venue_address", "fee_asset_address", "log_level"}
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(sorted(unknown))}")
        if "venue_address" not in data:
            raise ValueError("Missing required config key: venue_address")
        return cls(
            venue_address=data["venue_address"],
            fee_asset_address=data.get("fee_asset_address"),
            log_level=data.get("log_level", "INFO"),
        )

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        venue = _env_str("EXCHANGE_VENUE_ADDRESS", "")
        if not venue:
            raise ValueError("EXCHANGE_VENUE_ADDRESS must be set")
        return cls(
            venue_address=venue,
            fee_asset_address=_env_str("EXCHANGE_FEE_ASSET_ADDRESS", "") or None,
            log_level=_env_str("EXCHANGE_LOG_LEVEL", "INFO"),
        )


def load_config(path: Union[str, Path]) -> ExchangeConfig:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    return ExchangeConfig.from_mapping(obj)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper()), format=_LOG_FORMAT)


def build_exchange(
    config: ExchangeConfig,
    balances: Optional[BalanceTable] = None,
    *,
    ledger: Optional[FillLedger] = None,
    clock: Optional[Callable[[], int]] = None,
) -> Exchange:
    """Wire an exchange backed by the in-memory balance settlement."""
    settlement = BalanceSettlement(
        balances if balances is not None else BalanceTable(),
        fee_asset_address=config.fee_asset_address,
    )
    return Exchange(
        config.venue_address,
        settlement=settlement,
        ledger=ledger,
        verifier=Secp256k1SignatureVerifier(),
        clock=clock,
    )
