from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable

import pytest

from exchange.agents.order_signer import private_key_to_address, sign_order
from exchange.core.exchange import Exchange
from exchange.core.settlement import BalanceSettlement
from exchange.state.balances import BalanceTable
from exchange.state.canonical import NULL_ADDRESS
from exchange.state.fill_ledger import FillLedger
from exchange.state.orders import Order

VENUE = "0x" + "e0" * 20
MAKER_ASSET = "0x" + "a1" * 20
TAKER_ASSET = "0x" + "b2" * 20
FEE_ASSET = "0x" + "fe" * 20
FEE_RECIPIENT = "0x" + "f1" * 20
RELAYER = "0x" + "cc" * 20

MAKER_KEY = b"\x01" * 32
TAKER_KEY = b"\x02" * 32
OTHER_KEY = b"\x03" * 32

NOW = 1_700_000_000
FAR_FUTURE = NOW + 86_400


@dataclass
class FixedClock:
    now: int = NOW

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def maker() -> str:
    return private_key_to_address(MAKER_KEY)


@pytest.fixture
def taker() -> str:
    return private_key_to_address(TAKER_KEY)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def balances(maker: str, taker: str) -> BalanceTable:
    table = BalanceTable()
    table.set(maker, MAKER_ASSET, 1_000_000)
    table.set(taker, TAKER_ASSET, 1_000_000)
    table.set(maker, FEE_ASSET, 1_000_000)
    table.set(taker, FEE_ASSET, 1_000_000)
    return table


@pytest.fixture
def exchange(balances: BalanceTable, clock: FixedClock) -> Exchange:
    return Exchange(
        VENUE,
        settlement=BalanceSettlement(balances, fee_asset_address=FEE_ASSET),
        ledger=FillLedger(),
        clock=clock,
    )


@pytest.fixture
def make_signed_order(maker: str) -> Callable[..., tuple]:
    """Factory: (order, order_hash, signature) signed by the maker key."""

    def _make(**overrides) -> tuple:
        fields = dict(
            sender_address=NULL_ADDRESS,
            maker_address=maker,
            taker_address=NULL_ADDRESS,
            maker_asset_address=MAKER_ASSET,
            taker_asset_address=TAKER_ASSET,
            fee_recipient_address=NULL_ADDRESS,
            maker_asset_amount=200,
            taker_asset_amount=100,
            maker_fee_amount=0,
            taker_fee_amount=0,
            expiration_time_seconds=FAR_FUTURE,
            salt=42,
        )
        key = overrides.pop("key", MAKER_KEY)
        fields.update(overrides)
        order = Order(**fields)
        order_hash, signature = sign_order(order, VENUE, key)
        return order, order_hash, signature

    return _make


@pytest.fixture
def ctx(maker: str, taker: str) -> SimpleNamespace:
    """Shared addresses, keys and timestamps."""
    return SimpleNamespace(
        venue=VENUE,
        maker_asset=MAKER_ASSET,
        taker_asset=TAKER_ASSET,
        fee_asset=FEE_ASSET,
        fee_recipient=FEE_RECIPIENT,
        relayer=RELAYER,
        maker=maker,
        taker=taker,
        maker_key=MAKER_KEY,
        taker_key=TAKER_KEY,
        other_key=OTHER_KEY,
        other=private_key_to_address(OTHER_KEY),
        now=NOW,
        far_future=FAR_FUTURE,
    )
