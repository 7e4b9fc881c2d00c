from __future__ import annotations

import pytest

from exchange.agents.relayer import build_fill_meta_transaction, relay, sign_meta_transaction
from exchange.core.types import Event
from exchange.errors import InvalidSignatureError, MalformedCalldataError, ReplayError, UnauthorizedError
from exchange.integration.meta_transactions import MetaTransactionGate, get_transaction_hash


@pytest.fixture
def gate(exchange) -> MetaTransactionGate:
    return MetaTransactionGate(exchange)


def test_transaction_hash_binds_venue_signer_and_nonce(ctx) -> None:
    base = get_transaction_hash(ctx.venue, ctx.taker, 1, b"payload")
    assert base != get_transaction_hash("0x" + "01" * 20, ctx.taker, 1, b"payload")
    assert base != get_transaction_hash(ctx.venue, ctx.other, 1, b"payload")
    assert base != get_transaction_hash(ctx.venue, ctx.taker, 2, b"payload")
    assert base != get_transaction_hash(ctx.venue, ctx.taker, 1, b"payloaD")


def test_relayed_fill_executes_as_signer(gate, make_signed_order, balances, ctx) -> None:
    order, order_hash, sig = make_signed_order()
    tx = build_fill_meta_transaction(ctx.venue, 1, order, 50, sig, ctx.taker_key)

    assert gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature, sender=ctx.relayer) == 50

    assert gate.ledger.is_transaction_executed(tx.tx_hash)
    assert gate.ledger.get_filled(order_hash) == 50
    assert balances.get(ctx.taker, ctx.maker_asset) == 100
    assert balances.get(ctx.relayer, ctx.maker_asset) == 0


def test_replay_is_rejected_without_second_settlement(gate, make_signed_order, balances, ctx) -> None:
    order, order_hash, sig = make_signed_order()
    tx = build_fill_meta_transaction(ctx.venue, 1, order, 50, sig, ctx.taker_key)
    gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature)
    before = balances.get_all_balances()

    with pytest.raises(ReplayError):
        gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature)

    assert gate.ledger.get_filled(order_hash) == 50
    assert balances.get_all_balances() == before


def test_same_payload_with_new_nonce_executes(gate, make_signed_order, ctx) -> None:
    order, order_hash, sig = make_signed_order()
    first = build_fill_meta_transaction(ctx.venue, 1, order, 30, sig, ctx.taker_key)
    second = build_fill_meta_transaction(ctx.venue, 2, order, 30, sig, ctx.taker_key)
    assert relay(gate, [first, second]) == [30, 30]
    assert gate.ledger.get_filled(order_hash) == 60


def test_signature_by_other_key_rejected(gate, make_signed_order, ctx) -> None:
    order, order_hash, sig = make_signed_order()
    tx = build_fill_meta_transaction(ctx.venue, 1, order, 50, sig, ctx.other_key)

    with pytest.raises(InvalidSignatureError):
        gate.execute(tx.nonce, ctx.taker, tx.payload, tx.signature)

    assert not gate.ledger.is_transaction_executed(get_transaction_hash(ctx.venue, ctx.taker, 1, tx.payload))
    assert gate.ledger.get_filled(order_hash) == 0


def test_transaction_signed_for_other_venue_rejected(gate, make_signed_order, ctx) -> None:
    order, _, sig = make_signed_order()
    tx = build_fill_meta_transaction("0x" + "01" * 20, 1, order, 50, sig, ctx.taker_key)
    with pytest.raises(InvalidSignatureError):
        gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature)


def test_unsupported_payload_is_marked_and_ignored(gate, ctx) -> None:
    tx = sign_meta_transaction(ctx.venue, 7, b"\xca\xfe\xba\xbe" + b"\x00" * 32, ctx.taker_key)

    assert gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature) is None

    assert gate.ledger.is_transaction_executed(tx.tx_hash)
    with pytest.raises(ReplayError):
        gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature)


def test_malformed_payload_rolls_back_marking(gate, ctx) -> None:
    tx = sign_meta_transaction(ctx.venue, 7, b"\x01\x02", ctx.taker_key)

    with pytest.raises(MalformedCalldataError):
        gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature)

    assert not gate.ledger.is_transaction_executed(tx.tx_hash)


def test_failed_fill_rolls_back_marking(gate, make_signed_order, ctx) -> None:
    order, order_hash, sig = make_signed_order(sender_address=ctx.relayer)
    tx = build_fill_meta_transaction(ctx.venue, 1, order, 50, sig, ctx.taker_key)

    with pytest.raises(UnauthorizedError):
        gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature, sender=ctx.other)

    assert not gate.ledger.is_transaction_executed(tx.tx_hash)
    assert gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature, sender=ctx.relayer) == 50
    assert gate.ledger.get_filled(order_hash) == 50


def test_soft_outcome_still_consumes_transaction(gate, make_signed_order, clock, ctx) -> None:
    order, _, sig = make_signed_order()
    tx = build_fill_meta_transaction(ctx.venue, 1, order, 50, sig, ctx.taker_key)
    clock.now = ctx.far_future

    assert gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature) == 0

    assert gate.ledger.is_transaction_executed(tx.tx_hash)
    assert gate.exchange.events[-1].event == Event.ORDER_EXPIRED


def test_relay_stops_at_first_hard_failure(gate, make_signed_order, ctx) -> None:
    order, order_hash, sig = make_signed_order()
    ok = build_fill_meta_transaction(ctx.venue, 1, order, 10, sig, ctx.taker_key)
    with pytest.raises(ReplayError):
        relay(gate, [ok, ok], sender=ctx.relayer)
    assert gate.ledger.get_filled(order_hash) == 10
