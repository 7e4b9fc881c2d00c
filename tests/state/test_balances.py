from __future__ import annotations

import pytest

from exchange.state.balances import BalanceTable

ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
ASSET = "0x" + "a1" * 20


def test_keys_are_canonicalized() -> None:
    table = BalanceTable()
    table.set(ALICE.upper().replace("0X", "0x"), ASSET, 10)
    assert table.get(ALICE, ASSET) == 10


def test_transfer_and_insufficient_balance() -> None:
    table = BalanceTable()
    table.set(ALICE, ASSET, 10)
    table.transfer(ASSET, ALICE, BOB, 4)
    assert table.get(ALICE, ASSET) == 6
    assert table.get(BOB, ASSET) == 4
    with pytest.raises(ValueError, match="Insufficient"):
        table.transfer(ASSET, ALICE, BOB, 7)


def test_zero_balances_are_dropped() -> None:
    table = BalanceTable()
    table.set(ALICE, ASSET, 5)
    table.transfer(ASSET, ALICE, BOB, 5)
    assert (ALICE, ASSET) not in table.get_all_balances()


def test_transaction_undoes_only_touched_entries() -> None:
    table = BalanceTable()
    table.set(ALICE, ASSET, 5)
    other_asset = "0x" + "b2" * 20
    table.set(BOB, other_asset, 9)

    with pytest.raises(ValueError):
        with table.transaction():
            table.transfer(ASSET, ALICE, BOB, 5)
            table.transfer(ASSET, BOB, ALICE, 6)

    assert table.get_all_balances() == {(ALICE, ASSET): 5, (BOB, other_asset): 9}


def test_nested_transaction_commit_is_undone_by_outer_failure() -> None:
    table = BalanceTable()
    table.set(ALICE, ASSET, 5)

    with pytest.raises(RuntimeError):
        with table.transaction():
            with table.transaction():
                table.transfer(ASSET, ALICE, BOB, 2)
            table.transfer(ASSET, ALICE, BOB, 1)
            raise RuntimeError("batch aborted")

    assert table.get(ALICE, ASSET) == 5
    assert table.get(BOB, ASSET) == 0

    with table.transaction():
        table.transfer(ASSET, ALICE, BOB, 2)
    assert table.get(BOB, ASSET) == 2


def test_journal_holds_only_written_entries() -> None:
    table = BalanceTable()
    for i in range(100):
        table.set("0x" + f"{i:040x}", ASSET, 1)

    with table.transaction():
        table.set(ALICE, ASSET, 3)
        table.set(ALICE, ASSET, 4)
        assert table._journals[-1] == {(ALICE, ASSET): None}
    assert table._journals == []
