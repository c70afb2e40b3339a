"""
tests/unit/test_debt_simplification.py — Unit tests for netting.simplify_debts.

What this file proves:
  - Two-person debt → single transfer, debtor to creditor
  - N members → at most N-1 transfers
  - All-zero positions → empty list
  - Largest debtor is matched with largest creditor first, and the output
    keeps that match order
  - Applying the transfers reproduces every position (no money invented,
    lost, or misrouted)
  - Positions of exactly one cent take no part; a one-cent leftover is never
    emitted as a transfer
  - Every transfer carries the one currency label passed in, Decimal amounts
    with two places, and display names ("Unknown" when missing)

simplify_debts takes {user_id: cents}; no mocking required.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

import pytest

from settleup.app.services.money import from_cents
from settleup.app.services.netting import SimplifiedDebt, simplify_debts

NAMES = {1: "Alice", 2: "Bob", 3: "Carol", 4: "Dave", 5: "Erin"}


# ── Helpers ────────────────────────────────────────────────────────────────

def _simplify(net: dict[int, int], currency: str = "USD") -> list[SimplifiedDebt]:
    return simplify_debts(net, NAMES, currency)


def _edges(debts: list[SimplifiedDebt]) -> list[tuple[int, int, Decimal]]:
    return [(d.from_user_id, d.to_user_id, d.amount) for d in debts]


def _verify_correctness(net: dict[int, int], debts: list[SimplifiedDebt]) -> None:
    """
    Applies the transfers and checks each member ends where their position
    says: creditors receive their scalar, debtors pay theirs.
    """
    moved = defaultdict(lambda: Decimal("0.00"))
    for debt in debts:
        moved[debt.from_user_id] -= debt.amount
        moved[debt.to_user_id] += debt.amount

    for uid, cents in net.items():
        assert moved[uid] == from_cents(cents), (
            f"user {uid}: expected net transfer {from_cents(cents)}, got {moved[uid]}"
        )


# ── Tests ──────────────────────────────────────────────────────────────────

def test_all_zero_returns_empty_list():
    assert _simplify({1: 0, 2: 0, 3: 0}) == []


def test_empty_dict_returns_empty_list():
    assert _simplify({}) == []


def test_two_person_debt_one_transfer():
    debts = _simplify({1: 5000, 2: -5000})

    assert debts == [
        SimplifiedDebt(
            from_user_id=2,
            from_user_name="Bob",
            to_user_id=1,
            to_user_name="Alice",
            amount=Decimal("50.00"),
            currency="USD",
        )
    ]


def test_one_creditor_two_debtors():
    net = {1: 6000, 2: -3000, 3: -3000}

    debts = _simplify(net)

    assert len(debts) == 2
    assert {d.to_user_id for d in debts} == {1}
    _verify_correctness(net, debts)


def test_largest_debtor_matched_first():
    net = {1: 4000, 2: -500, 3: -3500}

    assert _edges(_simplify(net)) == [
        (3, 1, Decimal("35.00")),
        (2, 1, Decimal("5.00")),
    ]


def test_match_order_with_split_debtor():
    """
    Creditors Alice 100, Bob 50; debtors Carol 60, Dave 50, Erin 40.
    Dave's debt is split across both creditors.
    """
    net = {1: 10000, 2: 5000, 3: -6000, 4: -5000, 5: -4000}

    debts = _simplify(net)

    assert _edges(debts) == [
        (3, 1, Decimal("60.00")),
        (4, 1, Decimal("40.00")),
        (4, 2, Decimal("10.00")),
        (5, 2, Decimal("40.00")),
    ]
    assert len(debts) <= len(net) - 1
    _verify_correctness(net, debts)


@pytest.mark.parametrize(
    "net",
    [
        {1: 8000, 2: -5000, 3: -5000, 4: 2000},
        {1: 9000, 2: -3000, 3: -4000, 4: -2000},
        {1: 1, 2: 2, 3: 3, 4: -6},
        {1: 12345, 2: -6789, 3: -5556, 4: 0, 5: 0},
        {1: 33333, 2: 33333, 3: 33334, 4: -50000, 5: -50000},
    ],
)
def test_at_most_n_minus_one_transfers(net):
    debts = _simplify(net)

    assert len(debts) <= len(net) - 1
    for debt in debts:
        assert debt.amount > Decimal("0.00")
        assert debt.from_user_id != debt.to_user_id


def test_incoming_per_creditor_matches_position():
    net = {1: 8000, 2: -5000, 3: -5000, 4: 2000}

    debts = _simplify(net)

    incoming = defaultdict(int)
    for debt in debts:
        incoming[debt.to_user_id] += int(debt.amount * 100)
    assert incoming == {1: 8000, 4: 2000}
    _verify_correctness(net, debts)


def test_ties_keep_member_order():
    net = {1: 3000, 2: -3000, 3: 3000, 4: -3000}

    assert _edges(_simplify(net)) == [
        (2, 1, Decimal("30.00")),
        (4, 3, Decimal("30.00")),
    ]


def test_one_cent_positions_are_ignored():
    assert _simplify({1: 1, 2: -1}) == []


def test_two_cent_transfer_is_emitted():
    assert _edges(_simplify({1: 2, 2: -2})) == [(2, 1, Decimal("0.02"))]


def test_one_cent_leftover_is_not_emitted():
    """Carol's -0.01 is below the threshold; Alice keeps one unmatched cent."""
    net = {1: 10001, 2: -10000, 3: -1}

    assert _edges(_simplify(net)) == [(2, 1, Decimal("100.00"))]


def test_no_debtors_or_no_creditors():
    assert _simplify({1: 5000, 2: 5000}) == []
    assert _simplify({1: -5000, 2: -5000}) == []


def test_currency_label_on_every_transfer():
    debts = _simplify({1: 6000, 2: -3000, 3: -3000}, currency="EUR")

    assert [d.currency for d in debts] == ["EUR", "EUR"]


def test_unknown_name_for_missing_user():
    debts = simplify_debts({1: 1000, 99: -1000}, NAMES, "USD")

    assert debts[0].from_user_name == "Unknown"
    assert debts[0].to_user_name == "Alice"


def test_amounts_are_two_place_decimals():
    debts = _simplify({1: 3333, 2: -3333})

    assert isinstance(debts[0].amount, Decimal)
    assert str(debts[0].amount) == "33.33"


def test_large_amounts():
    debts = _simplify({1: 99999999, 2: -99999999})

    assert debts[0].amount == Decimal("999999.99")


def test_input_is_not_mutated():
    net = {1: 6000, 2: -3000, 3: -3000}
    snapshot = dict(net)

    _simplify(net)

    assert net == snapshot
