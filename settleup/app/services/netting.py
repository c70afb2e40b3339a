"""
services/netting.py — Balance netting and debt simplification.

Pure functions over already-fetched records. No database, no Flask, no I/O.
Every call builds fresh accumulators, so concurrent requests share nothing.

There are TWO accumulators and they treat a completed payment differently:

  pairwise_net_balances    — per-counterparty view for one user. A payment
                             reduces the sender's debt towards the receiver.
  single_axis_net_balances — one scalar per group member, input to
                             simplify_debts. A payment debits the sender and
                             credits the receiver, the same bookkeeping an
                             expense applies to its payer and split owners.

The two conventions produce different numbers for the same payment. Both are
existing, tested behaviour; keep them as two functions and do not merge them.

Arithmetic is in integer cents (services/money.py). Decimal appears only on
the returned dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from settleup.app.models.payment import PaymentStatus
from settleup.app.services.money import SETTLED_THRESHOLD_CENTS, from_cents, to_cents
from settleup.app.services.transaction_reader import ExpenseRecord, PaymentRecord

UNKNOWN_USER_NAME = "Unknown"


# ── Result types ───────────────────────────────────────────────────────────

@dataclass
class CounterpartyBalance:
    """Running pairwise balance. Positive: the counterparty owes the user."""

    user_id: int
    user_name: str
    cents: int = 0


@dataclass(frozen=True)
class UserBalance:
    user_id: int
    user_name: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class BalanceSummary:
    total_owed: Decimal
    total_owe: Decimal
    net_balance: Decimal
    currency: str
    balances: list[UserBalance]


@dataclass(frozen=True)
class SimplifiedDebt:
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: Decimal
    currency: str


# ── Pairwise view ──────────────────────────────────────────────────────────

def pairwise_net_balances(
        user_id: int,
        expenses: Iterable[ExpenseRecord],
        payments: Iterable[PaymentRecord],
) -> dict[int, CounterpartyBalance]:
    """
    Nets expenses and completed payments into {counterparty_id: balance}
    from `user_id`'s point of view.

    Expenses:
      - user paid:     every other participant owes the user their split.
      - someone else paid and the user has a split: the user owes the payer
        that split.
      - otherwise the expense does not involve the user and is skipped.

    Completed payments:
      - user sent:     + amount on the receiver's entry.
      - user received: - amount on the sender's entry.

    Entries are kept in first-touched order; zero entries are not removed
    here (summarize_balances does that).
    """
    balances: dict[int, CounterpartyBalance] = {}

    def _entry(counterparty_id: int, name: str) -> CounterpartyBalance:
        entry = balances.get(counterparty_id)
        if entry is None:
            entry = CounterpartyBalance(user_id=counterparty_id, user_name=name)
            balances[counterparty_id] = entry
        return entry

    for expense in expenses:
        if expense.payer_id == user_id:
            for split in expense.splits:
                if split.user_id == user_id:
                    continue
                entry = _entry(split.user_id, split.user_name)
                entry.cents += to_cents(split.amount)
                entry.user_name = split.user_name
        else:
            own_split = next(
                (s for s in expense.splits if s.user_id == user_id),
                None,
            )
            if own_split is None:
                continue
            entry = _entry(expense.payer_id, expense.payer_name)
            entry.cents -= to_cents(own_split.amount)
            entry.user_name = expense.payer_name

    for payment in payments:
        if payment.status != PaymentStatus.COMPLETED:
            continue

        if payment.from_user_id == user_id:
            entry = _entry(payment.to_user_id, payment.to_user_name)
            entry.cents += to_cents(payment.amount)
        elif payment.to_user_id == user_id:
            entry = _entry(payment.from_user_id, payment.from_user_name)
            entry.cents -= to_cents(payment.amount)

    return balances


def summarize_balances(
        balances: dict[int, CounterpartyBalance],
        currency: str,
) -> BalanceSummary:
    """
    Shapes pairwise balances into the BalanceSummary returned to callers.

    Drops settled entries (|amount| < 0.01), sorts the rest by descending
    magnitude (ties keep first-touched order) and totals both directions.
    """
    open_balances = [
        b for b in balances.values()
        if abs(b.cents) >= SETTLED_THRESHOLD_CENTS
    ]
    open_balances.sort(key=lambda b: abs(b.cents), reverse=True)

    total_owed = sum(b.cents for b in open_balances if b.cents > 0)
    total_owe = sum(-b.cents for b in open_balances if b.cents < 0)

    return BalanceSummary(
        total_owed=from_cents(total_owed),
        total_owe=from_cents(total_owe),
        net_balance=from_cents(total_owed - total_owe),
        currency=currency,
        balances=[
            UserBalance(
                user_id=b.user_id,
                user_name=b.user_name,
                amount=from_cents(b.cents),
                currency=currency,
            )
            for b in open_balances
        ],
    )


# ── Single-axis view ───────────────────────────────────────────────────────

def single_axis_net_balances(
        member_ids: Iterable[int],
        expenses: Iterable[ExpenseRecord],
        payments: Iterable[PaymentRecord],
) -> dict[int, int]:
    """
    One signed scalar (in cents) per group member: positive = creditor,
    negative = debtor.

      1. Every member starts at 0, in membership order.
      2. Expense: payer += amount, each split owner -= split.
      3. Completed payment: sender -= amount, receiver += amount.

    Users that show up in a transaction without being members still get an
    entry, appended after the members.
    """
    net: dict[int, int] = {uid: 0 for uid in member_ids}

    for expense in expenses:
        net[expense.payer_id] = net.get(expense.payer_id, 0) + to_cents(expense.amount)
        for split in expense.splits:
            net[split.user_id] = net.get(split.user_id, 0) - to_cents(split.amount)

    for payment in payments:
        if payment.status != PaymentStatus.COMPLETED:
            continue
        amount = to_cents(payment.amount)
        net[payment.from_user_id] = net.get(payment.from_user_id, 0) - amount
        net[payment.to_user_id] = net.get(payment.to_user_id, 0) + amount

    return net


# ── Debt simplification ────────────────────────────────────────────────────

def simplify_debts(
        net: dict[int, int],
        names: dict[int, str],
        currency: str,
) -> list[SimplifiedDebt]:
    """
    Greedy largest-debtor / largest-creditor matching.

    Args:
        net:      {user_id: cents} from single_axis_net_balances().
        names:    display names; missing ids are shown as "Unknown".
        currency: label put on every debt. Not computed per edge.

    Only balances strictly beyond one cent take part. Each step settles
    min(debtor, creditor); the transfer is emitted when it is strictly more
    than one cent, and a side whose remainder drops below one cent is done.

    Returns transfers in match order. For N members there are at most N-1.
    An empty list means nothing is owed.
    """
    creditors = sorted(
        [(uid, cents) for uid, cents in net.items() if cents > SETTLED_THRESHOLD_CENTS],
        key=lambda x: x[1],
        reverse=True,
    )
    debtors = sorted(
        [(uid, -cents) for uid, cents in net.items() if cents < -SETTLED_THRESHOLD_CENTS],
        key=lambda x: x[1],
        reverse=True,
    )

    debts: list[SimplifiedDebt] = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        did, owed = debtors[i]
        cid, due = creditors[j]

        settle = min(owed, due)
        if settle > SETTLED_THRESHOLD_CENTS:
            debts.append(SimplifiedDebt(
                from_user_id=did,
                from_user_name=names.get(did, UNKNOWN_USER_NAME),
                to_user_id=cid,
                to_user_name=names.get(cid, UNKNOWN_USER_NAME),
                amount=from_cents(settle),
                currency=currency,
            ))

        debtors[i] = (did, owed - settle)
        creditors[j] = (cid, due - settle)

        if debtors[i][1] < SETTLED_THRESHOLD_CENTS:
            i += 1
        if creditors[j][1] < SETTLED_THRESHOLD_CENTS:
            j += 1

    return debts
