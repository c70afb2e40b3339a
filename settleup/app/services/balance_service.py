"""
services/balance_service.py — Balance queries and debt simplification.

This file is the single entry point for balance numbers. Routes call the
three public functions below; nothing else recomputes balances.

  get_user_balances     — one user's balances across every group. No guard.
  get_group_balances    — one user's balances inside a group. Members only.
  simplify_group_debts  — minimal transfer list for a group. Members only.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives ids (int) and a TransactionReader as arguments.
  - Returns the dataclasses from services/netting.py.
  - Fully unit-testable with an in-memory reader.

Membership is checked before anything else is read for a group. AccessDenied
is the only error raised here.
"""

from __future__ import annotations

import logging

from settleup.app.errors import AccessDenied
from settleup.app.services.money import from_cents
from settleup.app.services.netting import (
    BalanceSummary,
    SimplifiedDebt,
    pairwise_net_balances,
    simplify_debts,
    single_axis_net_balances,
    summarize_balances,
)
from settleup.app.services.transaction_reader import (
    MemberRecord,
    Scope,
    TransactionReader,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


# ── Membership guard ───────────────────────────────────────────────────────

def ensure_member(
        group_id: int,
        user_id: int,
        reader: TransactionReader,
) -> MemberRecord:
    """
    Returns the caller's membership or raises AccessDenied (403).

    Must run before any other group-scoped read.
    """
    membership = reader.get_membership(group_id, user_id)
    if membership is None:
        logger.info("User %s denied access to group %s balances", user_id, group_id)
        raise AccessDenied(group_id, user_id)
    return membership


# ── Currency resolution ────────────────────────────────────────────────────

def resolve_user_currency(
        user_id: int,
        reader: TransactionReader,
        default: str = DEFAULT_CURRENCY,
) -> str:
    """The user's preferred currency, or `default` if unset."""
    return reader.get_preferred_currency(user_id) or default


def resolve_group_currency(
        members: list[MemberRecord],
        default: str = DEFAULT_CURRENCY,
) -> str:
    """
    The preferred currency of the first member in enumeration order.

    Members with different preferences are not reconciled and nothing is
    converted; every simplified debt of the group carries this one label.
    """
    if not members:
        return default
    return members[0].preferred_currency or default


# ── Public service functions ───────────────────────────────────────────────

def get_user_balances(
        user_id: int,
        reader: TransactionReader,
        default_currency: str = DEFAULT_CURRENCY,
) -> BalanceSummary:
    """
    What the user owes and is owed, per counterparty, across all groups and
    non-group expenses.
    """
    scope = Scope.for_user(user_id)
    expenses = reader.list_expenses(scope)
    payments = reader.list_completed_payments(scope)

    balances = pairwise_net_balances(user_id, expenses, payments)
    currency = resolve_user_currency(user_id, reader, default_currency)

    logger.debug(
        "User %s balances: %d expenses, %d payments, %d counterparties",
        user_id, len(expenses), len(payments), len(balances),
    )
    return summarize_balances(balances, currency)


def get_group_balances(
        group_id: int,
        user_id: int,
        reader: TransactionReader,
        default_currency: str = DEFAULT_CURRENCY,
) -> BalanceSummary:
    """
    Same as get_user_balances, restricted to one group's expenses and
    completed payments.

    Raises:
        AccessDenied -- user is not a member of the group.
    """
    ensure_member(group_id, user_id, reader)

    scope = Scope.for_group(group_id)
    expenses = reader.list_expenses(scope)
    payments = reader.list_completed_payments(scope)

    balances = pairwise_net_balances(user_id, expenses, payments)
    currency = resolve_user_currency(user_id, reader, default_currency)

    logger.debug(
        "Group %s balances for user %s: %d expenses, %d payments",
        group_id, user_id, len(expenses), len(payments),
    )
    return summarize_balances(balances, currency)


def simplify_group_debts(
        group_id: int,
        user_id: int,
        reader: TransactionReader,
        default_currency: str = DEFAULT_CURRENCY,
) -> list[SimplifiedDebt]:
    """
    Minimal list of transfers that clears every debt inside the group.

    Uses the single-axis accumulator, in which a completed payment adds to
    the receiver's position and subtracts from the sender's. This differs
    from the pairwise view on purpose; see services/netting.py.

    Raises:
        AccessDenied -- user is not a member of the group.
    """
    ensure_member(group_id, user_id, reader)

    members = reader.list_members(group_id)
    scope = Scope.for_group(group_id)
    expenses = reader.list_expenses(scope)
    payments = reader.list_completed_payments(scope)

    net = single_axis_net_balances(
        [m.user_id for m in members],
        expenses,
        payments,
    )

    # Holds whenever every expense's splits add up to its amount. That is
    # validated where expenses are written, so only report it here.
    drift = sum(net.values())
    if drift != 0:
        logger.warning(
            "Group %s net positions sum to %s instead of 0.00; "
            "expense splits are inconsistent",
            group_id, from_cents(drift),
        )

    names = {m.user_id: m.user_name for m in members}
    currency = resolve_group_currency(members, default_currency)
    debts = simplify_debts(net, names, currency)

    logger.debug(
        "Group %s simplified to %d transfers across %d members",
        group_id, len(debts), len(members),
    )
    return debts
