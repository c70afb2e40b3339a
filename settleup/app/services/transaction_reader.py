"""
services/transaction_reader.py — Read-only access to expenses, payments and
memberships for the balance engine.

The engine never talks to the database directly. It receives a
TransactionReader and works on the immutable records the reader returns.
This keeps netting and simplification pure functions of their input and
lets unit tests pass in-memory fixtures instead of a session.

Two pieces live here:
  - The record types (frozen dataclasses) and the Scope the engine asks for.
  - SqlTransactionReader, the SQLAlchemy implementation used by the app.

Layer rules:
  - No Flask imports. The reader receives a plain SQLAlchemy Session.
  - Reads only. Nothing here adds, flushes or commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from settleup.app.models.expense import Expense
from settleup.app.models.membership import Membership
from settleup.app.models.payment import Payment, PaymentStatus
from settleup.app.models.split import ExpenseSplit
from settleup.app.models.user import User


# ── Records ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SplitRecord:
    expense_id: int
    user_id: int
    user_name: str
    amount: Decimal


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    amount: Decimal
    currency: str
    payer_id: int
    payer_name: str
    splits: tuple[SplitRecord, ...] = ()
    group_id: int | None = None


@dataclass(frozen=True)
class PaymentRecord:
    id: int
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: Decimal
    currency: str
    status: PaymentStatus = PaymentStatus.COMPLETED
    group_id: int | None = None


@dataclass(frozen=True)
class MemberRecord:
    group_id: int
    user_id: int
    user_name: str
    preferred_currency: str | None = None


@dataclass(frozen=True)
class Scope:
    """
    What slice of the ledger to read: one user across every group (and
    non-group expenses), or one whole group. Exactly one id is set.
    """

    user_id: int | None = None
    group_id: int | None = None

    def __post_init__(self) -> None:
        if (self.user_id is None) == (self.group_id is None):
            raise ValueError("Scope needs exactly one of user_id or group_id.")

    @classmethod
    def for_user(cls, user_id: int) -> "Scope":
        return cls(user_id=user_id)

    @classmethod
    def for_group(cls, group_id: int) -> "Scope":
        return cls(group_id=group_id)

    @property
    def is_group(self) -> bool:
        return self.group_id is not None


class TransactionReader(Protocol):
    """Capability set the balance engine needs from storage."""

    def list_expenses(self, scope: Scope) -> list[ExpenseRecord]: ...

    def list_completed_payments(self, scope: Scope) -> list[PaymentRecord]: ...

    def list_members(self, group_id: int) -> list[MemberRecord]: ...

    def get_membership(self, group_id: int, user_id: int) -> MemberRecord | None: ...

    def get_preferred_currency(self, user_id: int) -> str | None: ...


# ── Row → record mapping ───────────────────────────────────────────────────

def _expense_record(expense: Expense) -> ExpenseRecord:
    return ExpenseRecord(
        id=expense.id,
        amount=expense.amount,
        currency=expense.currency,
        payer_id=expense.paid_by_user_id,
        payer_name=expense.payer.name,
        group_id=expense.group_id,
        splits=tuple(
            SplitRecord(
                expense_id=expense.id,
                user_id=split.user_id,
                user_name=split.user.name,
                amount=split.amount,
            )
            for split in expense.splits
        ),
    )


def _payment_record(payment: Payment) -> PaymentRecord:
    return PaymentRecord(
        id=payment.id,
        from_user_id=payment.from_user_id,
        from_user_name=payment.sender.name,
        to_user_id=payment.to_user_id,
        to_user_name=payment.receiver.name,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
        group_id=payment.group_id,
    )


def _member_record(membership: Membership) -> MemberRecord:
    return MemberRecord(
        group_id=membership.group_id,
        user_id=membership.user_id,
        user_name=membership.user.name,
        preferred_currency=membership.user.preferred_currency,
    )


# ── SQLAlchemy implementation ──────────────────────────────────────────────

class SqlTransactionReader:
    """
    TransactionReader backed by a SQLAlchemy session.

    Every query eager-loads the user rows it needs for display names, so the
    mapping to records never triggers lazy loads per row.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_expenses(self, scope: Scope) -> list[ExpenseRecord]:
        """
        Group scope: every expense of the group.
        User scope: every expense the user paid or has a split in, across all
        groups and non-group expenses.
        """
        stmt = (
            select(Expense)
            .options(
                selectinload(Expense.payer),
                selectinload(Expense.splits).selectinload(ExpenseSplit.user),
            )
            .order_by(Expense.id.asc())
        )
        if scope.is_group:
            stmt = stmt.where(Expense.group_id == scope.group_id)
        else:
            stmt = stmt.where(
                or_(
                    Expense.paid_by_user_id == scope.user_id,
                    Expense.splits.any(ExpenseSplit.user_id == scope.user_id),
                )
            )

        expenses = self.session.execute(stmt).scalars().all()
        return [_expense_record(e) for e in expenses]

    def list_completed_payments(self, scope: Scope) -> list[PaymentRecord]:
        """COMPLETED payments only. Other statuses never reach the engine."""
        stmt = (
            select(Payment)
            .options(
                selectinload(Payment.sender),
                selectinload(Payment.receiver),
            )
            .where(Payment.status == PaymentStatus.COMPLETED)
            .order_by(Payment.id.asc())
        )
        if scope.is_group:
            stmt = stmt.where(Payment.group_id == scope.group_id)
        else:
            stmt = stmt.where(
                or_(
                    Payment.from_user_id == scope.user_id,
                    Payment.to_user_id == scope.user_id,
                )
            )

        payments = self.session.execute(stmt).scalars().all()
        return [_payment_record(p) for p in payments]

    def list_members(self, group_id: int) -> list[MemberRecord]:
        """Members in join order; the first one decides the group currency."""
        stmt = (
            select(Membership)
            .options(selectinload(Membership.user))
            .where(Membership.group_id == group_id)
            .order_by(Membership.joined_at.asc(), Membership.id.asc())
        )
        memberships = self.session.execute(stmt).scalars().all()
        return [_member_record(m) for m in memberships]

    def get_membership(self, group_id: int, user_id: int) -> MemberRecord | None:
        membership = self.session.execute(
            select(Membership)
            .options(selectinload(Membership.user))
            .where(
                Membership.group_id == group_id,
                Membership.user_id == user_id,
            )
        ).scalar_one_or_none()

        if membership is None:
            return None
        return _member_record(membership)

    def get_preferred_currency(self, user_id: int) -> str | None:
        return self.session.execute(
            select(User.preferred_currency).where(User.id == user_id)
        ).scalar_one_or_none()
