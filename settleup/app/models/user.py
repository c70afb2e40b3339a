"""
models/user.py — User table definition.

Rows are created and maintained by the account service; this package only
reads them. No business logic. No imports from services or routes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settleup.app.extensions import db


class User(db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Display name shown next to every balance and simplified debt.
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    # ISO 4217 code. NULL means "never chosen"; the currency resolver
    # falls back to DEFAULT_CURRENCY.
    preferred_currency: Mapped[str | None] = mapped_column(
        String(3),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────
    # Read-only navigation — no logic here.

    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="user",
    )

    # Expenses this user paid for (paid_by_user_id FK)
    expenses_paid: Mapped[list["Expense"]] = relationship(  # noqa: F821
        "Expense",
        back_populates="payer",
        foreign_keys="[Expense.paid_by_user_id]",
    )

    splits: Mapped[list["ExpenseSplit"]] = relationship(  # noqa: F821
        "ExpenseSplit",
        back_populates="user",
    )

    payments_sent: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="sender",
        foreign_keys="[Payment.from_user_id]",
    )

    payments_received: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="receiver",
        foreign_keys="[Payment.to_user_id]",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} name={self.name!r}>"
