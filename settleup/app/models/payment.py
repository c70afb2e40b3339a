"""
models/payment.py — Payment table definition.

A recorded transfer of money between two users. Only COMPLETED payments
affect balances; PENDING, FAILED and CANCELLED rows are invisible to the
balance engine.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - CHECK(from_user_id <> to_user_id): nobody pays themselves.
  - PaymentStatus is a Python enum so services can filter on it without
    repeating string literals.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settleup.app.extensions import db


class PaymentStatus(str, enum.Enum):
    PENDING   = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED    = "FAILED"
    CANCELLED = "CANCELLED"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values, not member names."""
    return [member.value for member in enum_cls]


class Payment(db.Model):
    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "from_user_id <> to_user_id",
            name="ck_payments_no_self_payment",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # NULL for payments between friends outside any group.
    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    from_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    to_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            name="payment_status_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
        server_default=PaymentStatus.PENDING.value,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="payments",
    )

    sender: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="payments_sent",
        foreign_keys=[from_user_id],
    )

    receiver: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="payments_received",
        foreign_keys=[to_user_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Payment id={self.id} "
            f"from={self.from_user_id} "
            f"to={self.to_user_id} "
            f"amount={self.amount} "
            f"status={self.status.value}>"
        )
