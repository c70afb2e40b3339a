"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the database named by TEST_DATABASE_URL; by default an
    in-memory SQLite database, so the suite needs no server.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Users, groups, expenses and payments are owned by other services, so rows
are seeded straight through the models rather than over HTTP.

Helper functions (not fixtures) are provided for common operations:
  - make_user(app, ...)      → user id
  - make_group(app, ...)     → group id (members join in the order given)
  - make_expense(app, ...)   → expense id
  - make_payment(app, ...)   → payment id
  - token_for(app, user_id)  → signed access token
  - auth_headers(token)      → {"Authorization": "Bearer <token>"}

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest

from settleup.app import create_app
from settleup.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests.

    autouse=True means this runs after EVERY test in the integration suite
    without needing to be declared in each test function. Tables are emptied
    children first (reverse dependency order) so no FK constraint trips.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        for table in reversed(_db.metadata.sorted_tables):
            _db.session.execute(table.delete())
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

_JOIN_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_user(app, name: str, currency: str | None = "USD") -> int:
    """Inserts a user and returns its id."""
    from settleup.app.models.user import User

    with app.app_context():
        user = User(
            name=name,
            email=f"{name.lower()}@test.com",
            preferred_currency=currency,
        )
        _db.session.add(user)
        _db.session.commit()
        return user.id


def make_group(app, member_ids: list[int], name: str = "Test Group") -> int:
    """
    Inserts a group and its memberships and returns the group id.

    joined_at is spaced one minute apart so member order is the order of
    `member_ids`, whatever the database clock resolution.
    """
    from settleup.app.models.group import Group
    from settleup.app.models.membership import Membership

    with app.app_context():
        group = Group(name=name)
        _db.session.add(group)
        _db.session.flush()

        for position, user_id in enumerate(member_ids):
            _db.session.add(Membership(
                group_id=group.id,
                user_id=user_id,
                joined_at=_JOIN_EPOCH + timedelta(minutes=position),
            ))
        _db.session.commit()
        return group.id


def make_expense(
    app,
    paid_by_user_id: int,
    amount: str,
    splits: dict[int, str],
    group_id: int | None = None,
    currency: str = "USD",
    description: str = "Test Expense",
) -> int:
    """
    Inserts an expense with its splits ({user_id: amount}) and returns its id.
    Pass group_id=None for an expense outside any group.
    """
    from settleup.app.models.expense import Expense
    from settleup.app.models.split import ExpenseSplit

    with app.app_context():
        expense = Expense(
            group_id=group_id,
            paid_by_user_id=paid_by_user_id,
            description=description,
            amount=Decimal(amount),
            currency=currency,
        )
        expense.splits = [
            ExpenseSplit(user_id=user_id, amount=Decimal(share))
            for user_id, share in splits.items()
        ]
        _db.session.add(expense)
        _db.session.commit()
        return expense.id


def make_payment(
    app,
    from_user_id: int,
    to_user_id: int,
    amount: str,
    group_id: int | None = None,
    status=None,
    currency: str = "USD",
) -> int:
    """Inserts a payment (COMPLETED unless `status` says otherwise)."""
    from settleup.app.models.payment import Payment, PaymentStatus

    with app.app_context():
        payment = Payment(
            group_id=group_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=Decimal(amount),
            currency=currency,
            status=status or PaymentStatus.COMPLETED,
        )
        _db.session.add(payment)
        _db.session.commit()
        return payment.id


def token_for(app, user_id: int, expires_in: timedelta = timedelta(minutes=15)) -> str:
    """
    Signs an access token the way the auth service does: `sub` is the user
    id as a string, HS256 with the shared secret.
    """
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"sub": str(user_id), "iat": now, "exp": now + expires_in},
        app.config["JWT_SECRET_KEY"],
        algorithm=app.config["JWT_ALGORITHM"],
    )


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}
