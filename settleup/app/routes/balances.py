"""
routes/balances.py — Balance route handlers.

Layer rules:
  - Read the caller from flask.g, call ONE service, dump with a schema,
    return the envelope.
  - No business logic. No bare SQL. Queries go through SqlTransactionReader.
  - Membership is enforced inside balance_service; AccessDenied propagates
    to the global error handler (403).

Endpoints (url_prefix=/api/v1/balances):
  GET /balances                          → 200  caller's balances, all groups
  GET /balances/groups/:id               → 200  caller's balances in one group
  GET /balances/groups/:id/simplify      → 200  simplified transfers for the group
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify

from settleup.app.extensions import db
from settleup.app.middleware.auth_middleware import require_auth
from settleup.app.schemas.balance_schema import (
    balance_summary_schema,
    simplified_debts_schema,
)
from settleup.app.services import balance_service
from settleup.app.services.transaction_reader import SqlTransactionReader

balances_bp = Blueprint("balances", __name__)


def _reader() -> SqlTransactionReader:
    return SqlTransactionReader(db.session)


def _default_currency() -> str:
    return current_app.config.get("DEFAULT_CURRENCY", balance_service.DEFAULT_CURRENCY)


@balances_bp.route("", methods=["GET"])
@require_auth
def get_user_balances():
    """GET /balances — no membership check, the result is the caller's own."""
    summary = balance_service.get_user_balances(
        user_id=g.user_id,
        reader=_reader(),
        default_currency=_default_currency(),
    )
    return jsonify({"data": balance_summary_schema.dump(summary), "warnings": []}), 200


@balances_bp.route("/groups/<int:group_id>", methods=["GET"])
@require_auth
def get_group_balances(group_id: int):
    """GET /balances/groups/:id — 403 FORBIDDEN for non-members."""
    summary = balance_service.get_group_balances(
        group_id=group_id,
        user_id=g.user_id,
        reader=_reader(),
        default_currency=_default_currency(),
    )
    return jsonify({"data": balance_summary_schema.dump(summary), "warnings": []}), 200


@balances_bp.route("/groups/<int:group_id>/simplify", methods=["GET"])
@require_auth
def simplify_group_debts(group_id: int):
    """
    GET /balances/groups/:id/simplify

    The transfers are instructions only. Nothing is recorded; members settle
    by creating payments through the payments service.
    """
    debts = balance_service.simplify_group_debts(
        group_id=group_id,
        user_id=g.user_id,
        reader=_reader(),
        default_currency=_default_currency(),
    )
    return jsonify({
        "data": {
            "group_id": group_id,
            "simplified_debts": simplified_debts_schema.dump(debts),
        },
        "warnings": [],
    }), 200
