"""
schemas/balance_schema.py — Marshmallow schemas for balance responses.

These schemas only dump. The balance endpoints take no request body; the
group id comes from the URL and the user id from the access token.

Monetary amounts are dumped as strings with two decimal places
("50.00", never 50.0) so clients never parse money as a float.

IMPORTANT: Inherits from marshmallow.Schema directly, so unit tests can dump
without a Flask application context.
"""

from __future__ import annotations

from marshmallow import Schema, fields


def _money() -> fields.Decimal:
    return fields.Decimal(places=2, as_string=True)


class UserBalanceSchema(Schema):
    """
    One counterparty line of a BalanceSummary.

    amount > 0: the counterparty owes the caller.
    amount < 0: the caller owes the counterparty.
    """

    user_id   = fields.Int()
    user_name = fields.Str()
    amount    = _money()
    currency  = fields.Str()


class BalanceSummarySchema(Schema):
    """GET /balances and GET /balances/groups/:id"""

    total_owed  = _money()
    total_owe   = _money()
    net_balance = _money()
    currency    = fields.Str()
    balances    = fields.List(fields.Nested(UserBalanceSchema))


class SimplifiedDebtSchema(Schema):
    """One transfer of GET /balances/groups/:id/simplify"""

    from_user_id   = fields.Int()
    from_user_name = fields.Str()
    to_user_id     = fields.Int()
    to_user_name   = fields.Str()
    amount         = _money()
    currency       = fields.Str()


balance_summary_schema = BalanceSummarySchema()
simplified_debts_schema = SimplifiedDebtSchema(many=True)
