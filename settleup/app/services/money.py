"""
services/money.py — Fixed-point money helpers.

All balance arithmetic runs on integer cents. Decimal appears only at the
boundaries: reading NUMERIC(12, 2) columns in, and returning 2-dp amounts out.
This makes the 0.01 tolerance checks exact comparisons against 1 cent.

Rules:
  - float never appears in or around money calculations.
  - Every Decimal leaving this module has exactly two decimal places.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

# One cent. Balances strictly below this in magnitude are settled.
SETTLED_THRESHOLD_CENTS = 1


def to_cents(amount: Decimal | int | str) -> int:
    """
    Converts a monetary amount to integer cents.

    Values with more than two decimal places are rounded half-up at the cent,
    which is the same rounding every 2-dp boundary in the engine applies.
    """
    value = amount if isinstance(amount, Decimal) else Decimal(amount)
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Converts integer cents back to a Decimal with exactly two places."""
    return Decimal(cents).scaleb(-2).quantize(CENT)


def allocate_equal_shares(
        amount: Decimal,
        participant_ids: list[int],
        payer_id: int,
) -> list[dict]:
    """
    Splits `amount` equally between `participant_ids`.

    Each share is amount / N rounded DOWN to the cent. The leftover cents
    (always fewer than N) go to the payer's share so the shares sum to the
    amount exactly. If the payer is not a participant, the first participant
    absorbs the remainder instead.

    Returns:
        [{"user_id": int, "amount": Decimal}, ...] in participant order.

    Raises:
        ValueError: if `participant_ids` is empty.
    """
    if not participant_ids:
        raise ValueError("At least one participant is required for an equal split.")

    count = len(participant_ids)
    base_share = (amount / count).quantize(CENT, rounding=ROUND_DOWN)
    remainder = amount - base_share * count

    remainder_owner = payer_id if payer_id in participant_ids else participant_ids[0]

    return [
        {
            "user_id": uid,
            "amount": base_share + remainder if uid == remainder_owner else base_share,
        }
        for uid in participant_ids
    ]
