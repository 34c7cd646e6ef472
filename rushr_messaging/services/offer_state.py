"""Offer lifecycle rules.

    pending   -> accepted | declined | countered | expired
    countered -> accepted | declined | expired

accepted, declined and expired are terminal.

Prices and delivery days must also fit the stored columns: prices are
NUMERIC(12, 2), days a 32-bit INTEGER.
"""

from decimal import Decimal
from typing import Dict, FrozenSet, Optional

from rushr_messaging.models.enums import OfferAction, OfferStatus

TERMINAL_STATUSES: FrozenSet[OfferStatus] = frozenset(
    {OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.EXPIRED}
)

OPEN_STATUSES: FrozenSet[OfferStatus] = frozenset(
    {OfferStatus.PENDING, OfferStatus.COUNTERED}
)

MAX_PRICE = Decimal("9999999999.99")
PRICE_DECIMAL_PLACES = 2
MAX_DELIVERY_DAYS = 2**31 - 1

_ACTION_TARGETS: Dict[OfferAction, OfferStatus] = {
    OfferAction.ACCEPT: OfferStatus.ACCEPTED,
    OfferAction.DECLINE: OfferStatus.DECLINED,
    OfferAction.COUNTER: OfferStatus.COUNTERED,
}

TRANSITIONS: Dict[OfferStatus, FrozenSet[OfferStatus]] = {
    OfferStatus.PENDING: frozenset(
        {
            OfferStatus.ACCEPTED,
            OfferStatus.DECLINED,
            OfferStatus.COUNTERED,
            OfferStatus.EXPIRED,
        }
    ),
    OfferStatus.COUNTERED: frozenset(
        {OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.EXPIRED}
    ),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.DECLINED: frozenset(),
    OfferStatus.EXPIRED: frozenset(),
}


def is_terminal(status: OfferStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: OfferStatus, target: OfferStatus) -> bool:
    return target in TRANSITIONS[current]


def next_status(current: OfferStatus, action: OfferAction) -> Optional[OfferStatus]:
    """Status an action leads to from ``current``, or None if not allowed."""
    target = _ACTION_TARGETS[action]
    if not can_transition(current, target):
        return None
    return target


def allowed_sources(target: OfferStatus) -> FrozenSet[OfferStatus]:
    """Statuses from which ``target`` can be reached."""
    return frozenset(
        status for status, targets in TRANSITIONS.items() if target in targets
    )


def is_valid_price(price: Optional[Decimal]) -> bool:
    """Positive, at most two decimal places, and within the column range."""
    if price is None or not price.is_finite():
        return False
    if not Decimal(0) < price <= MAX_PRICE:
        return False
    return price == price.quantize(Decimal(1).scaleb(-PRICE_DECIMAL_PLACES))


def is_valid_delivery_days(days: Optional[int]) -> bool:
    return days is not None and 0 < days <= MAX_DELIVERY_DAYS
