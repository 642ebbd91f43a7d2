"""Order status state machine.

Statuses are persisted as plain strings; every change goes through
``ensure_transition`` so only the transitions below are ever written.
"""

from typing import Optional

from common.choices import OrderStatus
from common.errors import DomainError

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

UNKNOWN_STATUS_LABEL = "Unknown"


class InvalidTransitionError(DomainError):
    code = "INVALID_TRANSITION"

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from {current} to {target}")


def parse_status(value) -> Optional[OrderStatus]:
    """Map a wire value to an OrderStatus; unrecognised values give None."""

    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        return None


def status_label(value) -> str:
    status = parse_status(value)
    return status.label if status is not None else UNKNOWN_STATUS_LABEL


def can_transition(current, target) -> bool:
    current_status = parse_status(current)
    target_status = parse_status(target)
    if current_status is None or target_status is None:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]


def ensure_transition(current, target) -> OrderStatus:
    """Return the parsed target status or raise InvalidTransitionError."""

    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return parse_status(target)
