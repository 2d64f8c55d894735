# Overview: Order status state machine; the single source of legal transitions.

"""
Order Status State Machine

    pending --> paid --> shipped --> completed
       |          |
       |          +----> refunded
       +--> cancelled

pending:   created by checkout, stock already reserved
paid:      payment recorded; invoice number assigned
shipped:   handed to the carrier
completed: delivered (terminal)
cancelled: abandoned before payment; reserved stock restored (terminal)
refunded:  payment returned (terminal)

Same-state requests are not transitions. Payment replays are handled by
order_service.pay_order before the state machine is consulted.
"""

from __future__ import annotations

import enum

from ..errors import InvalidInput, InvalidTransition


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.REFUNDED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def parse_status(value) -> OrderStatus:
    """Raises InvalidInput for anything that is not a known status."""
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(status.value for status in OrderStatus)
        raise InvalidInput(f"Invalid order status '{value}'. Must be one of: {valid}")


def can_transition(from_status, to_status) -> bool:
    return OrderStatus(to_status) in TRANSITIONS[OrderStatus(from_status)]


def ensure_transition(from_status, to_status) -> OrderStatus:
    """Return the target status or raise InvalidTransition."""
    current = OrderStatus(from_status)
    target = OrderStatus(to_status)
    if not can_transition(current, target):
        if is_terminal(current):
            message = f"Order is {current.value} and can no longer change status"
        else:
            message = f"Cannot move order from {current.value} to {target.value}"
        raise InvalidTransition(
            message,
            details={
                "from": current.value,
                "to": target.value,
                "allowed": sorted(status.value for status in TRANSITIONS[current]),
            },
        )
    return target


def is_terminal(status) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES
