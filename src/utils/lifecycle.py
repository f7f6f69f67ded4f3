# order status state machine
from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from db.models import ORDER_STATUSES, OrderStatus

# forward path a seller walks an order through
STATUS_FLOW = ("pending", "accepted", "packed", "out_for_delivery", "delivered")
TERMINAL_STATUSES = frozenset({"delivered", "cancelled"})

LEGAL_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"accepted", "cancelled"}),
    "accepted": frozenset({"packed"}),
    "packed": frozenset({"out_for_delivery"}),
    "out_for_delivery": frozenset({"delivered"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}

STATUS_LABELS = {
    "pending": "Pending",
    "accepted": "Accepted",
    "packed": "Packed",
    "out_for_delivery": "Out for Delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}

STATUS_MESSAGES = {
    "pending": "Your order has been placed",
    "accepted": "Your order has been accepted by the seller",
    "packed": "Your order has been packed and is ready",
    "out_for_delivery": "Your order is out for delivery",
    "delivered": "Your order has been delivered",
    "cancelled": "Your order has been cancelled",
}


def next_status(current: str) -> Optional[OrderStatus]:
    """Immediate successor on the forward path, None at the end or off it."""
    if current not in STATUS_FLOW:
        return None
    idx = STATUS_FLOW.index(current)
    if idx == len(STATUS_FLOW) - 1:
        return None
    return STATUS_FLOW[idx + 1]


def can_transition(current: str, requested: str) -> bool:
    return requested in LEGAL_TRANSITIONS.get(current, frozenset())


def can_cancel(current: str) -> bool:
    return can_transition(current, "cancelled")


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def progress_step(status: str) -> int:
    """1-based position on the forward path; 0 for cancelled."""
    if status not in STATUS_FLOW:
        return 0
    return STATUS_FLOW.index(status) + 1


def is_known_status(status: str) -> bool:
    return status in ORDER_STATUSES


class OrderStatusTracker:
    """
    Last applied status per order.

    apply() is idempotent: replays of the same status, stale statuses that
    sit behind what is already known, and anything arriving after a terminal
    status are ignored. Only a genuinely newer status returns True.
    """

    def __init__(self) -> None:
        self._known: Dict[str, str] = {}

    def known(self, order_id: str) -> Optional[str]:
        return self._known.get(order_id)

    def seed(self, order_id: str, status: str) -> None:
        self._known[order_id] = status

    def apply(self, order_id: str, status: str) -> bool:
        if not is_known_status(status):
            return False
        current = self._known.get(order_id)
        if current == status:
            return False
        if current is not None:
            if is_terminal(current):
                return False
            if status != "cancelled" and progress_step(status) < progress_step(current):
                return False
        self._known[order_id] = status
        return True

    def forget(self, order_id: str) -> None:
        self._known.pop(order_id, None)
