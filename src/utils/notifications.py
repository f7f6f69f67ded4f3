from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from db.models import Order
from db.realtime import ChangeEvent, ChangeFeed, Subscription
from utils.lifecycle import STATUS_LABELS, STATUS_MESSAGES, OrderStatusTracker
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderNotification:
    order_id: str
    order_number: str
    status: str
    title: str
    message: str


class OrderNotifier:
    """
    Turns order change events into user-facing notifications.

    A customer hears about status changes of their own orders. A seller hears
    about new orders and cancellations for their shop. Every event passes
    through an OrderStatusTracker first, so a replayed or stale event never
    produces a second notification.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        notify: Callable[[OrderNotification], None],
        tracker: Optional[OrderStatusTracker] = None,
    ) -> None:
        self._feed = feed
        self._notify = notify
        self.tracker = tracker or OrderStatusTracker()
        self._subs: List[Subscription] = []

    @property
    def listening(self) -> bool:
        return any(s.active for s in self._subs)

    def seed(self, orders: Iterable[Order]) -> None:
        """Record statuses already on screen so they are not announced again."""
        for order in orders:
            self.tracker.seed(order.id, order.status)

    def watch_customer(self, customer_id: str) -> None:
        self._subs.append(
            self._feed.subscribe(
                "orders",
                self._on_customer_event,
                events=("UPDATE",),
                filter={"customer_id": customer_id},
            )
        )

    def watch_seller(self, seller_id: str) -> None:
        self._subs.append(
            self._feed.subscribe(
                "orders",
                self._on_seller_event,
                events=("INSERT", "UPDATE"),
                filter={"seller_id": seller_id},
            )
        )

    def stop(self) -> None:
        for sub in self._subs:
            sub.unsubscribe()
        self._subs.clear()

    def _on_customer_event(self, event: ChangeEvent) -> None:
        row = event.new
        if not self.tracker.apply(row["id"], row["status"]):
            return
        self._emit(
            row,
            f"Order #{row['order_number']} {STATUS_LABELS[row['status']]}",
            STATUS_MESSAGES[row["status"]],
        )

    def _on_seller_event(self, event: ChangeEvent) -> None:
        row = event.new
        if not self.tracker.apply(row["id"], row["status"]):
            return
        if event.event_type == "INSERT":
            self._emit(
                row,
                "New order received",
                f"Order #{row['order_number']} for {row['total_amount']:.2f}",
            )
        elif row["status"] == "cancelled":
            self._emit(
                row,
                "Order cancelled",
                f"Order #{row['order_number']} has been cancelled",
            )

    def _emit(self, row: dict, title: str, message: str) -> None:
        _logger.debug(f"Notify {title}: {message}")
        self._notify(
            OrderNotification(
                order_id=row["id"],
                order_number=row["order_number"],
                status=row["status"],
                title=title,
                message=message,
            )
        )
