from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer, Select

import db.crud as crud
from db.models import DELIVERY_LABELS, ORDER_STATUSES, Order, OrderItem
from db.realtime import ChangeEvent, Subscription
from utils.errors import MarketplaceError
from utils.lifecycle import (
    STATUS_FLOW,
    STATUS_LABELS,
    OrderStatusTracker,
    can_cancel,
    progress_step,
)
from utils.messages import OrdersChangedMessage
from utils.pure import format_money, generate_markdown_table, progress_bar
from views.base_screen import BaseScreen
from views.modal_dialog import ReasonDialogModal
from views.modal_review import ReviewModal

STATUS_OPTIONS = [("All orders", "")] + [(STATUS_LABELS[s], s) for s in ORDER_STATUSES]


def render_order_markdown(order: Order, items: List[OrderItem], history, shop_name: str) -> str:
    """Order detail with items, totals and the tracking timeline."""
    header = (
        f"### Order {order.order_number}\n"
        f"{shop_name} · {order.created_at[:16].replace('T', ' ')}  \n"
        f"Status: **{STATUS_LABELS[order.status]}** "
        f"{progress_bar(progress_step(order.status), len(STATUS_FLOW))}  \n"
        f"{DELIVERY_LABELS[order.delivery_type]}"
        + (f" to {order.delivery_address}" if order.delivery_address else "")
        + "\n\n"
    )
    rows = [
        [i.product_name, i.quantity, format_money(i.product_price), format_money(i.subtotal)]
        for i in items
    ]
    table = generate_markdown_table(["Product", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"])
    totals = (
        f"\n\nSubtotal: {format_money(order.subtotal)}  \n"
        f"Delivery fee: {format_money(order.delivery_fee)}  \n"
        f"**Total: {format_money(order.total_amount)}**"
    )
    notes = f"\n\nNotes: {order.notes}" if order.notes else ""
    timeline = "\n\n#### Tracking\n\n" + "\n".join(
        f"- {h.created_at[:16].replace('T', ' ')} {STATUS_LABELS.get(h.status, h.status)}"
        + (f": {h.note}" if h.note else "")
        for h in history
    )
    return header + table + totals + notes + timeline


class CustomerOrdersScreen(BaseScreen):
    """
    Customer order history with live status, cancellation of pending orders
    and reviews of delivered ones.
    """

    BINDINGS = [
        Binding("r", "refresh", "Refresh", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}
        self._shop_names: Dict[str, str] = {}
        self._tracker = OrderStatusTracker()
        self._subscription: Optional[Subscription] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-table-control"):
                yield Select(STATUS_OPTIONS, allow_blank=False, value="", id="select-status")
                yield Button("Refresh", id="btn-refresh")
                yield Button("Cancel Order", id="btn-cancel", variant="error")
                yield Button("Review Shop", id="btn-review")
                yield Button("Review Products", id="btn-review-items")
            yield DataTable(id="table-orders")
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Shop", "Status", "Total")
        self.load_orders()

    def _subscribe(self) -> None:
        """(Re)attach the live feed to whoever is signed in now."""
        uid = self.ctx.uid
        sub = self._subscription
        if sub and sub.active and sub.filter.get("customer_id") == uid:
            return
        self._unsubscribe()
        if uid:
            self._tracker = OrderStatusTracker()
            self._subscription = self.ctx.feed.subscribe(
                "orders",
                self._on_order_event,
                events=("UPDATE",),
                filter={"customer_id": uid},
            )

    def _unsubscribe(self) -> None:
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None

    def on_unmount(self) -> None:
        self._unsubscribe()

    def _on_order_event(self, event: ChangeEvent) -> None:
        if self._tracker.apply(event.new["id"], event.new["status"]):
            self.post_message(OrdersChangedMessage(event.new["id"], event.new["status"]))

    @on(Button.Pressed, "#btn-refresh")
    @on(Select.Changed, "#select-status")
    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def action_refresh(self) -> None:
        self.load_orders()

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        self._subscribe()
        if not self.ctx.user:
            return
        status = self.query_one("#select-status", Select).value or None
        orders = await crud.list_customer_orders(self.ctx.user.id, status)
        for o in orders:
            self._tracker.seed(o.id, o.status)
            if o.seller_id not in self._shop_names:
                seller = await crud.get_seller(o.seller_id)
                self._shop_names[o.seller_id] = seller.shop_name if seller else "Unknown shop"
        self._orders = {o.id: o for o in orders}

        table = self.query_one(DataTable)
        cursor = table.cursor_row
        table.clear()
        for o in orders:
            table.add_row(
                o.order_number,
                o.created_at[:10],
                self._shop_names[o.seller_id],
                STATUS_LABELS[o.status],
                format_money(o.total_amount),
                key=o.id,
            )
        if orders:
            table.move_cursor(row=min(cursor, len(orders) - 1))
            self._update_detail_for_cursor()
        else:
            await self.query_one(MarkdownViewer).document.update("### No orders yet.")
            self._refresh_buttons(None)

    def _selected_order(self) -> Optional[Order]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._orders.get(row_key.value)

    def _refresh_buttons(self, order: Optional[Order]) -> None:
        self.query_one("#btn-cancel", Button).disabled = not (order and can_cancel(order.status))
        delivered = bool(order and order.status == "delivered")
        self.query_one("#btn-review", Button).disabled = not delivered
        self.query_one("#btn-review-items", Button).disabled = not delivered

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._update_detail_for_cursor()

    @work(exclusive=True, group="detail")
    async def _update_detail_for_cursor(self) -> None:
        order = self._selected_order()
        self._refresh_buttons(order)
        if order is None:
            return
        order, items = await crud.get_order_detail(order.id)
        if order is None:
            return
        history = await crud.get_status_history(order.id)
        md = render_order_markdown(order, items, history, self._shop_names.get(order.seller_id, ""))
        review = await crud.get_review_for_order(self.ctx.user.id, order.id)
        if review:
            md += f"\n\n#### Your review\n\n{'★' * review.rating}{'☆' * (5 - review.rating)} {review.comment or ''}"
            self.query_one("#btn-review", Button).label = "Edit Review"
        else:
            self.query_one("#btn-review", Button).label = "Review Shop"
        await self.query_one(MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-cancel")
    @work()
    async def handle_cancel(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        reason = await self.app.push_screen_wait(
            ReasonDialogModal(f"Cancel order {order.order_number}?", "Cancel Order")
        )
        if reason is None:
            return
        try:
            await crud.cancel_order(self.ctx.user.id, order.id, reason or "Cancelled by customer")
        except MarketplaceError as e:
            self.show_error(e)
        else:
            self.notify(f"Order {order.order_number} cancelled.")
        self.load_orders()

    @on(Button.Pressed, "#btn-review")
    @work()
    async def handle_review(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        existing = await crud.get_review_for_order(self.ctx.user.id, order.id)
        form = await self.app.push_screen_wait(
            ReviewModal(
                f"Review {self._shop_names.get(order.seller_id, 'this shop')}",
                rating=existing.rating if existing else 5,
                comment=(existing.comment or "") if existing else "",
            )
        )
        if form is None:
            return
        try:
            if existing:
                await crud.update_shop_review(self.ctx.user.id, existing.id, form.rating, form.comment)
            else:
                await crud.submit_shop_review(self.ctx.user.id, order.id, form.rating, form.comment)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify("Thanks for your review!")
        self._update_detail_for_cursor()

    @on(Button.Pressed, "#btn-review-items")
    @work()
    async def handle_review_items(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        _, items = await crud.get_order_detail(order.id)
        for item in items:
            form = await self.app.push_screen_wait(
                ReviewModal(f"Review {item.product_name}", with_title=True)
            )
            if form is None:
                continue
            try:
                await crud.submit_product_review(
                    self.ctx.user.id, item.id, form.rating, form.title, form.comment
                )
            except MarketplaceError as e:
                self.show_error(e)
                continue
            self.notify(f"Review for {item.product_name} saved.")
