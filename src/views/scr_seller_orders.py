from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer, Select

import db.crud as crud
from db.models import DELIVERY_LABELS, Order
from db.realtime import ChangeEvent, Subscription
from utils.errors import MarketplaceError
from utils.lifecycle import STATUS_LABELS, OrderStatusTracker, can_cancel, next_status
from utils.messages import OrdersChangedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal, ReasonDialogModal
from views.scr_orders import STATUS_OPTIONS, render_order_markdown


class SellerOrdersScreen(BaseScreen):
    """
    Incoming orders for the seller's shop. The seller walks each order one
    step forward at a time, or cancels it while it is still pending. New
    orders and customer cancellations appear live.
    """

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}
        self._tracker = OrderStatusTracker()
        self._subscription: Optional[Subscription] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-table-control"):
                yield Select(STATUS_OPTIONS, allow_blank=False, value="", id="select-status")
                yield Button("Refresh", id="btn-refresh")
                yield Button("Advance", id="btn-advance", variant="success")
                yield Button("Cancel Order", id="btn-cancel", variant="error")
            yield DataTable(id="table-orders")
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Placed", "Status", "Delivery", "Total")
        self.load_orders()

    def _subscribe(self) -> None:
        seller = self.ctx.seller
        seller_id = seller.id if seller else None
        sub = self._subscription
        if sub and sub.active and sub.filter.get("seller_id") == seller_id:
            return
        self._unsubscribe()
        if seller_id:
            self._tracker = OrderStatusTracker()
            self._subscription = self.ctx.feed.subscribe(
                "orders",
                self._on_order_event,
                events=("INSERT", "UPDATE"),
                filter={"seller_id": seller_id},
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
    def handle_refresh(self) -> None:
        self.load_orders()

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        self._subscribe()
        seller = self.ctx.seller
        table = self.query_one(DataTable)
        if seller is None:
            await self.query_one(MarkdownViewer).document.update(
                "### No shop registered\n\nUse **Open a shop** in the sidebar to apply."
            )
            return
        status = self.query_one("#select-status", Select).value or None
        orders = await crud.list_seller_orders(seller.id, status)
        for o in orders:
            self._tracker.seed(o.id, o.status)
        self._orders = {o.id: o for o in orders}

        cursor = table.cursor_row
        table.clear()
        for o in orders:
            table.add_row(
                o.order_number,
                o.created_at[:16].replace("T", " "),
                STATUS_LABELS[o.status],
                DELIVERY_LABELS[o.delivery_type],
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
        advance = self.query_one("#btn-advance", Button)
        target = next_status(order.status) if order else None
        advance.disabled = target is None
        advance.label = f"Mark {STATUS_LABELS[target]}" if target else "Advance"
        self.query_one("#btn-cancel", Button).disabled = not (order and can_cancel(order.status))

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
        customer = await crud.get_profile(order.customer_id)
        md = render_order_markdown(order, items, history, self.ctx.seller.shop_name)
        if customer:
            md += f"\n\n#### Customer\n\n{customer.full_name or '-'} · {customer.phone or '-'}"
        await self.query_one(MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-advance")
    @work()
    async def handle_advance(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        target = next_status(order.status)
        if target is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Mark order {order.order_number} as {STATUS_LABELS[target]}?",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return
        try:
            await crud.advance_order(self.ctx.user.id, order.id)
        except MarketplaceError as e:
            self.show_error(e)
        else:
            self.notify(f"Order {order.order_number} is now {STATUS_LABELS[target]}.")
        self.load_orders()

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
            await crud.cancel_order(self.ctx.user.id, order.id, reason or "Cancelled by seller")
        except MarketplaceError as e:
            self.show_error(e)
        else:
            self.notify(f"Order {order.order_number} cancelled.")
        self.load_orders()
