from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Markdown, Rule

from utils.cart import CartItem
from utils.messages import CartChangedMessage, OrdersChangedMessage
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartScreen(BaseScreen):
    """
    Cart lines grouped by shop. Each shop is checked out separately and
    becomes its own order.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-cart"):
            yield DataTable(id="table-cart")
            yield Markdown("", id="md-cart-summary")
            yield Label("Cart total: " + format_money(0), id="label-cart-total")
            yield Rule(line_style="dashed")
            with Horizontal(id="hort-buttons"):
                yield Button("-", id="btn-sub-qty")
                yield Button("+", id="btn-add-qty")
                yield Button("Remove", id="btn-remove", variant="warning")
                yield Button("Clear Cart", id="btn-clear-cart")
                yield Button("Checkout Shop", id="btn-checkout", variant="primary")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Shop", "Product", "Unit Price", "Qty", "In Stock", "Line Total")
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ScreenResume)
    def handle_cart_change(self) -> None:
        cart = self.ctx.cart
        table = self.query_one(DataTable)
        cursor = table.cursor_row
        table.clear()
        groups = cart.by_seller()
        for items in groups.values():
            for item in items:
                table.add_row(
                    item.seller_name,
                    item.name,
                    format_money(item.price),
                    item.quantity,
                    item.stock,
                    format_money(item.line_total),
                    key=item.id,
                )
        if table.row_count:
            table.move_cursor(row=min(cursor, table.row_count - 1))

        rows = [
            [items[0].seller_name, sum(i.quantity for i in items), format_money(sum(i.line_total for i in items))]
            for items in groups.values()
        ]
        summary = (
            "#### Per shop\n\n" + generate_markdown_table(["Shop", "Items", "Subtotal"], rows, ["l", "r", "r"])
            if rows
            else "Your cart is empty."
        )
        self.query_one("#md-cart-summary", Markdown).update(summary)
        self.query_one("#label-cart-total", Label).update(
            f"Cart total: {format_money(cart.get_subtotal())}"
        )

    def _selected_item(self) -> Optional[CartItem]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self.ctx.cart.get_item(row_key.value)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        if item.quantity >= item.stock:
            self.notify(f"Only {item.stock} in stock.", severity="warning")
            return
        self.ctx.cart.update_quantity(item.id, item.quantity + 1)

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self) -> None:
        item = self._selected_item()
        if item is not None:
            self.ctx.cart.update_quantity(item.id, item.quantity - 1)

    @on(Button.Pressed, "#btn-remove")
    @work()
    async def handle_remove_item(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        if await self.app.push_screen_wait(
            DialogModal(
                f"Remove {item.name} from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            self.ctx.cart.remove_item(item.id)
            self.notify("Item removed from cart.")

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if not self.ctx.cart.items:
            self.notify("Cart is empty.", severity="warning")
            return
        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            self.ctx.cart.clear()

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        item = self._selected_item()
        if item is None:
            self.notify("Cart is empty.", severity="warning")
            return
        order_number = await self.app.push_screen_wait(CheckoutModal(item.seller_id))
        if order_number:
            self.app.post_message(OrdersChangedMessage())
            await self.app.push_screen_wait(
                DialogModal(
                    f"Order {order_number} placed with {item.seller_name}.",
                    tone="positive",
                )
            )
