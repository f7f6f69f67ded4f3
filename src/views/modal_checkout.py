from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

import db.crud as crud
from db.models import DELIVERY_LABELS, Seller
from utils.errors import MarketplaceError, friendly_message
from utils.pure import format_money, generate_markdown_table
from views.modal_dialog import DialogModal


class CheckoutModal(ModalScreen[Optional[str]]):
    """
    Checkout for one shop's cart lines: delivery type (limited to what the
    shop offers), address, notes. Dismisses with the order number on success,
    None otherwise.
    """

    def __init__(self, seller_id: str):
        super().__init__()
        self._seller_id = seller_id
        self._seller: Optional[Seller] = None

    def compose(self) -> ComposeResult:
        with Vertical(id="div-checkout"):
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Delivery")
            yield Select([("Store Pickup", "customer_pickup")], allow_blank=False, id="select-delivery")
            yield Label("Delivery Address")
            yield Input(placeholder="House no, street, area, city, pincode", id="input-address-line")
            yield Label("Notes")
            yield Input(placeholder="Anything the shop should know", id="input-notes")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        self._seller = await crud.get_seller(self._seller_id)
        if self._seller is None:
            self.notify("Shop not found.", severity="error")
            self.dismiss(None)
            return
        options = self._seller.delivery_options or ("customer_pickup",)
        select = self.query_one("#select-delivery", Select)
        select.set_options([(DELIVERY_LABELS[o], o) for o in options])
        select.value = options[0]

        profile = self.app.state.profile
        if profile and profile.address:
            self.query_one("#input-address-line", Input).value = profile.address
        await self.render_summary()

    def _delivery_type(self) -> str:
        return self.query_one("#select-delivery", Select).value

    async def render_summary(self) -> None:
        items = self.app.state.cart.get_seller_items(self._seller_id)
        delivery_type = self._delivery_type()
        subtotal, fee, total = crud.order_totals(items, delivery_type)
        rows = [[i.name, format_money(i.price), i.quantity, format_money(i.line_total)] for i in items]
        md = (
            f"### Order Summary: {self._seller.shop_name}\n\n"
            + generate_markdown_table(
                ["Product", "Unit Price", "Quantity", "Total"], rows, ["l", "r", "r", "r"]
            )
            + f"\n\n**Subtotal:** {format_money(subtotal)}  \n"
            + f"**Delivery fee:** {format_money(fee) if fee else 'Free'}  \n"
            + f"**Total:** {format_money(total)}"
        )
        await self.query_one(MarkdownViewer).document.update(md)

        address = self.query_one("#input-address-line", Input)
        address.disabled = delivery_type == "customer_pickup"

    @on(Select.Changed, "#select-delivery")
    async def handle_delivery_changed(self) -> None:
        if self._seller is not None:
            await self.render_summary()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        ctx = self.app.state
        delivery_type = self._delivery_type()
        address_input = self.query_one("#input-address-line", Input)
        address_line = address_input.value.strip()
        if delivery_type != "customer_pickup" and not address_line:
            address_input.focus()
            address_input.add_class("-invalid")
            self.notify("Please enter a delivery address.", severity="error")
            return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        items = ctx.cart.get_seller_items(self._seller_id)
        try:
            order = await crud.place_order(
                ctx.user.id,
                self._seller_id,
                items,
                delivery_type,
                delivery_address=address_line,
                notes=self.query_one("#input-notes", Input).value,
            )
        except MarketplaceError as e:
            self.notify(friendly_message(e), severity="error")
            return

        ctx.cart.clear_seller_items(self._seller_id)
        self.notify(f"Order placed. Your order number is {order.order_number}.")
        self.dismiss(order.order_number)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
