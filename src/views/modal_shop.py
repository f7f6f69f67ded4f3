from typing import Dict, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, DataTable, Input, Label, Markdown

import db.crud as crud
from db.models import DELIVERY_LABELS, Product, Seller
from utils.errors import MarketplaceError, friendly_message
from utils.pure import format_distance, format_money, star_rating


class ShopModal(ModalScreen[None]):
    """
    One shop: details, its available products and recent reviews.
    Customers add products to the cart and toggle wishlist entries from here.
    """

    def __init__(self, seller_id: str, product_id: Optional[str] = None) -> None:
        super().__init__()
        self._seller_id = seller_id
        self._focus_product = product_id
        self._seller: Optional[Seller] = None
        self._products: Dict[str, Product] = {}

    def compose(self) -> ComposeResult:
        with Vertical(id="div-shop"):
            yield Markdown("", id="md-shop")
            yield DataTable(id="table-products")
            with Horizontal(id="hort-shop-actions"):
                yield Label("Qty")
                yield Input("1", id="input-qty", type="integer")
                yield Button("Add to Cart", id="btn-addcart", variant="primary")
                yield Button("Wishlist", id="btn-wishlist")
                yield Button("Close", id="btn-close")
            with VerticalScroll(id="scroll-reviews"):
                yield Markdown("", id="md-reviews")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Product", "Price", "Off", "Stock", "Unit", "In Cart", "♥")
        self.load()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @work(exclusive=True)
    async def load(self) -> None:
        self._seller = await crud.get_seller(self._seller_id)
        if self._seller is None:
            self.notify("Shop not found.", severity="error")
            self.dismiss(None)
            return
        products = await crud.list_products(self._seller_id, available_only=True)
        self._products = {p.id: p for p in products}
        reviews = await crud.list_shop_reviews(self._seller_id)

        s = self._seller
        ctx = self.app.state
        km = ctx.location.calculate_distance(s.latitude, s.longitude)
        hours = f"{s.opening_hours or '?'} - {s.closing_hours or '?'}"
        await self.query_one("#md-shop", Markdown).update(
            f"### {s.shop_name}\n\n"
            f"{s.shop_description or ''}\n\n"
            f"{star_rating(s.rating)} {s.rating:.1f} ({s.review_count} reviews) · "
            f"{format_distance(km)} away · {hours} · "
            f"{'Open now' if s.is_open else 'Closed'}\n\n"
            f"{s.address} · {s.phone}  \n"
            f"Delivery: {', '.join(DELIVERY_LABELS[d] for d in s.delivery_options)}"
        )

        review_lines = ["#### Reviews", ""]
        for review, reviewer in reviews[:10]:
            review_lines.append(
                f"- {star_rating(review.rating)} **{reviewer or 'Customer'}**"
                + (f": {review.comment}" if review.comment else "")
            )
        if not reviews:
            review_lines.append("No reviews yet.")
        await self.query_one("#md-reviews", Markdown).update("\n".join(review_lines))

        self._render_products()
        if self._focus_product and self._focus_product in self._products:
            table = self.query_one(DataTable)
            table.move_cursor(row=table.get_row_index(self._focus_product))
        self.query_one(DataTable).focus()

    def _render_products(self) -> None:
        ctx = self.app.state
        table = self.query_one(DataTable)
        cursor = table.cursor_row
        table.clear()
        for p in self._products.values():
            in_cart = ctx.cart.find_product(p.id)
            table.add_row(
                p.name,
                format_money(p.price),
                f"{p.discount_percent}%" if p.discount_percent else "",
                p.stock if p.stock > 0 else "Out of stock",
                p.unit,
                in_cart.quantity if in_cart else "",
                "♥" if p.id in ctx.wishlist_ids else "",
                key=p.id,
            )
        if table.row_count:
            table.move_cursor(row=min(cursor, table.row_count - 1))

    def _selected_product(self) -> Optional[Product]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._products.get(row_key.value)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        product = self._selected_product()
        if product is None:
            return
        qty_input = self.query_one("#input-qty", Input)
        qty_input.validators = [Number(minimum=1, maximum=max(product.stock, 1))]
        add_btn = self.query_one("#btn-addcart", Button)
        add_btn.disabled = product.stock < 1
        add_btn.label = "Out of Stock" if product.stock < 1 else "Add to Cart"
        wish_btn = self.query_one("#btn-wishlist", Button)
        wish_btn.label = "Unwishlist" if product.id in self.app.state.wishlist_ids else "Wishlist"

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self) -> None:
        product = self._selected_product()
        if product is None or self._seller is None:
            return
        raw = self.query_one("#input-qty", Input).value
        qty = int(raw) if raw.isdigit() else 1
        cart = self.app.state.cart
        existing = cart.find_product(product.id)
        if existing and existing.quantity >= product.stock:
            self.notify(f"Only {product.stock} in stock.", severity="warning")
            return
        item = cart.add_item(
            product_id=product.id,
            seller_id=self._seller.id,
            seller_name=self._seller.shop_name,
            name=product.name,
            price=product.price,
            stock=product.stock,
            quantity=qty,
            unit=product.unit,
            image_url=product.image_url,
        )
        if item is None:
            self.notify("This product is out of stock.", severity="warning")
            return
        self.notify(f"{product.name} x{item.quantity} in cart.")
        self._render_products()

    @on(Button.Pressed, "#btn-wishlist")
    @work(exclusive=True, group="wishlist")
    async def handle_wishlist(self) -> None:
        product = self._selected_product()
        if product is None:
            return
        try:
            added = await self.app.state.toggle_wishlist(product.id)
        except MarketplaceError as e:
            self.notify(friendly_message(e), severity="error")
            return
        self.notify("Added to wishlist." if added else "Removed from wishlist.")
        self._render_products()
        self.handle_row_highlight()

    @on(Button.Pressed, "#btn-close")
    def handle_close(self) -> None:
        self.dismiss(None)
