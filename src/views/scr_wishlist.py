from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable

import db.crud as crud
from db.models import WishlistEntry
from utils.errors import MarketplaceError
from utils.pure import format_money
from views.base_screen import BaseScreen


class WishlistScreen(BaseScreen):
    def __init__(self) -> None:
        super().__init__()
        self._entries: Dict[str, WishlistEntry] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-wishlist")
            with Horizontal(id="hort-buttons"):
                yield Button("Remove", id="btn-remove", variant="warning")
                yield Button("Add to Cart", id="btn-addcart", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Product", "Shop", "Price", "Stock", "Added")
        self.load()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self.load()

    @work(exclusive=True)
    async def load(self) -> None:
        if not self.ctx.user:
            return
        entries = await crud.list_wishlist(self.ctx.user.id)
        self._entries = {e.product.id: e for e in entries}
        table = self.query_one(DataTable)
        table.clear()
        for e in entries:
            seller = await crud.get_seller(e.product.seller_id)
            table.add_row(
                e.product.name,
                seller.shop_name if seller else "-",
                format_money(e.product.price),
                e.product.stock if e.product.is_available else "Unavailable",
                e.created_at[:10],
                key=e.product.id,
            )

    def _selected(self) -> Optional[WishlistEntry]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._entries.get(row_key.value)

    @on(Button.Pressed, "#btn-remove")
    @work()
    async def handle_remove(self) -> None:
        entry = self._selected()
        if entry is None:
            return
        try:
            await self.ctx.toggle_wishlist(entry.product.id)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify(f"{entry.product.name} removed from wishlist.")
        self.load()

    @on(Button.Pressed, "#btn-addcart")
    @work()
    async def handle_addcart(self) -> None:
        entry = self._selected()
        if entry is None:
            return
        product = entry.product
        seller = await crud.get_seller(product.seller_id)
        if seller is None or not product.is_available:
            self.notify("This product is not available.", severity="warning")
            return
        item = self.ctx.cart.add_item(
            product_id=product.id,
            seller_id=seller.id,
            seller_name=seller.shop_name,
            name=product.name,
            price=product.price,
            stock=product.stock,
            unit=product.unit,
            image_url=product.image_url,
        )
        if item is None:
            self.notify("This product is out of stock.", severity="warning")
        else:
            self.notify(f"{product.name} added to cart.")
