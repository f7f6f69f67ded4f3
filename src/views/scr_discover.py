from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, Select

import db.crud as crud
from db.models import SHOP_CATEGORIES, DELIVERY_LABELS, Seller
from utils.errors import GeolocationError
from utils.messages import LocationChangedMessage
from utils.pure import format_distance, format_money, star_rating
from views.base_screen import BaseScreen
from views.modal_shop import ShopModal

CATEGORY_OPTIONS = [("All categories", "")] + [(c.capitalize(), c) for c in SHOP_CATEGORIES]


class DiscoverScreen(BaseScreen):
    """
    Nearby shops sorted by distance, plus product search across shops.
    """

    BINDINGS = [
        Binding("enter", "noop", "Open Shop", show=True, key_display="⏎"),
        Binding("ctrl+l", "locate", "Update Location", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._sellers: Dict[str, Seller] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-discover"):
            with Horizontal(id="hort-discover-filters"):
                yield Select(CATEGORY_OPTIONS, allow_blank=False, value="", id="select-category")
                yield Button("Use my location", id="btn-locate")
                yield Label("", id="label-location")
            yield Input(id="input-search", placeholder="Search products in nearby shops...")
            yield Label("", id="label-recent")
            yield DataTable(id="table-shops")
            yield DataTable(id="table-search", classes="hidden")

    def on_mount(self) -> None:
        shops = self.query_one("#table-shops", DataTable)
        shops.cursor_type = "row"
        shops.zebra_stripes = True
        shops.add_columns("Shop", "Category", "Distance", "Rating", "Open", "Delivery")

        results = self.query_one("#table-search", DataTable)
        results.cursor_type = "row"
        results.zebra_stripes = True
        results.add_columns("Product", "Price", "Unit", "Shop", "Distance")

        self._render_recent()
        self.load_shops()

    @on(ScreenResume)
    @on(LocationChangedMessage)
    def handle_resume(self) -> None:
        self.load_shops()

    @on(Select.Changed, "#select-category")
    def handle_category(self) -> None:
        self.load_shops()

    def _render_recent(self) -> None:
        terms = self.ctx.recent_searches.list()
        self.query_one("#label-recent", Label).update(
            "Recent: " + ", ".join(terms) if terms else ""
        )
        self.query_one("#label-location", Label).update(
            f"Near {self.ctx.location.location_name}"
        )

    @work(exclusive=True, group="shops")
    async def load_shops(self) -> None:
        category = self.query_one("#select-category", Select).value or None
        sellers = await crud.list_sellers(category)
        self._sellers = {s.id: s for s in sellers}
        ranked = self.ctx.location.sort_by_distance(
            sellers, lambda s: (s.latitude, s.longitude)
        )

        table = self.query_one("#table-shops", DataTable)
        table.clear()
        for seller, km in ranked:
            table.add_row(
                seller.shop_name,
                seller.category.capitalize(),
                format_distance(km),
                f"{star_rating(seller.rating)} ({seller.review_count})",
                "Open" if seller.is_open else "Closed",
                ", ".join(DELIVERY_LABELS[d] for d in seller.delivery_options),
                key=seller.id,
            )
        if not ranked:
            self.notify("No shops found for this category.", severity="warning")

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self, event: Input.Changed) -> None:
        self.search(event.value)

    @on(Input.Submitted, "#input-search")
    def handle_search_submitted(self, event: Input.Submitted) -> None:
        if event.value.strip():
            self.ctx.recent_searches.add(event.value)
            self._render_recent()

    @work(exclusive=True, group="search")
    async def search(self, query: str) -> None:
        shops = self.query_one("#table-shops", DataTable)
        results = self.query_one("#table-search", DataTable)
        if not query.strip():
            results.add_class("hidden")
            shops.remove_class("hidden")
            return

        products = await crud.search_products(query)
        sellers = {s.id: s for s in await crud.list_sellers()}
        results.clear()
        rows: List = []
        for p in products:
            seller = sellers.get(p.seller_id)
            if seller is None:
                continue
            km = self.ctx.location.calculate_distance(seller.latitude, seller.longitude)
            rows.append((km, p, seller))
        rows.sort(key=lambda r: (r[0] is None, r[0] or 0.0))
        for km, p, seller in rows:
            results.add_row(
                p.name,
                format_money(p.price),
                p.unit,
                seller.shop_name,
                format_distance(km),
                key=f"{seller.id}|{p.id}",
            )
        shops.add_class("hidden")
        results.remove_class("hidden")

    @on(DataTable.RowSelected, "#table-shops")
    def handle_shop_selected(self, event: DataTable.RowSelected) -> None:
        self.open_shop(event.row_key.value)

    @on(DataTable.RowSelected, "#table-search")
    def handle_product_selected(self, event: DataTable.RowSelected) -> None:
        seller_id, product_id = event.row_key.value.split("|", 1)
        query = self.query_one("#input-search", Input).value
        self.ctx.recent_searches.add(query)
        self._render_recent()
        self.open_shop(seller_id, product_id)

    @work()
    async def open_shop(self, seller_id: str, product_id: str = "") -> None:
        await self.app.push_screen_wait(ShopModal(seller_id, product_id or None))

    @on(Button.Pressed, "#btn-locate")
    def handle_locate(self) -> None:
        self.action_locate()

    @work(exclusive=True, group="locate")
    async def action_locate(self) -> None:
        button = self.query_one("#btn-locate", Button)
        button.disabled = True
        try:
            await self.ctx.location.request_location()
        except GeolocationError as e:
            self.notify(str(e), severity="warning")
        else:
            self.notify(f"Location updated: {self.ctx.location.location_name}")
            self.post_message(LocationChangedMessage())
        finally:
            button.disabled = False
            self._render_recent()

    def action_noop(self) -> None:
        pass
