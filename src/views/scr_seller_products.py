from __future__ import annotations

import os
from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import Button, Checkbox, DataTable, Input, Label

import db.crud as crud
from db.models import Product
from utils.errors import MarketplaceError
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_seller_register import SellerRegisterModal


class SellerProductsScreen(BaseScreen):
    """
    Catalog management: create, edit, delete products, toggle availability,
    attach images. Also opens/closes the shop and edits its details.
    """

    current_id: Optional[str] = None

    def __init__(self) -> None:
        super().__init__()
        self._products: Dict[str, Product] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-shop-status"):
                yield Label("", id="label-shop-status")
                yield Button("Toggle Open/Closed", id="btn-toggle-open")
                yield Button("Edit Shop", id="btn-edit-shop")
            yield DataTable(id="table-products")
            with Horizontal(id="hort-controls"):
                with Vertical():
                    yield Label("Name")
                    yield Input(id="input-name")
                    yield Label("Category")
                    yield Input(id="input-category")
                    yield Label("Description")
                    yield Input(id="input-description")
                with Vertical():
                    yield Label("Price")
                    yield Input(id="input-price", type="number", validators=[Number(minimum=0.01)])
                    yield Label("Original price (optional)")
                    yield Input(id="input-original-price", type="number")
                    yield Label("Stock")
                    yield Input(id="input-stock", type="integer", validators=[Number(minimum=0)])
                with Vertical():
                    yield Label("Unit")
                    yield Input("piece", id="input-unit")
                    yield Checkbox("Available", value=True, id="chk-available")
                    yield Label("Image file")
                    yield Input(placeholder="/path/to/image.png", id="input-image-path")
            with Horizontal(id="div-button"):
                yield Button("New", id="btn-new")
                yield Button("Save", id="btn-save", variant="success")
                yield Button("Upload Image", id="btn-image")
                yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Product", "Price", "Off", "Stock", "Unit", "Category", "Available")
        self.load()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self.load()

    @work(exclusive=True, group="products")
    async def load(self) -> None:
        seller = self.ctx.seller
        if seller is None:
            self.query_one("#label-shop-status", Label).update(
                "No shop registered. Use 'Open a shop' in the sidebar."
            )
            return
        self.ctx.seller = await crud.get_seller(seller.id) or seller
        self._render_shop_status()
        products = await crud.list_products(seller.id)
        self._products = {p.id: p for p in products}
        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.name,
                format_money(p.price),
                f"{p.discount_percent}%" if p.discount_percent else "",
                p.stock,
                p.unit,
                p.category or "",
                "Yes" if p.is_available else "No",
                key=p.id,
            )
        if self.current_id in self._products:
            table.move_cursor(row=table.get_row_index(self.current_id))

    def _render_shop_status(self) -> None:
        s = self.ctx.seller
        approval = "approved" if s.is_approved else "awaiting approval"
        state = "Open" if s.is_open else "Closed"
        self.query_one("#label-shop-status", Label).update(f"{s.shop_name} ({approval}) · {state}")

    @on(DataTable.RowSelected)
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        product = self._products.get(event.row_key.value)
        if product is None:
            return
        self.current_id = product.id
        self.query_one("#input-name", Input).value = product.name
        self.query_one("#input-category", Input).value = product.category or ""
        self.query_one("#input-description", Input).value = product.description or ""
        self.query_one("#input-price", Input).value = f"{product.price:.2f}"
        self.query_one("#input-original-price", Input).value = (
            f"{product.original_price:.2f}" if product.original_price else ""
        )
        self.query_one("#input-stock", Input).value = str(product.stock)
        self.query_one("#input-unit", Input).value = product.unit
        self.query_one("#chk-available", Checkbox).value = product.is_available

    @on(Button.Pressed, "#btn-new")
    def handle_new(self) -> None:
        self.current_id = None
        for selector in (
            "#input-name",
            "#input-category",
            "#input-description",
            "#input-price",
            "#input-original-price",
            "#input-stock",
            "#input-image-path",
        ):
            self.query_one(selector, Input).value = ""
        self.query_one("#input-unit", Input).value = "piece"
        self.query_one("#chk-available", Checkbox).value = True
        self.query_one("#input-name").focus()

    def _form(self) -> dict:
        def value(selector: str) -> str:
            return self.query_one(selector, Input).value.strip()

        return {
            "name": value("#input-name"),
            "category": value("#input-category"),
            "description": value("#input-description"),
            "price": value("#input-price"),
            "original_price": value("#input-original-price") or None,
            "stock": value("#input-stock") or 0,
            "unit": value("#input-unit"),
            "is_available": self.query_one("#chk-available", Checkbox).value,
        }

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        fields = self._form()
        try:
            if self.current_id:
                product = await crud.update_product(self.ctx.user.id, self.current_id, **fields)
                self.notify(f"{product.name} updated.")
            else:
                product = await crud.create_product(self.ctx.user.id, **fields)
                self.notify(f"{product.name} added.")
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.current_id = product.id
        self.load()

    @on(Button.Pressed, "#btn-image")
    @work(exclusive=True)
    async def handle_image(self) -> None:
        if not self.current_id:
            self.notify("Select a product first.", severity="warning")
            return
        path = self.query_one("#input-image-path", Input).value.strip()
        if not path or not os.path.isfile(path):
            self.notify("Please select an image file", severity="error")
            return
        try:
            await crud.set_product_image(
                self.ctx.user.id, self.current_id, os.path.basename(path), os.path.getsize(path)
            )
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify("Image uploaded.")
        self.load()

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        product = self._products.get(self.current_id or "")
        if product is None:
            self.notify("Select a product first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete {product.name}? Past orders keep their copy.",
                primary_text="Delete",
                secondary_text="Keep",
                tone="error",
            )
        ):
            return
        try:
            await crud.delete_product(self.ctx.user.id, product.id)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify(f"{product.name} deleted.")
        self.handle_new()
        self.load()

    @on(Button.Pressed, "#btn-toggle-open")
    @work(exclusive=True)
    async def handle_toggle_open(self) -> None:
        seller = self.ctx.seller
        if seller is None:
            return
        try:
            self.ctx.seller = await crud.set_seller_open(self.ctx.user.id, not seller.is_open)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self._render_shop_status()

    @on(Button.Pressed, "#btn-edit-shop")
    @work()
    async def handle_edit_shop(self) -> None:
        if self.ctx.seller is None:
            return
        if await self.app.push_screen_wait(SellerRegisterModal(self.ctx.seller)):
            self._render_shop_status()
            await self.refresh_sidebar()
