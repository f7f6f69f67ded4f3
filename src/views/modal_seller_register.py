from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label, Select

import db.crud as crud
from db.models import DELIVERY_LABELS, DELIVERY_TYPES, SHOP_CATEGORIES, Seller
from utils.errors import MarketplaceError, friendly_message


class SellerRegisterModal(ModalScreen[Optional[Seller]]):
    """
    Shop application form. The shop is created unapproved; an admin has to
    approve it before customers can see it.

    Given an existing shop, the same form edits it instead and also takes a
    shop image.
    """

    def __init__(self, seller: Optional[Seller] = None) -> None:
        super().__init__()
        self._seller = seller

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="div-seller-register"):
            caption = "Edit your shop" if self._seller else "Register your shop"
            yield Label(caption, classes="caption")
            yield Label("Shop name")
            yield Input(id="input-shop-name")
            yield Label("Description")
            yield Input(id="input-shop-desc")
            yield Label("Category")
            yield Select(
                [(c.capitalize(), c) for c in SHOP_CATEGORIES],
                allow_blank=False,
                id="select-shop-category",
            )
            yield Label("Address")
            yield Input(id="input-shop-address")
            yield Label("Phone")
            yield Input(id="input-shop-phone", type="integer")
            with Horizontal(classes="form-row"):
                yield Input(placeholder="Latitude", id="input-shop-lat", type="number")
                yield Input(placeholder="Longitude", id="input-shop-lng", type="number")
            with Horizontal(classes="form-row"):
                yield Input("09:00", placeholder="Opens", id="input-shop-open")
                yield Input("21:00", placeholder="Closes", id="input-shop-close")
            yield Label("Delivery options")
            for option in DELIVERY_TYPES:
                yield Checkbox(
                    DELIVERY_LABELS[option],
                    value=option == "customer_pickup",
                    id=f"chk-{option}",
                )
            if self._seller:
                yield Label("Shop image file")
                with Horizontal(classes="form-row"):
                    yield Input(placeholder="/path/to/shop.png", id="input-shop-image")
                    yield Button("Upload", id="btn-shop-image")
            with Horizontal(classes="dialog-btns"):
                yield Button("Go Back", id="btn-quit")
                yield Button("Submit", id="btn-submit", variant="primary")

    def on_mount(self) -> None:
        seller = self._seller
        if seller:
            self._fill(seller)
        else:
            here = self.app.state.location.location
            self.query_one("#input-shop-lat", Input).value = f"{here['lat']:.4f}"
            self.query_one("#input-shop-lng", Input).value = f"{here['lng']:.4f}"
        self.query_one("#input-shop-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _value(self, selector: str) -> str:
        return self.query_one(selector, Input).value.strip()

    def _fill(self, seller: Seller) -> None:
        for selector, value in (
            ("#input-shop-name", seller.shop_name),
            ("#input-shop-desc", seller.shop_description),
            ("#input-shop-address", seller.address),
            ("#input-shop-phone", seller.phone),
            ("#input-shop-lat", f"{seller.latitude:.4f}"),
            ("#input-shop-lng", f"{seller.longitude:.4f}"),
            ("#input-shop-open", seller.opening_hours),
            ("#input-shop-close", seller.closing_hours),
        ):
            self.query_one(selector, Input).value = value or ""
        self.query_one("#select-shop-category", Select).value = seller.category
        for option in DELIVERY_TYPES:
            self.query_one(f"#chk-{option}", Checkbox).value = option in seller.delivery_options

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        options = [o for o in DELIVERY_TYPES if self.query_one(f"#chk-{o}", Checkbox).value]
        try:
            lat = float(self._value("#input-shop-lat"))
            lng = float(self._value("#input-shop-lng"))
        except ValueError:
            self.notify("Please enter a valid latitude and longitude.", severity="error")
            return
        fields = dict(
            shop_name=self._value("#input-shop-name"),
            category=self.query_one("#select-shop-category", Select).value,
            address=self._value("#input-shop-address"),
            phone=self._value("#input-shop-phone"),
            latitude=lat,
            longitude=lng,
            delivery_options=options,
            opening_hours=self._value("#input-shop-open"),
            closing_hours=self._value("#input-shop-close"),
            shop_description=self._value("#input-shop-desc"),
        )
        try:
            if self._seller:
                seller = await self.app.state.save_shop(**fields)
            else:
                seller = await crud.register_seller(self.app.state.user.id, **fields)
        except MarketplaceError as e:
            self.notify(friendly_message(e), severity="error")
            return
        if self._seller:
            self.notify("Shop details saved.")
        else:
            self.notify("Application submitted. An admin will review it shortly.")
        self.dismiss(seller)

    @on(Button.Pressed, "#btn-shop-image")
    @work(exclusive=True, group="image")
    async def handle_shop_image(self) -> None:
        try:
            await self.app.state.upload_shop_image(self._value("#input-shop-image"))
        except MarketplaceError as e:
            self.notify(friendly_message(e), severity="error")
            return
        self.notify("Shop image uploaded.")

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(None)
