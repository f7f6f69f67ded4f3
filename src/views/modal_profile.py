from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

import db.crud as crud
from db.models import Profile
from utils.errors import MarketplaceError, friendly_message


class ProfileModal(ModalScreen[Optional[Profile]]):
    """
    Name, phone and default delivery address of the signed-in user, plus the
    avatar. The address and coordinates prefill checkout.
    """

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="div-profile"):
            yield Label("My Profile", classes="caption")
            yield Label("", id="label-email")
            yield Label("Full name")
            yield Input(id="input-profile-name")
            yield Label("Phone")
            yield Input(id="input-profile-phone", type="integer")
            yield Label("Delivery address")
            yield Input(id="input-profile-address")
            with Horizontal(classes="form-row"):
                yield Input(placeholder="Latitude", id="input-profile-lat", type="number")
                yield Input(placeholder="Longitude", id="input-profile-lng", type="number")
                yield Button("Use my location", id="btn-use-location")
            yield Label("Avatar image file")
            with Horizontal(classes="form-row"):
                yield Input(placeholder="/path/to/avatar.png", id="input-avatar-path")
                yield Button("Upload", id="btn-avatar")
            yield Label("", id="label-avatar")
            with Horizontal(classes="dialog-btns"):
                yield Button("Go Back", id="btn-quit")
                yield Button("Save", id="btn-save", variant="primary")

    async def on_mount(self) -> None:
        ctx = self.app.state
        self.query_one("#label-email", Label).update(ctx.user.email)
        profile = ctx.profile
        if profile:
            self.query_one("#input-profile-name", Input).value = profile.full_name or ""
            self.query_one("#input-profile-phone", Input).value = profile.phone or ""
            self.query_one("#input-profile-address", Input).value = profile.address or ""
            if profile.latitude is not None and profile.longitude is not None:
                self._set_coords(profile.latitude, profile.longitude)
        await self._render_avatar()
        self.query_one("#input-profile-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _value(self, selector: str) -> str:
        return self.query_one(selector, Input).value.strip()

    def _set_coords(self, lat: float, lng: float) -> None:
        self.query_one("#input-profile-lat", Input).value = f"{lat:.4f}"
        self.query_one("#input-profile-lng", Input).value = f"{lng:.4f}"

    async def _render_avatar(self) -> None:
        url = await crud.signed_avatar_url(self.app.state.user.id)
        self.query_one("#label-avatar", Label).update(url or "No avatar yet")

    @on(Button.Pressed, "#btn-use-location")
    def handle_use_location(self) -> None:
        here = self.app.state.location.location
        self._set_coords(here["lat"], here["lng"])

    @on(Button.Pressed, "#btn-avatar")
    @work(exclusive=True, group="avatar")
    async def handle_avatar(self) -> None:
        try:
            url = await self.app.state.upload_avatar(self._value("#input-avatar-path"))
        except MarketplaceError as e:
            self.notify(friendly_message(e), severity="error")
            return
        self.query_one("#label-avatar", Label).update(url)
        self.notify("Avatar updated.")

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        lat_text, lng_text = self._value("#input-profile-lat"), self._value("#input-profile-lng")
        lat = lng = None
        if lat_text or lng_text:
            try:
                lat, lng = float(lat_text), float(lng_text)
            except ValueError:
                self.notify("Please enter a valid latitude and longitude.", severity="error")
                return
        try:
            profile = await self.app.state.save_profile(
                full_name=self._value("#input-profile-name"),
                phone=self._value("#input-profile-phone"),
                address=self._value("#input-profile-address"),
                latitude=lat,
                longitude=lng,
            )
        except MarketplaceError as e:
            self.notify(friendly_message(e), severity="error")
            return
        self.notify("Profile saved.")
        self.dismiss(profile)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(None)
