from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.errors import friendly_message
from utils.messages import (
    CartChangedMessage,
    ModeSwitchedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal
from views.modal_profile import ProfileModal
from views.modal_seller_register import SellerRegisterModal

ROLE_LABELS = {"customer": "Customer", "seller": "Seller", "admin": "Admin"}


class Sidebar(Container):
    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("User Info", classes="sidebar-title")
        yield Markdown("", id="md-userinfo")
        yield Button("Profile", id="btn-profile")
        yield Button("Open a shop", id="btn-open-shop", classes="hidden")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", classes="sidebar-title")
        yield ListView(id="list-menu")

    async def on_mount(self):
        self.init_mode = self.app.current_mode
        ctx = self.app.state
        if not ctx.user:
            return

        await self.render_user_info()
        self.query_one("#btn-open-shop").set_class(ctx.role != "customer", "hidden")
        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(v), id="list-menu-item-" + k)
                for k, v in self.app.modes_for(ctx.role).items()
            ]
        )
        self.highlight_item(self.init_mode)

    async def render_user_info(self) -> None:
        ctx = self.app.state
        if not ctx.user:
            return
        name = ctx.profile.full_name if ctx.profile and ctx.profile.full_name else ctx.user.email
        rows = [["Name", name], ["Role", ROLE_LABELS.get(ctx.role, ctx.role)]]
        if ctx.role == "customer":
            rows.append(["Cart", f"{ctx.cart.get_item_count()} item(s)"])
            rows.append(["Near", ctx.location.location_name])
        elif ctx.seller:
            rows.append(["Shop", ctx.seller.shop_name])
            rows.append(["Status", "Approved" if ctx.seller.is_approved else "Pending approval"])
        await self.query_one(Markdown).update(
            generate_markdown_table(None, rows, ["l", "l"])
        )

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            self.app.post_message(ModeSwitchedMessage(self.app.current_mode, selected_mode))
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.app.post_message(UserLogoutMessage())

    @on(Button.Pressed, "#btn-open-shop")
    @work()
    async def handle_open_shop(self):
        if await self.app.push_screen_wait(SellerRegisterModal()):
            await self.app.state.refresh_user()
            self.app.post_message(UserLoginMessage())

    @on(Button.Pressed, "#btn-profile")
    @work()
    async def handle_profile(self):
        if await self.app.push_screen_wait(ProfileModal()):
            await self.render_user_info()

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        :return:
        """

        self.app.title = "LocalMart"
        self.sub_title = header_sub_title
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in self.app.MODE_LABELS:
                self.sub_title = self.app.MODE_LABELS[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    @property
    def ctx(self):
        return self.app.state

    def show_error(self, exc: Exception) -> None:
        self.notify(friendly_message(exc), severity="error")

    @on(ScreenResume)
    @on(CartChangedMessage)
    async def refresh_sidebar(self) -> None:
        for sidebar in self.query(Sidebar):
            await sidebar.render_user_info()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
