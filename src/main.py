from typing import Dict

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

import db.crud as crud
from db.realtime import OrderPoller
from utils import config
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    ModeSwitchedMessage,
    QuitRequestedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.notifications import OrderNotification, OrderNotifier
from utils.state import AppContext
from views.scr_admin import AdminScreen
from views.scr_cart import CartScreen
from views.scr_discover import DiscoverScreen
from views.scr_login import LoginScreen
from views.scr_orders import CustomerOrdersScreen
from views.scr_seller_analytics import SellerAnalyticsScreen
from views.scr_seller_orders import SellerOrdersScreen
from views.scr_seller_products import SellerProductsScreen
from views.scr_wishlist import WishlistScreen

_logger = get_logger(__name__)


class MarketplaceApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "discover": DiscoverScreen,
        "cart": CartScreen,
        "orders": CustomerOrdersScreen,
        "wishlist": WishlistScreen,
        "seller_orders": SellerOrdersScreen,
        "seller_products": SellerProductsScreen,
        "seller_analytics": SellerAnalyticsScreen,
        "admin": AdminScreen,
    }

    CUSTOMER_MODES = {
        "discover": "Discover",
        "cart": "Cart",
        "orders": "My Orders",
        "wishlist": "Wishlist",
    }
    SELLER_MODES = {
        "seller_orders": "Incoming Orders",
        "seller_products": "My Products",
        "seller_analytics": "Analytics",
    }
    ADMIN_MODES = {"admin": "Admin Dashboard"}
    MODE_LABELS = {**CUSTOMER_MODES, **SELLER_MODES, **ADMIN_MODES}

    HOME_MODES = {"customer": "discover", "seller": "seller_orders", "admin": "admin"}

    CSS_PATH = "views/styles/app.tcss"

    state: AppContext

    def __init__(self):
        super().__init__()
        self.state = AppContext.from_config(on_cart_change=self._cart_changed)
        self.notifier = OrderNotifier(self.state.feed, self._order_notification)
        self.poller = OrderPoller(self.state.feed)

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        await self.poller.start()
        self.set_interval(config.FEED_POLL_INTERVAL, self.poller.poll)
        self.main_flow()

    def modes_for(self, role: str) -> Dict[str, str]:
        if role == "seller":
            return self.SELLER_MODES
        if role == "admin":
            return self.ADMIN_MODES
        return self.CUSTOMER_MODES

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    def _cart_changed(self) -> None:
        if self.is_running:
            self.screen.post_message(CartChangedMessage())

    def _order_notification(self, n: OrderNotification) -> None:
        severity = "warning" if n.status == "cancelled" else "information"
        self.notify(n.message, title=n.title, severity=severity)

    async def start_session(self) -> None:
        """Listen for order changes of the signed-in user and open their home mode."""
        ctx = self.state
        self.notifier.stop()
        if ctx.role == "customer":
            self.notifier.watch_customer(ctx.uid)
            self.notifier.seed(await crud.list_customer_orders(ctx.uid))
        elif ctx.role == "seller" and ctx.seller:
            self.notifier.watch_seller(ctx.seller.id)
            self.notifier.seed(await crud.list_seller_orders(ctx.seller.id))

        home = self.HOME_MODES.get(ctx.role, "discover")
        self.post_message(ModeSwitchedMessage(self.current_mode, home))
        await self.switch_mode(home)

    @on(UserLoginMessage)
    @work
    async def handle_user_login(self):
        await self.start_session()

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        self.notifier.stop()
        self.state.sign_out()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.notifier.stop()
        self.poller.stop()
        self.state.sign_out()
        self.exit()

    @work
    async def main_flow(self):
        user = await self.push_screen_wait(LoginScreen())
        if user is None:
            return
        _logger.info(f"Session started for {user.email}")
        await self.start_session()


def run() -> None:
    MarketplaceApp().run()


if __name__ == "__main__":
    run()
