from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired once the context holds a signed-in user, so screens can refresh
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired by the cart store on every mutation.
    Cart screen and sidebar badge refresh on it.

    Posted at App level so every mounted screen receives it
    """

    bubble = True


class OrdersChangedMessage(Message):
    """
    Fired when an order row is inserted or changes status, whether by this
    session or through the change feed.
    Listened to by customer orders, seller orders and analytics screens
    """

    bubble = True

    def __init__(self, order_id: str = "", status: str = "") -> None:
        super().__init__()
        self.order_id = order_id
        self.status = status


class LocationChangedMessage(Message):
    bubble = True


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
