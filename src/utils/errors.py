# exception taxonomy shared by db and views
from typing import Literal


class MarketplaceError(Exception):
    """Base for every error a view is expected to catch and show."""


class ValidationError(MarketplaceError):
    """Input rejected before anything was written."""


class UploadRejectedError(ValidationError):
    def __init__(self, reason: Literal["type", "size"], message: str) -> None:
        super().__init__(message)
        self.reason = reason


class DeliveryOptionError(ValidationError):
    pass


class AuthError(MarketplaceError):
    pass


class NotFoundError(MarketplaceError):
    pass


class PermissionDeniedError(MarketplaceError):
    """The acting user does not own the row being touched."""


class ConflictError(MarketplaceError):
    """A unique constraint rejected the write."""


class AlreadyReviewedError(ConflictError):
    pass


class InvalidTransitionError(MarketplaceError):
    def __init__(self, current: str, requested: str, message: str = "") -> None:
        super().__init__(
            message or f"Cannot move an order from '{current}' to '{requested}'."
        )
        self.current = current
        self.requested = requested


class InsufficientStockError(MarketplaceError):
    pass


class TransportError(MarketplaceError):
    """An outbound network call failed."""


GeolocationCode = Literal["denied", "unavailable", "timeout", "unsupported"]

GEOLOCATION_MESSAGES = {
    "denied": "Please allow location access in your settings",
    "unavailable": "Location information is unavailable",
    "timeout": "Location request timed out",
    "unsupported": "Geolocation is not supported on this device",
}


class GeolocationError(MarketplaceError):
    def __init__(self, code: GeolocationCode) -> None:
        super().__init__(GEOLOCATION_MESSAGES[code])
        self.code = code


# known substrings -> what the user should read
_FRIENDLY = [
    ("invalid login credentials", "Invalid email or password. Please try again."),
    (
        "user already registered",
        "An account with this email already exists. Please sign in instead.",
    ),
    ("already reviewed", None),
    ("password", "Password must be at least 6 characters long."),
    ("rate limit", "Too many attempts. Please try again later."),
]


def friendly_message(exc: BaseException) -> str:
    raw = str(exc)
    lowered = raw.lower()
    for needle, text in _FRIENDLY:
        if needle in lowered:
            return text or raw
    return raw or "An unexpected error occurred. Please try again."
