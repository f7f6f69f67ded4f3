from __future__ import annotations

import os
from typing import Callable, Optional, Set

import db.crud as crud
from db.models import Profile, Seller, User
from db.realtime import ChangeFeed, changes
from utils import config
from utils.cart import CartStore
from utils.errors import AuthError, ValidationError
from utils.location import LocationResolver
from utils.logger import get_logger
from utils.storage import LocalStorage, RecentSearches

_logger = get_logger(__name__)


class AppContext:
    """
    Application state shared by screens, created once at startup and handed
    to the app.

    Fields:
      - user: signed-in user, None before login
      - profile: the user's profile row
      - seller: the user's shop, only for seller accounts that registered one
      - cart: client-held cart, persisted in local storage
      - location: customer position used for distance sorting
      - recent_searches: last few search terms
      - wishlist_ids: product ids on the user's wishlist
      - feed: change feed the screens subscribe to
    """

    def __init__(
        self,
        storage: LocalStorage,
        feed: ChangeFeed = changes,
        location: Optional[LocationResolver] = None,
        on_cart_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.storage = storage
        self.feed = feed
        self.cart = CartStore(storage, on_change=on_cart_change)
        self.location = location or LocationResolver(storage)
        self.recent_searches = RecentSearches(storage)

        self.user: Optional[User] = None
        self.profile: Optional[Profile] = None
        self.seller: Optional[Seller] = None
        self.wishlist_ids: Set[str] = set()

    @classmethod
    def from_config(cls, on_cart_change: Optional[Callable[[], None]] = None) -> "AppContext":
        return cls(LocalStorage(config.STORAGE_PATH), on_cart_change=on_cart_change)

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    @property
    def uid(self) -> Optional[str]:
        return self.user.id if self.user else None

    async def sign_in(self, email: str, password: str) -> User:
        user = await crud.sign_in(email, password)
        await self._load(user)
        _logger.info(f"Signed in {user.email} as {user.role}")
        return user

    async def sign_up(self, email: str, password: str, full_name: str) -> User:
        user = await crud.sign_up(email, password, full_name)
        await self._load(user)
        return user

    async def _load(self, user: User) -> None:
        self.user = user
        self.profile = await crud.get_profile(user.id)
        self.seller = await crud.get_seller_for_user(user.id)
        self.wishlist_ids = await crud.wishlist_product_ids(user.id)

    async def refresh_user(self) -> None:
        """Reload role, profile and shop, e.g. after registering a shop."""
        if self.user is None:
            return
        user = await crud.get_user(self.user.id)
        if user:
            await self._load(user)

    def sign_out(self) -> None:
        if self.user:
            _logger.info(f"Signed out {self.user.email}")
        self.user = None
        self.profile = None
        self.seller = None
        self.wishlist_ids = set()

    async def toggle_wishlist(self, product_id: str) -> bool:
        """Returns True when the product is now on the wishlist."""
        if self.user is None:
            raise AuthError("Please sign in to use your wishlist")
        if product_id in self.wishlist_ids:
            await crud.remove_from_wishlist(self.user.id, product_id)
            self.wishlist_ids.discard(product_id)
            return False
        await crud.add_to_wishlist(self.user.id, product_id)
        self.wishlist_ids.add(product_id)
        return True

    def _require_user(self) -> User:
        if self.user is None:
            raise AuthError("Please sign in first")
        return self.user

    async def save_profile(
        self,
        full_name: str,
        phone: str,
        address: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Profile:
        user = self._require_user()
        self.profile = await crud.update_profile(
            user.id,
            full_name=full_name,
            phone=phone,
            address=address,
            latitude=latitude,
            longitude=longitude,
        )
        return self.profile

    async def upload_avatar(self, path: str) -> str:
        """Record a local image file as the avatar; returns a signed URL for it."""
        user = self._require_user()
        if not os.path.isfile(path):
            raise ValidationError("Please select an image file")
        await crud.set_avatar(user.id, os.path.basename(path), os.path.getsize(path))
        self.profile = await crud.get_profile(user.id)
        return await crud.signed_avatar_url(user.id)

    async def save_shop(self, **fields) -> Seller:
        user = self._require_user()
        self.seller = await crud.update_seller(user.id, **fields)
        return self.seller

    async def upload_shop_image(self, path: str) -> str:
        user = self._require_user()
        if not os.path.isfile(path):
            raise ValidationError("Please select an image file")
        url = await crud.set_shop_image(user.id, os.path.basename(path), os.path.getsize(path))
        self.seller = await crud.get_seller_for_user(user.id)
        return url
