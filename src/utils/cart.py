from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from utils.logger import get_logger
from utils.storage import CART_KEY, LocalStorage

_logger = get_logger(__name__)


@dataclass
class CartItem:
    """
    One cart line. Everything except quantity is a snapshot taken when the
    product was added; the cart never re-reads price or stock.
    """

    id: str
    product_id: str
    seller_id: str
    seller_name: str
    name: str
    price: float
    quantity: int
    stock: int
    unit: str = "piece"
    image_url: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


def _clamp(qty: int, stock: int) -> int:
    return max(0, min(int(qty), max(int(stock), 0)))


class CartStore:
    """
    Client-held cart, partitioned by seller at read time.

    Persisted to local storage after every mutation and rehydrated on
    construction. Quantities always stay within [0, stock snapshot]; a line
    reaching 0 is removed.
    """

    def __init__(
        self,
        storage: LocalStorage,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._storage = storage
        self._on_change = on_change
        self._items: List[CartItem] = self._rehydrate()

    def _rehydrate(self) -> List[CartItem]:
        raw = self._storage.get(CART_KEY, [])
        items: List[CartItem] = []
        if not isinstance(raw, list):
            return items
        fields = {f.name for f in dataclasses.fields(CartItem)}
        for entry in raw:
            try:
                item = CartItem(**{k: v for k, v in entry.items() if k in fields})
                item.price = float(item.price)
                item.quantity = _clamp(item.quantity, item.stock)
                item.stock = int(item.stock)
            except (TypeError, AttributeError, ValueError) as e:
                _logger.warning(f"Dropping malformed cart entry {entry!r}: {e}")
                continue
            if item.quantity > 0:
                items.append(item)
        return items

    def _persist(self) -> None:
        self._storage.set(CART_KEY, [dataclasses.asdict(i) for i in self._items])
        if self._on_change:
            self._on_change()

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def find_product(self, product_id: str) -> Optional[CartItem]:
        return next((i for i in self._items if i.product_id == product_id), None)

    def add_item(
        self,
        product_id: str,
        seller_id: str,
        seller_name: str,
        name: str,
        price: float,
        stock: int,
        quantity: int = 1,
        unit: str = "piece",
        image_url: Optional[str] = None,
    ) -> Optional[CartItem]:
        """
        Add a product, or top up the existing line for the same product.
        Returns the affected line, or None when nothing could be added.
        """
        existing = self.find_product(product_id)
        if existing:
            # the fresh stock snapshot bounds the merged quantity
            existing.stock = int(stock)
            existing.quantity = _clamp(existing.quantity + quantity, stock)
            if existing.quantity == 0:
                self._items.remove(existing)
                self._persist()
                return None
            self._persist()
            return existing

        qty = _clamp(quantity, stock)
        if qty == 0:
            return None
        item = CartItem(
            id=f"{product_id}-{time.time_ns() // 1_000_000}",
            product_id=product_id,
            seller_id=seller_id,
            seller_name=seller_name,
            name=name,
            price=float(price),
            quantity=qty,
            stock=int(stock),
            unit=unit or "piece",
            image_url=image_url,
        )
        self._items.append(item)
        self._persist()
        return item

    def update_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        item = self.get_item(item_id)
        if item is None:
            return None
        qty = _clamp(quantity, item.stock)
        if qty == 0:
            self._items.remove(item)
            self._persist()
            return None
        item.quantity = qty
        self._persist()
        return item

    def remove_item(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        if len(self._items) != before:
            self._persist()

    def clear_seller_items(self, seller_id: str) -> None:
        self._items = [i for i in self._items if i.seller_id != seller_id]
        self._persist()

    def clear(self) -> None:
        self._items = []
        self._persist()

    def get_seller_items(self, seller_id: str) -> List[CartItem]:
        return [i for i in self._items if i.seller_id == seller_id]

    def by_seller(self) -> Dict[str, List[CartItem]]:
        """Lines grouped by seller id, in first-added order."""
        groups: Dict[str, List[CartItem]] = {}
        for item in self._items:
            groups.setdefault(item.seller_id, []).append(item)
        return groups

    def get_item_count(self) -> int:
        return sum(i.quantity for i in self._items)

    def get_subtotal(self) -> float:
        return sum(i.price * i.quantity for i in self._items)
