# provide dataclass models mirroring the table rows

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

AppRole = Literal["admin", "seller", "customer"]
DeliveryType = Literal["self_delivery", "third_party", "customer_pickup"]
OrderStatus = Literal[
    "pending", "accepted", "packed", "out_for_delivery", "delivered", "cancelled"
]
ShopCategory = Literal[
    "grocery", "medical", "electronics", "clothing", "food", "services", "other"
]

APP_ROLES: Tuple[str, ...] = ("admin", "seller", "customer")
DELIVERY_TYPES: Tuple[str, ...] = ("self_delivery", "third_party", "customer_pickup")
ORDER_STATUSES: Tuple[str, ...] = (
    "pending",
    "accepted",
    "packed",
    "out_for_delivery",
    "delivered",
    "cancelled",
)
SHOP_CATEGORIES: Tuple[str, ...] = (
    "grocery",
    "medical",
    "electronics",
    "clothing",
    "food",
    "services",
    "other",
)

DELIVERY_LABELS = {
    "self_delivery": "Self Delivery",
    "third_party": "Third Party Delivery",
    "customer_pickup": "Store Pickup",
}


@dataclass(frozen=True)
class User:
    id: str
    email: str
    role: str  # highest of the user's roles


@dataclass(frozen=True)
class Profile:
    user_id: str
    full_name: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    avatar_url: Optional[str]


@dataclass(frozen=True)
class Seller:
    id: str
    user_id: str
    shop_name: str
    category: str
    address: str
    phone: str
    latitude: float
    longitude: float
    opening_hours: Optional[str]
    closing_hours: Optional[str]
    delivery_options: Tuple[str, ...]
    shop_description: Optional[str]
    image_url: Optional[str]
    is_approved: bool
    is_active: bool
    is_open: bool
    rating: float
    review_count: int
    created_at: str


@dataclass(frozen=True)
class Product:
    id: str
    seller_id: str
    name: str
    description: Optional[str]
    price: float
    original_price: Optional[float]
    stock: int
    unit: str
    category: Optional[str]
    image_url: Optional[str]
    is_available: bool

    @property
    def discount_percent(self) -> int:
        if not self.original_price or self.original_price <= self.price:
            return 0
        return round((self.original_price - self.price) / self.original_price * 100)


@dataclass(frozen=True)
class Order:
    id: str
    order_number: str
    customer_id: str
    seller_id: str
    status: str
    delivery_type: str
    delivery_address: Optional[str]
    delivery_latitude: Optional[float]
    delivery_longitude: Optional[float]
    subtotal: float
    delivery_fee: float
    total_amount: float
    notes: Optional[str]
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class OrderItem:
    id: str
    order_id: str
    product_id: str
    product_name: str
    product_price: float  # unit price at time of order
    quantity: int
    subtotal: float


@dataclass(frozen=True)
class StatusHistoryEntry:
    id: str
    order_id: str
    status: str
    note: Optional[str]
    created_at: str


@dataclass(frozen=True)
class Review:
    id: str
    customer_id: str
    seller_id: str
    order_id: Optional[str]
    rating: int
    comment: Optional[str]
    created_at: str


@dataclass(frozen=True)
class ProductReview:
    id: str
    customer_id: str
    product_id: str
    order_item_id: Optional[str]
    rating: int
    title: Optional[str]
    comment: Optional[str]
    created_at: str


@dataclass(frozen=True)
class WishlistEntry:
    id: str
    user_id: str
    product: Product
    created_at: str


@dataclass(frozen=True)
class Commission:
    id: str
    seller_id: str
    month: str  # YYYY-MM
    total_sales: float
    commission_rate: float
    commission_amount: float
    is_paid: bool
    paid_at: Optional[str]


@dataclass(frozen=True)
class SellerCredential:
    id: str
    email: str
    password: str
    shop_name: str
    category: str
    seller_id: Optional[str]
    is_approved: bool
    created_at: str
