# src/db/crud.py
from __future__ import annotations

import hashlib
import json
import random
import re
import sqlite3
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from db import models
from db.database import connect
from db.realtime import ChangeEvent, changes
from utils import config, uploads
from utils.cart import CartItem
from utils.errors import (
    AlreadyReviewedError,
    AuthError,
    ConflictError,
    DeliveryOptionError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from utils.lifecycle import can_transition, next_status
from utils.logger import get_logger

_logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
MAX_REVIEW_COMMENT = 1000
MAX_REVIEW_TITLE = 100


def _now() -> str:
    return datetime.now().isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def _is_unique_violation(e: sqlite3.IntegrityError) -> bool:
    return "UNIQUE" in str(e).upper()


def _clean(text: Optional[str]) -> Optional[str]:
    text = (text or "").strip()
    return text or None


async def _fetchone(conn, sql: str, params: tuple = ()):
    cur = await conn.execute(sql, params)
    row = await cur.fetchone()
    await cur.close()
    return row


async def _fetchall(conn, sql: str, params: tuple = ()):
    cur = await conn.execute(sql, params)
    rows = await cur.fetchall()
    await cur.close()
    return rows


def _profile(row) -> models.Profile:
    return models.Profile(
        user_id=row["user_id"],
        full_name=row["full_name"],
        phone=row["phone"],
        address=row["address"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        avatar_url=row["avatar_url"],
    )


def _seller(row) -> models.Seller:
    return models.Seller(
        id=row["id"],
        user_id=row["user_id"],
        shop_name=row["shop_name"],
        category=row["category"],
        address=row["address"],
        phone=row["phone"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        opening_hours=row["opening_hours"],
        closing_hours=row["closing_hours"],
        delivery_options=tuple(json.loads(row["delivery_options"] or "[]")),
        shop_description=row["shop_description"],
        image_url=row["image_url"],
        is_approved=bool(row["is_approved"]),
        is_active=bool(row["is_active"]),
        is_open=bool(row["is_open"]),
        rating=float(row["rating"] or 0),
        review_count=int(row["review_count"] or 0),
        created_at=row["created_at"],
    )


def _product(row) -> models.Product:
    return models.Product(
        id=row["id"],
        seller_id=row["seller_id"],
        name=row["name"],
        description=row["description"],
        price=float(row["price"]),
        original_price=row["original_price"],
        stock=int(row["stock"]),
        unit=row["unit"],
        category=row["category"],
        image_url=row["image_url"],
        is_available=bool(row["is_available"]),
    )


def _order(row) -> models.Order:
    return models.Order(
        id=row["id"],
        order_number=row["order_number"],
        customer_id=row["customer_id"],
        seller_id=row["seller_id"],
        status=row["status"],
        delivery_type=row["delivery_type"],
        delivery_address=row["delivery_address"],
        delivery_latitude=row["delivery_latitude"],
        delivery_longitude=row["delivery_longitude"],
        subtotal=float(row["subtotal"]),
        delivery_fee=float(row["delivery_fee"] or 0),
        total_amount=float(row["total_amount"]),
        notes=row["notes"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _order_item(row) -> models.OrderItem:
    return models.OrderItem(
        id=row["id"],
        order_id=row["order_id"],
        product_id=row["product_id"],
        product_name=row["product_name"],
        product_price=float(row["product_price"]),
        quantity=int(row["quantity"]),
        subtotal=float(row["subtotal"]),
    )


def _review(row) -> models.Review:
    return models.Review(
        id=row["id"],
        customer_id=row["customer_id"],
        seller_id=row["seller_id"],
        order_id=row["order_id"],
        rating=int(row["rating"]),
        comment=row["comment"],
        created_at=row["created_at"],
    )


def _product_review(row) -> models.ProductReview:
    return models.ProductReview(
        id=row["id"],
        customer_id=row["customer_id"],
        product_id=row["product_id"],
        order_item_id=row["order_item_id"],
        rating=int(row["rating"]),
        title=row["title"],
        comment=row["comment"],
        created_at=row["created_at"],
    )


def _commission(row) -> models.Commission:
    return models.Commission(
        id=row["id"],
        seller_id=row["seller_id"],
        month=row["month"],
        total_sales=float(row["total_sales"]),
        commission_rate=float(row["commission_rate"]),
        commission_amount=float(row["commission_amount"]),
        is_paid=bool(row["is_paid"]),
        paid_at=row["paid_at"],
    )


def _valid_coords(lat, lng) -> bool:
    try:
        return -90 <= float(lat) <= 90 and -180 <= float(lng) <= 180
    except (TypeError, ValueError):
        return False


# ---------------------------
# Auth & Profiles
# ---------------------------


def _primary_role(roles: Iterable[str]) -> str:
    roles = set(roles)
    for role in models.APP_ROLES:  # admin > seller > customer
        if role in roles:
            return role
    return "customer"


async def _roles(conn, user_id: str) -> List[str]:
    rows = await _fetchall(
        conn, "SELECT role FROM user_roles WHERE user_id = ?;", (user_id,)
    )
    return [r["role"] for r in rows]


async def _require_admin(conn, user_id: str) -> None:
    if "admin" not in await _roles(conn, user_id):
        raise PermissionDeniedError("Only administrators can do this.")


def validate_credentials(email: str, password: str) -> None:
    """Local checks run before any write."""
    if not EMAIL_RE.match((email or "").strip()):
        raise ValidationError("Please enter a valid email address.")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 6 characters long.")


async def sign_up(email: str, password: str, full_name: str = "") -> models.User:
    """Create a customer account with an empty profile."""
    email = (email or "").strip().lower()
    validate_credentials(email, password)
    user_id = _new_id()
    now = _now()
    async with connect() as conn:
        if await _fetchone(conn, "SELECT 1 FROM users WHERE email = ?;", (email,)):
            raise AuthError("User already registered")
        await conn.execute(
            "INSERT INTO users(id, email, password_hash, created_at) VALUES (?, ?, ?, ?);",
            (user_id, email, _hash_password(password), now),
        )
        await conn.execute(
            "INSERT INTO user_roles(id, user_id, role, created_at) VALUES (?, ?, 'customer', ?);",
            (_new_id(), user_id, now),
        )
        await conn.execute(
            """
            INSERT INTO profiles(id, user_id, full_name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (_new_id(), user_id, _clean(full_name), now, now),
        )
        await conn.commit()
    _logger.info(f"Registered customer {email}")
    return models.User(id=user_id, email=email, role="customer")


async def sign_in(email: str, password: str) -> models.User:
    email = (email or "").strip().lower()
    async with connect() as conn:
        row = await _fetchone(
            conn,
            "SELECT id, email FROM users WHERE email = ? AND password_hash = ?;",
            (email, _hash_password(password or "")),
        )
        if not row:
            raise AuthError("Invalid login credentials")
        roles = await _roles(conn, row["id"])
    return models.User(id=row["id"], email=row["email"], role=_primary_role(roles))


async def get_user(user_id: str) -> Optional[models.User]:
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT id, email FROM users WHERE id = ?;", (user_id,))
        if not row:
            return None
        roles = await _roles(conn, user_id)
    return models.User(id=row["id"], email=row["email"], role=_primary_role(roles))


async def get_user_roles(user_id: str) -> List[str]:
    async with connect() as conn:
        return await _roles(conn, user_id)


async def get_profile(user_id: str) -> Optional[models.Profile]:
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT * FROM profiles WHERE user_id = ?;", (user_id,))
    return _profile(row) if row else None


async def update_profile(
    user_id: str,
    full_name: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> models.Profile:
    """Update only the provided fields; creates the profile row if missing."""
    updates: Dict[str, object] = {}
    if full_name is not None:
        updates["full_name"] = _clean(full_name)
    if phone is not None:
        updates["phone"] = _clean(phone)
    if address is not None:
        updates["address"] = _clean(address)
    if latitude is not None or longitude is not None:
        if not _valid_coords(latitude, longitude):
            raise ValidationError("Latitude and longitude must both be valid.")
        updates["latitude"] = float(latitude)
        updates["longitude"] = float(longitude)

    now = _now()
    async with connect() as conn:
        if not await _fetchone(conn, "SELECT 1 FROM users WHERE id = ?;", (user_id,)):
            raise NotFoundError("User not found.")
        await conn.execute(
            """
            INSERT OR IGNORE INTO profiles(id, user_id, created_at, updated_at)
            VALUES (?, ?, ?, ?);
            """,
            (_new_id(), user_id, now, now),
        )
        if updates:
            assignments = ", ".join(f"{k} = ?" for k in updates)
            await conn.execute(
                f"UPDATE profiles SET {assignments}, updated_at = ? WHERE user_id = ?;",
                (*updates.values(), now, user_id),
            )
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM profiles WHERE user_id = ?;", (user_id,))
    return _profile(row)


async def set_avatar(
    user_id: str, filename: str, size: int, content_type: Optional[str] = None
) -> str:
    """Validate an avatar upload and record its object path."""
    uploads.validate_image_upload(uploads.AVATARS, filename, size, content_type)
    path = uploads.object_path(user_id, filename)
    await update_profile(user_id)  # make sure the row exists
    async with connect() as conn:
        await conn.execute(
            "UPDATE profiles SET avatar_url = ?, updated_at = ? WHERE user_id = ?;",
            (path, _now(), user_id),
        )
        await conn.commit()
    return path


async def signed_avatar_url(user_id: str) -> Optional[str]:
    profile = await get_profile(user_id)
    if not profile or not profile.avatar_url:
        return None
    return uploads.signed_url(uploads.AVATARS, profile.avatar_url)


# ---------------------------
# Sellers
# ---------------------------

SELLER_EDITABLE = {
    "shop_name",
    "shop_description",
    "category",
    "address",
    "phone",
    "latitude",
    "longitude",
    "opening_hours",
    "closing_hours",
    "delivery_options",
}


def _validate_seller_fields(fields: Dict[str, object]) -> Dict[str, object]:
    out: Dict[str, object] = {}
    for key, val in fields.items():
        if key not in SELLER_EDITABLE:
            raise ValidationError(f"Unknown shop field '{key}'.")
        if key in ("shop_name", "address", "phone"):
            val = _clean(val)
            if not val:
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} is required.")
        elif key == "category":
            if val not in models.SHOP_CATEGORIES:
                raise ValidationError(f"Unknown shop category '{val}'.")
        elif key == "delivery_options":
            opts = list(dict.fromkeys(val or ()))
            if not opts or any(o not in models.DELIVERY_TYPES for o in opts):
                raise ValidationError("Choose at least one valid delivery option.")
            val = json.dumps(opts)
        elif key in ("shop_description", "opening_hours", "closing_hours"):
            val = _clean(val)
        out[key] = val
    if "latitude" in out or "longitude" in out:
        if not _valid_coords(out.get("latitude"), out.get("longitude")):
            raise ValidationError("Shop location must have a valid latitude and longitude.")
        out["latitude"] = float(out["latitude"])
        out["longitude"] = float(out["longitude"])
    return out


async def register_seller(
    user_id: str,
    shop_name: str,
    category: str,
    address: str,
    phone: str,
    latitude: float,
    longitude: float,
    delivery_options: Sequence[str] = ("customer_pickup",),
    opening_hours: Optional[str] = None,
    closing_hours: Optional[str] = None,
    shop_description: Optional[str] = None,
) -> models.Seller:
    """
    Submit a shop application. The shop starts unapproved; the user gains
    the seller role straight away so they can prepare their catalog.
    """
    fields = _validate_seller_fields(
        {
            "shop_name": shop_name,
            "category": category,
            "address": address,
            "phone": phone,
            "latitude": latitude,
            "longitude": longitude,
            "delivery_options": delivery_options,
            "opening_hours": opening_hours,
            "closing_hours": closing_hours,
            "shop_description": shop_description,
        }
    )
    seller_id = _new_id()
    now = _now()
    async with connect() as conn:
        if await _fetchone(conn, "SELECT 1 FROM sellers WHERE user_id = ?;", (user_id,)):
            raise ConflictError("A shop is already registered for this account.")
        cols = ", ".join(fields)
        marks = ", ".join("?" for _ in fields)
        await conn.execute(
            f"""
            INSERT INTO sellers(id, user_id, {cols}, is_approved, created_at, updated_at)
            VALUES (?, ?, {marks}, 0, ?, ?);
            """,
            (seller_id, user_id, *fields.values(), now, now),
        )
        await conn.execute(
            "INSERT OR IGNORE INTO user_roles(id, user_id, role, created_at) VALUES (?, ?, 'seller', ?);",
            (_new_id(), user_id, now),
        )
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller_id,))
    _logger.info(f"Shop application '{fields['shop_name']}' submitted")
    return _seller(row)


async def get_seller(seller_id: str) -> Optional[models.Seller]:
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller_id,))
    return _seller(row) if row else None


async def get_seller_for_user(user_id: str) -> Optional[models.Seller]:
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE user_id = ?;", (user_id,))
    return _seller(row) if row else None


async def list_sellers(category: Optional[str] = None) -> List[models.Seller]:
    """Approved, active shops, optionally narrowed to one category."""
    sql = "SELECT * FROM sellers WHERE is_approved = 1 AND is_active = 1"
    params: Tuple = ()
    if category:
        sql += " AND category = ?"
        params = (category,)
    async with connect() as conn:
        rows = await _fetchall(conn, sql + " ORDER BY shop_name;", params)
    return [_seller(r) for r in rows]


async def _own_seller(conn, user_id: str) -> models.Seller:
    row = await _fetchone(conn, "SELECT * FROM sellers WHERE user_id = ?;", (user_id,))
    if not row:
        raise NotFoundError("No shop is registered for this account.")
    return _seller(row)


async def update_seller(user_id: str, **fields) -> models.Seller:
    """Self-service shop edit; only SELLER_EDITABLE fields are accepted."""
    updates = _validate_seller_fields(fields)
    async with connect() as conn:
        seller = await _own_seller(conn, user_id)
        if updates:
            assignments = ", ".join(f"{k} = ?" for k in updates)
            await conn.execute(
                f"UPDATE sellers SET {assignments}, updated_at = ? WHERE id = ?;",
                (*updates.values(), _now(), seller.id),
            )
            await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller.id,))
    return _seller(row)


async def set_seller_open(user_id: str, is_open: bool) -> models.Seller:
    async with connect() as conn:
        seller = await _own_seller(conn, user_id)
        await conn.execute(
            "UPDATE sellers SET is_open = ?, updated_at = ? WHERE id = ?;",
            (int(bool(is_open)), _now(), seller.id),
        )
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller.id,))
    return _seller(row)


async def set_shop_image(
    user_id: str, filename: str, size: int, content_type: Optional[str] = None
) -> str:
    uploads.validate_image_upload(uploads.SHOP_IMAGES, filename, size, content_type)
    async with connect() as conn:
        seller = await _own_seller(conn, user_id)
        url = uploads.public_url(uploads.SHOP_IMAGES, uploads.object_path(seller.id, filename))
        await conn.execute(
            "UPDATE sellers SET image_url = ?, updated_at = ? WHERE id = ?;",
            (url, _now(), seller.id),
        )
        await conn.commit()
    return url


async def list_pending_sellers(admin_id: str) -> List[models.Seller]:
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        rows = await _fetchall(
            conn, "SELECT * FROM sellers WHERE is_approved = 0 ORDER BY created_at;"
        )
    return [_seller(r) for r in rows]


async def approve_seller(admin_id: str, seller_id: str) -> models.Seller:
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        res = await conn.execute(
            "UPDATE sellers SET is_approved = 1, updated_at = ? WHERE id = ?;",
            (_now(), seller_id),
        )
        if res.rowcount == 0:
            raise NotFoundError("Shop not found.")
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller_id,))
    _logger.info(f"Shop '{row['shop_name']}' approved")
    return _seller(row)


async def reject_seller(admin_id: str, seller_id: str) -> None:
    """Delete a pending application. Approved shops are never deleted here."""
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller_id,))
        if not row:
            raise NotFoundError("Shop not found.")
        if row["is_approved"]:
            raise ValidationError("Only pending applications can be rejected.")
        await conn.execute("DELETE FROM sellers WHERE id = ?;", (seller_id,))
        # back to a plain customer account
        await conn.execute(
            "DELETE FROM user_roles WHERE user_id = ? AND role = 'seller';", (row["user_id"],)
        )
        await conn.commit()
    _logger.info(f"Shop application '{row['shop_name']}' rejected")


# ---------------------------
# Products
# ---------------------------

PRODUCT_EDITABLE = {
    "name",
    "description",
    "price",
    "original_price",
    "stock",
    "unit",
    "category",
    "is_available",
}


def _validate_product_fields(fields: Dict[str, object]) -> Dict[str, object]:
    out: Dict[str, object] = {}
    for key, val in fields.items():
        if key not in PRODUCT_EDITABLE:
            raise ValidationError(f"Unknown product field '{key}'.")
        if key == "name":
            val = _clean(val)
            if not val:
                raise ValidationError("Product name is required.")
        elif key == "price":
            try:
                val = float(val)
            except (TypeError, ValueError):
                raise ValidationError("Price must be a number.") from None
            if val <= 0:
                raise ValidationError("Price must be greater than zero.")
        elif key == "original_price":
            if val in (None, ""):
                val = None
            else:
                try:
                    val = float(val)
                except (TypeError, ValueError):
                    raise ValidationError("Original price must be a number.") from None
                if val <= 0:
                    raise ValidationError("Original price must be greater than zero.")
        elif key == "stock":
            try:
                val = int(val)
            except (TypeError, ValueError):
                raise ValidationError("Stock must be a whole number.") from None
            if val < 0:
                raise ValidationError("Stock cannot be negative.")
        elif key == "unit":
            val = _clean(val) or "piece"
        elif key in ("description", "category"):
            val = _clean(val)
        elif key == "is_available":
            val = int(bool(val))
        out[key] = val
    return out


async def list_products(seller_id: str, available_only: bool = False) -> List[models.Product]:
    sql = "SELECT * FROM products WHERE seller_id = ?"
    if available_only:
        sql += " AND is_available = 1"
    async with connect() as conn:
        rows = await _fetchall(conn, sql + " ORDER BY name;", (seller_id,))
    return [_product(r) for r in rows]


async def get_product(product_id: str) -> Optional[models.Product]:
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT * FROM products WHERE id = ?;", (product_id,))
    return _product(row) if row else None


async def search_products(query: str, limit: int = 20) -> List[models.Product]:
    """
    Case-insensitive match over name, description and category of available
    products in approved, active shops. Blank queries match nothing.
    """
    phrase = (query or "").strip().lower()
    if not phrase:
        return []
    like = f"%{phrase}%"
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            """
            SELECT p.*
            FROM products p
            JOIN sellers s ON s.id = p.seller_id
            WHERE s.is_approved = 1 AND s.is_active = 1
              AND p.is_available = 1
              AND (LOWER(p.name) LIKE ? OR LOWER(COALESCE(p.description, '')) LIKE ?
                   OR LOWER(COALESCE(p.category, '')) LIKE ?)
            ORDER BY LOWER(p.name) LIKE ? DESC, p.name
            LIMIT ?;
            """,
            (like, like, like, f"{phrase}%", limit),
        )
    return [_product(r) for r in rows]


async def _owned_product(conn, user_id: str, product_id: str) -> models.Product:
    row = await _fetchone(
        conn,
        """
        SELECT p.*, s.user_id AS owner_id
        FROM products p JOIN sellers s ON s.id = p.seller_id
        WHERE p.id = ?;
        """,
        (product_id,),
    )
    if not row:
        raise NotFoundError("Product not found.")
    if row["owner_id"] != user_id:
        raise PermissionDeniedError("You can only manage your own products.")
    return _product(row)


async def create_product(
    user_id: str,
    name: str,
    price: float,
    stock: int = 0,
    unit: str = "piece",
    category: Optional[str] = None,
    description: Optional[str] = None,
    original_price: Optional[float] = None,
    is_available: bool = True,
) -> models.Product:
    fields = _validate_product_fields(
        {
            "name": name,
            "price": price,
            "stock": stock,
            "unit": unit,
            "category": category,
            "description": description,
            "original_price": original_price,
            "is_available": is_available,
        }
    )
    product_id = _new_id()
    now = _now()
    async with connect() as conn:
        seller = await _own_seller(conn, user_id)
        cols = ", ".join(fields)
        marks = ", ".join("?" for _ in fields)
        await conn.execute(
            f"""
            INSERT INTO products(id, seller_id, {cols}, created_at, updated_at)
            VALUES (?, ?, {marks}, ?, ?);
            """,
            (product_id, seller.id, *fields.values(), now, now),
        )
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM products WHERE id = ?;", (product_id,))
    return _product(row)


async def update_product(user_id: str, product_id: str, **fields) -> models.Product:
    updates = _validate_product_fields(fields)
    async with connect() as conn:
        await _owned_product(conn, user_id, product_id)
        if updates:
            assignments = ", ".join(f"{k} = ?" for k in updates)
            await conn.execute(
                f"UPDATE products SET {assignments}, updated_at = ? WHERE id = ?;",
                (*updates.values(), _now(), product_id),
            )
            await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM products WHERE id = ?;", (product_id,))
    return _product(row)


async def delete_product(user_id: str, product_id: str) -> None:
    async with connect() as conn:
        await _owned_product(conn, user_id, product_id)
        await conn.execute("DELETE FROM products WHERE id = ?;", (product_id,))
        await conn.commit()


async def set_product_image(
    user_id: str,
    product_id: str,
    filename: str,
    size: int,
    content_type: Optional[str] = None,
) -> str:
    uploads.validate_image_upload(uploads.PRODUCT_IMAGES, filename, size, content_type)
    async with connect() as conn:
        product = await _owned_product(conn, user_id, product_id)
        url = uploads.public_url(
            uploads.PRODUCT_IMAGES, uploads.object_path(product.seller_id, filename)
        )
        await conn.execute(
            "UPDATE products SET image_url = ?, updated_at = ? WHERE id = ?;",
            (url, _now(), product_id),
        )
        await conn.commit()
    return url


# ---------------------------
# Wishlist
# ---------------------------


async def add_to_wishlist(user_id: str, product_id: str) -> None:
    """Adding an entry that already exists is a no-op."""
    async with connect() as conn:
        if not await _fetchone(conn, "SELECT 1 FROM products WHERE id = ?;", (product_id,)):
            raise NotFoundError("Product not found.")
        await conn.execute(
            """
            INSERT OR IGNORE INTO wishlist(id, user_id, product_id, created_at)
            VALUES (?, ?, ?, ?);
            """,
            (_new_id(), user_id, product_id, _now()),
        )
        await conn.commit()


async def remove_from_wishlist(user_id: str, product_id: str) -> None:
    async with connect() as conn:
        await conn.execute(
            "DELETE FROM wishlist WHERE user_id = ? AND product_id = ?;",
            (user_id, product_id),
        )
        await conn.commit()


async def list_wishlist(user_id: str) -> List[models.WishlistEntry]:
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            """
            SELECT w.id AS entry_id, w.user_id AS entry_user, w.created_at AS added_at, p.*
            FROM wishlist w JOIN products p ON p.id = w.product_id
            WHERE w.user_id = ?
            ORDER BY w.created_at DESC;
            """,
            (user_id,),
        )
    return [
        models.WishlistEntry(
            id=r["entry_id"], user_id=r["entry_user"], product=_product(r), created_at=r["added_at"]
        )
        for r in rows
    ]


async def wishlist_product_ids(user_id: str) -> Set[str]:
    async with connect() as conn:
        rows = await _fetchall(
            conn, "SELECT product_id FROM wishlist WHERE user_id = ?;", (user_id,)
        )
    return {r["product_id"] for r in rows}


# ---------------------------
# Checkout & Orders
# ---------------------------


def order_totals(items: Iterable[CartItem], delivery_type: str) -> Tuple[float, float, float]:
    """(subtotal, delivery_fee, total) for a seller's cart lines."""
    subtotal = sum(i.price * i.quantity for i in items)
    fee = 0.0 if delivery_type == "customer_pickup" else float(config.DELIVERY_FEE)
    return subtotal, fee, subtotal + fee


async def _generate_order_number(conn) -> str:
    while True:
        number = f"ORD-{random.randint(0, 999999):06d}"
        if not await _fetchone(conn, "SELECT 1 FROM orders WHERE order_number = ?;", (number,)):
            return number


async def place_order(
    customer_id: str,
    seller_id: str,
    items: Sequence[CartItem],
    delivery_type: str,
    delivery_address: Optional[str] = None,
    notes: Optional[str] = None,
    delivery_latitude: Optional[float] = None,
    delivery_longitude: Optional[float] = None,
) -> models.Order:
    """
    Create an order and its item snapshots for one seller's cart partition.

    The order row, every item row and the initial history entry are written
    in a single transaction; nothing is left behind if any insert fails.
    Clearing the cart partition is the caller's job once this returns.
    """
    items = list(items)
    if not items:
        raise ValidationError("Your cart for this shop is empty.")
    if any(i.seller_id != seller_id for i in items):
        raise ValidationError("All items in an order must come from the same shop.")
    if any(i.quantity <= 0 for i in items):
        raise ValidationError("Item quantities must be at least 1.")
    if delivery_type not in models.DELIVERY_TYPES:
        raise DeliveryOptionError(f"Unknown delivery type '{delivery_type}'.")
    address = _clean(delivery_address)
    if delivery_type != "customer_pickup" and not address:
        raise ValidationError("Please enter a delivery address.")
    if delivery_type == "customer_pickup":
        address = None

    subtotal, fee, total = order_totals(items, delivery_type)
    order_id = _new_id()
    now = _now()

    async with connect() as conn:
        seller_row = await _fetchone(conn, "SELECT * FROM sellers WHERE id = ?;", (seller_id,))
        if not seller_row:
            raise NotFoundError("Shop not found.")
        seller = _seller(seller_row)
        if not (seller.is_approved and seller.is_active):
            raise ValidationError(f"{seller.shop_name} is not accepting orders.")
        if delivery_type not in (seller.delivery_options or ("customer_pickup",)):
            raise DeliveryOptionError(
                f"{seller.shop_name} does not offer {models.DELIVERY_LABELS[delivery_type]}."
            )

        if delivery_latitude is None or delivery_longitude is None:
            profile = await _fetchone(
                conn, "SELECT latitude, longitude FROM profiles WHERE user_id = ?;", (customer_id,)
            )
            if profile:
                delivery_latitude, delivery_longitude = profile["latitude"], profile["longitude"]

        try:
            order_number = await _generate_order_number(conn)
            await conn.execute(
                """
                INSERT INTO orders(id, order_number, customer_id, seller_id, status, delivery_type,
                                   delivery_address, delivery_latitude, delivery_longitude,
                                   subtotal, delivery_fee, total_amount, notes, created_at, updated_at)
                VALUES (?, ?, ?, ?, 'pending', ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    order_id,
                    order_number,
                    customer_id,
                    seller_id,
                    delivery_type,
                    address,
                    delivery_latitude,
                    delivery_longitude,
                    subtotal,
                    fee,
                    total,
                    _clean(notes),
                    now,
                    now,
                ),
            )
            for item in items:
                await conn.execute(
                    """
                    INSERT INTO order_items(id, order_id, product_id, product_name, product_price,
                                            quantity, subtotal, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        _new_id(),
                        order_id,
                        item.product_id,
                        item.name,
                        item.price,
                        item.quantity,
                        item.price * item.quantity,
                        now,
                    ),
                )
                if config.DECREMENT_STOCK_ON_ORDER:
                    res = await conn.execute(
                        "UPDATE products SET stock = stock - ? WHERE id = ? AND stock >= ?;",
                        (item.quantity, item.product_id, item.quantity),
                    )
                    if res.rowcount == 0:
                        raise InsufficientStockError(f"Not enough stock left for {item.name}.")
            await conn.execute(
                """
                INSERT INTO order_status_history(id, order_id, status, note, created_at)
                VALUES (?, ?, 'pending', 'Order placed', ?);
                """,
                (_new_id(), order_id, now),
            )
            await conn.commit()
        except sqlite3.IntegrityError as e:
            await conn.rollback()
            _logger.warning(f"Order for shop {seller_id} rolled back: {e}")
            if _is_unique_violation(e):
                raise ConflictError("Order could not be created, please try again.") from e
            raise ValidationError(f"Order could not be created: {e}") from e
        except Exception:
            await conn.rollback()
            raise
        row = await _fetchone(conn, "SELECT * FROM orders WHERE id = ?;", (order_id,))

    order = _order(row)
    _logger.info(f"Order {order.order_number} placed with {seller.shop_name} ({total:.2f})")
    await changes.publish(ChangeEvent("orders", "INSERT", new=dict(row)))
    return order


async def get_order(order_id: str) -> Optional[models.Order]:
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT * FROM orders WHERE id = ?;", (order_id,))
    return _order(row) if row else None


async def _list_orders(column: str, value: str, status: Optional[str]) -> List[models.Order]:
    sql = f"SELECT * FROM orders WHERE {column} = ?"
    params: Tuple = (value,)
    if status:
        sql += " AND status = ?"
        params += (status,)
    async with connect() as conn:
        rows = await _fetchall(conn, sql + " ORDER BY created_at DESC;", params)
    return [_order(r) for r in rows]


async def list_customer_orders(
    customer_id: str, status: Optional[str] = None
) -> List[models.Order]:
    """A customer's orders, newest first."""
    return await _list_orders("customer_id", customer_id, status)


async def list_seller_orders(seller_id: str, status: Optional[str] = None) -> List[models.Order]:
    """A shop's orders, newest first."""
    return await _list_orders("seller_id", seller_id, status)


async def get_order_detail(
    order_id: str,
) -> Tuple[Optional[models.Order], List[models.OrderItem]]:
    """
    Return (order, items) for a specific order; (None, []) when missing.
    """
    async with connect() as conn:
        order_row = await _fetchone(conn, "SELECT * FROM orders WHERE id = ?;", (order_id,))
        if not order_row:
            return None, []
        item_rows = await _fetchall(
            conn,
            "SELECT * FROM order_items WHERE order_id = ? ORDER BY created_at, product_name;",
            (order_id,),
        )
    return _order(order_row), [_order_item(r) for r in item_rows]


async def get_status_history(order_id: str) -> List[models.StatusHistoryEntry]:
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            "SELECT * FROM order_status_history WHERE order_id = ? ORDER BY created_at, rowid;",
            (order_id,),
        )
    return [
        models.StatusHistoryEntry(
            id=r["id"], order_id=r["order_id"], status=r["status"], note=r["note"], created_at=r["created_at"]
        )
        for r in rows
    ]


# ---------------------------
# Order lifecycle
# ---------------------------


async def update_order_status(
    actor_id: str, order_id: str, new_status: str, note: Optional[str] = None
) -> models.Order:
    """
    Move an order to new_status if the transition is legal and the actor may
    make it: the shop owner walks the forward path, the shop owner or the
    customer may cancel a pending order.

    The write only lands if the order is still in the status that was
    checked, so two racing writers cannot both succeed.
    """
    if new_status not in models.ORDER_STATUSES:
        raise ValidationError(f"Unknown order status '{new_status}'.")
    async with connect() as conn:
        # take the write lock before reading so concurrent writers queue up
        await conn.execute("BEGIN IMMEDIATE;")
        row = await _fetchone(
            conn,
            """
            SELECT o.*, s.user_id AS seller_user_id
            FROM orders o JOIN sellers s ON s.id = o.seller_id
            WHERE o.id = ?;
            """,
            (order_id,),
        )
        if not row:
            raise NotFoundError("Order not found.")
        current = row["status"]
        is_seller = row["seller_user_id"] == actor_id
        is_customer = row["customer_id"] == actor_id
        if new_status == "cancelled":
            allowed = is_seller or is_customer
        else:
            allowed = is_seller
        if not allowed:
            raise PermissionDeniedError("You cannot change the status of this order.")
        if not can_transition(current, new_status):
            raise InvalidTransitionError(current, new_status)

        now = _now()
        res = await conn.execute(
            "UPDATE orders SET status = ?, updated_at = ? WHERE id = ? AND status = ?;",
            (new_status, now, order_id, current),
        )
        if res.rowcount == 0:
            await conn.rollback()
            latest = await _fetchone(conn, "SELECT status FROM orders WHERE id = ?;", (order_id,))
            raise InvalidTransitionError(
                latest["status"] if latest else current,
                new_status,
                "This order was updated by someone else. Please refresh.",
            )
        await conn.execute(
            """
            INSERT INTO order_status_history(id, order_id, status, note, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (_new_id(), order_id, new_status, _clean(note), now),
        )
        await conn.commit()
        updated = await _fetchone(conn, "SELECT * FROM orders WHERE id = ?;", (order_id,))

    order = _order(updated)
    _logger.info(f"Order {order.order_number}: {current} -> {new_status}")
    await changes.publish(
        ChangeEvent("orders", "UPDATE", new=dict(updated), old={"id": order_id, "status": current})
    )
    return order


async def advance_order(actor_id: str, order_id: str, note: Optional[str] = None) -> models.Order:
    """Move an order one step along the forward path."""
    order = await get_order(order_id)
    if order is None:
        raise NotFoundError("Order not found.")
    target = next_status(order.status)
    if target is None:
        raise InvalidTransitionError(order.status, order.status, "This order cannot move any further.")
    return await update_order_status(actor_id, order_id, target, note)


async def cancel_order(actor_id: str, order_id: str, reason: Optional[str] = None) -> models.Order:
    return await update_order_status(actor_id, order_id, "cancelled", reason)


# ---------------------------
# Reviews
# ---------------------------


def _validate_review(rating, comment: Optional[str], title: Optional[str] = None) -> None:
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ValidationError("Please select a rating between 1 and 5.")
    if comment and len(comment) > MAX_REVIEW_COMMENT:
        raise ValidationError(f"Comments are limited to {MAX_REVIEW_COMMENT} characters.")
    if title and len(title) > MAX_REVIEW_TITLE:
        raise ValidationError(f"Titles are limited to {MAX_REVIEW_TITLE} characters.")


async def submit_shop_review(
    customer_id: str, order_id: str, rating: int, comment: Optional[str] = None
) -> models.Review:
    """One review per (customer, order), only once the order is delivered."""
    _validate_review(rating, comment)
    review_id = _new_id()
    now = _now()
    async with connect() as conn:
        order = await _fetchone(conn, "SELECT * FROM orders WHERE id = ?;", (order_id,))
        if not order:
            raise NotFoundError("Order not found.")
        if order["customer_id"] != customer_id:
            raise PermissionDeniedError("You can only review your own orders.")
        if order["status"] != "delivered":
            raise ValidationError("You can review a shop once your order is delivered.")
        try:
            await conn.execute(
                """
                INSERT INTO reviews(id, customer_id, seller_id, order_id, rating, comment, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (review_id, customer_id, order["seller_id"], order_id, rating, _clean(comment), now, now),
            )
            await conn.commit()
        except sqlite3.IntegrityError as e:
            await conn.rollback()
            if _is_unique_violation(e):
                raise AlreadyReviewedError("You have already reviewed this order.") from e
            raise
        row = await _fetchone(conn, "SELECT * FROM reviews WHERE id = ?;", (review_id,))
    return _review(row)


async def update_shop_review(
    customer_id: str, review_id: str, rating: int, comment: Optional[str] = None
) -> models.Review:
    _validate_review(rating, comment)
    async with connect() as conn:
        row = await _fetchone(conn, "SELECT * FROM reviews WHERE id = ?;", (review_id,))
        if not row:
            raise NotFoundError("Review not found.")
        if row["customer_id"] != customer_id:
            raise PermissionDeniedError("You can only edit your own reviews.")
        await conn.execute(
            "UPDATE reviews SET rating = ?, comment = ?, updated_at = ? WHERE id = ?;",
            (rating, _clean(comment), _now(), review_id),
        )
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM reviews WHERE id = ?;", (review_id,))
    return _review(row)


async def get_review_for_order(customer_id: str, order_id: str) -> Optional[models.Review]:
    async with connect() as conn:
        row = await _fetchone(
            conn,
            "SELECT * FROM reviews WHERE customer_id = ? AND order_id = ?;",
            (customer_id, order_id),
        )
    return _review(row) if row else None


async def list_shop_reviews(seller_id: str) -> List[Tuple[models.Review, Optional[str]]]:
    """(review, reviewer name) pairs, newest first."""
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            """
            SELECT r.*, p.full_name AS reviewer
            FROM reviews r LEFT JOIN profiles p ON p.user_id = r.customer_id
            WHERE r.seller_id = ?
            ORDER BY r.created_at DESC;
            """,
            (seller_id,),
        )
    return [(_review(r), r["reviewer"]) for r in rows]


async def submit_product_review(
    customer_id: str,
    order_item_id: str,
    rating: int,
    title: Optional[str] = None,
    comment: Optional[str] = None,
) -> models.ProductReview:
    """Insert-only: a product review cannot be edited afterwards."""
    _validate_review(rating, comment, title)
    review_id = _new_id()
    now = _now()
    async with connect() as conn:
        item = await _fetchone(
            conn,
            """
            SELECT oi.product_id, o.customer_id, o.status
            FROM order_items oi JOIN orders o ON o.id = oi.order_id
            WHERE oi.id = ?;
            """,
            (order_item_id,),
        )
        if not item:
            raise NotFoundError("Order item not found.")
        if item["customer_id"] != customer_id:
            raise PermissionDeniedError("You can only review products you ordered.")
        if item["status"] != "delivered":
            raise ValidationError("You can review a product once your order is delivered.")
        try:
            await conn.execute(
                """
                INSERT INTO product_reviews(id, customer_id, product_id, order_item_id, rating,
                                            title, comment, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    review_id,
                    customer_id,
                    item["product_id"],
                    order_item_id,
                    rating,
                    _clean(title),
                    _clean(comment),
                    now,
                    now,
                ),
            )
            await conn.commit()
        except sqlite3.IntegrityError as e:
            await conn.rollback()
            if _is_unique_violation(e):
                raise AlreadyReviewedError("You have already reviewed this product.") from e
            raise
        row = await _fetchone(conn, "SELECT * FROM product_reviews WHERE id = ?;", (review_id,))
    return _product_review(row)


async def list_product_reviews(product_id: str) -> List[models.ProductReview]:
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            "SELECT * FROM product_reviews WHERE product_id = ? ORDER BY created_at DESC;",
            (product_id,),
        )
    return [_product_review(r) for r in rows]


async def product_rating_summary(product_id: str) -> Tuple[float, int]:
    """(average rating, review count); (0.0, 0) without reviews."""
    async with connect() as conn:
        row = await _fetchone(
            conn,
            "SELECT AVG(rating), COUNT(*) FROM product_reviews WHERE product_id = ?;",
            (product_id,),
        )
    return float(row[0] or 0.0), int(row[1] or 0)


# ---------------------------
# Analytics (Seller / Admin)
# ---------------------------


def _status_distribution(rows) -> Dict[str, int]:
    return {r["status"]: int(r["cnt"]) for r in rows}


async def seller_analytics(seller_id: str) -> Dict[str, object]:
    """
    Sales figures for one shop. Revenue only counts delivered orders;
    order counts include every status.
    """
    async with connect() as conn:
        totals = await _fetchone(
            conn,
            """
            SELECT COUNT(*) AS orders,
                   COALESCE(SUM(CASE WHEN status = 'delivered' THEN total_amount END), 0) AS sales,
                   SUM(CASE WHEN status = 'delivered' THEN 1 ELSE 0 END) AS delivered
            FROM orders WHERE seller_id = ?;
            """,
            (seller_id,),
        )
        status_rows = await _fetchall(
            conn,
            "SELECT status, COUNT(*) AS cnt FROM orders WHERE seller_id = ? GROUP BY status;",
            (seller_id,),
        )
        top_rows = await _fetchall(
            conn,
            """
            SELECT oi.product_name, SUM(oi.quantity) AS qty, SUM(oi.subtotal) AS revenue
            FROM order_items oi JOIN orders o ON o.id = oi.order_id
            WHERE o.seller_id = ? AND o.status = 'delivered'
            GROUP BY oi.product_name
            ORDER BY revenue DESC, oi.product_name
            LIMIT 5;
            """,
            (seller_id,),
        )
        rating = await _fetchone(
            conn, "SELECT AVG(rating), COUNT(*) FROM reviews WHERE seller_id = ?;", (seller_id,)
        )
    total_orders = int(totals["orders"] or 0)
    total_sales = float(totals["sales"] or 0.0)
    delivered = int(totals["delivered"] or 0)
    return {
        "total_sales": total_sales,
        "total_orders": total_orders,
        "delivered_orders": delivered,
        "avg_order_value": total_sales / delivered if delivered else 0.0,
        "status_counts": _status_distribution(status_rows),
        "top_products": [(r["product_name"], int(r["qty"]), float(r["revenue"])) for r in top_rows],
        "avg_rating": round(float(rating[0] or 0.0), 1),
        "review_count": int(rating[1] or 0),
    }


async def admin_analytics(admin_id: str) -> Dict[str, object]:
    """Platform-wide figures; commission is a flat rate on delivered revenue."""
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        totals = await _fetchone(
            conn,
            """
            SELECT COUNT(*) AS orders,
                   COALESCE(SUM(CASE WHEN status = 'delivered' THEN total_amount END), 0) AS revenue,
                   SUM(CASE WHEN status = 'delivered' THEN 1 ELSE 0 END) AS delivered
            FROM orders;
            """,
        )
        status_rows = await _fetchall(
            conn, "SELECT status, COUNT(*) AS cnt FROM orders GROUP BY status;"
        )
        shop_rows = await _fetchall(
            conn,
            """
            SELECT s.shop_name, COUNT(o.id) AS orders, COALESCE(SUM(o.total_amount), 0) AS revenue
            FROM orders o JOIN sellers s ON s.id = o.seller_id
            WHERE o.status = 'delivered'
            GROUP BY s.id
            ORDER BY revenue DESC, s.shop_name;
            """,
        )
        counts = await _fetchone(
            conn,
            """
            SELECT SUM(CASE WHEN is_approved = 1 THEN 1 ELSE 0 END) AS approved,
                   SUM(CASE WHEN is_approved = 0 THEN 1 ELSE 0 END) AS pending
            FROM sellers;
            """,
        )
    revenue = float(totals["revenue"] or 0.0)
    delivered = int(totals["delivered"] or 0)
    return {
        "total_revenue": revenue,
        "total_orders": int(totals["orders"] or 0),
        "avg_order_value": revenue / delivered if delivered else 0.0,
        "commission": revenue * config.COMMISSION_RATE,
        "status_counts": _status_distribution(status_rows),
        "revenue_by_shop": [(r["shop_name"], int(r["orders"]), float(r["revenue"])) for r in shop_rows],
        "approved_sellers": int(counts["approved"] or 0),
        "pending_sellers": int(counts["pending"] or 0),
    }


async def record_monthly_commission(admin_id: str, seller_id: str, month: str) -> models.Commission:
    """
    Compute (or recompute) a shop's commission for a YYYY-MM month from its
    delivered orders. Paid rows are left untouched.
    """
    if not re.match(r"^\d{4}-\d{2}$", month or ""):
        raise ValidationError("Month must look like YYYY-MM.")
    now = _now()
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        if not await _fetchone(conn, "SELECT 1 FROM sellers WHERE id = ?;", (seller_id,)):
            raise NotFoundError("Shop not found.")
        row = await _fetchone(
            conn,
            """
            SELECT COALESCE(SUM(total_amount), 0)
            FROM orders
            WHERE seller_id = ? AND status = 'delivered' AND substr(created_at, 1, 7) = ?;
            """,
            (seller_id, month),
        )
        sales = float(row[0] or 0.0)
        rate = config.COMMISSION_RATE
        await conn.execute(
            """
            INSERT INTO commissions(id, seller_id, month, total_sales, commission_rate,
                                    commission_amount, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(seller_id, month) DO UPDATE SET
                total_sales = excluded.total_sales,
                commission_rate = excluded.commission_rate,
                commission_amount = excluded.commission_amount,
                updated_at = excluded.updated_at
            WHERE commissions.is_paid = 0;
            """,
            (_new_id(), seller_id, month, sales, rate, round(sales * rate, 2), now, now),
        )
        await conn.commit()
        saved = await _fetchone(
            conn,
            "SELECT * FROM commissions WHERE seller_id = ? AND month = ?;",
            (seller_id, month),
        )
    return _commission(saved)


async def mark_commission_paid(admin_id: str, commission_id: str) -> models.Commission:
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        res = await conn.execute(
            "UPDATE commissions SET is_paid = 1, paid_at = ?, updated_at = ? WHERE id = ?;",
            (_now(), _now(), commission_id),
        )
        if res.rowcount == 0:
            raise NotFoundError("Commission not found.")
        await conn.commit()
        row = await _fetchone(conn, "SELECT * FROM commissions WHERE id = ?;", (commission_id,))
    return _commission(row)


async def list_commissions(admin_id: str, month: Optional[str] = None) -> List[models.Commission]:
    sql = "SELECT * FROM commissions"
    params: Tuple = ()
    if month:
        sql += " WHERE month = ?"
        params = (month,)
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        rows = await _fetchall(conn, sql + " ORDER BY month DESC, seller_id;", params)
    return [_commission(r) for r in rows]


async def list_seller_credentials(admin_id: str) -> List[models.SellerCredential]:
    """Demo shop logins, oldest first."""
    async with connect() as conn:
        await _require_admin(conn, admin_id)
        rows = await _fetchall(conn, "SELECT * FROM seller_credentials ORDER BY created_at, email;")
    return [
        models.SellerCredential(
            id=r["id"],
            email=r["email"],
            password=r["password"],
            shop_name=r["shop_name"],
            category=r["category"],
            seller_id=r["seller_id"],
            is_approved=bool(r["is_approved"]),
            created_at=r["created_at"],
        )
        for r in rows
    ]
