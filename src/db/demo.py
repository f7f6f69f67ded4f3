# provisions demo shops: user + approved seller + starter products, idempotent per email
import hashlib
import json
import sqlite3
import uuid
from datetime import datetime
from typing import Dict, List

from db.database import connect
from utils.logger import get_logger

_logger = get_logger(__name__)

DEMO_PASSWORD = "Demo@123"

DEMO_SELLERS = [
    {
        "email": "freshmart@demo.com",
        "shop_name": "Fresh Mart Koramangala",
        "category": "grocery",
        "address": "Koramangala 4th Block, Bangalore 560034",
        "phone": "9876543210",
        "lat": 12.9352,
        "lng": 77.6245,
    },
    {
        "email": "apollo@demo.com",
        "shop_name": "Apollo Pharmacy HSR",
        "category": "medical",
        "address": "HSR Layout Sector 2, Bangalore 560102",
        "phone": "9876543211",
        "lat": 12.9116,
        "lng": 77.6389,
    },
    {
        "email": "techworld@demo.com",
        "shop_name": "Tech World Indiranagar",
        "category": "electronics",
        "address": "Indiranagar 100 Feet Road, Bangalore 560038",
        "phone": "9876543212",
        "lat": 12.9784,
        "lng": 77.6408,
    },
    {
        "email": "fashionhub@demo.com",
        "shop_name": "Fashion Hub Brigade",
        "category": "clothing",
        "address": "Brigade Road, Bangalore 560001",
        "phone": "9876543213",
        "lat": 12.9716,
        "lng": 77.6070,
    },
    {
        "email": "desidhaba@demo.com",
        "shop_name": "Desi Dhaba BTM",
        "category": "food",
        "address": "BTM Layout 2nd Stage, Bangalore 560076",
        "phone": "9876543214",
        "lat": 12.9166,
        "lng": 77.6101,
    },
    {
        "email": "quickfix@demo.com",
        "shop_name": "Quick Fix Electronics",
        "category": "services",
        "address": "Jayanagar 4th Block, Bangalore 560041",
        "phone": "9876543215",
        "lat": 12.9308,
        "lng": 77.5838,
    },
    {
        "email": "petparadise@demo.com",
        "shop_name": "Pet Paradise Bellandur",
        "category": "other",
        "address": "Bellandur Main Road, Bangalore 560103",
        "phone": "9876543221",
        "lat": 12.9256,
        "lng": 77.6760,
    },
]

# (name, description, price, original_price, stock, unit, category)
PRODUCTS_BY_CATEGORY = {
    "grocery": [
        ("Basmati Rice", "Premium long grain basmati rice, 5kg pack", 450, 520, 100, "kg", "Grains"),
        ("Toor Dal", "High quality toor dal, cleaned and sorted", 180, None, 80, "kg", "Pulses"),
        ("Sunflower Oil", "Refined sunflower oil, 1 litre", 145, 165, 50, "litre", "Oils"),
        ("Milk", "Fresh toned milk, 1 litre", 58, None, 100, "litre", "Dairy"),
    ],
    "medical": [
        ("Dolo 650", "Paracetamol 650mg tablets, strip of 15", 35, None, 200, "strip", "Pain Relief"),
        ("Band-Aid Strips", "Adhesive bandages, pack of 50", 85, None, 100, "pack", "First Aid"),
        ("Hand Sanitizer", "70% alcohol based sanitizer, 500ml", 120, 150, 100, "bottle", "Hygiene"),
        ("Digital Thermometer", "Electronic digital thermometer", 199, None, 40, "piece", "Devices"),
    ],
    "electronics": [
        ("Boat Earbuds", "True wireless earbuds with noise cancellation", 1999, 2999, 30, "piece", "Audio"),
        ("USB-C Cable", "Fast charging Type-C cable, 1m", 299, None, 100, "piece", "Cables"),
        ("LED Desk Lamp", "Adjustable desk lamp with USB charging", 799, 999, 20, "piece", "Lighting"),
        ("Wireless Mouse", "Ergonomic wireless mouse with USB receiver", 599, None, 40, "piece", "Peripherals"),
    ],
    "clothing": [
        ("Cotton T-Shirt", "100% cotton round neck t-shirt", 499, 699, 50, "piece", "Men"),
        ("Denim Jeans", "Slim fit blue denim jeans", 1299, None, 30, "piece", "Men"),
        ("Kurti", "Printed cotton kurti for women", 799, 999, 40, "piece", "Women"),
    ],
    "food": [
        ("Masala Dosa", "Crispy dosa with potato filling", 80, None, 50, "piece", "South Indian"),
        ("Veg Biryani", "Aromatic vegetable biryani", 180, None, 40, "piece", "Rice"),
        ("Filter Coffee", "Traditional South Indian filter coffee", 40, None, 100, "piece", "Beverages"),
    ],
    "services": [
        ("Phone Screen Repair", "Mobile screen replacement service", 1500, None, 20, "service", "Repair"),
        ("Laptop Service", "Complete laptop cleaning and service", 800, None, 15, "service", "Repair"),
        ("AC Service", "Split AC cleaning and gas top-up", 599, None, 10, "service", "Home"),
    ],
    "other": [
        ("Dog Food 5kg", "Premium dry dog food", 1200, None, 30, "bag", "Pet Food"),
        ("Pet Shampoo", "Gentle shampoo for dogs and cats", 280, None, 40, "bottle", "Pet Care"),
        ("Bird Cage", "Medium sized bird cage", 1500, 1800, 10, "piece", "Accessories"),
    ],
}


async def _provision_one(conn, demo: dict) -> Dict[str, object]:
    cur = await conn.execute("SELECT id FROM users WHERE email = ?;", (demo["email"],))
    existing = await cur.fetchone()
    await cur.close()
    if existing:
        return {"email": demo["email"], "status": "exists", "products_added": 0}

    now = datetime.now().isoformat()
    user_id = str(uuid.uuid4())
    seller_id = str(uuid.uuid4())
    password_hash = hashlib.sha256(DEMO_PASSWORD.encode()).hexdigest()
    products = PRODUCTS_BY_CATEGORY.get(demo["category"], [])
    try:
        await conn.execute(
            "INSERT INTO users(id, email, password_hash, created_at) VALUES (?, ?, ?, ?);",
            (user_id, demo["email"], password_hash, now),
        )
        await conn.execute(
            "INSERT INTO user_roles(id, user_id, role, created_at) VALUES (?, ?, 'seller', ?);",
            (str(uuid.uuid4()), user_id, now),
        )
        await conn.execute(
            """
            INSERT INTO profiles(id, user_id, full_name, phone, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (str(uuid.uuid4()), user_id, demo["shop_name"], demo["phone"], now, now),
        )
        await conn.execute(
            """
            INSERT INTO sellers(id, user_id, shop_name, category, address, phone, latitude, longitude,
                                opening_hours, closing_hours, delivery_options, is_approved,
                                created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, '09:00', '21:00', ?, 1, ?, ?);
            """,
            (
                seller_id,
                user_id,
                demo["shop_name"],
                demo["category"],
                demo["address"],
                demo["phone"],
                demo["lat"],
                demo["lng"],
                json.dumps(["self_delivery", "customer_pickup"]),
                now,
                now,
            ),
        )
        await conn.execute(
            """
            INSERT INTO seller_credentials(id, email, password, shop_name, category, seller_id,
                                           is_approved, created_at)
            VALUES (?, ?, ?, ?, ?, ?, 1, ?)
            ON CONFLICT(email) DO UPDATE SET seller_id = excluded.seller_id, is_approved = 1;
            """,
            (
                str(uuid.uuid4()),
                demo["email"],
                DEMO_PASSWORD,
                demo["shop_name"],
                demo["category"],
                seller_id,
                now,
            ),
        )
        await conn.executemany(
            """
            INSERT INTO products(id, seller_id, name, description, price, original_price, stock,
                                 unit, category, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [(str(uuid.uuid4()), seller_id, *p, now, now) for p in products],
        )
        await conn.commit()
    except sqlite3.Error as e:
        await conn.rollback()
        _logger.error(f"Could not provision {demo['email']}: {e}")
        return {"email": demo["email"], "status": "error", "error": str(e)}

    return {"email": demo["email"], "status": "created", "products_added": len(products)}


async def provision_demo_sellers() -> List[Dict[str, object]]:
    """
    Create every demo shop that does not exist yet. Accounts are matched by
    email, so running this twice creates nothing the second time.
    """
    results = []
    async with connect() as conn:
        for demo in DEMO_SELLERS:
            results.append(await _provision_one(conn, demo))
    created = sum(1 for r in results if r["status"] == "created")
    _logger.info(f"Demo provisioning done: {created} created, {len(results) - created} skipped")
    return results
