import os
import sys
import tempfile
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import database as db_database  # noqa: E402
from db.realtime import changes  # noqa: E402
from utils.cart import CartItem  # noqa: E402

ADMIN = "u-admin"
ASHA = "u-asha"
RAVI = "u-ravi"
FRESHMART_OWNER = "u-freshmart"
TECHWORLD_OWNER = "u-techworld"
BAKERY_OWNER = "u-bakery"


def cart_line(product_id="p-rice", seller_id="s-freshmart", price=125.0, quantity=2, name="Basmati Rice"):
    return CartItem(
        id=f"{product_id}-1",
        product_id=product_id,
        seller_id=seller_id,
        seller_name="",
        name=name,
        price=price,
        quantity=quantity,
        stock=100,
    )


class DbTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh seeded database per test."""

    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database._initialized = False
        self._feed_subs = changes._subs[:]

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute("SELECT name FROM sqlite_master WHERE type='table';")
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        changes._subs[:] = self._feed_subs
        self.temp_dir.cleanup()
