import json
import os
import tempfile
import unittest

import dbcase  # noqa: F401  (puts src/ on sys.path)

from utils.cart import CartStore
from utils.storage import CART_KEY, LocalStorage, RecentSearches


class StorageTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, "nested", "storage.json")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_values_survive_reload(self):
        storage = LocalStorage(self.path)
        storage.set("k", {"a": 1})
        self.assertEqual(LocalStorage(self.path).get("k"), {"a": 1})

        storage.remove("k")
        self.assertIsNone(LocalStorage(self.path).get("k"))

    def test_corrupt_file_reads_as_empty(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        storage = LocalStorage(self.path)
        self.assertEqual(storage.get("anything", "default"), "default")
        storage.set("k", 1)
        with open(self.path, encoding="utf-8") as f:
            self.assertEqual(json.load(f), {"k": 1})

    def test_recent_searches(self):
        recent = RecentSearches(LocalStorage(self.path))
        for term in ("rice", "milk", "  ", "rice", "a", "b", "c", "d"):
            recent.add(term)
        self.assertEqual(recent.list(), ["d", "c", "b", "a", "rice"])
        recent.clear()
        self.assertEqual(recent.list(), [])


class CartTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.storage = LocalStorage(os.path.join(self.temp_dir.name, "storage.json"))
        self.changes = 0
        self.cart = CartStore(self.storage, on_change=self._changed)

    def tearDown(self):
        self.temp_dir.cleanup()

    def _changed(self):
        self.changes += 1

    def _add(self, product_id="p-rice", seller_id="s-freshmart", price=450, stock=5, quantity=1):
        return self.cart.add_item(
            product_id=product_id,
            seller_id=seller_id,
            seller_name=seller_id,
            name=product_id,
            price=price,
            stock=stock,
            quantity=quantity,
        )

    def test_quantity_clamped_to_stock(self):
        item = self._add(quantity=3)
        self.assertEqual(item.quantity, 3)

        # adding the same product merges into one line
        item = self._add(quantity=10)
        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(item.quantity, 5)

        self.assertEqual(self.cart.update_quantity(item.id, 99).quantity, 5)
        self.assertEqual(self.cart.update_quantity(item.id, 2).quantity, 2)

        # zero removes the line
        self.assertIsNone(self.cart.update_quantity(item.id, 0))
        self.assertEqual(self.cart.items, [])

    def test_out_of_stock_is_not_added(self):
        self.assertIsNone(self._add(stock=0))
        self.assertEqual(self.cart.items, [])

    def test_totals_and_partitions(self):
        self._add("p-rice", price=450, quantity=2)
        self._add("p-milk", price=58, quantity=1)
        self._add("p-cable", seller_id="s-techworld", price=299, quantity=1)

        self.assertEqual(self.cart.get_item_count(), 4)
        self.assertEqual(self.cart.get_subtotal(), 450 * 2 + 58 + 299)
        self.assertEqual(list(self.cart.by_seller()), ["s-freshmart", "s-techworld"])
        self.assertEqual(len(self.cart.get_seller_items("s-freshmart")), 2)

        self.cart.clear_seller_items("s-freshmart")
        self.assertEqual([i.product_id for i in self.cart.items], ["p-cable"])

        self.cart.clear()
        self.assertEqual(self.cart.get_item_count(), 0)

    def test_persisted_and_rehydrated(self):
        item = self._add(quantity=2)
        self.assertGreater(self.changes, 0)

        restored = CartStore(self.storage)
        self.assertEqual(len(restored.items), 1)
        self.assertEqual(restored.get_item(item.id).quantity, 2)

        restored.remove_item(item.id)
        self.assertEqual(CartStore(self.storage).items, [])

    def test_rehydrate_drops_bad_entries(self):
        self.storage.set(
            CART_KEY,
            [
                {"id": "x", "product_id": "p", "seller_id": "s", "seller_name": "S",
                 "name": "P", "price": 10, "quantity": 9, "stock": 3},
                {"id": "broken"},
                "garbage",
                {"id": "q", "product_id": "p2", "seller_id": "s", "seller_name": "S",
                 "name": "Q", "price": 10, "quantity": "two", "stock": 3},
                {"id": "st", "product_id": "p3", "seller_id": "s", "seller_name": "S",
                 "name": "R", "price": 10, "quantity": 1, "stock": "lots"},
                {"id": "pr", "product_id": "p4", "seller_id": "s", "seller_name": "S",
                 "name": "T", "price": "cheap", "quantity": 1, "stock": 3},
                {"id": "ok", "product_id": "p5", "seller_id": "s", "seller_name": "S",
                 "name": "U", "price": "12.5", "quantity": "2", "stock": "4"},
            ],
        )
        cart = CartStore(self.storage)
        self.assertEqual([i.id for i in cart.items], ["x", "ok"])
        self.assertEqual(cart.items[0].quantity, 3)
        self.assertEqual((cart.items[1].quantity, cart.items[1].stock), (2, 4))
        self.assertEqual(cart.get_subtotal(), 10 * 3 + 12.5 * 2)


if __name__ == "__main__":
    unittest.main()
