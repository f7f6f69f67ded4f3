import os
import unittest

from dbcase import DbTestCase, cart_line

from db import crud
from utils.errors import AuthError, UploadRejectedError, ValidationError
from utils.state import AppContext
from utils.storage import LocalStorage


class AppContextTestCase(DbTestCase):
    def setUp(self):
        super().setUp()
        self.ctx = AppContext(LocalStorage(os.path.join(self.temp_dir.name, "storage.json")))

    async def test_customer_session(self):
        user = await self.ctx.sign_in("asha@example.com", "Customer@123")
        self.assertEqual((self.ctx.uid, self.ctx.role), (user.id, "customer"))
        self.assertEqual(self.ctx.profile.full_name, "Asha Rao")
        self.assertIsNone(self.ctx.seller)

        self.assertTrue(await self.ctx.toggle_wishlist("p-rice"))
        self.assertEqual(self.ctx.wishlist_ids, {"p-rice"})
        self.assertFalse(await self.ctx.toggle_wishlist("p-rice"))
        self.assertEqual(self.ctx.wishlist_ids, set())

        self.ctx.sign_out()
        self.assertIsNone(self.ctx.user)
        self.assertIsNone(self.ctx.role)
        with self.assertRaises(AuthError):
            await self.ctx.toggle_wishlist("p-rice")

    async def test_seller_session_loads_shop(self):
        await self.ctx.sign_in("freshmart@localmart.test", "Demo@123")
        self.assertEqual(self.ctx.role, "seller")
        self.assertEqual(self.ctx.seller.id, "s-freshmart")

    async def test_sign_up_and_refresh(self):
        await self.ctx.sign_up("neha@example.com", "secret1", "Neha")
        self.assertEqual(self.ctx.role, "customer")
        self.assertEqual(self.ctx.profile.full_name, "Neha")

        await crud.register_seller(
            self.ctx.uid, "Neha Tailors", "services", "Main Road", "9000000009", 12.9, 77.6
        )
        await self.ctx.refresh_user()
        self.assertEqual(self.ctx.role, "seller")
        self.assertEqual(self.ctx.seller.shop_name, "Neha Tailors")

    def _file(self, name: str, size: int) -> str:
        path = os.path.join(self.temp_dir.name, name)
        with open(path, "wb") as f:
            f.write(b"\0" * size)
        return path

    async def test_profile_address_reaches_checkout(self):
        await self.ctx.sign_up("neha@example.com", "secret1", "Neha")
        await self.ctx.save_profile("Neha S", "9000000001", "4 Church Street", 12.975, 77.605)
        self.assertEqual(self.ctx.profile.address, "4 Church Street")

        await self.ctx.sign_in("neha@example.com", "secret1")
        profile = self.ctx.profile
        self.assertEqual((profile.full_name, profile.phone), ("Neha S", "9000000001"))

        order = await crud.place_order(
            self.ctx.uid, "s-freshmart", [cart_line()], "self_delivery", profile.address
        )
        self.assertEqual(order.delivery_address, "4 Church Street")
        self.assertAlmostEqual(order.delivery_latitude, 12.975)
        self.assertAlmostEqual(order.delivery_longitude, 77.605)

    async def test_avatar_upload(self):
        await self.ctx.sign_in("asha@example.com", "Customer@123")
        url = await self.ctx.upload_avatar(self._file("me.png", 1024))
        self.assertTrue(url.startswith(f"storage://avatars/{self.ctx.uid}/"))
        self.assertIn("expires=", url)
        self.assertTrue(self.ctx.profile.avatar_url.startswith(f"{self.ctx.uid}/"))

        with self.assertRaises(UploadRejectedError) as ctx:
            await self.ctx.upload_avatar(self._file("big.png", 3 * 1024 * 1024))
        self.assertEqual(ctx.exception.reason, "size")
        with self.assertRaises(ValidationError):
            await self.ctx.upload_avatar(os.path.join(self.temp_dir.name, "missing.png"))

    async def test_shop_edit_and_image(self):
        await self.ctx.sign_in("freshmart@localmart.test", "Demo@123")
        seller = await self.ctx.save_shop(shop_name="Fresh Mart Plus", delivery_options=["customer_pickup"])
        self.assertEqual(seller.shop_name, "Fresh Mart Plus")
        self.assertEqual(self.ctx.seller.delivery_options, ("customer_pickup",))

        url = await self.ctx.upload_shop_image(self._file("front.jpg", 2048))
        self.assertTrue(url.startswith("storage://shop-images/s-freshmart/"))
        self.assertEqual(self.ctx.seller.image_url, url)

        with self.assertRaises(UploadRejectedError) as ctx:
            await self.ctx.upload_shop_image(self._file("notes.txt", 10))
        self.assertEqual(ctx.exception.reason, "type")

    async def test_profile_needs_sign_in(self):
        with self.assertRaises(AuthError):
            await self.ctx.save_profile("Nobody", "", "")

    async def test_wrong_password(self):
        with self.assertRaises(AuthError):
            await self.ctx.sign_in("asha@example.com", "nope-nope")
        self.assertIsNone(self.ctx.user)


if __name__ == "__main__":
    unittest.main()
