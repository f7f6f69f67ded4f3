import unittest

from dbcase import ADMIN, ASHA, BAKERY_OWNER, FRESHMART_OWNER, RAVI, TECHWORLD_OWNER, DbTestCase

from db import crud
from utils.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UploadRejectedError,
    ValidationError,
)

MB = 1024 * 1024


class AuthProfileTestCase(DbTestCase):
    # ---------- Auth & registration ----------

    async def test_sign_up_then_sign_in(self):
        user = await crud.sign_up("New.Person@Example.com", "secret1", "New Person")
        self.assertEqual(user.email, "new.person@example.com")
        self.assertEqual(user.role, "customer")

        again = await crud.sign_in("new.person@example.com", "secret1")
        self.assertEqual(again.id, user.id)

        profile = await crud.get_profile(user.id)
        self.assertEqual(profile.full_name, "New Person")

        with self.assertRaises(AuthError):
            await crud.sign_in("new.person@example.com", "wrong-password")

    async def test_sign_up_rejects_duplicates_and_bad_input(self):
        with self.assertRaises(AuthError) as ctx:
            await crud.sign_up("asha@example.com", "Customer@123")
        self.assertIn("already registered", str(ctx.exception))

        with self.assertRaises(ValidationError):
            await crud.sign_up("not-an-email", "secret1")
        with self.assertRaises(ValidationError):
            await crud.sign_up("short@example.com", "12345")

    async def test_seeded_roles(self):
        self.assertEqual((await crud.sign_in("admin@localmart.test", "Admin@123")).role, "admin")
        self.assertEqual((await crud.sign_in("asha@example.com", "Customer@123")).role, "customer")
        self.assertEqual((await crud.sign_in("freshmart@localmart.test", "Demo@123")).role, "seller")
        self.assertIsNone(await crud.get_user("u-missing"))
        self.assertEqual(await crud.get_user_roles(RAVI), ["customer"])

    async def test_update_profile_partial(self):
        profile = await crud.update_profile(ASHA, phone="9111111111")
        self.assertEqual(profile.phone, "9111111111")
        self.assertEqual(profile.full_name, "Asha Rao")

        profile = await crud.update_profile(ASHA, latitude=12.9, longitude=77.6)
        self.assertAlmostEqual(profile.latitude, 12.9)

        with self.assertRaises(ValidationError):
            await crud.update_profile(ASHA, latitude=12.9)
        with self.assertRaises(NotFoundError):
            await crud.update_profile("u-missing", full_name="Ghost")

    async def test_avatar_is_private(self):
        self.assertIsNone(await crud.signed_avatar_url(ASHA))
        path = await crud.set_avatar(ASHA, "me.png", 100 * 1024)
        self.assertTrue(path.startswith(f"{ASHA}/"))
        url = await crud.signed_avatar_url(ASHA)
        self.assertIn("storage://avatars/", url)
        self.assertIn("expires=", url)

        with self.assertRaises(UploadRejectedError) as ctx:
            await crud.set_avatar(ASHA, "me.png", 3 * MB)
        self.assertEqual(ctx.exception.reason, "size")


class SellerTestCase(DbTestCase):
    async def _register_ravi(self, **overrides):
        fields = dict(
            shop_name="Ravi Stores",
            category="grocery",
            address="4 Church Street",
            phone="9000000002",
            latitude=12.974,
            longitude=77.605,
            delivery_options=["self_delivery", "customer_pickup"],
        )
        fields.update(overrides)
        return await crud.register_seller(RAVI, **fields)

    async def test_register_seller_starts_pending(self):
        seller = await self._register_ravi()
        self.assertFalse(seller.is_approved)
        self.assertEqual(seller.delivery_options, ("self_delivery", "customer_pickup"))
        self.assertEqual((await crud.get_user(RAVI)).role, "seller")
        self.assertIn("customer", await crud.get_user_roles(RAVI))

        # not listed until approved
        self.assertNotIn(seller.id, [s.id for s in await crud.list_sellers()])

        with self.assertRaises(ConflictError):
            await self._register_ravi(shop_name="Second Shop")

    async def test_register_seller_validation(self):
        with self.assertRaises(ValidationError):
            await self._register_ravi(shop_name="  ")
        with self.assertRaises(ValidationError):
            await self._register_ravi(category="toys")
        with self.assertRaises(ValidationError):
            await self._register_ravi(delivery_options=[])
        with self.assertRaises(ValidationError):
            await self._register_ravi(latitude=None)
        self.assertIsNone(await crud.get_seller_for_user(RAVI))

    async def test_list_sellers_by_category(self):
        ids = [s.id for s in await crud.list_sellers()]
        self.assertIn("s-freshmart", ids)
        self.assertIn("s-techworld", ids)
        self.assertNotIn("s-bakery", ids)

        electronics = await crud.list_sellers("electronics")
        self.assertEqual([s.id for s in electronics], ["s-techworld"])

    async def test_update_seller_and_open_toggle(self):
        seller = await crud.update_seller(FRESHMART_OWNER, phone="9999999999", delivery_options=["customer_pickup"])
        self.assertEqual(seller.phone, "9999999999")
        self.assertEqual(seller.delivery_options, ("customer_pickup",))

        closed = await crud.set_seller_open(FRESHMART_OWNER, False)
        self.assertFalse(closed.is_open)

        with self.assertRaises(ValidationError):
            await crud.update_seller(FRESHMART_OWNER, is_approved=True)
        with self.assertRaises(NotFoundError):
            await crud.update_seller(ASHA, phone="1")

    async def test_admin_approves_and_rejects(self):
        pending = await crud.list_pending_sellers(ADMIN)
        self.assertEqual([s.id for s in pending], ["s-bakery"])

        with self.assertRaises(PermissionDeniedError):
            await crud.list_pending_sellers(ASHA)
        with self.assertRaises(PermissionDeniedError):
            await crud.approve_seller(FRESHMART_OWNER, "s-bakery")

        approved = await crud.approve_seller(ADMIN, "s-bakery")
        self.assertTrue(approved.is_approved)
        self.assertEqual(await crud.list_pending_sellers(ADMIN), [])

        # approved shops cannot be rejected
        with self.assertRaises(ValidationError):
            await crud.reject_seller(ADMIN, "s-bakery")

    async def test_reject_removes_application_and_role(self):
        seller = await self._register_ravi()
        await crud.reject_seller(ADMIN, seller.id)
        self.assertIsNone(await crud.get_seller(seller.id))
        self.assertEqual(await crud.get_user_roles(RAVI), ["customer"])
        with self.assertRaises(NotFoundError):
            await crud.reject_seller(ADMIN, seller.id)


class ProductTestCase(DbTestCase):
    async def test_create_update_delete_product(self):
        product = await crud.create_product(
            FRESHMART_OWNER, name="Sugar", price="45", stock="10", unit="kg", original_price=""
        )
        self.assertEqual(product.seller_id, "s-freshmart")
        self.assertEqual(product.price, 45.0)
        self.assertIsNone(product.original_price)

        updated = await crud.update_product(FRESHMART_OWNER, product.id, price=40, original_price=50)
        self.assertEqual(updated.discount_percent, 20)

        await crud.delete_product(FRESHMART_OWNER, product.id)
        self.assertIsNone(await crud.get_product(product.id))

    async def test_product_validation_and_ownership(self):
        with self.assertRaises(ValidationError):
            await crud.create_product(FRESHMART_OWNER, name="Free", price=0)
        with self.assertRaises(ValidationError):
            await crud.create_product(FRESHMART_OWNER, name="Negative", price=10, stock=-1)
        with self.assertRaises(ValidationError):
            await crud.create_product(FRESHMART_OWNER, name="", price=10)
        with self.assertRaises(NotFoundError):
            await crud.create_product(ASHA, name="Not a seller", price=10)

        with self.assertRaises(PermissionDeniedError):
            await crud.update_product(TECHWORLD_OWNER, "p-rice", price=1)
        with self.assertRaises(PermissionDeniedError):
            await crud.delete_product(TECHWORLD_OWNER, "p-rice")
        with self.assertRaises(NotFoundError):
            await crud.update_product(FRESHMART_OWNER, "p-missing", price=1)

    async def test_list_products(self):
        all_tech = await crud.list_products("s-techworld")
        available = await crud.list_products("s-techworld", available_only=True)
        self.assertIn("p-mouse", [p.id for p in all_tech])
        self.assertNotIn("p-mouse", [p.id for p in available])

    async def test_search_products(self):
        self.assertEqual(await crud.search_products(""), [])
        self.assertEqual(await crud.search_products("   "), [])

        found = await crud.search_products("RICE")
        self.assertEqual([p.id for p in found], ["p-rice"])

        # description and category match too
        self.assertIn("p-earbuds", [p.id for p in await crud.search_products("noise")])
        self.assertIn("p-milk", [p.id for p in await crud.search_products("dairy")])

        # unapproved shop and unavailable product stay hidden
        self.assertEqual(await crud.search_products("sourdough"), [])
        self.assertEqual(await crud.search_products("mouse"), [])

    async def test_product_image_rules(self):
        url = await crud.set_product_image(FRESHMART_OWNER, "p-rice", "rice.jpg", 1 * MB)
        self.assertTrue(url.startswith("storage://product-images/s-freshmart/"))
        self.assertEqual((await crud.get_product("p-rice")).image_url, url)

        with self.assertRaises(UploadRejectedError) as ctx:
            await crud.set_product_image(FRESHMART_OWNER, "p-rice", "big.jpg", 6 * MB)
        self.assertEqual(ctx.exception.reason, "size")

        with self.assertRaises(UploadRejectedError) as ctx:
            await crud.set_product_image(FRESHMART_OWNER, "p-rice", "notes.txt", 100)
        self.assertEqual(ctx.exception.reason, "type")

    async def test_shop_image(self):
        url = await crud.set_shop_image(FRESHMART_OWNER, "front.png", 200 * 1024)
        self.assertTrue(url.startswith("storage://shop-images/"))
        self.assertEqual((await crud.get_seller("s-freshmart")).image_url, url)


class WishlistTestCase(DbTestCase):
    async def test_wishlist_add_is_idempotent(self):
        await crud.add_to_wishlist(ASHA, "p-rice")
        await crud.add_to_wishlist(ASHA, "p-rice")
        await crud.add_to_wishlist(ASHA, "p-cable")

        entries = await crud.list_wishlist(ASHA)
        self.assertEqual(len(entries), 2)
        self.assertEqual(await crud.wishlist_product_ids(ASHA), {"p-rice", "p-cable"})
        self.assertEqual(await crud.wishlist_product_ids(RAVI), set())

        await crud.remove_from_wishlist(ASHA, "p-rice")
        self.assertEqual(await crud.wishlist_product_ids(ASHA), {"p-cable"})

        with self.assertRaises(NotFoundError):
            await crud.add_to_wishlist(ASHA, "p-missing")

    async def test_deleted_product_leaves_wishlist(self):
        await crud.add_to_wishlist(ASHA, "p-milk")
        await crud.delete_product(FRESHMART_OWNER, "p-milk")
        self.assertEqual(await crud.list_wishlist(ASHA), [])


class UnapprovedSellerTestCase(DbTestCase):
    async def test_pending_seller_can_prepare_catalog(self):
        product = await crud.create_product(BAKERY_OWNER, name="Croissant", price=60, stock=5)
        self.assertEqual(product.seller_id, "s-bakery")


if __name__ == "__main__":
    unittest.main()
