import unittest
from datetime import datetime

import aiosqlite
from dbcase import ASHA, FRESHMART_OWNER, DbTestCase, cart_line

from db import crud, database
from db.realtime import ChangeEvent, ChangeFeed, OrderPoller, changes
from utils.notifications import OrderNotifier


def order_row(order_id="o1", status="pending", customer_id="c1", seller_id="s1"):
    return {
        "id": order_id,
        "order_number": "ORD-123456",
        "status": status,
        "customer_id": customer_id,
        "seller_id": seller_id,
        "total_amount": 280.0,
    }


class ChangeFeedTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_filters_and_event_types(self):
        feed = ChangeFeed()
        mine, inserts_only = [], []
        feed.subscribe("orders", mine.append, events=("UPDATE",), filter={"customer_id": "c1"})
        feed.subscribe("orders", inserts_only.append, events=("INSERT",))

        await feed.publish(ChangeEvent("orders", "UPDATE", new=order_row(status="accepted")))
        await feed.publish(ChangeEvent("orders", "UPDATE", new=order_row(customer_id="c2")))
        await feed.publish(ChangeEvent("orders", "INSERT", new=order_row()))
        await feed.publish(ChangeEvent("reviews", "INSERT", new={"id": "r1"}))

        self.assertEqual([e.new["status"] for e in mine], ["accepted"])
        self.assertEqual(len(inserts_only), 1)

    async def test_unsubscribe_and_async_handlers(self):
        feed = ChangeFeed()
        seen = []

        async def handler(event):
            seen.append(event.new["id"])

        sub = feed.subscribe("orders", handler)
        self.assertEqual(await feed.publish(ChangeEvent("orders", "INSERT", new=order_row())), 1)
        sub.unsubscribe()
        sub.unsubscribe()
        self.assertFalse(sub.active)
        self.assertEqual(await feed.publish(ChangeEvent("orders", "INSERT", new=order_row("o2"))), 0)
        self.assertEqual(seen, ["o1"])
        self.assertEqual(feed.subscriber_count, 0)

    async def test_failing_handler_does_not_stop_delivery(self):
        feed = ChangeFeed()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        feed.subscribe("orders", broken)
        feed.subscribe("orders", seen.append)
        self.assertEqual(await feed.publish(ChangeEvent("orders", "INSERT", new=order_row())), 1)
        self.assertEqual(len(seen), 1)


class NotifierTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.feed = ChangeFeed()
        self.sent = []
        self.notifier = OrderNotifier(self.feed, self.sent.append)

    async def test_customer_hears_each_status_once(self):
        self.notifier.watch_customer("c1")
        self.notifier.seed([])
        for status in ("accepted", "accepted", "packed"):
            await self.feed.publish(ChangeEvent("orders", "UPDATE", new=order_row(status=status)))
        await self.feed.publish(ChangeEvent("orders", "UPDATE", new=order_row(customer_id="c2", status="packed")))

        self.assertEqual([n.status for n in self.sent], ["accepted", "packed"])
        self.assertEqual(self.sent[0].title, "Order #ORD-123456 Accepted")
        self.assertEqual(self.sent[0].message, "Your order has been accepted by the seller")

    async def test_seller_hears_new_orders_and_cancellations(self):
        self.notifier.watch_seller("s1")
        await self.feed.publish(ChangeEvent("orders", "INSERT", new=order_row()))
        await self.feed.publish(ChangeEvent("orders", "UPDATE", new=order_row(status="accepted")))
        await self.feed.publish(ChangeEvent("orders", "INSERT", new=order_row("o2")))
        await self.feed.publish(ChangeEvent("orders", "UPDATE", new=order_row("o2", status="cancelled")))

        self.assertEqual([n.title for n in self.sent], ["New order received", "New order received", "Order cancelled"])
        self.assertEqual(self.sent[0].message, "Order #ORD-123456 for 280.00")

    async def test_stop_detaches(self):
        self.notifier.watch_customer("c1")
        self.assertTrue(self.notifier.listening)
        self.notifier.stop()
        self.assertFalse(self.notifier.listening)
        await self.feed.publish(ChangeEvent("orders", "UPDATE", new=order_row(status="accepted")))
        self.assertEqual(self.sent, [])


class EndToEndNotificationTestCase(DbTestCase):
    async def test_status_change_reaches_customer(self):
        sent = []
        notifier = OrderNotifier(changes, sent.append)
        notifier.watch_customer(ASHA)
        try:
            order = await crud.place_order(ASHA, "s-freshmart", [cart_line()], "customer_pickup")
            notifier.seed(await crud.list_customer_orders(ASHA))
            await crud.advance_order(FRESHMART_OWNER, order.id)
        finally:
            notifier.stop()

        self.assertEqual([(n.order_id, n.status) for n in sent], [(order.id, "accepted")])


class OrderPollerTestCase(DbTestCase):
    """Orders written through a separate connection, as another app process would."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.poller = OrderPoller(changes)
        await self.poller.start()
        self.heard = []
        changes.subscribe("orders", self.heard.append, filter={"seller_id": "s-freshmart"})

    async def asyncTearDown(self):
        self.poller.stop()

    async def _external_write(self, sql, params):
        async with aiosqlite.connect(database.DB_PATH) as conn:
            await conn.execute(sql, params)
            await conn.commit()

    async def test_other_session_insert_and_update_are_published(self):
        now = datetime.now().isoformat()
        await self._external_write(
            """
            INSERT INTO orders(id, order_number, customer_id, seller_id, status, delivery_type,
                               subtotal, delivery_fee, total_amount, created_at, updated_at)
            VALUES ('o-ext', 'ORD-777777', ?, 's-freshmart', 'pending', 'customer_pickup',
                    250, 0, 250, ?, ?);
            """,
            (ASHA, now, now),
        )
        self.assertEqual(await self.poller.poll(), 1)
        self.assertEqual([(e.event_type, e.new["id"]) for e in self.heard], [("INSERT", "o-ext")])

        await self._external_write(
            "UPDATE orders SET status = 'accepted', updated_at = ? WHERE id = 'o-ext';",
            (datetime.now().isoformat(),),
        )
        self.assertEqual(await self.poller.poll(), 1)
        update = self.heard[-1]
        self.assertEqual(update.event_type, "UPDATE")
        self.assertEqual((update.old["status"], update.new["status"]), ("pending", "accepted"))

        self.assertEqual(await self.poller.poll(), 0)
        self.assertEqual(len(self.heard), 2)

    async def test_customer_notified_of_status_set_elsewhere(self):
        order = await crud.place_order(ASHA, "s-freshmart", [cart_line()], "customer_pickup")
        sent = []
        notifier = OrderNotifier(changes, sent.append)
        notifier.watch_customer(ASHA)
        notifier.seed(await crud.list_customer_orders(ASHA))
        try:
            await self._external_write(
                "UPDATE orders SET status = 'accepted', updated_at = ? WHERE id = ?;",
                (datetime.now().isoformat(), order.id),
            )
            await self.poller.poll()
            await self.poller.poll()
        finally:
            notifier.stop()
        self.assertEqual([(n.order_id, n.status) for n in sent], [(order.id, "accepted")])

    async def test_own_writes_are_not_repeated(self):
        order = await crud.place_order(ASHA, "s-freshmart", [cart_line()], "customer_pickup")
        await crud.advance_order(FRESHMART_OWNER, order.id)
        self.assertEqual(len(self.heard), 2)
        self.assertEqual(await self.poller.poll(), 0)
        self.assertEqual(len(self.heard), 2)

    async def test_stopped_poller_misses_in_process_writes_once(self):
        self.poller.stop()
        self.assertFalse(self.poller.running)
        await crud.place_order(ASHA, "s-freshmart", [cart_line()], "customer_pickup")
        self.assertEqual(await self.poller.poll(), 1)
        self.assertEqual(await self.poller.poll(), 0)


if __name__ == "__main__":
    unittest.main()
