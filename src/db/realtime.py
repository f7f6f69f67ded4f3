# change feed: committed INSERT/UPDATE events pushed to subscribers, plus a
# poller that brings in order rows written by other processes
from __future__ import annotations

import asyncio
import inspect
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from db.database import connect
from utils.logger import get_logger

_logger = get_logger(__name__)

EventType = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: EventType
    new: Dict[str, Any]
    old: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


@dataclass(eq=False)
class Subscription:
    """
    One listener: a table, the event types it wants, and an equality filter
    on the new row (e.g. {"seller_id": "s-1"}).
    """

    table: str
    handler: Handler
    events: frozenset
    filter: Dict[str, Any]
    _feed: Optional["ChangeFeed"] = None

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table or event.event_type not in self.events:
            return False
        row = event.new or event.old
        return all(row.get(k) == v for k, v in self.filter.items())

    @property
    def active(self) -> bool:
        return self._feed is not None

    def unsubscribe(self) -> None:
        if self._feed is not None:
            self._feed._remove(self)
            self._feed = None


class ChangeFeed:
    """
    Fan-out of row changes to subscribers.

    Writers publish after their transaction commits, so subscribers only ever
    see durable rows. A failing handler is logged and does not stop delivery
    to the others.
    """

    def __init__(self) -> None:
        self._subs: List[Subscription] = []

    def subscribe(
        self,
        table: str,
        handler: Handler,
        events=("INSERT", "UPDATE"),
        filter: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        sub = Subscription(
            table=table,
            handler=handler,
            events=frozenset(events),
            filter=dict(filter or {}),
            _feed=self,
        )
        self._subs.append(sub)
        _logger.debug(f"Subscribed to {table} {sorted(sub.events)} {sub.filter}")
        return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subs:
            self._subs.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver to every matching subscriber; returns how many received it."""
        delivered = 0
        for sub in list(self._subs):
            if not sub.matches(event):
                continue
            try:
                result = sub.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.exception(
                    f"Subscriber for {event.table} failed on {event.event_type}"
                )
                continue
            delivered += 1
        _logger.debug(f"{event.event_type} {event.table} delivered to {delivered}")
        return delivered


# feed shared by the db layer; the app context hands it to its consumers
changes = ChangeFeed()


class OrderPoller:
    """
    Publishes order rows committed by other processes.

    Writes made in this process already reach the feed directly. The poller
    listens to the same feed, so those rows are known by the next poll and
    are not published twice. Each poll re-reads a short window before the
    newest timestamp it has seen, to catch writers whose commit landed after
    a later-stamped one.
    """

    LOOKBACK = timedelta(seconds=5)

    def __init__(self, feed: ChangeFeed) -> None:
        self._feed = feed
        self._known: Dict[str, str] = {}
        self._watermark = ""
        self._sub: Optional[Subscription] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._sub is not None

    async def start(self) -> None:
        """Snapshot current orders and start tracking in-process writes."""
        async with connect() as conn:
            cur = await conn.execute("SELECT id, status, updated_at FROM orders;")
            rows = await cur.fetchall()
            await cur.close()
        self._known = {r["id"]: r["status"] for r in rows}
        self._watermark = max((r["updated_at"] for r in rows), default="")
        if self._sub is None:
            self._sub = self._feed.subscribe("orders", self._remember)
        _logger.debug(f"Order poller tracking {len(self._known)} orders")

    def stop(self) -> None:
        if self._sub is not None:
            self._sub.unsubscribe()
            self._sub = None

    def _remember(self, event: ChangeEvent) -> None:
        row = event.new
        if row.get("id") and row.get("status"):
            self._known[row["id"]] = row["status"]
            self._watermark = max(self._watermark, row.get("updated_at") or "")

    def _since(self) -> str:
        if not self._watermark:
            return ""
        try:
            return (datetime.fromisoformat(self._watermark) - self.LOOKBACK).isoformat()
        except ValueError:
            return ""

    async def poll(self) -> int:
        """Publish orders that are new or changed since the last poll; returns the count."""
        if self._lock.locked():
            return 0
        async with self._lock:
            try:
                async with connect() as conn:
                    cur = await conn.execute(
                        "SELECT * FROM orders WHERE updated_at >= ? ORDER BY updated_at, id;",
                        (self._since(),),
                    )
                    rows = [dict(r) for r in await cur.fetchall()]
                    await cur.close()
            except sqlite3.Error as e:
                _logger.warning(f"Order poll failed: {e}")
                return 0

            events = []
            for row in rows:
                previous = self._known.get(row["id"])
                if previous == row["status"]:
                    continue
                if previous is None:
                    events.append(ChangeEvent("orders", "INSERT", new=row))
                else:
                    events.append(
                        ChangeEvent(
                            "orders", "UPDATE", new=row, old={"id": row["id"], "status": previous}
                        )
                    )
                self._known[row["id"]] = row["status"]
                self._watermark = max(self._watermark, row["updated_at"])

            for event in events:
                await self._feed.publish(event)
            if events:
                _logger.info(f"Picked up {len(events)} order change(s) from other sessions")
            return len(events)
