"""
Push-based reads over the cart and order collections.

A screen subscribes to a query and receives the current snapshot straight
away, then a fresh snapshot every time a committed write touches a document
the query covers. Writers call `publish()` after commit; publishing only
re-reads and enqueues, it never waits on a subscriber.

    sub = feed.subscribe(CartQuery(user_id="u1"))
    render(sub.snapshot.records)
    for snap in sub.updates(timeout=0):
        render(snap.records)
    sub.unsubscribe()
"""
import logging
import queue
import threading
from typing import Callable, ClassVar, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.db import SessionLocal
from marketplace.repositories.cart_repo import CartRepository
from marketplace.repositories.order_repo import OrderRepository
from marketplace.schemas.cart_schema import CartItemOut
from marketplace.schemas.order_schema import OrderOut

log = logging.getLogger("marketplace.realtime")

CART = "cart"
ORDERS = "orders"


class CartQuery(BaseModel):
    model_config = ConfigDict(frozen=True)
    user_id: str

    collection: ClassVar[str] = CART

    def matches(self, change: dict) -> bool:
        return change.get("user_id") == self.user_id

    def fetch(self, db: Session) -> list:
        items = CartRepository(db).list_for_user(self.user_id)
        return [CartItemOut.model_validate(i) for i in items]


class OrdersQuery(BaseModel):
    """Orders for one buyer or one seller, newest first."""

    model_config = ConfigDict(frozen=True)
    buyer_id: Optional[str] = None
    seller_id: Optional[str] = None

    collection: ClassVar[str] = ORDERS

    def matches(self, change: dict) -> bool:
        if self.buyer_id is not None and change.get("buyer_id") == self.buyer_id:
            return True
        return self.seller_id is not None and change.get("seller_id") == self.seller_id

    def fetch(self, db: Session) -> list:
        repo = OrderRepository(db)
        if self.buyer_id is not None:
            orders = repo.list_for_buyer(self.buyer_id)
        else:
            orders = repo.list_for_seller(self.seller_id)
        return [OrderOut.model_validate(o) for o in orders]


class Snapshot(BaseModel):
    records: List = []
    error: Optional[str] = None


class Subscription:
    def __init__(self, feed: "ChangeFeed", query, snapshot: Snapshot):
        self.feed = feed
        self.query = query
        self.snapshot = snapshot
        self.active = True
        # holds at most the newest undelivered snapshot
        self._queue: "queue.Queue[Snapshot]" = queue.Queue(maxsize=1)
        self._push_lock = threading.Lock()

    def _push(self, snap: Snapshot):
        if not self.active:
            return
        with self._push_lock:
            self.snapshot = snap
            try:
                self._queue.get_nowait()
            except queue.Empty:
                pass
            self._queue.put_nowait(snap)

    def poll(self) -> Optional[Snapshot]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def updates(self, timeout: float = 0) -> Iterator[Snapshot]:
        """Yield queued snapshots; stop once nothing arrives within `timeout` seconds."""
        while self.active:
            try:
                yield self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
            except queue.Empty:
                return

    def unsubscribe(self):
        if self.active:
            self.active = False
            self.feed._remove(self)


class ChangeFeed:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self._subs: List[Subscription] = []
        self._lock = threading.Lock()

    def _read(self, query) -> Snapshot:
        try:
            with self.session_factory() as db:
                return Snapshot(records=query.fetch(db))
        except SQLAlchemyError as e:
            log.warning("snapshot read failed for %r: %s", query, e)
            return Snapshot(records=[], error=f"Error syncing {query.collection}: {e}")

    def subscribe(self, query) -> Subscription:
        sub = Subscription(self, query, self._read(query))
        with self._lock:
            self._subs.append(sub)
        log.debug("subscribed %r (%d live)", query, len(self._subs))
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)

    def publish(self, collection: str, **change):
        with self._lock:
            targets = [
                s for s in self._subs
                if s.query.collection == collection and s.query.matches(change)
            ]
        for sub in targets:
            sub._push(self._read(sub.query))

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)


feed = ChangeFeed(SessionLocal)
