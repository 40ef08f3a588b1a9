import hashlib
import logging
import os
import tempfile
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator, List, Tuple

from filelock import FileLock, Timeout
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.realtime import CART, ChangeFeed, feed as default_feed
from marketplace.repositories.cart_repo import CartRepository
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.schemas.order_schema import OrderOut
from marketplace.services.cart_service import validate_quantity
from marketplace.services.errors import (
    ActiveOrderExists,
    EmptyCart,
    InsufficientStock,
    OperationInProgress,
    ProductNotFound,
)
from marketplace.services.order_service import OrderService
from marketplace.session import SessionContext
from marketplace.utils.transactions import smart_transaction, storage_errors

log = logging.getLogger("marketplace.checkout")


def _locks_dir() -> str:
    path = settings.LOCK_DIR or os.path.join(tempfile.gettempdir(), "marketplace_locks")
    os.makedirs(path, exist_ok=True)
    return path


class CheckoutService:
    """
    Turns cart entries (or a single product) into orders.

    This is the only writer that touches both the cart and the order
    collections; the cart path commits every order insert and cart delete in
    one transaction. The one-active-order-per-(buyer, product) rule is checked
    before writing, under a file lock per pair so two local sessions cannot
    both pass the check.
    """

    def __init__(self, db: Session, feed: ChangeFeed = None, decrement_stock: bool = None):
        self.db = db
        self.feed = feed or default_feed
        self.cart_repo = CartRepository(db)
        self.order_repo = OrderRepository(db)
        self.product_repo = ProductRepository(db)
        self.orders = OrderService(db, feed=self.feed, decrement_stock=decrement_stock)

    @contextmanager
    def _pair_locks(self, buyer_id: str, product_ids: Iterable[str]) -> Iterator[None]:
        # sorted so two checkouts sharing products always lock in the same order
        keys = sorted({hashlib.sha1(f"{buyer_id}:{pid}".encode()).hexdigest() for pid in product_ids})
        locks_dir = _locks_dir()
        with ExitStack() as stack:
            for key in keys:
                lock = FileLock(os.path.join(locks_dir, f"order_{key}.lock"))
                try:
                    stack.enter_context(lock.acquire(timeout=settings.LOCK_TIMEOUT_SECONDS))
                except Timeout:
                    raise OperationInProgress("Another order for this product is being placed.")
            yield

    def _ensure_no_active(self, buyer_id: str, product_id: str, title: str) -> None:
        active = self.order_repo.find_active(buyer_id, product_id)
        if active:
            raise ActiveOrderExists(
                active.id, f"You already have an active order for {title}."
            )

    def checkout_cart(self, ctx: SessionContext) -> List[OrderOut]:
        """
        Create one pending order per cart entry and empty the cart, all or nothing.
        An empty cart raises EmptyCart without writing anything.
        """
        with storage_errors(self.db):
            items = self.cart_repo.list_for_user(ctx.uid)
            if not items:
                raise EmptyCart()

            created = []
            with self._pair_locks(ctx.uid, [ci.product_id for ci in items]):
                with smart_transaction(self.db):
                    for ci in items:
                        self._ensure_no_active(ctx.uid, ci.product_id, ci.title)
                        self.orders.reserve_stock(ci.product_id, ci.quantity)
                        created.append(
                            self.orders.create_pending(ctx.uid, ci.product_id, ci, ci.quantity)
                        )
                        self.cart_repo.delete(ci)
            records = [OrderOut.model_validate(o) for o in created]

        log.info("checkout %s: %d order(s) placed, cart cleared", ctx.uid, len(records))
        self.feed.publish(CART, user_id=ctx.uid)
        for order in records:
            self.orders.publish(order)
        return records

    def place_direct_order(
        self, ctx: SessionContext, product_id: str, quantity: int
    ) -> Tuple[OrderOut, bool]:
        """
        Buy a single product without going through the cart.
        Revives a cancelled order for the same (buyer, product) if there is one.
        Returns (order, revived).
        """
        validate_quantity(quantity)
        with storage_errors(self.db):
            product = self.product_repo.get(product_id)
            if not product:
                raise ProductNotFound()
            stock = product.stock or 0
            if stock < quantity:
                raise InsufficientStock(stock)

            with self._pair_locks(ctx.uid, [product.id]):
                with smart_transaction(self.db):
                    self._ensure_no_active(ctx.uid, product.id, product.title)
                    self.orders.reserve_stock(product.id, quantity)
                    cancelled = self.order_repo.find_cancelled(ctx.uid, product.id)
                    if cancelled:
                        order = self.orders.revive(cancelled, product, quantity)
                    else:
                        order = self.orders.create_pending(ctx.uid, product.id, product, quantity)
                revived = cancelled is not None
            record = OrderOut.model_validate(order)

        log.info(
            "direct order %s: %s x%d (%s)", ctx.uid, product_id, quantity, "revived" if revived else "new"
        )
        self.orders.publish(record)
        return record, revived
