import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.models._common import utcnow
from marketplace.models.order import ACTIVE_STATUSES, Order, OrderStatus
from marketplace.models.product import Product
from marketplace.realtime import ORDERS, ChangeFeed, feed as default_feed
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.schemas.order_schema import OrderOut, SellerOrdersOut
from marketplace.services.errors import (
    InsufficientStock,
    InvalidTransition,
    NotOrderParticipant,
    OrderNotFound,
    ProductNotFound,
)
from marketplace.session import SessionContext
from marketplace.utils.transactions import smart_transaction, storage_errors

log = logging.getLogger("marketplace.orders")

BUYER = "buyer"
SELLER = "seller"

# seller-driven forward moves: pending -> confirmed ("dispatched") -> completed
SELLER_TRANSITIONS = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.COMPLETED,
}

CANCEL_MESSAGE = "Only pending or confirmed orders can be cancelled."


class OrderService:
    """
    Order state machine shared by the buyer and seller views.

        pending --dispatch--> confirmed --complete--> completed
           \\                    |
            +----cancel---------+--> cancelled --revive--> pending

    Writes are last-write-wins; there is no version column.
    """

    def __init__(self, db: Session, feed: ChangeFeed = None, decrement_stock: bool = None):
        self.db = db
        self.feed = feed or default_feed
        self.repo = OrderRepository(db)
        self.product_repo = ProductRepository(db)
        self.decrement_stock = (
            settings.DECREMENT_STOCK_ON_ORDER if decrement_stock is None else decrement_stock
        )

    # ------------------------------------------------------------------ views

    def get(self, ctx: SessionContext, order_id: str) -> OrderOut:
        with storage_errors(self.db):
            order = self.repo.get(order_id)
            if not order:
                raise OrderNotFound()
            if ctx.uid not in (order.buyer_id, order.seller_id):
                raise NotOrderParticipant()
            return OrderOut.model_validate(order)

    def list_for_buyer(self, ctx: SessionContext) -> List[OrderOut]:
        with storage_errors(self.db):
            return [OrderOut.model_validate(o) for o in self.repo.list_for_buyer(ctx.uid)]

    def list_for_seller(self, ctx: SessionContext) -> SellerOrdersOut:
        with storage_errors(self.db):
            orders = [OrderOut.model_validate(o) for o in self.repo.list_for_seller(ctx.uid)]
        return SellerOrdersOut(
            active=[o for o in orders if o.status in ACTIVE_STATUSES],
            history=[o for o in orders if o.status not in ACTIVE_STATUSES],
        )

    def find_active(self, ctx: SessionContext, product_id: str) -> Optional[OrderOut]:
        with storage_errors(self.db):
            order = self.repo.find_active(ctx.uid, product_id)
            return OrderOut.model_validate(order) if order else None

    # ------------------------------------------------------------ transitions

    def mark_dispatched(self, ctx: SessionContext, order_id: str) -> OrderOut:
        return self._transition(
            ctx, order_id, SELLER, (OrderStatus.PENDING,), OrderStatus.CONFIRMED,
            "Only pending orders can be marked as dispatched.",
        )

    def mark_completed(self, ctx: SessionContext, order_id: str) -> OrderOut:
        return self._transition(
            ctx, order_id, SELLER, (OrderStatus.CONFIRMED,), OrderStatus.COMPLETED,
            "Only dispatched orders can be marked as completed.",
        )

    def advance_status(self, ctx: SessionContext, order_id: str) -> OrderOut:
        """Move an order one step forward on the seller's side."""
        with storage_errors(self.db):
            order = self._load(order_id)
            current = OrderStatus(order.status)
        target = SELLER_TRANSITIONS.get(current)
        if target is None:
            raise InvalidTransition(f"A {current.value} order cannot be advanced.")
        return self._transition(ctx, order_id, SELLER, (current,), target)

    def cancel(self, ctx: SessionContext, order_id: str) -> OrderOut:
        return self._transition(
            ctx, order_id, BUYER, ACTIVE_STATUSES, OrderStatus.CANCELLED, CANCEL_MESSAGE
        )

    def _load(self, order_id: str) -> Order:
        order = self.repo.get(order_id, for_update=True)
        if not order:
            raise OrderNotFound()
        return order

    def _transition(
        self,
        ctx: SessionContext,
        order_id: str,
        actor: str,
        allowed_from: Tuple[OrderStatus, ...],
        target: OrderStatus,
        message: str = None,
    ) -> OrderOut:
        with storage_errors(self.db):
            order = self._load(order_id)
            owner = order.seller_id if actor == SELLER else order.buyer_id
            if ctx.uid != owner:
                raise NotOrderParticipant()
            if order.status not in allowed_from:
                raise InvalidTransition(message)

            previous = order.status
            with smart_transaction(self.db):
                self.repo.set_status(order, target)
                if target == OrderStatus.CANCELLED and self.decrement_stock:
                    self.product_repo.return_stock(order.product_id, order.quantity)
            record = OrderOut.model_validate(order)

        log.info("order %s: %s -> %s by %s %s", order_id, previous.value, target.value, actor, ctx.uid)
        self.publish(record)
        return record

    # ------------------------------------------- writes composed by checkout

    def reserve_stock(self, product_id: str, quantity: int) -> None:
        """Take `quantity` units inside the caller's transaction (no-op when decrement is off)."""
        if not self.decrement_stock:
            return
        if not self.product_repo.take_stock(product_id, quantity):
            stock = self.product_repo.current_stock(product_id)
            if stock is None:
                raise ProductNotFound()
            raise InsufficientStock(stock)

    def create_pending(self, buyer_id: str, product_id: str, source, quantity: int) -> Order:
        """
        Stage a new pending order, copying seller, title, image and price
        from a product or cart entry (`source`).
        The caller owns the transaction.
        """
        return self.repo.add(
            buyer_id=buyer_id,
            seller_id=source.seller_id,
            product_id=product_id,
            title=source.title,
            image_url=source.image_url,
            price_cents=source.price_cents,
            quantity=quantity,
        )

    def revive(self, order: Order, product: Product, quantity: int) -> Order:
        """
        Re-activate a cancelled order in place: same id, fresh snapshots.
        The caller owns the transaction.
        """
        if order.status != OrderStatus.CANCELLED:
            raise InvalidTransition("Only cancelled orders can be revived.")
        now = utcnow()
        order.status = OrderStatus.PENDING
        order.quantity = quantity
        order.price_cents = product.price_cents
        order.title = product.title
        order.image_url = product.image_url
        order.created_at = now
        order.updated_at = now
        self.db.flush()
        return order

    def publish(self, order: OrderOut) -> None:
        self.feed.publish(ORDERS, buyer_id=order.buyer_id, seller_id=order.seller_id)
