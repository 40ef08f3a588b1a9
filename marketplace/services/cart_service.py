import logging
from typing import Iterable, List, Tuple

from sqlalchemy.orm import Session

from marketplace.realtime import CART, ChangeFeed, feed as default_feed
from marketplace.repositories.cart_repo import CartRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.schemas.cart_schema import CartItemOut
from marketplace.services.errors import (
    CartItemNotFound,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
)
from marketplace.session import SessionContext
from marketplace.utils.transactions import smart_transaction, storage_errors

log = logging.getLogger("marketplace.cart")


def validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity()
    return quantity


class CartService:
    """
    The buyer's cart. Entries snapshot the product's price when first added
    and keep that price; only the quantity changes afterwards.
    """

    def __init__(self, db: Session, feed: ChangeFeed = None):
        self.db = db
        self.feed = feed or default_feed
        self.cart_repo = CartRepository(db)
        self.product_repo = ProductRepository(db)

    def list_items(self, ctx: SessionContext) -> List[CartItemOut]:
        with storage_errors(self.db):
            return [CartItemOut.model_validate(i) for i in self.cart_repo.list_for_user(ctx.uid)]

    def add_item(
        self, ctx: SessionContext, product_id: str, quantity: int
    ) -> Tuple[CartItemOut, bool]:
        """
        Add `quantity` units of a product, merging into an existing entry.
        Returns (entry, merged).
        """
        validate_quantity(quantity)
        with storage_errors(self.db):
            product = self.product_repo.get(product_id)
            if not product:
                raise ProductNotFound()
            stock = product.stock or 0
            if stock < quantity:
                raise InsufficientStock(stock)

            existing = self.cart_repo.get_by_product(ctx.uid, product.id)
            if existing:
                new_qty = existing.quantity + quantity
                if stock < new_qty:
                    raise InsufficientStock(stock, f"Cannot add more than {stock} total.")
                with smart_transaction(self.db):
                    item = self.cart_repo.set_quantity(existing, new_qty)
                merged = True
            else:
                with smart_transaction(self.db):
                    item = self.cart_repo.create(ctx.uid, product, quantity)
                merged = False
            record = CartItemOut.model_validate(item)

        log.info(
            "cart %s: %s %s x%d", ctx.uid, "merged" if merged else "added", product_id, record.quantity
        )
        self.feed.publish(CART, user_id=ctx.uid)
        return record, merged

    def change_quantity(self, ctx: SessionContext, item_id: str, new_quantity: int) -> CartItemOut:
        """
        Set an entry's quantity. Values below 1 are ignored and the entry is
        returned unchanged. Live stock is not consulted here; checkout's
        conditional stock decrement catches an over-quantity line.
        """
        with storage_errors(self.db):
            item = self.cart_repo.get(ctx.uid, item_id)
            if not item:
                raise CartItemNotFound()
            if not isinstance(new_quantity, int) or new_quantity < 1:
                return CartItemOut.model_validate(item)
            with smart_transaction(self.db):
                self.cart_repo.set_quantity(item, new_quantity)
            record = CartItemOut.model_validate(item)
        self.feed.publish(CART, user_id=ctx.uid)
        return record

    def remove_item(self, ctx: SessionContext, item_id: str) -> None:
        with storage_errors(self.db):
            item = self.cart_repo.get(ctx.uid, item_id)
            if not item:
                raise CartItemNotFound()
            with smart_transaction(self.db):
                self.cart_repo.delete(item)
        log.info("cart %s: removed %s", ctx.uid, item_id)
        self.feed.publish(CART, user_id=ctx.uid)

    @staticmethod
    def subtotal(items: Iterable) -> int:
        """Exact sum of price * quantity in cents."""
        return sum((i.price_cents * i.quantity for i in items), 0)
