"""
In-process API used by the screens.

One MarketplaceClient per signed-in session. Every call returns an
ActionResult instead of raising: domain errors become a failed result with
a user-facing message, and the call's in-progress flag is always cleared.
"""
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from marketplace.realtime import ChangeFeed, CartQuery, OrdersQuery, Subscription, feed as default_feed
from marketplace.schemas.promo_schema import AppliedPromo
from marketplace.services.cart_service import CartService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.errors import (
    MarketplaceError,
    PromoAlreadyApplied,
    StorageUnavailable,
)
from marketplace.services.order_service import OrderService
from marketplace.services.promo_service import PromoEngine
from marketplace.session import SessionContext

log = logging.getLogger("marketplace.client")


class ActionResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)
    ok: bool
    value: Any = None
    message: Optional[str] = None
    error: Optional[MarketplaceError] = None

    @property
    def error_type(self) -> Optional[str]:
        return type(self.error).__name__ if self.error else None


class MarketplaceClient:
    def __init__(
        self,
        ctx: SessionContext,
        db: Session,
        feed: ChangeFeed = None,
        promos: PromoEngine = None,
    ):
        self.ctx = ctx
        self.db = db
        self.feed = feed or default_feed
        self.promos = promos or PromoEngine()
        self.applied_promo: Optional[AppliedPromo] = None
        self.cart = CartService(db, feed=self.feed)
        self.orders = OrderService(db, feed=self.feed)
        self.checkout = CheckoutService(db, feed=self.feed)

    def _run(self, action: str, fn: Callable[[], Any], success: str = None) -> ActionResult:
        try:
            with self.ctx.in_progress(action):
                value = fn()
        except StorageUnavailable as e:
            log.error("%s failed for %s: %s", action, self.ctx.uid, e.__cause__ or e)
            return ActionResult(ok=False, message=e.user_message, error=e)
        except MarketplaceError as e:
            log.debug("%s rejected for %s: %s", action, self.ctx.uid, e.user_message)
            return ActionResult(ok=False, message=e.user_message, error=e)
        return ActionResult(ok=True, value=value, message=success)

    def is_busy(self, action: str) -> bool:
        return self.ctx.is_busy(action)

    # cart

    def add_to_cart(self, product_id: str, quantity: int = 1) -> ActionResult:
        result = self._run("add_to_cart", lambda: self.cart.add_item(self.ctx, product_id, quantity))
        if result.ok:
            item, merged = result.value
            result.value = item
            result.message = (
                "Quantity increased in cart." if merged else f"{item.title} added successfully."
            )
        return result

    def remove_from_cart(self, item_id: str) -> ActionResult:
        return self._run("remove_from_cart", lambda: self.cart.remove_item(self.ctx, item_id))

    def set_quantity(self, item_id: str, quantity: int) -> ActionResult:
        return self._run("set_quantity", lambda: self.cart.change_quantity(self.ctx, item_id, quantity))

    def cart_items(self) -> ActionResult:
        return self._run("cart_items", lambda: self.cart.list_items(self.ctx))

    # promo + totals

    def apply_promo(self, code: str) -> ActionResult:
        def _apply():
            if self.applied_promo is not None:
                raise PromoAlreadyApplied()
            return self.promos.apply(code)

        result = self._run("apply_promo", _apply, success="Promo code applied.")
        if result.ok:
            self.applied_promo = result.value
        return result

    def clear_promo(self) -> ActionResult:
        self.applied_promo = None
        return ActionResult(ok=True)

    def compute_totals(self, items=None) -> ActionResult:
        """Totals for `items`, or for the current cart when omitted."""
        def _totals():
            lines = items if items is not None else self.cart.list_items(self.ctx)
            return self.promos.totals(CartService.subtotal(lines), self.applied_promo)

        return self._run("compute_totals", _totals)

    # checkout + orders

    def checkout_cart(self) -> ActionResult:
        return self._run("checkout", lambda: self.checkout.checkout_cart(self.ctx), success="Order placed.")

    def place_direct_order(self, product_id: str, quantity: int = 1) -> ActionResult:
        result = self._run(
            "place_order", lambda: self.checkout.place_direct_order(self.ctx, product_id, quantity)
        )
        if result.ok:
            order, revived = result.value
            result.value = order
            result.message = "Order placed again." if revived else "Order placed."
        return result

    def cancel_order(self, order_id: str) -> ActionResult:
        return self._run(
            f"cancel:{order_id}", lambda: self.orders.cancel(self.ctx, order_id), success="Order cancelled."
        )

    def advance_order_status(self, order_id: str) -> ActionResult:
        return self._run(f"advance:{order_id}", lambda: self.orders.advance_status(self.ctx, order_id))

    def buyer_orders(self) -> ActionResult:
        return self._run("buyer_orders", lambda: self.orders.list_for_buyer(self.ctx))

    def seller_orders(self) -> ActionResult:
        return self._run("seller_orders", lambda: self.orders.list_for_seller(self.ctx))

    # live reads

    def subscribe_cart(self) -> Subscription:
        return self.feed.subscribe(CartQuery(user_id=self.ctx.uid))

    def subscribe_orders(self, as_seller: bool = False) -> Subscription:
        if as_seller:
            return self.feed.subscribe(OrdersQuery(seller_id=self.ctx.uid))
        return self.feed.subscribe(OrdersQuery(buyer_id=self.ctx.uid))
