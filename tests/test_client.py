from marketplace.client import MarketplaceClient
from marketplace.db import SessionLocal
from marketplace.models.order import Order, OrderStatus
from marketplace.services.errors import (
    EmptyCart,
    InvalidTransition,
    OperationInProgress,
    StorageUnavailable,
    UnknownPromoCode,
)
from marketplace.services.promo_service import PromoEngine
from marketplace.session import SessionContext


def _client(db, feed, uid="buyer-1"):
    return MarketplaceClient(SessionContext(uid), db, feed=feed, promos=PromoEngine(delivery_fee_cents=500))


def test_add_to_cart_messages(db, feed, make_product):
    client = _client(db, feed)
    pid = make_product(stock=5, title="Denim Jacket")

    first = client.add_to_cart(pid, 1)
    second = client.add_to_cart(pid, 1)
    too_many = client.add_to_cart(pid, 10)

    assert first.ok and first.message == "Denim Jacket added successfully."
    assert second.ok and second.message == "Quantity increased in cart."
    assert not too_many.ok and too_many.error_type == "InsufficientStock"


def test_apply_promo_and_totals(db, feed, make_product):
    client = _client(db, feed)
    client.add_to_cart(make_product(stock=5, price_cents=5000), 2)

    applied = client.apply_promo(" adj3ak ")
    totals = client.compute_totals()

    assert applied.ok and client.applied_promo.code == "ADJ3AK"
    assert totals.value.subtotal_cents == 10000
    assert totals.value.discount_cents == 4000
    assert totals.value.total_cents == 6500


def test_unknown_promo_does_not_touch_applied_state(db, feed):
    client = _client(db, feed)

    bad = client.apply_promo("FAKE1")
    assert not bad.ok and isinstance(bad.error, UnknownPromoCode)
    assert client.applied_promo is None

    client.apply_promo("ADJ3AK")
    bad_again = client.apply_promo("FAKE1")
    assert not bad_again.ok
    assert client.applied_promo.code == "ADJ3AK"


def test_second_promo_rejected_until_cleared(db, feed):
    client = _client(db, feed)
    client.apply_promo("ADJ3AK")

    assert client.apply_promo("ADJ3AK").error_type == "PromoAlreadyApplied"
    client.clear_promo()
    assert client.applied_promo is None
    assert client.apply_promo("ADJ3AK").ok


def test_checkout_empty_cart_result(db, feed):
    result = _client(db, feed).checkout_cart()
    assert not result.ok
    assert isinstance(result.error, EmptyCart)
    assert result.message == "Add items before checking out."


def test_full_buyer_seller_round(db, feed, make_product):
    buyer = _client(db, feed, "buyer-1")
    seller = _client(db, feed, "seller-1")
    buyer.add_to_cart(make_product(stock=2), 1)

    placed = buyer.checkout_cart()
    [order] = placed.value
    assert placed.ok and placed.message == "Order placed."
    assert buyer.cart_items().value == []

    assert seller.advance_order_status(order.id).value.status == OrderStatus.CONFIRMED
    assert seller.advance_order_status(order.id).value.status == OrderStatus.COMPLETED
    cancel = buyer.cancel_order(order.id)
    assert not cancel.ok and isinstance(cancel.error, InvalidTransition)
    assert [o.status for o in buyer.buyer_orders().value] == [OrderStatus.COMPLETED]
    assert len(seller.seller_orders().value.history) == 1


def test_direct_order_revival_message(db, feed, make_product):
    client = _client(db, feed)
    pid = make_product(stock=3)
    first = client.place_direct_order(pid, 1)
    client.cancel_order(first.value.id)

    again = client.place_direct_order(pid, 1)

    assert again.ok and again.message == "Order placed again."
    assert again.value.id == first.value.id


def test_in_progress_flag_rejects_reentry_and_is_cleared(db, feed, make_product):
    client = _client(db, feed)
    pid = make_product()
    seen = {}

    def reenter(*args):
        seen["busy"] = client.is_busy("checkout")
        seen["nested"] = client.checkout_cart()
        raise StorageUnavailable()

    client.checkout.checkout_cart = reenter
    result = client.checkout_cart()

    assert seen["busy"] is True
    assert isinstance(seen["nested"].error, OperationInProgress)
    assert not result.ok and isinstance(result.error, StorageUnavailable)
    assert client.is_busy("checkout") is False
    assert client.add_to_cart(pid, 1).ok


def test_subscribe_cart_through_client(db, feed, make_product):
    client = _client(db, feed)
    sub = client.subscribe_cart()
    client.add_to_cart(make_product(), 2)
    assert [i.quantity for i in sub.poll().records] == [2]
    sub.unsubscribe()


def test_restock_between_calls_is_seen(db, feed, make_product, set_stock):
    client = _client(db, feed)
    pid = make_product(stock=1)

    rejected = client.add_to_cart(pid, 3)
    set_stock(pid, 10)
    retried = client.add_to_cart(pid, 3)

    assert not rejected.ok and rejected.message == "Only 1 available."
    assert retried.ok and retried.value.quantity == 3


def test_cancel_after_seller_completed_elsewhere(db, feed, make_product):
    buyer = _client(db, feed, "buyer-1")
    order = buyer.place_direct_order(make_product(stock=2), 1).value
    listed = buyer.buyer_orders().value
    held = db.get(Order, order.id)
    assert held.status == OrderStatus.PENDING

    other = SessionLocal()
    try:
        seller = _client(other, feed, "seller-1")
        assert seller.advance_order_status(order.id).ok
        assert seller.advance_order_status(order.id).ok
    finally:
        other.close()

    cancel = buyer.cancel_order(order.id)

    assert not cancel.ok and isinstance(cancel.error, InvalidTransition)
    assert listed[0].status == OrderStatus.PENDING
    assert held.status == OrderStatus.COMPLETED
    assert buyer.buyer_orders().value[0].status == OrderStatus.COMPLETED
