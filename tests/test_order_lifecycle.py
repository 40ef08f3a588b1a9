import pytest

from marketplace.models.order import OrderStatus
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.errors import (
    InvalidTransition,
    NotOrderParticipant,
    OrderNotFound,
)
from marketplace.services.order_service import OrderService
from marketplace.session import SessionContext


@pytest.fixture
def placed(db, feed, buyer, make_product):
    """A pending order for 2 units of a 5-unit listing."""
    pid = make_product(stock=5, price_cents=1500)
    order, _ = CheckoutService(db, feed=feed).place_direct_order(buyer, pid, 2)
    return order


def test_seller_moves_order_forward(db, feed, seller, placed):
    svc = OrderService(db, feed=feed)

    confirmed = svc.mark_dispatched(seller, placed.id)
    completed = svc.mark_completed(seller, placed.id)

    assert confirmed.status == OrderStatus.CONFIRMED
    assert completed.status == OrderStatus.COMPLETED
    assert completed.updated_at >= confirmed.updated_at


def test_advance_status_follows_state(db, feed, seller, placed):
    svc = OrderService(db, feed=feed)
    assert svc.advance_status(seller, placed.id).status == OrderStatus.CONFIRMED
    assert svc.advance_status(seller, placed.id).status == OrderStatus.COMPLETED
    with pytest.raises(InvalidTransition):
        svc.advance_status(seller, placed.id)


def test_complete_requires_dispatch(db, feed, seller, placed):
    with pytest.raises(InvalidTransition):
        OrderService(db, feed=feed).mark_completed(seller, placed.id)


def test_buyer_cannot_advance(db, feed, buyer, placed):
    with pytest.raises(NotOrderParticipant):
        OrderService(db, feed=feed).advance_status(buyer, placed.id)


def test_seller_cannot_cancel(db, feed, seller, placed):
    with pytest.raises(NotOrderParticipant):
        OrderService(db, feed=feed).cancel(seller, placed.id)


@pytest.mark.parametrize("steps", [0, 1])
def test_cancel_pending_or_confirmed(db, feed, buyer, seller, placed, stock_of, steps):
    svc = OrderService(db, feed=feed)
    for _ in range(steps):
        svc.advance_status(seller, placed.id)
    assert stock_of(placed.product_id) == 3

    cancelled = svc.cancel(buyer, placed.id)

    assert cancelled.status == OrderStatus.CANCELLED
    # units go back to the listing
    assert stock_of(placed.product_id) == 5


def test_cancel_completed_fails_and_keeps_updated_at(db, feed, buyer, seller, placed):
    svc = OrderService(db, feed=feed)
    svc.advance_status(seller, placed.id)
    done = svc.advance_status(seller, placed.id)

    with pytest.raises(InvalidTransition) as exc:
        svc.cancel(buyer, placed.id)

    assert exc.value.user_message == "Only pending or confirmed orders can be cancelled."
    after = svc.get(buyer, placed.id)
    assert after.status == OrderStatus.COMPLETED
    assert after.updated_at == done.updated_at


def test_cancel_twice_fails(db, feed, buyer, placed):
    svc = OrderService(db, feed=feed)
    svc.cancel(buyer, placed.id)
    with pytest.raises(InvalidTransition):
        svc.cancel(buyer, placed.id)


def test_unknown_order(db, feed, buyer):
    with pytest.raises(OrderNotFound):
        OrderService(db, feed=feed).cancel(buyer, "missing")


def test_outsider_cannot_read(db, feed, placed):
    with pytest.raises(NotOrderParticipant):
        OrderService(db, feed=feed).get(SessionContext("stranger"), placed.id)


def test_seller_view_partitions(db, feed, buyer, seller, make_product):
    checkout = CheckoutService(db, feed=feed)
    svc = OrderService(db, feed=feed)
    a, _ = checkout.place_direct_order(buyer, make_product(), 1)
    b, _ = checkout.place_direct_order(buyer, make_product(), 1)
    c, _ = checkout.place_direct_order(buyer, make_product(), 1)
    svc.advance_status(seller, a.id)
    svc.cancel(buyer, b.id)

    view = svc.list_for_seller(seller)

    assert {o.id for o in view.active} == {a.id, c.id}
    assert {o.id for o in view.history} == {b.id}
    assert len(svc.list_for_buyer(buyer)) == 3
    assert svc.list_for_seller(buyer).active == []


def test_find_active(db, feed, buyer, placed):
    svc = OrderService(db, feed=feed)
    assert svc.find_active(buyer, placed.product_id).id == placed.id
    svc.cancel(buyer, placed.id)
    assert svc.find_active(buyer, placed.product_id) is None
