from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_ctx, to_http
from marketplace.db import get_db
from marketplace.schemas.order_schema import DirectOrderIn, DirectOrderOut
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.errors import MarketplaceError
from marketplace.services.order_service import OrderService
from marketplace.session import SessionContext

router = APIRouter(tags=["orders"])


@router.post("/checkout", summary="Turn the whole cart into orders")
def checkout_cart(ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    try:
        orders = CheckoutService(db).checkout_cart(ctx)
    except MarketplaceError as e:
        raise to_http(e)
    return {"orders": orders}


@router.post("", summary="Buy a single product now")
def place_direct_order(
    payload: DirectOrderIn,
    ctx: SessionContext = Depends(get_ctx),
    db: Session = Depends(get_db),
):
    try:
        order, revived = CheckoutService(db).place_direct_order(ctx, payload.product_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)
    return DirectOrderOut(order=order, revived=revived)


@router.get("/mine", summary="Buyer order history")
def buyer_orders(ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    try:
        return {"items": OrderService(db).list_for_buyer(ctx)}
    except MarketplaceError as e:
        raise to_http(e)


@router.get("/selling", summary="Seller orders split into active and history")
def seller_orders(ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    try:
        return OrderService(db).list_for_seller(ctx)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/{order_id}/cancel", summary="Buyer cancels a pending or confirmed order")
def cancel_order(order_id: str, ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    try:
        return OrderService(db).cancel(ctx, order_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/{order_id}/advance", summary="Seller marks dispatched / completed")
def advance_order(order_id: str, ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    try:
        return OrderService(db).advance_status(ctx, order_id)
    except MarketplaceError as e:
        raise to_http(e)
