from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_ctx, to_http
from marketplace.db import get_db
from marketplace.schemas.cart_schema import AddItemIn, CartOut, SetQuantityIn
from marketplace.services.cart_service import CartService
from marketplace.services.errors import MarketplaceError
from marketplace.services.promo_service import PromoEngine
from marketplace.session import SessionContext

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", summary="Get cart")
def get_cart(ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    svc = CartService(db)
    try:
        items = svc.list_items(ctx)
    except MarketplaceError as e:
        raise to_http(e)
    return CartOut(items=items, subtotal_cents=svc.subtotal(items))


@router.post("/items", summary="Add item to cart")
def add_item(
    payload: AddItemIn,
    ctx: SessionContext = Depends(get_ctx),
    db: Session = Depends(get_db),
):
    try:
        item, merged = CartService(db).add_item(ctx, payload.product_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)
    return {"item": item, "merged": merged}


@router.patch("/items/{item_id}", summary="Change quantity")
def set_quantity(
    item_id: str,
    payload: SetQuantityIn,
    ctx: SessionContext = Depends(get_ctx),
    db: Session = Depends(get_db),
):
    try:
        return CartService(db).change_quantity(ctx, item_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)


@router.delete("/items/{item_id}", summary="Remove item")
def remove_item(item_id: str, ctx: SessionContext = Depends(get_ctx), db: Session = Depends(get_db)):
    try:
        CartService(db).remove_item(ctx, item_id)
    except MarketplaceError as e:
        raise to_http(e)
    return {"ok": True}


@router.get("/totals", summary="Subtotal, discount, delivery fee and total")
def totals(
    promo: Optional[str] = Query(None, description="promo code"),
    ctx: SessionContext = Depends(get_ctx),
    db: Session = Depends(get_db),
):
    engine = PromoEngine()
    svc = CartService(db)
    try:
        applied = engine.apply(promo) if promo else None
        return engine.totals(svc.subtotal(svc.list_items(ctx)), applied)
    except MarketplaceError as e:
        raise to_http(e)
