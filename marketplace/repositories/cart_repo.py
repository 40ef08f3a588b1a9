from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.models._common import utcnow
from marketplace.models.cart_item import CartItem
from marketplace.models.product import Product


class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
            .all()
        )

    def get(self, user_id: str, item_id: str) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.id == item_id, CartItem.user_id == user_id)
            .first()
        )

    def get_by_product(self, user_id: str, product_id: str) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .first()
        )

    def create(self, user_id: str, product: Product, quantity: int) -> CartItem:
        now = utcnow()
        item = CartItem(
            user_id=user_id,
            product_id=product.id,
            seller_id=product.seller_id,
            title=product.title,
            image_url=product.image_url,
            price_cents=product.price_cents,
            quantity=quantity,
            created_at=now,
            updated_at=now,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def set_quantity(self, item: CartItem, quantity: int) -> CartItem:
        item.quantity = quantity
        item.updated_at = utcnow()
        self.db.flush()
        return item

    def delete(self, item: CartItem) -> None:
        self.db.delete(item)
        self.db.flush()

    def count_for_user(self, user_id: str) -> int:
        return self.db.query(CartItem).filter(CartItem.user_id == user_id).count()
