from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.models._common import new_id
from marketplace.models.product import Product


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def list_active(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        sub_category: Optional[str] = None,
        seller_id: Optional[str] = None,
    ) -> List[Product]:
        """Active listings, newest first, optionally narrowed by search term and category."""
        query = self.db.query(Product).filter(Product.is_active == True)  # noqa: E712
        if category:
            query = query.filter(Product.category == category.lower())
        if sub_category:
            query = query.filter(Product.sub_category == sub_category)
        if seller_id:
            query = query.filter(Product.seller_id == seller_id)
        if q and q.strip():
            like = f"%{q.strip()}%"
            query = query.filter(
                (Product.title.ilike(like)) | (Product.description.ilike(like))
            )
        return query.order_by(Product.created_at.desc()).all()

    def take_stock(self, product_id: str, quantity: int) -> bool:
        """
        Conditionally decrement stock in a single UPDATE.
        Returns False (and changes nothing) when fewer than `quantity` units remain.
        """
        rowcount = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.stock >= quantity)
            .update(
                {
                    Product.is_active: Product.stock > quantity,
                    Product.stock: Product.stock - quantity,
                },
                synchronize_session=False,
            )
        )
        return rowcount == 1

    def return_stock(self, product_id: str, quantity: int) -> None:
        self.db.query(Product).filter(Product.id == product_id).update(
            {Product.stock: Product.stock + quantity, Product.is_active: True},
            synchronize_session=False,
        )

    def create_or_update(
        self,
        title: str,
        price_cents: int,
        seller_id: str,
        stock: int = 0,
        product_id: Optional[str] = None,
        **extra,
    ) -> Product:
        """Upsert used by seeding and tests; listings are otherwise owned by the seller app."""
        p = self.get(product_id) if product_id else None
        if p is None:
            p = Product(id=product_id or new_id(), seller_id=seller_id)
            self.db.add(p)
        p.title = title
        p.price_cents = price_cents
        p.seller_id = seller_id
        p.stock = stock
        p.is_active = stock > 0
        for key, value in extra.items():
            setattr(p, key, value)
        self.db.flush()
        return p

    def current_stock(self, product_id: str) -> Optional[int]:
        """Fresh read of the stock column, bypassing the identity map."""
        return (
            self.db.query(Product.stock).filter(Product.id == product_id).scalar()
        )
