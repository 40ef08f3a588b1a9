from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from marketplace.db import Base
from marketplace.models._common import new_id, utcnow


class CartItem(Base):
    """A buyer's staged purchase line (users/{uid}/cart/{id})."""

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_user_product"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    product_id = Column(String(32), nullable=False, index=True)
    seller_id = Column(String(128), nullable=False)
    title = Column(String(256), nullable=False)
    image_url = Column(String(512), nullable=True)
    price_cents = Column(
        Integer, nullable=False, default=0
    )  # price at time of add, never re-synced
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
