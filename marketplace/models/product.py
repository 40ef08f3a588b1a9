from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from marketplace.db import Base
from marketplace.models._common import new_id, utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=False)
    seller_id = Column(String(128), nullable=False, index=True)
    seller_name = Column(String(256), nullable=True)
    image_url = Column(String(512), nullable=True)
    category = Column(String(64), nullable=True, index=True)
    sub_category = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Product id={self.id} title={self.title} stock={self.stock}>"
