import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String

from marketplace.db import Base
from marketplace.models._common import new_id, utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)
HISTORY_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_buyer_product", "buyer_id", "product_id"),)

    id = Column(String(32), primary_key=True, default=new_id)
    buyer_id = Column(String(128), nullable=False, index=True)
    seller_id = Column(String(128), nullable=False, index=True)
    product_id = Column(String(32), nullable=False)
    title = Column(String(256), nullable=False)
    image_url = Column(String(512), nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)  # unit price snapshot
    quantity = Column(Integer, nullable=False, default=1)
    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
