from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.order import OrderStatus


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    buyer_id: str
    seller_id: str
    product_id: str
    title: str
    image_url: Optional[str] = None
    price_cents: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    status: OrderStatus
    created_at: datetime
    updated_at: datetime

    @property
    def total_cents(self) -> int:
        return self.price_cents * self.quantity

    @property
    def is_active(self) -> bool:
        return self.status in (OrderStatus.PENDING, OrderStatus.CONFIRMED)


class SellerOrdersOut(BaseModel):
    active: List[OrderOut]
    history: List[OrderOut]


class DirectOrderIn(BaseModel):
    product_id: str
    quantity: int = 1


class DirectOrderOut(BaseModel):
    order: OrderOut
    revived: bool
