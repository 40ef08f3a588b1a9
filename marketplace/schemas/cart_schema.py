from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    user_id: str
    product_id: str
    seller_id: str
    title: str
    image_url: Optional[str] = None
    price_cents: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    created_at: datetime
    updated_at: datetime

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity


class AddItemIn(BaseModel):
    product_id: str
    quantity: int = 1


class SetQuantityIn(BaseModel):
    quantity: int


class CartOut(BaseModel):
    items: List[CartItemOut]
    subtotal_cents: int
