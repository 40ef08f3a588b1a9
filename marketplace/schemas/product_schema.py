from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductOut(BaseModel):
    """Read-only catalog view; the core only relies on price, stock and is_active."""

    model_config = ConfigDict(from_attributes=True)
    id: str
    title: str
    description: Optional[str] = None
    price_cents: int = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    is_active: bool
    seller_id: str
    seller_name: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def in_stock(self) -> bool:
        return self.is_active and self.stock > 0
