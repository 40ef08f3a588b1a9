import enum
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PromoType(str, enum.Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class AppliedPromo(BaseModel):
    """
    A promo code resolved against the static table.

    `amount` is a percentage for PERCENT promos and a currency amount
    (not cents) for FIXED promos.
    """

    model_config = ConfigDict(frozen=True)
    code: str
    type: PromoType
    amount: Decimal


class Totals(BaseModel):
    subtotal_cents: int
    discount_cents: int
    after_discount_cents: int
    delivery_fee_cents: int
    total_cents: int
    promo: Optional[AppliedPromo] = None
