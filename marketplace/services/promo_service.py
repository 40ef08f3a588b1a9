from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Mapping, Optional

from marketplace.config import settings
from marketplace.schemas.promo_schema import AppliedPromo, PromoType, Totals
from marketplace.services.errors import UnknownPromoCode, ValidationError
from marketplace.utils.money import to_cents

PROMOS: Dict[str, dict] = {
    "ADJ3AK": {"type": PromoType.PERCENT, "amount": Decimal("40")},
}


class PromoEngine:
    """Stateless lookup and discount arithmetic over a static code table."""

    def __init__(self, promos: Mapping[str, dict] = None, delivery_fee_cents: int = None):
        self.promos = dict(PROMOS if promos is None else promos)
        self.delivery_fee_cents = (
            settings.DELIVERY_FEE_CENTS if delivery_fee_cents is None else delivery_fee_cents
        )

    def apply(self, code: str) -> AppliedPromo:
        normalized = (code or "").strip().upper()
        if not normalized:
            raise ValidationError("Enter a promo code.")
        entry = self.promos.get(normalized)
        if entry is None:
            raise UnknownPromoCode()
        return AppliedPromo(code=normalized, type=entry["type"], amount=Decimal(str(entry["amount"])))

    def discount(self, subtotal_cents: int, promo: Optional[AppliedPromo]) -> int:
        """
        Discount in cents. Percent promos round half-up to the cent; fixed
        promos are not capped at the subtotal (the total is floored instead).
        """
        if promo is None:
            return 0
        if promo.type == PromoType.PERCENT:
            raw = Decimal(subtotal_cents) * promo.amount / Decimal(100)
            return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        if promo.type == PromoType.FIXED:
            return to_cents(promo.amount)
        return 0

    def totals(self, subtotal_cents: int, promo: Optional[AppliedPromo] = None) -> Totals:
        discount = self.discount(subtotal_cents, promo)
        after = max(0, subtotal_cents - discount)
        return Totals(
            subtotal_cents=subtotal_cents,
            discount_cents=discount,
            after_discount_cents=after,
            delivery_fee_cents=self.delivery_fee_cents,
            total_cents=after + self.delivery_fee_cents,
            promo=promo,
        )
