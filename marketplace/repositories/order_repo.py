from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from marketplace.models._common import utcnow
from marketplace.models.order import ACTIVE_STATUSES, Order, OrderStatus


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        qry = self.db.query(Order).filter(Order.id == order_id)
        if for_update:
            qry = qry.with_for_update().populate_existing()
        return qry.first()

    def find_for_pair(
        self, buyer_id: str, product_id: str, statuses: Iterable[OrderStatus]
    ) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(
                Order.buyer_id == buyer_id,
                Order.product_id == product_id,
                Order.status.in_(list(statuses)),
            )
            .order_by(Order.updated_at.desc())
            .first()
        )

    def find_active(self, buyer_id: str, product_id: str) -> Optional[Order]:
        return self.find_for_pair(buyer_id, product_id, ACTIVE_STATUSES)

    def find_cancelled(self, buyer_id: str, product_id: str) -> Optional[Order]:
        return self.find_for_pair(buyer_id, product_id, (OrderStatus.CANCELLED,))

    def list_for_buyer(self, buyer_id: str) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.buyer_id == buyer_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def list_for_seller(self, seller_id: str) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.seller_id == seller_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def add(self, **fields) -> Order:
        now = utcnow()
        fields.setdefault("status", OrderStatus.PENDING)
        order = Order(created_at=now, updated_at=now, **fields)
        self.db.add(order)
        self.db.flush()
        return order

    def set_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = status
        order.updated_at = utcnow()
        self.db.flush()
        return order

    def count(self) -> int:
        return self.db.query(Order).count()
