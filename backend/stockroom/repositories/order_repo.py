from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from stockroom.models.order import Order, OrderStatus


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def find_by_tracking(
        self, tracking: str, delivery_type: str, status: Optional[str] = None
    ) -> List[Order]:
        query = self.db.query(Order).filter(
            Order.tracking == tracking, Order.delivery_type == delivery_type
        )
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.id).all()

    def list_by_type_and_status(self, delivery_type: str, status: str) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.delivery_type == delivery_type, Order.status == status)
            .order_by(Order.created_at, Order.id)
            .all()
        )

    def create(self, **fields) -> Order:
        o = Order(**fields)
        self.db.add(o)
        self.db.flush()
        return o

    def mark_completed(self, order_id: int) -> int:
        # unconditional flip: there is no version check on orders
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(status=OrderStatus.COMPLETED.value)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount
