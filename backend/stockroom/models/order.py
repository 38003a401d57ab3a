import enum

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from stockroom.db import Base
from stockroom.utils.time_utils import utcnow


class DeliveryType(str, enum.Enum):
    POST = "POST"
    VALEX = "VALEX"
    PICKUP = "PICKUP"


class OrderStatus(str, enum.Enum):
    READY = "READY"
    COMPLETED = "COMPLETED"


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(64), nullable=True, index=True)
    tracking = Column(String(128), nullable=True, index=True)
    delivery_type = Column(String(16), nullable=False, default=DeliveryType.POST.value)
    status = Column(
        String(16), nullable=False, default=OrderStatus.READY.value, index=True
    )  # READY -> COMPLETED, never back
    name = Column(String(255), nullable=True)
    receiver = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    address = Column(Text, nullable=True)
    # raw upstream lines; sku may arrive as sku / productSku / id / code
    items = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Order id={self.id} tracking={self.tracking} status={self.status}>"
