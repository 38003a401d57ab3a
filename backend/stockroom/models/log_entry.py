import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from stockroom.db import Base
from stockroom.utils.time_utils import utcnow


class LogType(str, enum.Enum):
    INBOUND = "INBOUND"
    POST = "POST"
    VALEX = "VALEX"
    PICKUP = "PICKUP"


OUTBOUND_TYPES = (LogType.POST.value, LogType.VALEX.value, LogType.PICKUP.value)


class LogEntry(Base):
    __tablename__ = "logs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(16), nullable=False, index=True)
    operator = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # inbound
    sku = Column(String(64), nullable=True, index=True)
    quantity = Column(Integer, nullable=True)

    # outbound
    delivery_type = Column(String(16), nullable=True)
    order_id = Column(String(64), nullable=True, index=True)
    tracking_number = Column(String(128), nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)
    customer_name_lower = Column(String(255), nullable=True, index=True)
    items = Column(JSON, nullable=True)  # [{sku, name, quantity, link}]
    sku_list = Column(JSON, nullable=True)
    product_name_tokens = Column(JSON, nullable=True)

    sku_index = relationship(
        "LogSkuIndex", cascade="all, delete-orphan", back_populates="log"
    )
    token_index = relationship(
        "LogTokenIndex", cascade="all, delete-orphan", back_populates="log"
    )

    @property
    def is_outbound(self) -> bool:
        return self.type in OUTBOUND_TYPES

    def __repr__(self):
        return f"<LogEntry id={self.id} type={self.type} created_at={self.created_at}>"


class LogSkuIndex(Base):
    """One row per SKU in an outbound entry's sku_list."""

    __tablename__ = "log_sku_index"
    id = Column(Integer, primary_key=True, autoincrement=True)
    log_id = Column(
        Integer, ForeignKey("logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku = Column(String(64), nullable=False, index=True)

    log = relationship("LogEntry", back_populates="sku_index")


class LogTokenIndex(Base):
    """One row per lower-cased product name token of an outbound entry."""

    __tablename__ = "log_token_index"
    id = Column(Integer, primary_key=True, autoincrement=True)
    log_id = Column(
        Integer, ForeignKey("logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token = Column(String(128), nullable=False, index=True)

    log = relationship("LogEntry", back_populates="token_index")
