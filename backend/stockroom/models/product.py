from sqlalchemy import Column, DateTime, Integer, String

from stockroom.config import settings
from stockroom.db import Base
from stockroom.utils.time_utils import utcnow


class Product(Base):
    __tablename__ = "products"

    sku = Column(String(64), primary_key=True)  # always stored normalized (trimmed, uppercase)
    name = Column(String(256), nullable=False)
    category = Column(String(128), nullable=False, default="")
    stock = Column(Integer, nullable=False, default=0)  # may go negative
    low_stock_threshold = Column(
        Integer, nullable=False, default=settings.DEFAULT_LOW_STOCK_THRESHOLD
    )
    link = Column(String(512), nullable=True)
    image = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    def __repr__(self):
        return f"<Product sku={self.sku} name={self.name} stock={self.stock}>"
