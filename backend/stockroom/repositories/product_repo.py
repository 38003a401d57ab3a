from typing import Iterable, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.models.product import Product
from stockroom.utils.time_utils import utcnow

UPDATABLE_FIELDS = ("name", "category", "stock", "low_stock_threshold", "link", "image")


class ProductRepository:
    """Catalog store. Callers pass normalized SKUs and own the transaction."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return self.db.get(Product, sku)

    def list(self, q: Optional[str] = None) -> List[Product]:
        query = self.db.query(Product)
        if q:
            like = f"%{q.strip()}%"
            query = query.filter(or_(Product.sku.ilike(like), Product.name.ilike(like)))
        return query.order_by(Product.sku).all()

    def list_low_stock(self) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.stock <= Product.low_stock_threshold)
            .order_by(Product.stock, Product.sku)
            .all()
        )

    def create(
        self,
        sku: str,
        name: str,
        category: str = "",
        stock: int = 0,
        link: Optional[str] = None,
        low_stock_threshold: Optional[int] = None,
    ) -> Product:
        p = Product(sku=sku, name=name, category=category or "", stock=stock, link=link or "")
        if low_stock_threshold is not None:
            p.low_stock_threshold = low_stock_threshold
        self.db.add(p)
        self.db.flush()
        return p

    def overwrite(
        self,
        p: Product,
        name: str,
        category: str = "",
        stock: int = 0,
        link: Optional[str] = None,
        low_stock_threshold: int = None,
    ) -> Product:
        # replaces the whole record, like a document set()
        now = utcnow()
        p.name = name
        p.category = category or ""
        p.stock = stock
        p.link = link or ""
        p.image = None
        p.low_stock_threshold = (
            low_stock_threshold
            if low_stock_threshold is not None
            else settings.DEFAULT_LOW_STOCK_THRESHOLD
        )
        p.created_at = now
        p.last_updated = now
        self.db.flush()
        return p

    def update_fields(self, p: Product, fields: dict) -> Product:
        for key, value in fields.items():
            if key in UPDATABLE_FIELDS:
                setattr(p, key, value)
        p.last_updated = utcnow()
        self.db.flush()
        return p

    def increment_stock(self, sku: str, delta: int) -> int:
        """
        Atomic `stock = stock + delta` in a single UPDATE. No floor.
        Returns the number of rows touched (0 when the SKU does not exist).
        """
        result = self.db.execute(
            update(Product)
            .where(Product.sku == sku)
            .values(stock=Product.stock + delta, last_updated=utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    def delete(self, sku: str) -> int:
        return self.db.query(Product).filter(Product.sku == sku).delete(
            synchronize_session="evaluate"
        )

    def delete_many(self, skus: Iterable[str]) -> int:
        removed = 0
        for sku in skus:
            removed += self.delete(sku)
        return removed
