import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from stockroom.models.product import Product
from stockroom.repositories.product_repo import ProductRepository
from stockroom.utils.sku import normalize_sku
from stockroom.utils.transactions import committed

log = logging.getLogger(__name__)


class CatalogException(Exception):
    pass


class ProductNotFound(CatalogException):
    pass


class DuplicateSkuError(CatalogException):
    pass


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepository(db)

    @staticmethod
    def key(sku) -> str:
        try:
            return normalize_sku(sku)
        except ValueError as e:
            raise CatalogException(str(e)) from e

    def get(self, sku: str) -> Optional[Product]:
        return self.repo.get_by_sku(self.key(sku))

    def require(self, sku: str) -> Product:
        p = self.get(sku)
        if not p:
            raise ProductNotFound(f"Product {sku} not found")
        return p

    def list(self, q: Optional[str] = None) -> List[Product]:
        return self.repo.list(q=q)

    def create(
        self,
        sku: str,
        name: str,
        category: str = "",
        initial_stock: int = 0,
        link: Optional[str] = None,
        overwrite: bool = False,
    ) -> Product:
        """
        Create a product keyed by the normalized SKU.

        An existing SKU raises DuplicateSkuError unless `overwrite` is set, in
        which case the record is replaced wholesale (threshold and timestamps
        reset), matching a bulk import.
        """
        key = self.key(sku)
        if not name or not name.strip():
            raise CatalogException("Product name is required")
        with committed(self.db):
            existing = self.repo.get_by_sku(key)
            if existing and not overwrite:
                raise DuplicateSkuError(f"SKU {key} already exists")
            if existing:
                log.info("Overwriting product %s", key)
                p = self.repo.overwrite(
                    existing, name=name.strip(), category=category, stock=initial_stock, link=link
                )
            else:
                p = self.repo.create(
                    key, name=name.strip(), category=category, stock=initial_stock, link=link
                )
        return p

    def update(self, sku: str, fields: Dict) -> Product:
        with committed(self.db):
            p = self.require(sku)
            self.repo.update_fields(p, fields)
        return p

    def adjust_stock(self, sku: str, delta: int) -> Product:
        key = self.key(sku)
        with committed(self.db):
            if not self.repo.increment_stock(key, int(delta)):
                raise ProductNotFound(f"Product {key} not found")
        return self.repo.get_by_sku(key)

    def delete(self, sku: str) -> bool:
        key = self.key(sku)
        with committed(self.db):
            removed = self.repo.delete(key)
        return bool(removed)

    def delete_many(self, skus: Iterable[str]) -> int:
        """
        Delete a batch of SKUs in one transaction. Unknown SKUs are skipped;
        an invalid SKU anywhere in the batch rolls the whole batch back.
        """
        with committed(self.db):
            removed = self.repo.delete_many(self.key(s) for s in skus)
        log.info("Batch delete removed %s products", removed)
        return removed

    def low_stock(self) -> List[Product]:
        return self.repo.list_low_stock()

    def summary(self) -> Dict:
        products = self.repo.list()
        return {
            "product_count": len(products),
            "total_stock": sum(p.stock for p in products),
            "low_stock": self.low_stock(),
        }
