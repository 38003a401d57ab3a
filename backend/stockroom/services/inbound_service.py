import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.models.product import Product
from stockroom.repositories.log_repo import LogRepository
from stockroom.repositories.product_repo import ProductRepository
from stockroom.utils.sku import normalize_sku
from stockroom.utils.time_utils import to_utc_z
from stockroom.utils.transactions import committed

log = logging.getLogger(__name__)


class InboundException(Exception):
    pass


class InboundService:
    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepository(db)
        self.logs = LogRepository(db)

    def lookup_by_sku_prefix(self, partial_sku: str) -> Optional[Product]:
        """
        Live lookup while the operator types. Nothing is looked up until the
        input reaches SKU_LOOKUP_MIN_LENGTH characters; then the uppercased
        input must equal a product's SKU.
        """
        formatted = (partial_sku or "").strip().upper()
        if len(formatted) < settings.SKU_LOOKUP_MIN_LENGTH:
            return None
        return self.products.get_by_sku(formatted)

    def register_inbound(self, sku: str, quantity: int, operator: Optional[str] = None) -> bool:
        """
        Receive `quantity` units of `sku`: one atomic stock increment followed
        by one INBOUND log entry. Store failures are logged and reported as
        False; the increment is not undone if the log write fails.
        """
        if quantity is None or int(quantity) <= 0:
            raise InboundException("Quantity must be positive")
        try:
            product = self.products.get_by_sku(normalize_sku(sku))
        except ValueError as e:
            raise InboundException(str(e)) from e
        if not product:
            raise InboundException(f"Product {sku} not found")
        key = product.sku
        quantity = int(quantity)
        operator = operator or settings.DEFAULT_OPERATOR

        try:
            with committed(self.db):
                if not self.products.increment_stock(key, quantity):
                    raise InboundException(f"Product {key} disappeared before receiving")
            with committed(self.db):
                self.logs.append_inbound(key, quantity, operator)
        except Exception:
            log.exception("Inbound registration failed for %s (+%s)", key, quantity)
            return False

        log.info("Inbound %s +%s by %s", key, quantity, operator)
        return True

    def inbound_history(self, limit: int = 100) -> List[Dict]:
        entries = self.logs.list_inbound(limit=limit)
        names = {p.sku: p.name for p in self.products.list()}
        return [
            {
                "id": e.id,
                "sku": e.sku,
                "product_name": names.get(e.sku, ""),
                "quantity": e.quantity,
                "operator": e.operator,
                "created_at": to_utc_z(e.created_at),
            }
            for e in entries
        ]
