from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session

from stockroom.models.log_entry import (
    OUTBOUND_TYPES,
    LogEntry,
    LogSkuIndex,
    LogTokenIndex,
    LogType,
)
from stockroom.utils.sku import normalize_sku


def product_name_tokens(names: Sequence[str]) -> List[str]:
    """Join names with spaces, lowercase, split on whitespace, drop empties."""
    return " ".join(n or "" for n in names).lower().split()


def search_fields(items: Sequence[Dict], customer_name: str) -> Dict:
    """Denormalized fields kept on each outbound entry for facet queries."""
    skus = [it.get("sku") for it in items]
    return {
        "sku_list": [normalize_sku(s) for s in skus if isinstance(s, str) and s.strip()],
        "customer_name_lower": (customer_name or "").lower(),
        "product_name_tokens": product_name_tokens([it.get("name") or "" for it in items]),
    }


class LogRepository:
    """Append-only transaction log. Entries are never updated except by reindex()."""

    def __init__(self, db: Session):
        self.db = db

    def append_inbound(
        self, sku: str, quantity: int, operator: str, created_at: datetime = None
    ) -> LogEntry:
        entry = LogEntry(
            type=LogType.INBOUND.value, sku=sku, quantity=quantity, operator=operator
        )
        if created_at is not None:
            entry.created_at = created_at
        self.db.add(entry)
        self.db.flush()
        return entry

    def append_outbound(
        self,
        delivery_type: str,
        order_id: str,
        tracking_number: str,
        customer_name: str,
        operator: str,
        items: List[Dict],
        created_at: datetime = None,
    ) -> LogEntry:
        entry = LogEntry(
            type=delivery_type,
            delivery_type=delivery_type,
            order_id=order_id,
            tracking_number=tracking_number or "",
            customer_name=customer_name or "",
            operator=operator,
            items=items,
        )
        if created_at is not None:
            entry.created_at = created_at
        self._apply_search_fields(entry)
        self.db.add(entry)
        self.db.flush()
        return entry

    def _apply_search_fields(self, entry: LogEntry):
        fields = search_fields(entry.items or [], entry.customer_name)
        entry.sku_list = fields["sku_list"]
        entry.customer_name_lower = fields["customer_name_lower"]
        entry.product_name_tokens = fields["product_name_tokens"]
        entry.sku_index = [LogSkuIndex(sku=s) for s in dict.fromkeys(entry.sku_list)]
        entry.token_index = [
            LogTokenIndex(token=t) for t in dict.fromkeys(entry.product_name_tokens)
        ]

    def list_inbound(self, limit: int = 100) -> List[LogEntry]:
        return (
            self.db.query(LogEntry)
            .filter(LogEntry.type == LogType.INBOUND.value)
            .order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
            .limit(limit)
            .all()
        )

    # --- outbound queries -------------------------------------------------

    def outbound_query(self) -> Query:
        return self.db.query(LogEntry).filter(LogEntry.type.in_(OUTBOUND_TYPES))

    @staticmethod
    def where_sku_contains(query: Query, sku: str) -> Query:
        return query.filter(LogEntry.sku_index.any(LogSkuIndex.sku == sku))

    @staticmethod
    def where_token_contains(query: Query, token: str) -> Query:
        return query.filter(LogEntry.token_index.any(LogTokenIndex.token == token))

    def fetch_page(
        self,
        query: Query,
        page_size: int,
        after: Optional[Tuple[datetime, int]] = None,
    ) -> List[LogEntry]:
        """
        Newest first, keyset-paginated on (created_at, id). `after` is the
        position of the last row of the previous page.
        """
        if after is not None:
            created_at, last_id = after
            query = query.filter(
                or_(
                    LogEntry.created_at < created_at,
                    and_(LogEntry.created_at == created_at, LogEntry.id < last_id),
                )
            )
        return (
            query.order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
            .limit(page_size)
            .all()
        )

    def reindex_outbound(self) -> int:
        """Recompute the search fields of every outbound entry (legacy rows)."""
        count = 0
        for entry in self.outbound_query().all():
            self._apply_search_fields(entry)
            count += 1
        self.db.flush()
        return count
