import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Query, Session

from stockroom.config import settings
from stockroom.models.log_entry import LogEntry, LogType
from stockroom.repositories.log_repo import LogRepository
from stockroom.utils.cursors import decode_cursor, encode_cursor
from stockroom.utils.sku import normalize_sku
from stockroom.utils.transactions import committed

log = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200
ALL = "ALL"


class LogSearchException(Exception):
    pass


class InvalidCursor(LogSearchException):
    pass


class LogFacet(str, enum.Enum):
    ORDER_ID = "order_id"
    TRACKING_NUMBER = "tracking_number"
    SKU = "sku"
    CUSTOMER_NAME = "customer_name"
    PRODUCT_NAME_TOKEN = "product_name_token"


@dataclass
class LogPage:
    entries: List[LogEntry]
    next_cursor: Optional[str]


class LogSearchService:
    """
    Outbound log viewer queries. Each facet is an equality or containment
    filter on a denormalized field; there is no substring matching, so a
    product name search only hits entries holding that exact lower-cased token.
    """

    def __init__(self, db: Session):
        self.db = db
        self.logs = LogRepository(db)

    def recent(self, page_size: Optional[int] = None, cursor: Optional[str] = None) -> LogPage:
        return self._page(self.logs.outbound_query(), page_size, cursor)

    def search(
        self,
        facet,
        term: Optional[str],
        page_size: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> LogPage:
        try:
            facet = LogFacet(facet)
        except ValueError:
            raise LogSearchException(f"Unknown search facet: {facet}")
        term = (term or "").strip()
        if not term:
            return self.recent(page_size, cursor)
        return self._page(self._facet_query(facet, term), page_size, cursor)

    def _facet_query(self, facet: LogFacet, term: str) -> Query:
        query = self.logs.outbound_query()
        if facet is LogFacet.ORDER_ID:
            return query.filter(LogEntry.order_id == term)
        if facet is LogFacet.TRACKING_NUMBER:
            return query.filter(LogEntry.tracking_number == term)
        if facet is LogFacet.SKU:
            return self.logs.where_sku_contains(query, normalize_sku(term))
        if facet is LogFacet.CUSTOMER_NAME:
            return query.filter(LogEntry.customer_name_lower == term.lower())
        return self.logs.where_token_contains(query, term.lower())

    def _page(self, query: Query, page_size: Optional[int], cursor: Optional[str]) -> LogPage:
        if page_size is None:
            page_size = settings.LOG_PAGE_SIZE
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise LogSearchException(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        after = None
        if cursor:
            try:
                after = decode_cursor(cursor)
            except ValueError as e:
                raise InvalidCursor(str(e)) from e
        entries = self.logs.fetch_page(query, page_size, after)
        next_cursor = None
        if len(entries) == page_size:
            last = entries[-1]
            next_cursor = encode_cursor(last.created_at, last.id)
        return LogPage(entries=entries, next_cursor=next_cursor)

    def reindex(self) -> int:
        with committed(self.db):
            count = self.logs.reindex_outbound()
        log.info("Rebuilt search fields for %s outbound log entries", count)
        return count


def filter_by_delivery_type(entries: Iterable[LogEntry], delivery_type: Optional[str]) -> List[LogEntry]:
    """
    Post-filter an already fetched page. The page is not refilled, so the
    result may hold fewer entries than the page size.
    """
    entries = list(entries)
    if not delivery_type or delivery_type.upper() == ALL:
        return entries
    wanted = delivery_type.upper()
    if wanted not in (t.value for t in LogType if t is not LogType.INBOUND):
        raise LogSearchException(f"Unknown delivery type: {delivery_type}")
    return [e for e in entries if (e.delivery_type or e.type) == wanted]


class PageCursors:
    """
    Cursor bookkeeping for numbered pages of a forward-only listing: page 1
    needs no cursor, page N+1 becomes reachable once page N has been fetched
    and returned a next cursor.
    """

    def __init__(self):
        self._cursors: List[Optional[str]] = [None]

    def reset(self):
        self._cursors = [None]

    def reachable(self, page: int) -> bool:
        if page == 1:
            return True
        return 1 < page <= len(self._cursors) and self._cursors[page - 1] is not None

    def cursor_for(self, page: int) -> Optional[str]:
        if not self.reachable(page):
            raise LogSearchException(f"Page {page} has not been reached yet")
        return self._cursors[page - 1]

    def record(self, page: int, result: LogPage):
        del self._cursors[page:]
        self._cursors.append(result.next_cursor)

    def has_next(self, page: int) -> bool:
        return self.reachable(page + 1)

    @property
    def known_pages(self) -> int:
        return sum(1 for p in range(1, len(self._cursors) + 1) if self.reachable(p))
