import enum
import logging
import math
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.models.log_entry import LogEntry
from stockroom.models.order import DeliveryType, Order, OrderStatus
from stockroom.repositories.log_repo import LogRepository
from stockroom.repositories.order_repo import OrderRepository
from stockroom.repositories.product_repo import ProductRepository
from stockroom.utils.sku import normalize_sku, resolve_item_sku
from stockroom.utils.transactions import committed

log = logging.getLogger(__name__)

ELLIPSIS = "..."
LIST_DELIVERY_TYPES = (DeliveryType.VALEX.value, DeliveryType.PICKUP.value)


class FulfilmentException(Exception):
    pass


class OrderNotFound(FulfilmentException):
    pass


class OrderAlreadyCompleted(FulfilmentException):
    pass


class ItemNotInOrder(FulfilmentException):
    pass


class OrderIncomplete(FulfilmentException):
    pass


class NoActiveOrder(FulfilmentException):
    pass


class PartialFailure(FulfilmentException):
    """
    The finalize write sequence stopped part way. Stock decrements listed in
    `applied_skus` were already committed and are not rolled back.
    """

    def __init__(self, message: str, applied_skus: Sequence[str] = ()):
        super().__init__(message)
        self.applied_skus = list(applied_skus)


class EngineState(str, enum.Enum):
    IDLE = "IDLE"
    ORDER_LOADED = "ORDER_LOADED"
    COMPLETE = "COMPLETE"


@dataclass
class WorkingItem:
    sku: str
    name: str
    required_qty: int
    scanned_qty: int = 0

    @property
    def is_complete(self) -> bool:
        return self.scanned_qty == self.required_qty

    @property
    def is_over(self) -> bool:
        return self.scanned_qty > self.required_qty

    def to_dict(self) -> Dict:
        return {
            "sku": self.sku,
            "name": self.name,
            "required_qty": self.required_qty,
            "scanned_qty": self.scanned_qty,
            "is_complete": self.is_complete,
            "is_over": self.is_over,
        }


@dataclass
class OrderHeader:
    """Detached copy of the order fields a scan session shows."""

    id: int
    order_number: Optional[str]
    tracking: Optional[str]
    delivery_type: str
    name: Optional[str]
    receiver: Optional[str]

    @classmethod
    def from_order(cls, order: Order) -> "OrderHeader":
        return cls(
            id=order.id,
            order_number=order.order_number,
            tracking=order.tracking,
            delivery_type=order.delivery_type,
            name=order.name,
            receiver=order.receiver,
        )


def _line_qty(raw: Mapping) -> int:
    value = raw.get("qty")
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        log.warning("Order line with unreadable qty %r counted as 0: %r", value, raw)
        return 0


def build_working_items(raw_items: Iterable[Dict]) -> List[WorkingItem]:
    """
    Turn an order's stored lines into scan state. Lines that are not objects
    or carry no SKU field are skipped, an unreadable qty counts as 0, and
    lines sharing a SKU are merged into one working item.
    """
    by_sku: Dict[str, WorkingItem] = {}
    for raw in raw_items or []:
        if not isinstance(raw, Mapping):
            log.warning("Malformed order line skipped: %r", raw)
            continue
        sku = resolve_item_sku(raw)
        if sku is None:
            log.warning("Order line without a SKU skipped: %r", raw)
            continue
        qty = _line_qty(raw)
        if sku in by_sku:
            by_sku[sku].required_qty += qty
        else:
            by_sku[sku] = WorkingItem(sku=sku, name=raw.get("name") or sku, required_qty=qty)
    return list(by_sku.values())


def page_window(current: int, total_pages: int, span: int = 2) -> List[Union[int, str]]:
    """
    Page numbers around `current`, clipped to 1..total_pages. An ELLIPSIS
    marker stands in front when the run misses page 1 and behind when it
    misses the last page.
    """
    if total_pages <= 0:
        return []
    current = min(max(current, 1), total_pages)
    start = max(1, current - span)
    end = min(total_pages, current + span)
    window: List[Union[int, str]] = list(range(start, end + 1))
    if start > 1:
        window.insert(0, ELLIPSIS)
    if end < total_pages:
        window.append(ELLIPSIS)
    return window


def filter_orders(orders: Iterable[Order], keyword: Optional[str]) -> List[Order]:
    """Case-insensitive substring match over name, receiver, order number and phone."""
    orders = list(orders)
    needle = (keyword or "").strip().lower()
    if not needle:
        return orders
    return [
        o
        for o in orders
        if any(
            needle in (value or "").lower()
            for value in (o.name, o.receiver, o.order_number, o.phone)
        )
    ]


class FulfilmentService:
    """Store side of outbound: order lookup, pending lists and the finalize writes."""

    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepository(db)
        self.products = ProductRepository(db)
        self.logs = LogRepository(db)

    def find_ready_by_tracking(self, tracking: str, delivery_type: str) -> Order:
        tracking = (tracking or "").strip()
        if not tracking:
            raise OrderNotFound("Tracking number is required")
        ready = self.orders.find_by_tracking(tracking, delivery_type, OrderStatus.READY.value)
        if ready:
            if len(ready) > 1:
                log.warning(
                    "%s READY orders share tracking %s; using order %s",
                    len(ready), tracking, ready[0].id,
                )
            return ready[0]
        if self.orders.find_by_tracking(tracking, delivery_type, OrderStatus.COMPLETED.value):
            raise OrderAlreadyCompleted(f"Order {tracking} has already been shipped")
        raise OrderNotFound(f"No order found for tracking {tracking}")

    def get_ready_order(self, order_id: int) -> Order:
        order = self.orders.get(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")
        if order.status == OrderStatus.COMPLETED.value:
            raise OrderAlreadyCompleted(f"Order {order_id} has already been shipped")
        return order

    def pending_orders(
        self,
        delivery_type: str,
        keyword: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict:
        """READY orders of a list-driven delivery type, keyword-filtered and sliced into pages."""
        if delivery_type not in LIST_DELIVERY_TYPES:
            raise FulfilmentException(
                f"Pending lists are only kept for {', '.join(LIST_DELIVERY_TYPES)}"
            )
        if page_size is None:
            page_size = settings.PENDING_PAGE_SIZE
        if page_size < 1:
            raise FulfilmentException("page_size must be at least 1")
        matches = filter_orders(
            self.orders.list_by_type_and_status(delivery_type, OrderStatus.READY.value),
            keyword,
        )
        total_pages = max(1, math.ceil(len(matches) / page_size))
        page = min(max(int(page), 1), total_pages)
        start = (page - 1) * page_size
        return {
            "orders": matches[start : start + page_size],
            "total": len(matches),
            "page": page,
            "total_pages": total_pages,
            "window": page_window(page, total_pages),
        }

    def complete_order(
        self, order_id: int, lines: Sequence[Tuple[str, int]], operator: str
    ) -> LogEntry:
        """
        Write an outbound completion, one committed step at a time:
        decrement stock per line, append one log entry, flip the order to
        COMPLETED. There is no compensation: a failure raises PartialFailure
        and leaves earlier steps applied. There is no version check either, so
        two operators finishing the same order both decrement stock.
        """
        applied: List[str] = []
        try:
            for sku, qty in lines:
                with committed(self.db):
                    if not self.products.increment_stock(sku, -int(qty)):
                        raise FulfilmentException(f"Product {sku} not found")
                applied.append(sku)

            order = self.orders.get(order_id)
            if not order:
                raise OrderNotFound(f"Order {order_id} not found")

            items = []
            for sku, qty in lines:
                product = self.products.get_by_sku(sku)
                items.append(
                    {
                        "sku": sku,
                        "name": product.name if product else "",
                        "quantity": int(qty),
                        "link": (product.link or "") if product else "",
                    }
                )
            delivery_type = order.delivery_type or DeliveryType.POST.value
            with committed(self.db):
                entry = self.logs.append_outbound(
                    delivery_type=delivery_type,
                    order_id=str(order.id),
                    tracking_number=order.tracking or "",
                    customer_name=order.name or "",
                    operator=operator,
                    items=items,
                )

            with committed(self.db):
                self.orders.mark_completed(order_id)
        except Exception as e:
            log.exception("Outbound completion failed for order %s (applied=%s)", order_id, applied)
            raise PartialFailure(f"Outbound completion failed: {e}", applied) from e

        log.info("Order %s completed by %s: %s lines", order_id, operator, len(lines))
        return entry


class FulfilmentSession:
    """
    One operator's scan-to-complete workflow. Scan progress lives in memory
    until finalize; only load and finalize touch the store, through `service`.

    IDLE -> ORDER_LOADED -> COMPLETE (derived) -> finalize -> IDLE
    """

    def __init__(
        self,
        service: Optional[FulfilmentService] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.clock = clock
        self.lock = threading.RLock()
        self.order: Optional[OrderHeader] = None
        self.items: List[WorkingItem] = []
        self._error: Optional[str] = None
        self._error_until: Optional[float] = None

    # --- state ---------------------------------------------------------

    @property
    def state(self) -> EngineState:
        if self.order is None:
            return EngineState.IDLE
        if self.is_complete():
            return EngineState.COMPLETE
        return EngineState.ORDER_LOADED

    @property
    def error(self) -> Optional[str]:
        if self._error and self._error_until is not None and self.clock() >= self._error_until:
            self._error = None
            self._error_until = None
        return self._error

    def _set_error(self, message: Optional[str], transient: bool = False):
        self._error = message
        self._error_until = (
            self.clock() + settings.SCAN_ERROR_DISPLAY_SECONDS if transient and message else None
        )

    def is_complete(self) -> bool:
        if self.order is None:
            return False
        return all(item.scanned_qty == item.required_qty for item in self.items)

    def progress(self) -> Dict:
        required = sum(i.required_qty for i in self.items)
        scanned = sum(i.scanned_qty for i in self.items)
        return {
            "required": required,
            "scanned": scanned,
            "pending": max(0, required - scanned),
            "percent": min(100.0, scanned * 100.0 / required) if required else 0.0,
        }

    def snapshot(self) -> Dict:
        return {
            "state": self.state.value,
            "order": asdict(self.order) if self.order else None,
            "items": [i.to_dict() for i in self.items],
            "progress": self.progress(),
            "is_complete": self.is_complete(),
            "error": self.error,
        }

    # --- loading -------------------------------------------------------

    def _load(self, order: Order):
        self.order = OrderHeader.from_order(order)
        self.items = build_working_items(order.items)
        self._set_error(None)
        log.info("Order %s loaded with %s lines", order.id, len(self.items))

    def _ensure_idle(self):
        if self.order is not None:
            raise FulfilmentException(
                f"Order {self.order.id} is still active; finish or cancel it first"
            )

    def load_order_by_tracking(self, tracking: str, delivery_type: str = DeliveryType.POST.value):
        self._ensure_idle()
        try:
            order = self.service.find_ready_by_tracking(tracking, delivery_type)
        except FulfilmentException as e:
            self._set_error(str(e))
            raise
        self._load(order)
        return self.items

    def load_order(self, order_id: int):
        self._ensure_idle()
        try:
            order = self.service.get_ready_order(order_id)
        except FulfilmentException as e:
            self._set_error(str(e))
            raise
        self._load(order)
        return self.items

    def cancel(self):
        self.order = None
        self.items = []
        self._set_error(None)

    # --- scanning ------------------------------------------------------

    def _require_order(self):
        if self.order is None:
            raise NoActiveOrder("No order is loaded")

    def _find(self, sku: str) -> Optional[WorkingItem]:
        try:
            key = normalize_sku(sku)
        except ValueError:
            return None
        return next((i for i in self.items if i.sku == key), None)

    def record_scan(self, sku: str) -> WorkingItem:
        self._require_order()
        item = self._find(sku)
        if item is None:
            message = f"SKU {sku} is not part of this order"
            self._set_error(message, transient=True)
            raise ItemNotInOrder(message)
        item.scanned_qty += 1
        return item

    def adjust_quantity(self, sku: str, delta: int) -> WorkingItem:
        self._require_order()
        item = self._find(sku)
        if item is None:
            raise ItemNotInOrder(f"SKU {sku} is not part of this order")
        item.scanned_qty = max(0, item.scanned_qty + int(delta))
        return item

    def set_quantity(self, sku: str, value: int) -> WorkingItem:
        self._require_order()
        item = self._find(sku)
        if item is None:
            raise ItemNotInOrder(f"SKU {sku} is not part of this order")
        item.scanned_qty = max(0, int(value))
        return item

    # --- finalize ------------------------------------------------------

    def finalize(self, operator: Optional[str] = None) -> bool:
        """
        Ship the loaded order. Refused with OrderIncomplete (and no writes)
        unless every line matches exactly. Stock is decremented by the scanned
        quantity. Returns False, keeping the order loaded, when the write
        sequence fails; already applied decrements stay applied.
        """
        self._require_order()
        if not self.is_complete():
            raise OrderIncomplete("Every line must match its required quantity")
        lines = [(i.sku, i.scanned_qty) for i in self.items]
        try:
            self.service.complete_order(
                self.order.id, lines, operator or settings.DEFAULT_OPERATOR
            )
        except PartialFailure as e:
            self._set_error(str(e))
            return False
        self.cancel()
        return True
