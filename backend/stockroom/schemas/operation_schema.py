from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class InboundIn(BaseModel):
    sku: str
    quantity: int
    operator: Optional[str] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    order_number: Optional[str] = None
    tracking: Optional[str] = None
    delivery_type: str
    status: str
    name: Optional[str] = None
    receiver: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    items: List[Dict[str, Any]] = []


class OpenSessionIn(BaseModel):
    """Either a tracking number (POST flow) or an order picked from a pending list."""

    tracking: Optional[str] = None
    barcode: Optional[str] = None  # raw camera decode; digits are extracted
    delivery_type: str = "POST"
    order_id: Optional[int] = None

    @model_validator(mode="after")
    def one_entry_point(self):
        if self.order_id is None and not (self.tracking or self.barcode):
            raise ValueError("tracking, barcode or order_id is required")
        return self


class ScanIn(BaseModel):
    sku: str


class AdjustIn(BaseModel):
    sku: str
    delta: int


class SetQuantityIn(BaseModel):
    sku: str
    value: int


class FinalizeIn(BaseModel):
    operator: Optional[str] = None


class LogEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    type: str
    delivery_type: Optional[str] = None
    order_id: Optional[str] = None
    tracking_number: Optional[str] = None
    customer_name: Optional[str] = None
    operator: Optional[str] = None
    sku: Optional[str] = None
    quantity: Optional[int] = None
    items: Optional[List[Dict[str, Any]]] = None
    sku_list: Optional[List[str]] = None
    product_name_tokens: Optional[List[str]] = None
    created_at: datetime
