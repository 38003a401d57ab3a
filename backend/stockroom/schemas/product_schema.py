# backend/stockroom/schemas/product_schema.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    sku: str
    name: str
    category: str
    stock: int
    low_stock_threshold: int
    is_low_stock: bool
    link: Optional[str] = None
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None


class ProductCreate(BaseModel):
    sku: str
    name: str
    category: str = ""
    stock: int = 0
    link: Optional[str] = None
    overwrite: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = None
    low_stock_threshold: Optional[int] = None
    link: Optional[str] = None
    image: Optional[str] = None


class StockAdjustIn(BaseModel):
    delta: int


class BulkDeleteIn(BaseModel):
    skus: List[str] = Field(min_length=1)
