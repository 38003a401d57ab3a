import re
from typing import Any, Mapping, Optional

# order lines from upstream systems disagree on where the SKU lives
ORDER_ITEM_SKU_FIELDS = ("sku", "productSku", "id", "code")


def normalize_sku(sku: Any) -> str:
    """Trim and uppercase a SKU. Idempotent. Blank or non-string input is rejected."""
    if not isinstance(sku, str):
        raise ValueError(f"SKU must be a string, got {type(sku).__name__}")
    key = sku.strip().upper()
    if not key:
        raise ValueError("SKU must not be blank")
    return key


def resolve_item_sku(item: Mapping[str, Any]) -> Optional[str]:
    """
    Compatibility shim for heterogeneous order data: take the first usable
    value among sku, productSku, id, code (in that order) and normalize it.
    Returns None when no field carries a SKU.
    """
    for field in ORDER_ITEM_SKU_FIELDS:
        value = item.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            value = str(value)
        if value.strip():
            return normalize_sku(value)
    return None


def tracking_from_barcode(decoded: str) -> str:
    """Camera scans of waybills carry noise around the number; keep digits only."""
    return re.sub(r"\D", "", decoded or "")
