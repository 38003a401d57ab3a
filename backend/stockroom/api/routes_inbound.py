from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from stockroom.db import get_db
from stockroom.schemas.operation_schema import InboundIn
from stockroom.schemas.product_schema import ProductOut
from stockroom.services.inbound_service import InboundException, InboundService

router = APIRouter(prefix="/api/inbound", tags=["inbound"])


@router.get("/lookup")
def lookup(sku: str = Query(""), db: Session = Depends(get_db)):
    """Live SKU lookup; returns product=null below the minimum input length."""
    p = InboundService(db).lookup_by_sku_prefix(sku)
    return {
        "query": sku.strip().upper(),
        "product": ProductOut.model_validate(p).model_dump(mode="json") if p else None,
    }


@router.post("")
def register(payload: InboundIn, db: Session = Depends(get_db)):
    """
    payload: { "sku": "NX-1001", "quantity": 5, "operator": "Staff A" }
    """
    svc = InboundService(db)
    try:
        ok = svc.register_inbound(payload.sku, payload.quantity, payload.operator)
    except InboundException as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=502, detail="Inbound registration failed")
    product = svc.products.get_by_sku(payload.sku.strip().upper())
    return {"sku": product.sku, "stock": product.stock, "received": payload.quantity}


@router.get("/history")
def history(limit: int = Query(100, ge=1, le=500), db: Session = Depends(get_db)):
    return {"items": InboundService(db).inbound_history(limit=limit)}
