from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from stockroom.db import get_db
from stockroom.schemas.operation_schema import (
    AdjustIn,
    FinalizeIn,
    OpenSessionIn,
    OrderOut,
    ScanIn,
    SetQuantityIn,
)
from stockroom.services.fulfilment_service import (
    FulfilmentException,
    FulfilmentService,
    FulfilmentSession,
    OrderAlreadyCompleted,
    OrderNotFound,
)
from stockroom.services.scan_sessions import registry
from stockroom.utils.sku import tracking_from_barcode

router = APIRouter(prefix="/api/outbound", tags=["outbound"])


def _raise_for(e: FulfilmentException):
    if isinstance(e, OrderNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, OrderAlreadyCompleted):
        raise HTTPException(status_code=409, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


def _session(session_id: str) -> FulfilmentSession:
    sess = registry.get(session_id)
    if sess is None:
        raise HTTPException(status_code=404, detail="Scan session not found")
    return sess


def _load(sess: FulfilmentSession, payload: OpenSessionIn):
    if payload.order_id is not None:
        sess.load_order(payload.order_id)
    else:
        tracking = payload.tracking or tracking_from_barcode(payload.barcode)
        sess.load_order_by_tracking(tracking, payload.delivery_type.upper())


@router.get("/pending", summary="READY orders for list-driven delivery types")
def pending(
    delivery_type: str = Query(..., description="VALEX or PICKUP"),
    q: Optional[str] = Query(None, description="name, receiver, order number or phone"),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    try:
        result = FulfilmentService(db).pending_orders(delivery_type.upper(), keyword=q, page=page)
    except FulfilmentException as e:
        _raise_for(e)
    result["orders"] = [
        OrderOut.model_validate(o).model_dump(mode="json") for o in result["orders"]
    ]
    return result


@router.post("/sessions", status_code=201, summary="Open a scan session on an order")
def open_session(payload: OpenSessionIn, db: Session = Depends(get_db)):
    sess = FulfilmentSession(FulfilmentService(db))
    try:
        _load(sess, payload)
    except FulfilmentException as e:
        _raise_for(e)
    session_id = registry.open(sess)
    return {"session_id": session_id, **sess.snapshot()}


@router.get("/sessions/{session_id}")
def get_session(session_id: str):
    sess = _session(session_id)
    with sess.lock:
        return sess.snapshot()


@router.post("/sessions/{session_id}/load", summary="Load the next order into an idle session")
def load(session_id: str, payload: OpenSessionIn, db: Session = Depends(get_db)):
    sess = _session(session_id)
    with sess.lock:
        sess.service = FulfilmentService(db)
        try:
            _load(sess, payload)
        except FulfilmentException as e:
            _raise_for(e)
        return sess.snapshot()


@router.post("/sessions/{session_id}/scan")
def scan(session_id: str, payload: ScanIn):
    sess = _session(session_id)
    with sess.lock:
        try:
            sess.record_scan(payload.sku)
        except FulfilmentException as e:
            _raise_for(e)
        return sess.snapshot()


@router.post("/sessions/{session_id}/adjust")
def adjust(session_id: str, payload: AdjustIn):
    sess = _session(session_id)
    with sess.lock:
        try:
            sess.adjust_quantity(payload.sku, payload.delta)
        except FulfilmentException as e:
            _raise_for(e)
        return sess.snapshot()


@router.put("/sessions/{session_id}/quantity")
def set_quantity(session_id: str, payload: SetQuantityIn):
    sess = _session(session_id)
    with sess.lock:
        try:
            sess.set_quantity(payload.sku, payload.value)
        except FulfilmentException as e:
            _raise_for(e)
        return sess.snapshot()


@router.post("/sessions/{session_id}/finalize", summary="Ship the loaded order")
def finalize(session_id: str, payload: Optional[FinalizeIn] = None, db: Session = Depends(get_db)):
    sess = _session(session_id)
    with sess.lock:
        sess.service = FulfilmentService(db)
        try:
            ok = sess.finalize(operator=payload.operator if payload else None)
        except FulfilmentException as e:
            _raise_for(e)
        if not ok:
            raise HTTPException(status_code=502, detail=sess.error)
        return sess.snapshot()


@router.delete("/sessions/{session_id}", summary="Cancel and close a scan session")
def close(session_id: str):
    sess = _session(session_id)
    with sess.lock:
        sess.cancel()
    registry.close(session_id)
    return {"closed": True}
