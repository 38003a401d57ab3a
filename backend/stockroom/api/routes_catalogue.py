from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from stockroom.db import get_db
from stockroom.schemas.product_schema import (
    BulkDeleteIn,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    StockAdjustIn,
)
from stockroom.services.catalog_service import (
    CatalogException,
    CatalogService,
    DuplicateSkuError,
    ProductNotFound,
)

router = APIRouter(tags=["catalogue"])


def _raise_for(e: CatalogException):
    if isinstance(e, ProductNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DuplicateSkuError):
        raise HTTPException(status_code=409, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


def _out(p) -> dict:
    return ProductOut.model_validate(p).model_dump(mode="json")


@router.get("", summary="List products")
def list_products(
    q: Optional[str] = Query(None, description="match against SKU or name"),
    db: Session = Depends(get_db),
):
    items = CatalogService(db).list(q=q)
    return {"items": [_out(p) for p in items], "total": len(items)}


@router.get("/summary", summary="Stock totals and low-stock products")
def summary(db: Session = Depends(get_db)):
    s = CatalogService(db).summary()
    return {
        "product_count": s["product_count"],
        "total_stock": s["total_stock"],
        "low_stock": [_out(p) for p in s["low_stock"]],
    }


@router.post("/bulk-delete", summary="Delete several products at once")
def bulk_delete(payload: BulkDeleteIn, db: Session = Depends(get_db)):
    try:
        removed = CatalogService(db).delete_many(payload.skus)
    except CatalogException as e:
        _raise_for(e)
    return {"removed": removed}


@router.get("/{sku}", summary="Get product by SKU")
def get_product(sku: str, db: Session = Depends(get_db)):
    try:
        p = CatalogService(db).require(sku)
    except CatalogException as e:
        _raise_for(e)
    return _out(p)


@router.post("", status_code=201, summary="Create a product")
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    svc = CatalogService(db)
    try:
        p = svc.create(
            payload.sku,
            payload.name,
            category=payload.category,
            initial_stock=payload.stock,
            link=payload.link,
            overwrite=payload.overwrite,
        )
    except CatalogException as e:
        _raise_for(e)
    return _out(p)


@router.patch("/{sku}", summary="Update product fields")
def update_product(sku: str, payload: ProductUpdate, db: Session = Depends(get_db)):
    try:
        p = CatalogService(db).update(sku, payload.model_dump(exclude_unset=True))
    except CatalogException as e:
        _raise_for(e)
    return _out(p)


@router.post("/{sku}/adjust", summary="Atomically add to (or subtract from) stock")
def adjust_stock(sku: str, payload: StockAdjustIn, db: Session = Depends(get_db)):
    try:
        p = CatalogService(db).adjust_stock(sku, payload.delta)
    except CatalogException as e:
        _raise_for(e)
    return _out(p)


@router.delete("/{sku}", summary="Delete a product")
def delete_product(sku: str, db: Session = Depends(get_db)):
    try:
        removed = CatalogService(db).delete(sku)
    except CatalogException as e:
        _raise_for(e)
    if not removed:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"removed": 1}
