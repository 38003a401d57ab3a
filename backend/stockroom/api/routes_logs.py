from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from stockroom.db import get_db
from stockroom.schemas.operation_schema import LogEntryOut
from stockroom.services.log_search_service import (
    LogSearchException,
    LogSearchService,
    filter_by_delivery_type,
)

router = APIRouter(prefix="/api/logs", tags=["logs"])


@router.get("", summary="Outbound log, newest first, optionally searched by one facet")
def list_logs(
    facet: Optional[str] = Query(
        None,
        description="order_id, tracking_number, sku, customer_name or product_name_token",
    ),
    q: Optional[str] = Query(None, description="search term for the facet"),
    page_size: Optional[int] = Query(None, ge=1, le=200),
    cursor: Optional[str] = Query(None, description="next_cursor of the previous page"),
    delivery_type: str = Query("ALL", description="POST, VALEX, PICKUP or ALL"),
    db: Session = Depends(get_db),
):
    svc = LogSearchService(db)
    try:
        if facet:
            page = svc.search(facet, q, page_size=page_size, cursor=cursor)
        else:
            page = svc.recent(page_size=page_size, cursor=cursor)
        entries = filter_by_delivery_type(page.entries, delivery_type)
    except LogSearchException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "entries": [LogEntryOut.model_validate(e).model_dump(mode="json") for e in entries],
        "fetched": len(page.entries),
        "next_cursor": page.next_cursor,
    }
