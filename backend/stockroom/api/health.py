from fastapi import APIRouter
from sqlalchemy import text

from stockroom.db import engine
from stockroom.services.scan_sessions import registry

router = APIRouter()


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        db_ok = False

    return {
        "status": "ok" if db_ok else "degraded",
        "db": db_ok,
        "open_scan_sessions": len(registry),
    }
