import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockroom.api.health import router as health_router
from stockroom.api.routes_catalogue import router as catalogue_router
from stockroom.api.routes_inbound import router as inbound_router
from stockroom.api.routes_logs import router as logs_router
from stockroom.api.routes_outbound import router as outbound_router
from stockroom.config import settings
from stockroom.db import init_db
from stockroom.services.scan_sessions import registry

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("stockroom")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    # scheduler for dropping abandoned scan sessions
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        registry.evict_idle,
        "interval",
        seconds=settings.SCAN_SESSION_SWEEP_SECONDS,
        id="evict_scan_sessions",
    )
    scheduler.start()
    log.info("Stockroom API started")

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Stockroom Admin - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(catalogue_router, prefix="/api/products", tags=["catalogue"])

app.include_router(inbound_router, tags=["inbound"])

app.include_router(outbound_router, tags=["outbound"])

app.include_router(logs_router, tags=["logs"])
