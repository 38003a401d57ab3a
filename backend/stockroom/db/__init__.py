import importlib
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from stockroom.config import settings

log = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module that declares tables; imported before create_all so metadata is complete
MODEL_MODULES = [
    "stockroom.models.product",
    "stockroom.models.order",
    "stockroom.models.log_entry",
]


def import_models():
    for mod in MODEL_MODULES:
        importlib.import_module(mod)


def init_db(reset: bool = None, bind=None):
    """
    Initialize DB schema.

    If `reset` is not given, the RESET_DB env var (1/true/yes) decides whether
    existing tables are dropped and recreated. Otherwise existing tables are
    left in place.
    """
    if reset is None:
        reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")
    bind = bind or engine

    import_models()

    if reset:
        log.warning("Resetting database (RESET_DB set)")
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    log.info("Database initialized (%s)", bind.url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
