import os

# point the app-wide engine at a throwaway DB before stockroom is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stockroom.db import get_db, init_db
from stockroom.main import app
from stockroom.repositories.order_repo import OrderRepository
from stockroom.services.catalog_service import CatalogService
from stockroom.utils.transactions import committed


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    init_db(reset=True, bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def catalog(db):
    svc = CatalogService(db)
    svc.create("NX-1001", "Premium Leather Desk Mat", "Desk Accessories", 142, link="https://example.com/nx-1001")
    svc.create("NX-1002", "Aluminum Laptop Stand", "Stands", 8)
    svc.create("NX-2002", "Wireless Ergonomic Mouse", "Peripherals", 32)
    svc.create("NX-3001", "USB-C Hub 7-in-1", "Accessories", 3)
    return svc


@pytest.fixture
def make_order(db):
    def _make(tracking="TRK998877", items=None, delivery_type="POST", status="READY", **fields):
        repo = OrderRepository(db)
        with committed(db):
            order = repo.create(
                tracking=tracking,
                delivery_type=delivery_type,
                status=status,
                items=items if items is not None else [],
                **fields,
            )
        return order.id

    return _make
