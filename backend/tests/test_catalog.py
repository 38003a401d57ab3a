import pytest

from stockroom.models.product import Product
from stockroom.services.catalog_service import (
    CatalogException,
    CatalogService,
    DuplicateSkuError,
    ProductNotFound,
)


def test_create_normalizes_sku_and_sets_defaults(db):
    svc = CatalogService(db)
    p = svc.create("  nx-9001 ", "Desk Lamp", "Lighting", 4)
    assert p.sku == "NX-9001"
    assert p.low_stock_threshold == 10
    assert p.created_at is not None and p.last_updated is not None
    assert svc.get("nx-9001").name == "Desk Lamp"


def test_create_duplicate_raises_unless_overwrite(catalog):
    with pytest.raises(DuplicateSkuError):
        catalog.create("nx-1001", "Another Mat", "Desk Accessories", 1)
    assert catalog.get("NX-1001").stock == 142

    catalog.update("NX-1001", {"low_stock_threshold": 50})
    p = catalog.create("nx-1001", "Another Mat", "Desk Accessories", 1, overwrite=True)
    assert p.name == "Another Mat"
    assert p.stock == 1
    assert p.low_stock_threshold == 10


def test_update_merges_fields_and_refreshes_timestamp(catalog):
    before = catalog.get("NX-1002").last_updated
    p = catalog.update("nx-1002", {"category": "Ergonomics", "sku": "IGNORED"})
    assert p.sku == "NX-1002"
    assert p.category == "Ergonomics"
    assert p.name == "Aluminum Laptop Stand"
    assert p.last_updated >= before


def test_update_unknown_sku(catalog):
    with pytest.raises(ProductNotFound):
        catalog.update("NOPE-1", {"name": "x"})


def test_adjust_stock_is_relative_and_may_go_negative(catalog):
    assert catalog.adjust_stock("nx-3001", -5).stock == -2
    assert catalog.adjust_stock("NX-3001", 7).stock == 5


def test_adjust_stock_unknown_sku(catalog):
    with pytest.raises(ProductNotFound):
        catalog.adjust_stock("NOPE-1", 1)


def test_list_and_keyword_filter(catalog):
    assert [p.sku for p in catalog.list()] == ["NX-1001", "NX-1002", "NX-2002", "NX-3001"]
    assert [p.sku for p in catalog.list(q="mouse")] == ["NX-2002"]
    assert [p.sku for p in catalog.list(q="nx-10")] == ["NX-1001", "NX-1002"]


def test_delete_and_delete_many(catalog, db):
    assert catalog.delete("nx-1001") is True
    assert catalog.delete("nx-1001") is False
    assert catalog.delete_many(["nx-1002", "NX-2002", "UNKNOWN-1"]) == 2
    assert [p.sku for p in catalog.list()] == ["NX-3001"]


def test_delete_many_is_all_or_nothing(catalog, db):
    with pytest.raises(CatalogException) as exc:
        catalog.delete_many(["NX-1001", "NX-1002", "   "])
    assert isinstance(exc.value.__cause__, ValueError)
    db.expire_all()
    assert db.query(Product).count() == 4


def test_low_stock_and_summary(catalog):
    assert [p.sku for p in catalog.low_stock()] == ["NX-3001", "NX-1002"]
    s = catalog.summary()
    assert s["product_count"] == 4
    assert s["total_stock"] == 142 + 8 + 32 + 3
    assert [p.sku for p in s["low_stock"]] == ["NX-3001", "NX-1002"]
