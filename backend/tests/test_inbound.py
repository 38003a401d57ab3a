import pytest

from stockroom.models.log_entry import LogEntry
from stockroom.services.inbound_service import InboundException, InboundService


def test_lookup_needs_four_characters(db, catalog):
    svc = InboundService(db)
    assert svc.lookup_by_sku_prefix("nx-") is None
    assert svc.lookup_by_sku_prefix("nx-1") is None
    assert svc.lookup_by_sku_prefix("nx-1001").name == "Premium Leather Desk Mat"


def test_register_inbound_increments_stock_and_logs(db, catalog):
    svc = InboundService(db)
    assert svc.register_inbound("nx-1001", 5, "Staff A") is True

    db.expire_all()
    assert catalog.get("NX-1001").stock == 147
    entries = db.query(LogEntry).all()
    assert len(entries) == 1
    assert (entries[0].type, entries[0].sku, entries[0].quantity, entries[0].operator) == (
        "INBOUND",
        "NX-1001",
        5,
        "Staff A",
    )


@pytest.mark.parametrize("qty", [0, -3])
def test_register_inbound_rejects_non_positive_quantity(db, catalog, qty):
    with pytest.raises(InboundException):
        InboundService(db).register_inbound("NX-1001", qty, "Staff A")
    assert db.query(LogEntry).count() == 0


def test_register_inbound_requires_known_product(db, catalog):
    with pytest.raises(InboundException):
        InboundService(db).register_inbound("NX-0000", 1, "Staff A")


def test_register_inbound_reports_store_failure(db, catalog, monkeypatch):
    svc = InboundService(db)

    def broken(*args, **kwargs):
        raise RuntimeError("log store unavailable")

    monkeypatch.setattr(svc.logs, "append_inbound", broken)
    assert svc.register_inbound("NX-1002", 2, "Staff A") is False
    # the increment was already committed
    db.expire_all()
    assert catalog.get("NX-1002").stock == 10


def test_inbound_history_newest_first(db, catalog):
    svc = InboundService(db)
    svc.register_inbound("NX-1001", 5, "Staff A")
    svc.register_inbound("NX-3001", 20, "Staff B")
    catalog.delete("NX-3001")

    history = svc.inbound_history()
    assert [(h["sku"], h["quantity"]) for h in history] == [("NX-3001", 20), ("NX-1001", 5)]
    assert history[0]["product_name"] == ""
    assert history[1]["product_name"] == "Premium Leather Desk Mat"
    assert history[0]["created_at"].endswith("Z")


def test_register_inbound_blank_sku_keeps_cause(db, catalog):
    with pytest.raises(InboundException) as exc:
        InboundService(db).register_inbound("   ", 1, "Staff A")
    assert isinstance(exc.value.__cause__, ValueError)
