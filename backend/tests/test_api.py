import pytest

from stockroom.services.scan_sessions import registry


@pytest.fixture
def seeded(client):
    for sku, name, stock in [
        ("NX-1001", "Premium Leather Desk Mat", 142),
        ("NX-2002", "Wireless Ergonomic Mouse", 32),
    ]:
        r = client.post("/api/products", json={"sku": sku, "name": name, "category": "Desk", "stock": stock})
        assert r.status_code == 201
    return client


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert "open_scan_sessions" in body


def test_product_crud(seeded):
    client = seeded
    r = client.get("/api/products", params={"q": "mouse"})
    assert [p["sku"] for p in r.json()["items"]] == ["NX-2002"]

    r = client.post("/api/products", json={"sku": "nx-1001", "name": "Other"})
    assert r.status_code == 409

    r = client.patch("/api/products/nx-1001", json={"low_stock_threshold": 200})
    assert r.status_code == 200
    assert r.json()["is_low_stock"] is True

    r = client.post("/api/products/NX-2002/adjust", json={"delta": -2})
    assert r.json()["stock"] == 30

    summary = client.get("/api/products/summary").json()
    assert summary["product_count"] == 2
    assert summary["total_stock"] == 172
    assert [p["sku"] for p in summary["low_stock"]] == ["NX-1001"]

    assert client.delete("/api/products/NX-2002").status_code == 200
    assert client.delete("/api/products/NX-2002").status_code == 404
    assert client.get("/api/products/NX-2002").status_code == 404


def test_bulk_delete(seeded):
    r = seeded.post("/api/products/bulk-delete", json={"skus": ["NX-1001", "NX-9999", "nx-2002"]})
    assert r.json() == {"removed": 2}
    assert seeded.post("/api/products/bulk-delete", json={"skus": []}).status_code == 422


def test_inbound_flow(seeded):
    client = seeded
    assert client.get("/api/inbound/lookup", params={"sku": "nx-"}).json()["product"] is None
    found = client.get("/api/inbound/lookup", params={"sku": "nx-1001"}).json()
    assert found["product"]["name"] == "Premium Leather Desk Mat"

    r = client.post("/api/inbound", json={"sku": "nx-1001", "quantity": 5, "operator": "Staff A"})
    assert r.status_code == 200
    assert r.json() == {"sku": "NX-1001", "stock": 147, "received": 5}

    assert client.post("/api/inbound", json={"sku": "NX-1001", "quantity": 0}).status_code == 400
    history = client.get("/api/inbound/history").json()["items"]
    assert [(h["sku"], h["quantity"], h["operator"]) for h in history] == [("NX-1001", 5, "Staff A")]


def test_outbound_session_flow(seeded, make_order):
    client = seeded
    make_order(
        tracking="123456789012",
        name="Alice Kim",
        items=[{"sku": "NX-1001", "qty": 2}, {"productSku": "nx-2002", "qty": 1}],
    )

    r = client.post("/api/outbound/sessions", json={"barcode": "TRK 1234-5678-9012"})
    assert r.status_code == 201
    body = r.json()
    sid = body["session_id"]
    assert body["state"] == "ORDER_LOADED"

    assert client.post(f"/api/outbound/sessions/{sid}/finalize", json={}).status_code == 400

    r = client.post(f"/api/outbound/sessions/{sid}/scan", json={"sku": "NX-3001"})
    assert r.status_code == 400
    assert client.get(f"/api/outbound/sessions/{sid}").json()["error"] == "SKU NX-3001 is not part of this order"

    client.post(f"/api/outbound/sessions/{sid}/scan", json={"sku": "nx-1001"})
    client.post(f"/api/outbound/sessions/{sid}/adjust", json={"sku": "NX-1001", "delta": 1})
    r = client.put(f"/api/outbound/sessions/{sid}/quantity", json={"sku": "NX-2002", "value": 1})
    assert r.json()["state"] == "COMPLETE"

    r = client.post(f"/api/outbound/sessions/{sid}/finalize", json={"operator": "Staff B"})
    assert r.status_code == 200
    assert r.json()["state"] == "IDLE"

    assert client.get("/api/products/NX-1001").json()["stock"] == 140
    assert client.get("/api/products/NX-2002").json()["stock"] == 31

    # the same tracking number is now shipped
    r = client.post(f"/api/outbound/sessions/{sid}/load", json={"tracking": "123456789012"})
    assert r.status_code == 409

    assert client.delete(f"/api/outbound/sessions/{sid}").json() == {"closed": True}
    assert client.get(f"/api/outbound/sessions/{sid}").status_code == 404


def test_open_session_unknown_tracking_is_not_registered(client):
    before = len(registry)
    r = client.post("/api/outbound/sessions", json={"tracking": "NOPE"})
    assert r.status_code == 404
    assert len(registry) == before
    assert client.post("/api/outbound/sessions", json={}).status_code == 422


def test_finalize_partial_failure_is_502(seeded, make_order):
    client = seeded
    make_order(tracking="TRK777", items=[{"sku": "NX-1001", "qty": 1}, {"sku": "GHOST-1", "qty": 1}])
    sid = client.post("/api/outbound/sessions", json={"tracking": "TRK777"}).json()["session_id"]
    client.post(f"/api/outbound/sessions/{sid}/scan", json={"sku": "NX-1001"})
    client.post(f"/api/outbound/sessions/{sid}/scan", json={"sku": "GHOST-1"})

    r = client.post(f"/api/outbound/sessions/{sid}/finalize")
    assert r.status_code == 502
    assert "GHOST-1" in r.json()["detail"]
    client.delete(f"/api/outbound/sessions/{sid}")


def test_pending_lists(seeded, make_order):
    make_order(tracking=None, delivery_type="VALEX", name="Kim", order_number="ORD-1", items=[{"sku": "NX-1001", "qty": 1}])
    r = seeded.get("/api/outbound/pending", params={"delivery_type": "valex"})
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 1
    assert body["orders"][0]["order_number"] == "ORD-1"
    assert seeded.get("/api/outbound/pending", params={"delivery_type": "POST"}).status_code == 400


def test_logs_endpoint(seeded, make_order):
    client = seeded
    order_id = make_order(tracking=None, delivery_type="PICKUP", name="Min-su Park", items=[{"sku": "NX-2002", "qty": 1}])
    sid = client.post("/api/outbound/sessions", json={"order_id": order_id}).json()["session_id"]
    client.post(f"/api/outbound/sessions/{sid}/scan", json={"sku": "NX-2002"})
    assert client.post(f"/api/outbound/sessions/{sid}/finalize").status_code == 200
    client.delete(f"/api/outbound/sessions/{sid}")

    r = client.get("/api/logs", params={"facet": "product_name_token", "q": "Ergonomic"})
    body = r.json()
    assert body["fetched"] == 1
    assert body["next_cursor"] is None
    entry = body["entries"][0]
    assert entry["order_id"] == str(order_id)
    assert entry["type"] == "PICKUP"

    r = client.get("/api/logs", params={"delivery_type": "POST"})
    assert r.json()["entries"] == [] and r.json()["fetched"] == 1

    assert client.get("/api/logs", params={"facet": "nope", "q": "x"}).status_code == 400
    assert client.get("/api/logs", params={"cursor": "%%%"}).status_code == 400


def test_open_session_on_order_with_bad_line_data(seeded, make_order):
    make_order(tracking="TRK555", items=[{"sku": "NX-1001", "qty": "two"}, 42, {"sku": "NX-2002", "qty": 1}])
    r = seeded.post("/api/outbound/sessions", json={"tracking": "TRK555"})
    assert r.status_code == 201
    body = r.json()
    assert [(i["sku"], i["required_qty"]) for i in body["items"]] == [("NX-1001", 0), ("NX-2002", 1)]
    seeded.delete(f"/api/outbound/sessions/{body['session_id']}")
