"""
Open N scan sessions on the same order against a running server, complete
them all, then finalize them at the same time. Orders carry no version, so
every finalize that gets in decrements stock again; compare the stock before
and after.

    python tools/concurrency_finalize.py --tracking TRK998877 --workers 4
"""
import argparse
import concurrent.futures
import os

import requests

BASE = os.environ.get("STOCKROOM_BASE", "http://127.0.0.1:8000")


def stock_of(sku):
    r = requests.get(f"{BASE}/api/products/{sku}", timeout=10)
    r.raise_for_status()
    return r.json()["stock"]


def open_and_scan(tracking, delivery_type):
    r = requests.post(
        f"{BASE}/api/outbound/sessions",
        json={"tracking": tracking, "delivery_type": delivery_type},
        timeout=10,
    )
    r.raise_for_status()
    body = r.json()
    sid = body["session_id"]
    for item in body["items"]:
        requests.put(
            f"{BASE}/api/outbound/sessions/{sid}/quantity",
            json={"sku": item["sku"], "value": item["required_qty"]},
            timeout=10,
        ).raise_for_status()
    return sid, [item["sku"] for item in body["items"]]


def finalize_task(i, sid):
    try:
        r = requests.post(
            f"{BASE}/api/outbound/sessions/{sid}/finalize",
            json={"operator": f"worker-{i}"},
            timeout=20,
        )
        return (i, r.status_code, r.json().get("state") or r.json().get("detail"))
    except Exception as e:
        return (i, "ERR", str(e))


def run(tracking, delivery_type, workers):
    sessions = [open_and_scan(tracking, delivery_type) for _ in range(workers)]
    skus = sessions[0][1]
    before = {sku: stock_of(sku) for sku in skus}
    print("Stock before:", before)

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(finalize_task, i, sid) for i, (sid, _) in enumerate(sessions)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)

    after = {sku: stock_of(sku) for sku in skus}
    print("Stock after:", after)
    ok = sum(1 for r in results if r[1] == 200)
    print(f"{ok} of {workers} finalizes succeeded")

    for sid, _ in sessions:
        requests.delete(f"{BASE}/api/outbound/sessions/{sid}", timeout=10)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent finalize of one order.")
    parser.add_argument("--tracking", default="TRK998877")
    parser.add_argument("--delivery-type", default="POST")
    parser.add_argument("--workers", type=int, default=4)
    args = parser.parse_args()
    run(args.tracking, args.delivery_type, args.workers)
