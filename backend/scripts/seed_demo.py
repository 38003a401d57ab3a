#!/usr/bin/env python3
"""
Seed a demo catalogue and a couple of READY orders, or load products from a
JSON file. Existing SKUs are left alone unless --overwrite is given.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --file products.json --overwrite
"""
import argparse
import json
import logging
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from stockroom.db import SessionLocal, init_db
from stockroom.repositories.order_repo import OrderRepository
from stockroom.services.catalog_service import CatalogService, DuplicateSkuError
from stockroom.utils.transactions import committed

log = logging.getLogger("seed_demo")

DEMO_PRODUCTS = [
    {"sku": "NX-1001", "name": "Premium Leather Desk Mat", "category": "Desk Accessories", "stock": 142},
    {"sku": "NX-1002", "name": "Aluminum Laptop Stand", "category": "Stands", "stock": 8},
    {"sku": "NX-2001", "name": "Mechanical Keyboard (Red Switch)", "category": "Peripherals", "stock": 55},
    {"sku": "NX-2002", "name": "Wireless Ergonomic Mouse", "category": "Peripherals", "stock": 32},
    {"sku": "NX-3001", "name": "USB-C Hub 7-in-1", "category": "Accessories", "stock": 3},
    {"sku": "NX-3002", "name": "4K HDMI Cable (2m)", "category": "Cables", "stock": 210},
]

DEMO_ORDERS = [
    {
        "order_number": "ORD-2023-8821",
        "tracking": "TRK998877",
        "delivery_type": "POST",
        "name": "Alice Kim",
        "items": [
            {"sku": "NX-1001", "name": "Premium Leather Desk Mat", "qty": 1},
            {"sku": "NX-2002", "name": "Wireless Ergonomic Mouse", "qty": 1},
        ],
    },
    {
        "order_number": "ORD-2023-8822",
        "tracking": "TRK112233",
        "delivery_type": "POST",
        "name": "Min-su Park",
        "items": [
            {"sku": "NX-3001", "name": "USB-C Hub 7-in-1", "qty": 2},
            {"sku": "NX-3002", "name": "4K HDMI Cable (2m)", "qty": 5},
            {"sku": "NX-1002", "name": "Aluminum Laptop Stand", "qty": 1},
        ],
    },
    {
        "order_number": "ORD-2023-8823",
        "delivery_type": "VALEX",
        "name": "Ji-woo Lee",
        "receiver": "Ji-woo Lee",
        "phone": "010-1234-5678",
        "items": [{"productSku": "NX-2001", "name": "Mechanical Keyboard (Red Switch)", "qty": 1}],
    },
    {
        "order_number": "ORD-2023-8824",
        "delivery_type": "PICKUP",
        "name": "Seo-yeon Choi",
        "items": [{"code": "nx-3002", "name": "4K HDMI Cable (2m)", "qty": 3}],
    },
]


def _normalize_entry(entry):
    """Accept a few spellings of the product fields."""
    return {
        "sku": entry.get("sku") or entry.get("id"),
        "name": entry.get("name") or entry.get("title") or "",
        "category": entry.get("category") or "",
        "stock": int(entry.get("stock", entry.get("currentStock", 0)) or 0),
        "link": entry.get("link"),
    }


def load_products(path):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items", list(data.values()))
    return [_normalize_entry(e) for e in data]


def seed(products, orders, overwrite=False):
    db = SessionLocal()
    try:
        catalog = CatalogService(db)
        created = 0
        for p in products:
            if not p.get("sku"):
                continue
            try:
                catalog.create(
                    p["sku"], p["name"], p.get("category", ""), p.get("stock", 0),
                    link=p.get("link"), overwrite=overwrite,
                )
                created += 1
            except DuplicateSkuError:
                log.info("Skipping existing product %s", p["sku"])

        repo = OrderRepository(db)
        with committed(db):
            for o in orders:
                repo.create(**o)
        log.info("Seeded %s products and %s orders", created, len(orders))
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", help="JSON list of products to load instead of the demo set")
    parser.add_argument("--overwrite", action="store_true", help="replace products whose SKU already exists")
    parser.add_argument("--no-orders", action="store_true", help="do not create demo orders")
    args = parser.parse_args()

    if args.file and not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)

    init_db()
    products = load_products(args.file) if args.file else DEMO_PRODUCTS
    seed(products, [] if args.no_orders else DEMO_ORDERS, overwrite=args.overwrite)
