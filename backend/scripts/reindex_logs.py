#!/usr/bin/env python3
"""
Rebuild the search fields (sku_list, customer_name_lower, product_name_tokens
and their index rows) of every outbound log entry.

Usage:
    python scripts/reindex_logs.py
"""
import logging
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from stockroom.db import SessionLocal, init_db
from stockroom.services.log_search_service import LogSearchService

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    init_db()
    db = SessionLocal()
    try:
        count = LogSearchService(db).reindex()
        print("Reindexed outbound log entries:", count)
    finally:
        db.close()
