#!/usr/bin/env python3
"""
Seed listings from a JSON file exported from the products collection.

Accepts either a list of product documents or {"items": [...]}; field names
follow the document store (title, price, stock, sellerId, imageUrl, ...).

Usage:
    python scripts/seed_products.py --file catalogue.json [--reset]
"""
import argparse
import json
import logging
import os
import sys

from marketplace.config import configure_logging
from marketplace.db import SessionLocal, init_db
from marketplace.repositories.product_repo import ProductRepository
from marketplace.utils.money import to_cents

log = logging.getLogger("marketplace.seed")

DEMO_PRODUCTS = [
    {"id": "demo-jacket", "title": "Denim Jacket", "price": "25.00", "stock": 3,
     "sellerId": "seller-demo", "sellerName": "Demo Seller", "category": "men", "subCategory": "jackets"},
    {"id": "demo-dress", "title": "Summer Dress", "price": "18.50", "stock": 1,
     "sellerId": "seller-demo", "sellerName": "Demo Seller", "category": "women", "subCategory": "dresses"},
]


def _normalize_entry(entry: dict) -> dict:
    """Map a product document onto ProductRepository.create_or_update kwargs."""
    if entry.get("price_cents") is not None:
        price_cents = int(entry["price_cents"])
    else:
        price_cents = to_cents(entry.get("price", 0) or 0)
    return {
        "product_id": entry.get("id") or entry.get("productId"),
        "title": entry.get("title") or entry.get("name") or "",
        "price_cents": price_cents,
        "seller_id": entry.get("sellerId") or entry.get("seller_id") or "unknown",
        "stock": int(entry.get("stock", 0) or 0),
        "description": entry.get("description"),
        "seller_name": entry.get("sellerName"),
        "image_url": entry.get("imageUrl") or entry.get("image"),
        "category": (entry.get("category") or "").lower() or None,
        "sub_category": entry.get("subCategory"),
    }


def load_entries(path: str = None) -> list:
    if not path:
        return DEMO_PRODUCTS
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return data.get("items") if isinstance(data.get("items"), list) else list(data.values())
    return data if isinstance(data, list) else []


def seed(entries: list) -> int:
    db = SessionLocal()
    repo = ProductRepository(db)
    try:
        for entry in entries:
            repo.create_or_update(**_normalize_entry(entry))
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    log.info("Seeded products: %d", len(entries))
    return len(entries)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=None, help="Path to a products JSON export (demo data when omitted)")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate tables first")
    args = parser.parse_args()
    configure_logging()
    if args.file and not os.path.exists(args.file):
        log.error("File not found: %s", args.file)
        sys.exit(1)
    init_db(reset=args.reset)
    seed(load_entries(args.file))
