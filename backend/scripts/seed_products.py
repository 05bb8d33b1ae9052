#!/usr/bin/env python3
"""
Seed users, products and coupons for local development.

Products come from a JSON file when one is given (a list of entries, or an
object with an "items" list); a small fixed set is always ensured so the
manual checkout walkthrough has something to buy.

Usage:
    python scripts/seed_products.py
    python scripts/seed_products.py --file products.json --reset
"""
import argparse
import json
import logging
import os
import sys
from datetime import datetime, timedelta, timezone

# allow running from backend/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.db import SessionLocal, init_db
from storefront.logging_config import configure_logging
from storefront.models.coupon import Coupon
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.user_repo import UserRepository

log = logging.getLogger("storefront.seed")

PRODUCTS_TO_ENSURE = [
    {"sku": "SHIRT-01", "name": "Linen shirt", "price": 450.0, "quantity": 25},
    {"sku": "BAG-01", "name": "Canvas tote bag", "price": 120.0, "quantity": 40},
    {"sku": "MUG-01", "name": "Stoneware mug", "price": 85.5, "quantity": 60},
    {"sku": "LAST-01", "name": "Last one in stock", "price": 300.0, "quantity": 1},
]

USERS_TO_ENSURE = [
    {"name": "Admin", "email": "admin@example.com", "role": "admin"},
    {"name": "Mona", "email": "mona@example.com", "role": "user"},
]

COUPONS_TO_ENSURE = [
    {"name": "WELCOME10", "discount": 10, "days": 30},
    {"name": "EXPIRED50", "discount": 50, "days": -1},
]


def _normalize_entry(entry):
    sku = entry.get("sku") or entry.get("id")
    try:
        price = float(entry.get("price", entry.get("amount", 0)) or 0)
    except (TypeError, ValueError):
        price = 0.0
    try:
        quantity = int(entry.get("quantity", entry.get("stock", 0)) or 0)
    except (TypeError, ValueError):
        quantity = 0
    return {
        "sku": sku,
        "name": entry.get("name") or entry.get("title") or "",
        "price": price,
        "quantity": quantity,
        "description": entry.get("description") or None,
    }


def load_products(path):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items") or list(data.values())
    return [_normalize_entry(e) for e in data if isinstance(e, dict)]


def seed(products):
    db = SessionLocal()
    try:
        users = UserRepository(db)
        for u in USERS_TO_ENSURE:
            if users.get_by_email(u["email"]) is None:
                users.create(u["name"], u["email"], role=u["role"])

        repo = ProductRepository(db)
        skus = {p["sku"] for p in products}
        entries = products + [p for p in PRODUCTS_TO_ENSURE if p["sku"] not in skus]
        count = 0
        for entry in entries:
            if not entry.get("sku"):
                continue
            repo.create_or_update(
                sku=entry["sku"],
                name=entry["name"],
                price=entry["price"],
                quantity=entry["quantity"],
                description=entry.get("description"),
            )
            count += 1

        now = datetime.now(timezone.utc)
        for c in COUPONS_TO_ENSURE:
            coupon = db.query(Coupon).filter(Coupon.name == c["name"]).first()
            if coupon is None:
                coupon = Coupon(name=c["name"])
                db.add(coupon)
            coupon.discount = c["discount"]
            coupon.expire = now + timedelta(days=c["days"])

        db.commit()
        log.info("seeded users=%d products=%d coupons=%d", len(USERS_TO_ENSURE), count, len(COUPONS_TO_ENSURE))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", help="Path to a product json file")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    configure_logging()
    init_db(reset=args.reset)
    products = []
    if args.file:
        if not os.path.exists(args.file):
            log.error("file not found: %s", args.file)
            sys.exit(1)
        products = load_products(args.file)
    seed(products)
