import json
import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
KEY = sys.argv[2] if len(sys.argv) > 2 else None
SKU = sys.argv[3] if len(sys.argv) > 3 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Processed webhook markers ===")
if KEY:
    cur.execute(
        "SELECT id, key, status, response_body, last_error, updated_at FROM idempotency_records WHERE key=?",
        (KEY,),
    )
else:
    cur.execute(
        "SELECT id, key, status, response_body, last_error, updated_at FROM idempotency_records ORDER BY updated_at DESC LIMIT 20"
    )
for r in cur.fetchall():
    body = r[3]
    try:
        body = json.loads(body) if isinstance(body, str) else body
    except ValueError:
        pass
    print({"id": r[0], "key": r[1], "status": r[2], "response_body": body, "last_error": r[4], "updated_at": r[5]})

print("\n=== Recent orders ===")
cur.execute(
    "SELECT id, user_id, payment_method_type, total_order_price, is_paid, source_cart_id, checkout_session_id, created_at "
    "FROM orders ORDER BY created_at DESC LIMIT 20"
)
for r in cur.fetchall():
    print(r)

print("\n=== Carts still open ===")
cur.execute("SELECT id, owner_id, total_cart_price, total_after_discount, coupon FROM carts ORDER BY updated_at DESC LIMIT 20")
for r in cur.fetchall():
    print(r)

if SKU:
    print(f"\n=== Stock for SKU={SKU} ===")
    cur.execute("SELECT id, sku, name, quantity, sold FROM products WHERE sku=?", (SKU,))
    for r in cur.fetchall():
        print(r)

conn.close()
