import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import argparse
import concurrent.futures
import hashlib
import hmac
import json
import time
from uuid import uuid4

import requests

BASE = os.environ.get("STOREFRONT_BASE", "http://127.0.0.1:8000")
WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")


def cash_order_task(i, cart_id, user_id):
    headers = {"X-User-Id": str(user_id)}
    try:
        r = requests.post(f"{BASE}/api/orders/{cart_id}", json={}, headers=headers, timeout=20)
        return (i, "cash", r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "cash", "ERR", str(e))


def signed_headers(payload: bytes, secret: str):
    ts = int(time.time())
    sig = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return {"Content-Type": "application/json", "Stripe-Signature": f"t={ts},v1={sig}"}


def webhook_task(i, payload: bytes, secret: str):
    try:
        r = requests.post(
            f"{BASE}/webhook-checkout", data=payload, headers=signed_headers(payload, secret), timeout=20
        )
        return (i, "webhook", r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "webhook", "ERR", str(e))


def completed_event(cart_id, email, amount_total, session_id):
    return {
        "id": f"evt_{uuid4().hex[:16]}",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "client_reference_id": cart_id,
                "customer_email": email,
                "amount_total": amount_total,
                "metadata": {},
            }
        },
    }


def report(results):
    print("Results:")
    for r in results:
        print(r)
    created = [r for r in results if r[2] in (200, 201)]
    print(f"{len(created)} of {len(results)} requests were acknowledged")


def run_cash_concurrent(workers, cart_id, user_id):
    print(f"Running cash order test: workers={workers}, cart={cart_id}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(cash_order_task, i, cart_id, user_id) for i in range(workers)]
        results = [f.result() for f in futures]
    report(results)
    ids = {json.loads(r[3])["data"]["id"] for r in results if r[2] == 201}
    print("Orders created:", ids)


def run_webhook_concurrent(workers, cart_id, email, amount_total, session_id, secret):
    print(f"Running duplicate delivery test: workers={workers}, session={session_id}")
    # every worker sends the same session, as provider redeliveries do
    payload = json.dumps(completed_event(cart_id, email, amount_total, session_id)).encode()
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(webhook_task, i, payload, secret) for i in range(workers)]
        results = [f.result() for f in futures]
    report(results)
    r = requests.get(f"{BASE}/api/orders", headers={"X-User-Id": os.environ.get("STOREFRONT_ADMIN_ID", "1")}, timeout=10)
    if r.ok:
        matching = [o for o in r.json()["data"] if o.get("checkout_session_id") == session_id]
        print(f"Orders for {session_id}: {len(matching)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent checkouts at one cart.")
    sub = parser.add_subparsers(dest="mode", required=True)

    c = sub.add_parser("cash")
    c.add_argument("cart_id")
    c.add_argument("--user-id", type=int, required=True)
    c.add_argument("--workers", type=int, default=8)

    w = sub.add_parser("webhook")
    w.add_argument("cart_id")
    w.add_argument("--email", required=True)
    w.add_argument("--amount-total", type=int, required=True, help="in minor units")
    w.add_argument("--session-id", default=None)
    w.add_argument("--secret", default=WEBHOOK_SECRET)
    w.add_argument("--workers", type=int, default=8)

    args = parser.parse_args()

    if args.mode == "cash":
        run_cash_concurrent(args.workers, args.cart_id, args.user_id)
    elif args.mode == "webhook":
        if not args.secret:
            parser.error("--secret or STRIPE_WEBHOOK_SECRET is required")
        session_id = args.session_id or f"cs_tool_{uuid4().hex[:16]}"
        run_webhook_concurrent(args.workers, args.cart_id, args.email, args.amount_total, session_id, args.secret)
