import threading

from sqlalchemy.exc import IntegrityError

from helpers import FakeGateway, auth, completed_event, encode, sign
from storefront.db import SessionLocal
from storefront.models.cart import Cart
from storefront.models.idempotency import IdempotencyRecord, IdempotencyStatus
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.webhook_service import WebhookResult, WebhookService, marker_key


def _post(client, event, secret=None, header=None):
    payload = encode(event)
    if header is None:
        header = sign(payload) if secret is None else sign(payload, secret=secret)
    return client.post(
        "/webhook-checkout",
        content=payload,
        headers={"stripe-signature": header, "content-type": "application/json"},
    )


def _stock(db, product):
    db.expire_all()
    p = db.get(Product, product.id)
    return p.quantity, p.sold


def test_completed_checkout_creates_paid_order(client, db, user, products, make_cart):
    p1, p2 = products
    cart = make_cart(user, [(p1, 2, 50), (p2, 1, 20)])
    cart_id = cart.id
    event = completed_event(
        "cs_test_a", cart_id, user.email, 12000, metadata={"city": "Cairo", "street": "12 Nile St"}
    )

    res = _post(client, event)
    assert res.status_code == 200
    assert res.json() == {"received": True}

    db.expire_all()
    orders = db.query(Order).all()
    assert len(orders) == 1
    order = orders[0]
    assert order.user_id == user.id
    assert order.payment_method_type == "card"
    assert order.is_paid is True
    assert order.paid_at is not None
    assert order.total_order_price == 120
    assert order.checkout_session_id == "cs_test_a"
    assert order.shipping_address["city"] == "Cairo"
    assert order.shipping_address["street"] == "12 Nile St"
    assert order.shipping_address["country"] is None
    assert len(order.cart_items) == 2

    assert db.get(Cart, cart_id) is None
    assert _stock(db, p1) == (8, 2)
    assert _stock(db, p2) == (4, 2)

    rec = db.query(IdempotencyRecord).filter_by(key=marker_key("cs_test_a")).one()
    assert rec.status == IdempotencyStatus.COMPLETED
    assert rec.response_body == {"order_id": order.id}


def test_redelivery_is_acknowledged_without_side_effects(client, db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 2, 50)])
    event = completed_event("cs_test_b", cart.id, user.email, 10000)

    assert _post(client, event).status_code == 200
    again = dict(event, id="evt_2")
    assert _post(client, again).status_code == 200
    assert _post(client, event).status_code == 200

    db.expire_all()
    assert db.query(Order).count() == 1
    assert _stock(db, p1) == (8, 2)


def test_bad_signature_changes_nothing(client, db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    event = completed_event("cs_test_c", cart.id, user.email, 5000)

    res = _post(client, event, secret="whsec_someone_else")
    assert res.status_code == 400
    assert res.json()["detail"].startswith("Webhook error:")

    db.expire_all()
    assert db.query(Order).count() == 0
    assert db.query(IdempotencyRecord).count() == 0
    assert db.get(Cart, cart.id) is not None
    assert _stock(db, p1) == (10, 0)


def test_missing_or_garbled_signature_header(client, db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    event = completed_event("cs_test_d", cart.id, user.email, 5000)
    payload = encode(event)

    res = client.post("/webhook-checkout", content=payload)
    assert res.status_code == 400
    assert _post(client, event, header="garbage").status_code == 400
    assert _post(client, event, header=sign(payload, timestamp=1000000000)).status_code == 400

    db.expire_all()
    assert db.query(Order).count() == 0


def test_tampered_body_is_rejected(client, db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    payload = encode(completed_event("cs_test_e", cart.id, user.email, 5000))
    header = sign(payload)
    tampered = payload.replace(b"5000", b"1")
    res = client.post("/webhook-checkout", content=tampered, headers={"stripe-signature": header})
    assert res.status_code == 400
    db.expire_all()
    assert db.query(Order).count() == 0


def test_other_event_types_are_acknowledged_and_ignored(client, db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    event = completed_event("cs_test_f", cart.id, user.email, 5000)
    event["type"] = "payment_intent.succeeded"

    res = _post(client, event)
    assert res.status_code == 200
    db.expire_all()
    assert db.query(Order).count() == 0
    assert db.get(Cart, cart.id) is not None


def test_unknown_customer_is_recorded_and_retry_succeeds(client, db, admin, products, make_cart):
    p1, _ = products
    cart = make_cart(admin, [(p1, 3, 50)])
    event = completed_event("cs_test_g", cart.id, "ghost@example.com", 15000)

    res = _post(client, event)
    assert res.status_code == 200
    db.expire_all()
    assert db.query(Order).count() == 0
    assert _stock(db, p1) == (10, 0)

    failures = client.get("/api/admin/webhook-failures", headers=auth(admin)).json()
    assert [f["key"] for f in failures] == [marker_key("cs_test_g")]
    assert "ghost@example.com" in failures[0]["last_error"]

    db.add(User(name="Ghost", email="ghost@example.com"))
    db.commit()

    assert _post(client, event).status_code == 200
    db.expire_all()
    assert db.query(Order).count() == 1
    assert _stock(db, p1) == (7, 3)
    assert client.get("/api/admin/webhook-failures", headers=auth(admin)).json() == []


def test_webhook_failures_is_admin_only(client, user):
    res = client.get("/api/admin/webhook-failures", headers=auth(user))
    assert res.status_code == 403


def test_service_results(db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    svc = WebhookService(db, FakeGateway())

    event = completed_event("cs_test_h", cart.id, user.email, 5000)
    payload = encode(event)
    assert svc.handle(payload, sign(payload)) == WebhookResult.COMPLETED
    assert svc.handle(payload, sign(payload)) == WebhookResult.DUPLICATE

    other = dict(event, type="charge.refunded")
    payload = encode(other)
    assert svc.handle(payload, sign(payload)) == WebhookResult.IGNORED

    missing = completed_event("cs_test_i", "no-such-cart", user.email, 5000)
    payload = encode(missing)
    assert svc.handle(payload, sign(payload)) == WebhookResult.FAILED


def test_customer_details_email_is_used(db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    event = completed_event("cs_test_j", cart.id, None, 5000)
    event["data"]["object"]["customer_details"] = {"email": user.email}
    payload = encode(event)

    svc = WebhookService(db, FakeGateway())
    assert svc.handle(payload, sign(payload)) == WebhookResult.COMPLETED


def test_concurrent_deliveries_produce_one_order(db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 2, 50)])
    payload = encode(completed_event("cs_test_k", cart.id, user.email, 10000))
    header = sign(payload)
    results = []

    def deliver():
        s = SessionLocal()
        try:
            results.append(WebhookService(s, FakeGateway()).handle(payload, header))
        finally:
            s.close()

    threads = [threading.Thread(target=deliver) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == sorted([WebhookResult.COMPLETED, WebhookResult.DUPLICATE])
    db.expire_all()
    assert db.query(Order).count() == 1
    assert _stock(db, p1) == (8, 2)


def test_event_without_session_object_is_acknowledged(client, db, user, products, make_cart):
    p1, _ = products
    make_cart(user, [(p1, 1, 50)])
    for data in ({"object": "cs_test_l"}, "cs_test_l", None):
        event = completed_event("cs_test_l", "x", user.email, 5000)
        event["data"] = data
        assert _post(client, event).status_code == 200

    db.expire_all()
    assert db.query(Order).count() == 0
    assert _stock(db, p1) == (10, 0)


def test_unrelated_integrity_error_is_recorded_as_failure(db, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    cart_id = cart.id
    svc = WebhookService(db, FakeGateway())

    def broken_create(**fields):
        raise IntegrityError("INSERT INTO orders", {}, Exception("NOT NULL constraint failed: orders.user_id"))

    svc.order_service.orders.create = broken_create
    payload = encode(completed_event("cs_test_m", cart_id, user.email, 5000))
    assert svc.handle(payload, sign(payload)) == WebhookResult.FAILED

    db.expire_all()
    rec = db.query(IdempotencyRecord).filter_by(key=marker_key("cs_test_m")).one()
    assert rec.status == IdempotencyStatus.FAILED
    assert "NOT NULL" in rec.last_error
    assert db.get(Cart, cart_id) is not None
    assert _stock(db, p1) == (10, 0)
