from helpers import FakeGateway, auth
from storefront.api.deps import get_payment_gateway
from storefront.main import app
from storefront.services.checkout_service import from_minor_units, to_minor_units


def test_minor_unit_conversion():
    assert to_minor_units(100) == 10000
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(0.1 + 0.2) == 30
    assert from_minor_units(10000) == 100.0
    assert from_minor_units(1999) == 19.99


def test_session_request_for_cart(client, gateway, user, products, make_cart):
    p1, p2 = products
    cart = make_cart(user, [(p1, 1, 50), (p2, 2, 25)])
    body = {"shipping_address": {"country": "EG", "city": "Cairo", "street": "12 Nile St"}}

    res = client.post(f"/api/orders/checkout-session/{cart.id}", json=body, headers=auth(user))
    assert res.status_code == 200
    session = res.json()["session"]
    assert session["id"] == "cs_test_1"
    assert session["url"].startswith("https://checkout.test/")

    params = gateway.created[0]
    assert params["mode"] == "payment"
    assert params["client_reference_id"] == cart.id
    assert params["customer_email"] == "mona@example.com"
    assert params["metadata"] == {"country": "EG", "city": "Cairo", "street": "12 Nile St"}
    assert len(params["line_items"]) == 1
    line = params["line_items"][0]
    assert line["quantity"] == 1
    assert line["price_data"]["unit_amount"] == 10000
    assert "3 item(s)" in line["price_data"]["product_data"]["description"]
    assert "mona@example.com" in line["price_data"]["product_data"]["description"]


def test_session_charges_discounted_amount(client, gateway, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 2, 50)], total_after_discount=80)
    res = client.post(f"/api/orders/checkout-session/{cart.id}", headers=auth(user))
    assert res.status_code == 200
    assert gateway.created[0]["line_items"][0]["price_data"]["unit_amount"] == 8000
    assert gateway.created[0]["metadata"] == {}


def test_get_variant_reads_address_from_query(client, gateway, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    res = client.get(
        f"/api/orders/checkout-session/{cart.id}",
        params={"city": "Giza", "details": "Gate 2"},
        headers=auth(user),
    )
    assert res.status_code == 200
    assert gateway.created[0]["metadata"] == {"city": "Giza", "details": "Gate 2"}


def test_session_leaves_cart_and_stock_alone(client, db, gateway, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 2, 50)])
    client.post(f"/api/orders/checkout-session/{cart.id}", headers=auth(user))
    db.expire_all()
    assert cart.items[0].count == 2
    assert p1.quantity == 10


def test_missing_cart_is_404(client, gateway, user):
    res = client.post("/api/orders/checkout-session/nope", headers=auth(user))
    assert res.status_code == 404
    assert gateway.created == []


def test_provider_error_propagates(client, user, products, make_cart):
    p1, _ = products
    cart = make_cart(user, [(p1, 1, 50)])
    failing = FakeGateway(fail_with="Invalid line_items[0]")
    app.dependency_overrides[get_payment_gateway] = lambda: failing
    res = client.post(f"/api/orders/checkout-session/{cart.id}", headers=auth(user))
    assert res.status_code == 502
    assert "Invalid line_items" in res.json()["detail"]
