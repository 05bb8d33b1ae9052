import os
import tempfile

# must be set before storefront.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(
    tempfile.gettempdir(), f"storefront_test_{os.getpid()}.db"
)
os.environ["RECONCILE_INTERVAL_SECONDS"] = "0"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["TAX_PRICE"] = "0"
os.environ["SHIPPING_PRICE"] = "0"

import pytest
from fastapi.testclient import TestClient

from helpers import FakeGateway
from storefront.api.deps import get_payment_gateway
from storefront.db import Base, SessionLocal, engine, import_models
from storefront.main import app
from storefront.models.cart import Cart
from storefront.models.cart_item import CartItem
from storefront.models.product import Product
from storefront.models.user import User


@pytest.fixture(autouse=True)
def reset_db():
    import_models()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db(reset_db):
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def gateway():
    gw = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: gw
    try:
        yield gw
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture()
def client(reset_db, gateway):
    with TestClient(app) as c:
        yield c


def _user(db, name, email, role="user"):
    u = User(name=name, email=email, role=role)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def user(db):
    return _user(db, "Mona", "mona@example.com")


@pytest.fixture()
def other_user(db):
    return _user(db, "Omar", "omar@example.com")


@pytest.fixture()
def admin(db):
    return _user(db, "Admin", "admin@example.com", role="admin")


@pytest.fixture()
def products(db):
    p1 = Product(sku="P1", name="Linen shirt", price=50, quantity=10, sold=0)
    p2 = Product(sku="P2", name="Canvas bag", price=20, quantity=5, sold=1)
    db.add_all([p1, p2])
    db.commit()
    db.refresh(p1)
    db.refresh(p2)
    return p1, p2


@pytest.fixture()
def make_cart(db):
    """make_cart(owner, [(product, count, price)], total_after_discount=None)"""

    def _make(owner, lines, total_after_discount=None, color="black"):
        cart = Cart(owner_id=owner.id if owner else None)
        for product, count, price in lines:
            cart.items.append(CartItem(product_id=product.id, count=count, color=color, price=price))
        cart.total_cart_price = sum(count * price for _, count, price in lines)
        cart.total_after_discount = total_after_discount
        db.add(cart)
        db.commit()
        db.refresh(cart)
        return cart

    return _make
