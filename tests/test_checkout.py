from decimal import Decimal

import pytest

from conftest import auth_headers, reload
from models.cart import Cart, CartItem
from models.order import Order, OrderItem
from models.product import Product
from models.stock import StockMovement
from models.users import User
from services import checkout
from utils.errors import Conflict, EmptyCart, InsufficientStock


def fill_cart(db, user, lines):
    cart = db.query(Cart).filter(Cart.user_id == user.id).first()
    if cart is None:
        cart = Cart(user_id=user.id)
        db.add(cart)
    for product, quantity in lines:
        cart.items.append(CartItem(product_id=product.id, quantity=quantity))
    db.commit()
    return cart


def test_checkout_creates_order_and_decrements_stock(client, db, user, user_headers, make_product):
    a = make_product(name="Product A", price="100.00", stock=10)
    b = make_product(name="Product B", price="50.00", stock=5)
    fill_cart(db, user, [(a, 2), (b, 1)])

    res = client.post("/orders", headers=user_headers)
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["total_amount"] == 250.0
    assert data["status"] == "pending"
    assert data["status_text"] == "Pending"
    assert data["total_items"] == 3
    assert [(i["product"]["name"], i["quantity"], i["price"], i["subtotal"]) for i in data["items"]] == [
        ("Product A", 2, 100.0, 200.0),
        ("Product B", 1, 50.0, 50.0),
    ]

    assert reload(db, a).stock_quantity == 8
    assert reload(db, b).stock_quantity == 4
    assert db.query(Order).count() == 1
    assert db.query(OrderItem).count() == 2

    movements = db.query(StockMovement).order_by(StockMovement.product_id).all()
    assert [(m.type, m.qty, m.order_id) for m in movements] == [("OUT", 2, data["id"]), ("OUT", 1, data["id"])]


def test_cart_is_emptied_but_kept(client, db, user, user_headers, make_product):
    product = make_product(stock=3)
    cart = fill_cart(db, user, [(product, 1)])

    client.post("/orders", headers=user_headers)

    db.expire_all()
    assert db.get(Cart, cart.id) is not None
    assert db.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 0
    assert client.get("/cart", headers=user_headers).json()["data"]["items"] == []


def test_order_total_matches_items(client, db, user, user_headers, make_product):
    a = make_product(name="A", price="19.99", stock=10)
    b = make_product(name="B", price="0.01", stock=10)
    fill_cart(db, user, [(a, 3), (b, 7)])

    order_id = client.post("/orders", headers=user_headers).json()["data"]["id"]

    db.expire_all()
    order = db.get(Order, order_id)
    assert Decimal(order.total_amount) == sum(Decimal(i.price) * i.quantity for i in order.items)
    assert Decimal(order.total_amount) == Decimal("60.04")


def test_order_prices_are_frozen(client, db, user, user_headers, make_product):
    product = make_product(price="100.00")
    fill_cart(db, user, [(product, 1)])
    order_id = client.post("/orders", headers=user_headers).json()["data"]["id"]

    product = reload(db, product)
    product.price = Decimal("999.00")
    db.commit()

    data = client.get(f"/orders/{order_id}", headers=user_headers).json()["data"]
    assert data["items"][0]["price"] == 100.0
    assert data["total_amount"] == 100.0


def test_insufficient_stock_is_atomic(client, db, user, user_headers, make_product):
    a = make_product(name="Product A", stock=10)
    c = make_product(name="Product C", stock=1)
    fill_cart(db, user, [(a, 2), (c, 1)])

    # Stock ran out after the line was added
    c = reload(db, c)
    c.stock_quantity = 0
    db.commit()

    res = client.post("/orders", headers=user_headers)
    assert res.status_code == 400
    assert "Product C" in res.json()["message"]

    db.expire_all()
    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0
    assert db.query(StockMovement).count() == 0
    assert db.get(Product, a.id).stock_quantity == 10
    assert db.query(CartItem).count() == 2


@pytest.mark.parametrize("with_cart_row", [False, True])
def test_empty_cart_cannot_be_checked_out(client, db, user, user_headers, with_cart_row):
    if with_cart_row:
        db.add(Cart(user_id=user.id))
        db.commit()

    res = client.post("/orders", headers=user_headers)
    assert res.status_code == 400
    assert res.json()["message"] == EmptyCart.default_message
    db.expire_all()
    assert db.query(Order).count() == 0


def test_checkout_requires_authentication(client):
    assert client.post("/orders").status_code == 401


def test_stale_snapshot_loses_to_concurrent_checkout(session_factory, db, make_user, make_product, monkeypatch):
    """Two buyers race for the last unit: the one reading a stale snapshot must fail."""
    product = make_product(name="Last Unit", price="10.00", stock=1)
    first, second = make_user(), make_user()
    fill_cart(db, first, [(product, 1)])
    fill_cart(db, second, [(product, 1)])

    original_lock_lines = checkout._lock_lines
    raced = {"done": False}

    def lock_then_let_rival_commit(session, cart):
        lines = original_lock_lines(session, cart)
        if not raced["done"]:
            raced["done"] = True
            rival = session_factory()
            try:
                checkout.place_order(rival, rival.get(User, second.id))
            finally:
                rival.close()
        return lines

    monkeypatch.setattr(checkout, "_lock_lines", lock_then_let_rival_commit)

    session = session_factory()
    try:
        with pytest.raises(InsufficientStock) as exc_info:
            checkout.place_order(session, session.get(User, first.id))
    finally:
        session.close()

    assert "Last Unit" in exc_info.value.detail

    db.expire_all()
    assert db.get(Product, product.id).stock_quantity == 0
    orders = db.query(Order).all()
    assert [o.user_id for o in orders] == [second.id]
    # The loser keeps their cart line
    assert db.query(CartItem).join(Cart).filter(Cart.user_id == first.id).count() == 1


def test_same_cart_checked_out_twice_yields_one_order(session_factory, db, user, make_product, monkeypatch):
    """A retried checkout of a cart that was just converted must not place a second order."""
    product = make_product(name="Desk", price="80.00", stock=10)
    fill_cart(db, user, [(product, 2)])

    original_lock_lines = checkout._lock_lines
    raced = {"done": False}

    def lock_then_let_retry_commit(session, cart):
        lines = original_lock_lines(session, cart)
        if not raced["done"]:
            raced["done"] = True
            retry = session_factory()
            try:
                checkout.place_order(retry, retry.get(User, user.id))
            finally:
                retry.close()
        return lines

    monkeypatch.setattr(checkout, "_lock_lines", lock_then_let_retry_commit)

    session = session_factory()
    try:
        with pytest.raises(Conflict):
            checkout.place_order(session, session.get(User, user.id))
    finally:
        session.close()

    db.expire_all()
    assert db.query(Order).count() == 1
    assert db.get(Product, product.id).stock_quantity == 8
    assert db.query(StockMovement).count() == 1
    assert db.query(CartItem).count() == 0


def test_resubmitting_a_converted_cart_is_rejected(client, db, user, user_headers, make_product):
    product = make_product(stock=10)
    fill_cart(db, user, [(product, 1)])

    assert client.post("/orders", headers=user_headers).status_code == 201
    again = client.post("/orders", headers=user_headers)
    assert again.status_code == 400
    assert again.json()["message"] == EmptyCart.default_message
    assert reload(db, product).stock_quantity == 9


def test_stock_never_goes_negative_across_checkouts(client, db, make_user, make_product):
    product = make_product(stock=3)
    buyers = [make_user() for _ in range(3)]
    for buyer in buyers:
        fill_cart(db, buyer, [(product, 2)])

    statuses = [client.post("/orders", headers=auth_headers(buyer)).status_code for buyer in buyers]
    assert statuses == [201, 400, 400]
    assert reload(db, product).stock_quantity == 1


def test_order_total_beyond_column_range_is_rejected(client, db, user, user_headers, make_product):
    product = make_product(name="Private Island", price="99999999.99", stock=500)
    fill_cart(db, user, [(product, 101)])

    res = client.post("/orders", headers=user_headers)
    assert res.status_code == 400
    assert "cannot exceed" in res.json()["message"]
    assert reload(db, product).stock_quantity == 500
