from decimal import Decimal

from conftest import reload
from models.cart import Cart, CartItem
from models.category import Category
from models.order import Order, OrderItem, OrderStatus
from models.product import MAX_STOCK
from models.stock import StockMovement


# ---- categories ----

def test_list_categories_with_product_counts(client, category, make_product, db):
    make_product(name="Galaxy S23")
    make_product(name="Pixel 10")
    empty = Category(name="Garden")
    db.add(empty)
    db.commit()

    res = client.get("/categories")
    assert res.status_code == 200
    counts = {c["name"]: c["products_count"] for c in res.json()["data"]}
    assert counts == {"Phones": 2, "Garden": 0}


def test_get_category_not_found(client):
    res = client.get("/categories/999")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_category_mutations_require_admin(client, user_headers):
    assert client.post("/categories", json={"name": "Toys"}).status_code == 401
    res = client.post("/categories", json={"name": "Toys"}, headers=user_headers)
    assert res.status_code == 401
    assert res.json()["message"] == "Admin role required"


def test_admin_creates_and_updates_category(client, admin_headers):
    res = client.post("/categories", json={"name": "Toys", "description": "Fun"}, headers=admin_headers)
    assert res.status_code == 201
    category_id = res.json()["data"]["id"]

    res = client.put(f"/categories/{category_id}", json={"description": "Games and toys"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Toys"
    assert res.json()["data"]["description"] == "Games and toys"


def test_duplicate_category_name_is_field_error(client, category, admin_headers):
    res = client.post("/categories", json={"name": "Phones"}, headers=admin_headers)
    assert res.status_code == 422
    assert "name" in res.json()["errors"]


def test_delete_category_with_products_is_conflict(client, category, make_product, admin_headers, db):
    make_product()
    res = client.delete(f"/categories/{category.id}", headers=admin_headers)
    assert res.status_code == 409
    assert "1 product" in res.json()["message"]
    assert reload(db, category) is not None


def test_delete_empty_category(client, category, admin_headers, db):
    res = client.delete(f"/categories/{category.id}", headers=admin_headers)
    assert res.status_code == 200
    db.expire_all()
    assert db.get(Category, category.id) is None


# ---- products ----

def test_list_products_filters_and_pagination(client, db, category, make_product):
    other = Category(name="Home")
    db.add(other)
    db.commit()
    make_product(name="Galaxy S23", price="500.00")
    make_product(name="Galaxy A54", price="250.00")
    make_product(name="Pixel 10", price="700.00")
    make_product(name="Desk Lamp", price="40.00", category_id=other.id)

    res = client.get("/products", params={"search": "galaxy"})
    assert [p["name"] for p in res.json()["data"]] == ["Galaxy S23", "Galaxy A54"]

    res = client.get("/products", params={"category_id": category.id, "min_price": 300, "max_price": 600})
    assert [p["name"] for p in res.json()["data"]] == ["Galaxy S23"]

    res = client.get("/products", params={"limit": 2, "page": 2})
    body = res.json()
    assert [p["name"] for p in body["data"]] == ["Pixel 10", "Desk Lamp"]
    assert body["pagination"] == {"current_page": 2, "last_page": 2, "per_page": 2, "total": 4}
    assert body["data"][1]["category"]["name"] == "Home"


def test_list_products_limit_is_clamped(client, make_product):
    make_product()
    res = client.get("/products", params={"limit": 500})
    assert res.status_code == 200
    assert res.json()["pagination"]["per_page"] == 100


def test_get_product_includes_category(client, make_product):
    product = make_product(price="19.99")
    res = client.get(f"/products/{product.id}")
    data = res.json()["data"]
    assert data["price"] == 19.99
    assert data["category"]["name"] == "Phones"
    assert client.get("/products/999").status_code == 404


def test_create_product_validation(client, category, admin_headers):
    payload = {"name": "Xperia V1", "price": 1050.0, "stock_quantity": 90, "category_id": category.id}
    res = client.post("/products", json=payload, headers=admin_headers)
    assert res.status_code == 201
    assert res.json()["data"]["category"]["id"] == category.id

    res = client.post("/products", json={**payload, "category_id": 999}, headers=admin_headers)
    assert res.status_code == 422
    assert "category_id" in res.json()["errors"]

    res = client.post("/products", json={**payload, "name": "X", "price": 0}, headers=admin_headers)
    assert res.status_code == 422
    assert {"name", "price"} <= set(res.json()["errors"])


def test_product_mutations_require_admin(client, make_product, user_headers):
    product = make_product()
    assert client.put(f"/products/{product.id}", json={"price": 1}, headers=user_headers).status_code == 401
    assert client.delete(f"/products/{product.id}", headers=user_headers).status_code == 401


def test_partial_product_update(client, make_product, admin_headers):
    product = make_product(price="100.00", stock=5)
    res = client.put(f"/products/{product.id}", json={"price": 120.5}, headers=admin_headers)
    data = res.json()["data"]
    assert data["price"] == 120.5
    assert data["stock_quantity"] == 5
    assert data["name"] == product.name


def test_delete_product_removes_cart_lines(client, db, user, make_product, admin_headers):
    product = make_product()
    cart = Cart(user_id=user.id)
    cart.items.append(CartItem(product_id=product.id, quantity=1))
    db.add(cart)
    db.commit()

    res = client.delete(f"/products/{product.id}", headers=admin_headers)
    assert res.status_code == 200
    db.expire_all()
    assert db.query(CartItem).count() == 0


def test_delete_product_in_order_history_is_conflict(client, db, user, make_product, admin_headers):
    product = make_product()
    order = Order(user_id=user.id, status=OrderStatus.PENDING, total_amount=Decimal("100.00"))
    order.items.append(OrderItem(product_id=product.id, quantity=1, price=Decimal("100.00")))
    db.add(order)
    db.commit()

    res = client.delete(f"/products/{product.id}", headers=admin_headers)
    assert res.status_code == 409
    assert reload(db, product) is not None


def test_restock_records_movement(client, db, admin, make_product, admin_headers):
    product = make_product(stock=3)
    res = client.post(f"/products/{product.id}/restock", json={"quantity": 7}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["stock_quantity"] == 10

    db.expire_all()
    movement = db.query(StockMovement).filter(StockMovement.product_id == product.id).one()
    assert (movement.type, movement.qty, movement.user_id) == ("IN", 7, admin.id)

    bad = client.post(f"/products/{product.id}/restock", json={"quantity": 0}, headers=admin_headers)
    assert bad.status_code == 422


def test_values_beyond_column_range_are_validation_errors(client, category, make_product, admin_headers):
    payload = {"name": "Yacht", "price": 10**12, "stock_quantity": 2**40, "category_id": category.id}
    res = client.post("/products", json=payload, headers=admin_headers)
    assert res.status_code == 422
    assert {"price", "stock_quantity"} <= set(res.json()["errors"])

    product = make_product(stock=5)
    res = client.post(f"/products/{product.id}/restock", json={"quantity": 10**12}, headers=admin_headers)
    assert res.status_code == 422


def test_restock_cannot_push_stock_past_column_limit(client, make_product, admin_headers):
    product = make_product(stock=MAX_STOCK - 1)
    res = client.post(f"/products/{product.id}/restock", json={"quantity": 2}, headers=admin_headers)
    assert res.status_code == 422
    assert "quantity" in res.json()["errors"]
