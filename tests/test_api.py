from fastapi.testclient import TestClient

from marketplace.main import app

client = TestClient(app)

BUYER = {"X-User-Id": "buyer-1"}
SELLER = {"X-User-Id": "seller-1"}


def test_health_ok():
    res = client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["db"] is True


def test_list_products_only_active(make_product):
    live = make_product(stock=2, category="men")
    make_product(stock=0)

    res = client.get("/api/products", params={"category": "MEN"})

    assert res.status_code == 200
    assert [p["id"] for p in res.json()["items"]] == [live]
    assert client.get("/api/products/nope").status_code == 404


def test_cart_requires_user():
    assert client.get("/api/cart").status_code == 401


def test_cart_flow_and_totals(make_product):
    pid = make_product(stock=5, price_cents=5000)

    res = client.post("/api/cart/items", json={"product_id": pid, "quantity": 2}, headers=BUYER)
    assert res.status_code == 200
    item_id = res.json()["item"]["id"]

    cart = client.get("/api/cart", headers=BUYER).json()
    assert cart["subtotal_cents"] == 10000

    totals = client.get("/api/cart/totals", params={"promo": "adj3ak"}, headers=BUYER).json()
    assert totals["total_cents"] == 6500

    assert client.get("/api/cart/totals", params={"promo": "FAKE1"}, headers=BUYER).status_code == 400

    res = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 0}, headers=BUYER)
    assert res.json()["quantity"] == 2

    assert client.delete(f"/api/cart/items/{item_id}", headers=BUYER).json() == {"ok": True}
    assert client.get("/api/cart", headers=BUYER).json()["items"] == []


def test_add_over_stock_is_conflict(make_product):
    pid = make_product(stock=1)
    res = client.post("/api/cart/items", json={"product_id": pid, "quantity": 3}, headers=BUYER)
    assert res.status_code == 409
    assert res.json()["detail"] == "Only 1 available."


def test_checkout_and_order_lifecycle(make_product):
    pid = make_product(stock=3)
    assert client.post("/api/orders/checkout", headers=BUYER).status_code == 400

    client.post("/api/cart/items", json={"product_id": pid, "quantity": 1}, headers=BUYER)
    res = client.post("/api/orders/checkout", headers=BUYER)
    assert res.status_code == 200
    [order] = res.json()["orders"]
    assert order["status"] == "pending"

    selling = client.get("/api/orders/selling", headers=SELLER).json()
    assert [o["id"] for o in selling["active"]] == [order["id"]]

    assert client.post(f"/api/orders/{order['id']}/advance", headers=BUYER).status_code == 403
    assert client.post(f"/api/orders/{order['id']}/advance", headers=SELLER).json()["status"] == "confirmed"
    assert client.post(f"/api/orders/{order['id']}/advance", headers=SELLER).json()["status"] == "completed"

    res = client.post(f"/api/orders/{order['id']}/cancel", headers=BUYER)
    assert res.status_code == 409
    assert res.json()["detail"] == "Only pending or confirmed orders can be cancelled."


def test_direct_order_and_revival(make_product):
    pid = make_product(stock=3)

    first = client.post("/api/orders", json={"product_id": pid, "quantity": 1}, headers=BUYER).json()
    assert first["revived"] is False

    dup = client.post("/api/orders", json={"product_id": pid, "quantity": 1}, headers=BUYER)
    assert dup.status_code == 409

    client.post(f"/api/orders/{first['order']['id']}/cancel", headers=BUYER)
    again = client.post("/api/orders", json={"product_id": pid, "quantity": 2}, headers=BUYER).json()
    assert again["revived"] is True
    assert again["order"]["id"] == first["order"]["id"]

    mine = client.get("/api/orders/mine", headers=BUYER).json()["items"]
    assert [o["status"] for o in mine] == ["pending"]
