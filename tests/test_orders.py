"""Tests for order creation, checkout from cart, reads and status updates."""

import pytest
from pymongo.errors import PyMongoError

from conftest import signup
from orders import OrderService, build_order_items, order_total
from errors import ValidationError
from schemas import OrderItemInput


def line(product_id, price, quantity, **overrides):
    item = {
        "productId": product_id,
        "name": "Runner Tee",
        "images": ["a.jpg", "b.jpg", "c.jpg", "d.jpg"],
        "size": "M",
        "quantity": quantity,
        "price": price,
    }
    item.update(overrides)
    return item


def create(client, headers, address_id, items, **extra):
    body = {"addressId": address_id, "transactionId": "txn_001", "items": items}
    body.update(extra)
    return client.post("/order/create", headers=headers, json=body)


class TestCreateOrder:

    def test_total_and_cart_cleared(self, client, auth_headers, address_id, product_id):
        client.post("/cart/add", headers=auth_headers, json={"productId": product_id, "size": "M", "quantity": 1})
        response = create(client, auth_headers, address_id,
                          [line(product_id, 10, 2), line(product_id, 5, 3, size="L")])
        assert response.status_code == 201
        order = response.json()["data"]
        assert order["totalAmount"] == 35
        assert order["paymentStatus"] == "Pending"
        assert order["orderStatus"] == "Processing"
        assert order["userAddressId"] == address_id
        assert all(len(i["images"]) == 3 for i in order["items"])

        cart = client.get("/cart", headers=auth_headers).json()["data"]
        assert cart["items"] == []

    def test_numeric_strings_are_accepted(self, client, auth_headers, address_id, product_id):
        response = create(client, auth_headers, address_id, [line(product_id, "12.5", "2")])
        assert response.status_code == 201
        assert response.json()["data"]["totalAmount"] == 25.0

    def test_empty_items_creates_nothing(self, client, auth_headers, address_id, db):
        response = create(client, auth_headers, address_id, [])
        assert response.status_code == 400
        assert response.json()["message"] == "No items provided"
        assert db["order"].count_documents({}) == 0

    def test_missing_field_names_the_item(self, client, auth_headers, address_id, product_id, db):
        bad = line(product_id, 5, 1)
        del bad["name"]
        response = create(client, auth_headers, address_id, [line(product_id, 10, 1), bad])
        assert response.status_code == 400
        assert "item 2" in response.json()["message"]
        assert "name" in response.json()["message"]
        assert db["order"].count_documents({}) == 0

    def test_non_numeric_price(self, client, auth_headers, address_id, product_id):
        response = create(client, auth_headers, address_id, [line(product_id, "ten", 1)])
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid price or quantity in item 1"

    def test_unknown_address(self, client, auth_headers, product_id, missing_id):
        response = create(client, auth_headers, missing_id, [line(product_id, 10, 1)])
        assert response.status_code == 404

    def test_snapshot_ignores_later_catalog_changes(self, client, auth_headers, address_id, product_id, db):
        order_id = create(client, auth_headers, address_id, [line(product_id, 10, 1)]).json()["data"]["id"]
        db["product"].update_one({}, {"$set": {"price": 999.0, "name": "Renamed"}})
        item = client.get(f"/order/{order_id}", headers=auth_headers).json()["data"]["items"][0]
        assert item["price"] == 10
        assert item["name"] == "Runner Tee"

    def test_cart_clear_failure_keeps_order(self, db, user_id, address_id, product_id, monkeypatch):
        service = OrderService(db)

        def broken_update(*args, **kwargs):
            raise PyMongoError("cart store unavailable")

        monkeypatch.setattr(service.carts, "empty", broken_update)
        order = service.create_order(user_id, address_id, "txn", "Paid", "Processing",
                                     [OrderItemInput(**line(product_id, 10, 1))])
        assert order["totalAmount"] == 10
        assert db["order"].count_documents({}) == 1


class TestCheckout:

    def test_prices_come_from_catalog(self, client, auth_headers, address_id, db, product_id):
        client.post("/cart/add", headers=auth_headers, json={"productId": product_id, "size": "M", "quantity": 2})
        db["product"].update_one({}, {"$set": {"price": 300.0}})
        response = client.post("/order/checkout", headers=auth_headers,
                               json={"addressId": address_id, "transactionId": "txn_2", "paymentStatus": "Paid"})
        assert response.status_code == 201
        order = response.json()["data"]
        assert order["totalAmount"] == 600.0
        assert order["paymentStatus"] == "Paid"
        assert client.get("/cart", headers=auth_headers).json()["data"]["items"] == []

    def test_empty_cart(self, client, auth_headers, address_id):
        response = client.post("/order/checkout", headers=auth_headers,
                               json={"addressId": address_id, "transactionId": "txn_3"})
        assert response.status_code == 400


class TestReadUpdateDelete:

    @pytest.fixture
    def order_id(self, client, auth_headers, address_id, product_id):
        return create(client, auth_headers, address_id, [line(product_id, 10, 2)]).json()["data"]["id"]

    def test_get_order_joins_address(self, client, auth_headers, order_id):
        data = client.get(f"/order/{order_id}", headers=auth_headers).json()["data"]
        assert data["address"]["city"] == "Bengaluru"
        assert data["user"]["email"] == "asha@example.com"

    def test_missing_price_displays_as_zero(self, client, auth_headers, order_id, db):
        items = db["order"].find_one()["items"]
        del items[0]["price"]
        db["order"].update_one({}, {"$set": {"items": items}})
        data = client.get(f"/order/{order_id}", headers=auth_headers).json()["data"]
        assert data["items"][0]["price"] == 0

    def test_user_orders_are_scoped(self, client, auth_headers, order_id):
        other = signup(client, email="ravi@example.com", username="ravi")
        other_headers = {"Authorization": f"Bearer {other['accessToken']}"}
        assert len(client.get("/order/user", headers=auth_headers).json()["data"]) == 1
        assert client.get("/order/user", headers=other_headers).json()["data"] == []
        assert len(client.get("/order", headers=other_headers).json()["data"]) == 1

    def test_any_status_transition_is_allowed(self, client, auth_headers, order_id):
        response = client.put(f"/order/{order_id}", headers=auth_headers,
                              json={"orderStatus": "Cancelled", "paymentStatus": "Failed"})
        assert response.status_code == 200
        back = client.put(f"/order/{order_id}", headers=auth_headers, json={"orderStatus": "Processing"})
        assert back.json()["data"]["orderStatus"] == "Processing"
        assert back.json()["data"]["paymentStatus"] == "Failed"

    def test_status_outside_enumeration(self, client, auth_headers, order_id):
        response = client.put(f"/order/{order_id}", headers=auth_headers, json={"orderStatus": "Lost"})
        assert response.status_code == 400

    def test_update_missing_order(self, client, auth_headers, missing_id):
        response = client.put(f"/order/{missing_id}", headers=auth_headers, json={"orderStatus": "Shipped"})
        assert response.status_code == 404

    def test_delete(self, client, auth_headers, order_id):
        assert client.delete(f"/order/{order_id}", headers=auth_headers).status_code == 200
        assert client.delete(f"/order/{order_id}", headers=auth_headers).status_code == 404
        assert client.get(f"/order/{order_id}", headers=auth_headers).status_code == 404

    def test_malformed_id(self, client, auth_headers):
        response = client.get("/order/not-an-id", headers=auth_headers)
        assert response.status_code == 400

    def test_invoice_pdf(self, client, auth_headers, order_id):
        response = client.get(f"/order/invoice/{order_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == f"attachment; filename=invoice_{order_id}.pdf"
        assert response.content.startswith(b"%PDF")

    def test_invoice_missing_order(self, client, auth_headers, missing_id):
        assert client.get(f"/order/invoice/{missing_id}", headers=auth_headers).status_code == 404


def test_build_order_items_and_total():
    items = build_order_items([
        OrderItemInput(productId="p", name="n", images=["x"], size="M", quantity=2, price=10),
        OrderItemInput(productId="p", name="n", images=["x"], size="L", quantity=3, price=5),
    ])
    assert order_total(items) == 35


def test_build_order_items_rejects_fractional_quantity():
    with pytest.raises(ValidationError):
        build_order_items([OrderItemInput(productId="p", name="n", images=["x"], size="M", quantity=1.5, price=1)])
