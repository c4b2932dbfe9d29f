from decimal import Decimal

import pytest

from app.services import email_service
from factories import checkout, create_attribute, create_product, create_variant


def _stock(client, headers, product_id):
    return client.get(f"/products/{product_id}", headers=headers).json()["stock_quantity"]


def test_guest_cart_checkout_decrements_stock(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=5)

    added = client.post("/store/cart", json={"product_id": product["id"], "quantity": 2}, headers=store_headers)
    assert added.status_code == 201
    assert "cart_session_id" in client.cookies
    assert added.json()["item_count"] == 2

    response = checkout(client, store_headers)
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["total_amount"] == "50.00"
    assert order["order_number"].startswith("ORD-")
    assert [(i["product_name"], i["quantity"]) for i in order["items"]] == [("Blue Shirt", 2)]

    assert _stock(client, admin_headers, product["id"]) == 3
    # carrinho esvaziado após a compra
    assert client.get("/store/cart", headers=store_headers).json()["items"] == []


def test_checkout_with_explicit_items_and_variant(client, admin_headers, store_headers):
    size = create_attribute(client, admin_headers, "Size", ["Large"])
    product = create_product(client, admin_headers)
    variant = create_variant(client, admin_headers, product["id"], [size["values"][0]["id"]], 4, price="40.00")

    response = checkout(client, store_headers, items=[{"product_id": product["id"], "variant_id": variant["id"], "quantity": 3}])
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["total_amount"] == "120.00"
    assert order["items"][0]["product_name"] == "Blue Shirt (Large)"

    detail = client.get(f"/products/{product['id']}", headers=admin_headers).json()
    assert detail["variants"][0]["stock_quantity"] == 1
    assert detail["stock_quantity"] == 1


def test_insufficient_stock(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=1)
    response = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 2}])
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Insufficient stock for Blue Shirt. Available: 1"
    assert _stock(client, admin_headers, product["id"]) == 1


def test_empty_cart(client, store, store_headers):
    response = checkout(client, store_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cart is empty"


def _place(client, admin_headers, store_headers, quantity=2):
    product = create_product(client, admin_headers, stock_quantity=5)
    order = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": quantity}]).json()
    return product, order


def test_status_transitions(client, admin_headers, store_headers):
    _, order = _place(client, admin_headers, store_headers)
    url = f"/orders/{order['id']}"

    assert client.put(url, json={"status": "shipped"}, headers=admin_headers).status_code == 400
    assert client.put(url, json={"status": "processing"}, headers=admin_headers).json()["status"] == "processing"
    assert client.put(url, json={"status": "shipped"}, headers=admin_headers).json()["status"] == "shipped"
    delivered = client.put(url, json={"status": "delivered"}, headers=admin_headers).json()
    assert delivered["status"] == "delivered"
    assert delivered["status_label"] == "Delivered"
    assert client.put(url, json={"status": "cancelled"}, headers=admin_headers).status_code == 400


def test_cancel_restores_stock(client, admin_headers, store_headers):
    product, order = _place(client, admin_headers, store_headers, quantity=2)
    assert _stock(client, admin_headers, product["id"]) == 3

    response = client.post(
        f"/orders/{order['id']}/cancel", json={"reason": "Customer request", "refund": True}, headers=admin_headers
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "cancelled"
    assert body["payment_status"] == "refunded"
    assert body["cancel_reason"] == "Customer request"
    assert _stock(client, admin_headers, product["id"]) == 5

    again = client.post(f"/orders/{order['id']}/cancel", json={"reason": "again"}, headers=admin_headers)
    assert again.status_code == 400
    assert _stock(client, admin_headers, product["id"]) == 5


def test_only_closed_orders_can_be_deleted(client, admin_headers, store_headers):
    _, order = _place(client, admin_headers, store_headers)
    assert client.delete(f"/orders/{order['id']}", headers=admin_headers).status_code == 400
    client.post(f"/orders/{order['id']}/cancel", json={"reason": "x"}, headers=admin_headers)
    assert client.delete(f"/orders/{order['id']}", headers=admin_headers).status_code == 204


def test_order_list_and_tracking(client, admin_headers, store_headers):
    _, order = _place(client, admin_headers, store_headers)
    listed = client.get("/orders", headers=admin_headers).json()
    assert [o["order_number"] for o in listed["items"]] == [order["order_number"]]

    tracked = client.get(
        "/store/orders/track",
        params={"order_number": order["order_number"], "email": "buyer@example.com"},
        headers=store_headers,
    )
    assert tracked.status_code == 200
    assert tracked.json()["id"] == order["id"]


def _product_with_sizes(client, admin_headers):
    size = create_attribute(client, admin_headers, "Size", ["Small", "Medium"])
    product = create_product(client, admin_headers)
    small = create_variant(client, admin_headers, product["id"], [size["values"][0]["id"]], 5)
    medium = create_variant(client, admin_headers, product["id"], [size["values"][1]["id"]], 5)
    return product, small, medium


def _variant_stocks(client, headers, product_id):
    detail = client.get(f"/products/{product_id}", headers=headers).json()
    return detail["stock_quantity"], {v["id"]: v["stock_quantity"] for v in detail["variants"]}


def test_cancel_restores_variant_stock_and_reconciles_product(client, admin_headers, store_headers):
    product, small, medium = _product_with_sizes(client, admin_headers)
    order = checkout(
        client, store_headers, items=[{"product_id": product["id"], "variant_id": small["id"], "quantity": 2}]
    ).json()
    assert _variant_stocks(client, admin_headers, product["id"]) == (8, {small["id"]: 3, medium["id"]: 5})

    response = client.post(f"/orders/{order['id']}/cancel", json={"reason": "Out of time"}, headers=admin_headers)
    assert response.status_code == 200, response.text
    assert _variant_stocks(client, admin_headers, product["id"]) == (10, {small["id"]: 5, medium["id"]: 5})


def test_cancel_after_variant_deleted_keeps_product_equal_to_variant_sum(client, admin_headers, store_headers):
    product, small, medium = _product_with_sizes(client, admin_headers)
    order = checkout(
        client, store_headers, items=[{"product_id": product["id"], "variant_id": small["id"], "quantity": 2}]
    ).json()
    deleted = client.delete(f"/products/{product['id']}/variants/{small['id']}", headers=admin_headers)
    assert deleted.status_code == 204

    response = client.post(f"/orders/{order['id']}/cancel", json={"reason": "Discontinued"}, headers=admin_headers)
    assert response.status_code == 200, response.text
    # as unidades da variante excluída não voltam para lugar nenhum
    assert _variant_stocks(client, admin_headers, product["id"]) == (5, {medium["id"]: 5})


def test_cancel_plain_line_after_variants_were_added(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=5)
    order = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 2}]).json()
    size = create_attribute(client, admin_headers, "Size", ["Large"])
    large = create_variant(client, admin_headers, product["id"], [size["values"][0]["id"]], 4)

    client.post(f"/orders/{order['id']}/cancel", json={"reason": "Changed mind"}, headers=admin_headers)
    assert _variant_stocks(client, admin_headers, product["id"]) == (4, {large["id"]: 4})


class TestCancellationEmail:
    @pytest.fixture
    def sent(self, monkeypatch):
        calls = []

        def fake_send(to_email, customer_name, store_name, order_number, reason, refund_amount=None, currency="KES"):
            calls.append({"order_number": order_number, "refund_amount": refund_amount})
            return True

        monkeypatch.setattr(email_service, "send_order_cancelled", fake_send)
        return calls

    def _paid_order(self, client, admin_headers, store_headers):
        _, order = _place(client, admin_headers, store_headers)
        paid = client.put(f"/orders/{order['id']}", json={"payment_status": "paid"}, headers=admin_headers)
        assert paid.json()["payment_status"] == "paid"
        return order

    def test_paid_and_refunded_reports_amount(self, client, admin_headers, store_headers, sent):
        order = self._paid_order(client, admin_headers, store_headers)
        client.post(f"/orders/{order['id']}/cancel", json={"reason": "x", "refund": True}, headers=admin_headers)
        assert sent == [{"order_number": order["order_number"], "refund_amount": Decimal("50.00")}]

    def test_paid_without_refund_has_no_amount(self, client, admin_headers, store_headers, sent):
        order = self._paid_order(client, admin_headers, store_headers)
        response = client.post(f"/orders/{order['id']}/cancel", json={"reason": "x", "refund": False}, headers=admin_headers)
        assert response.json()["payment_status"] == "paid"
        assert sent[0]["refund_amount"] is None

    def test_unpaid_with_refund_has_no_amount(self, client, admin_headers, store_headers, sent):
        _, order = _place(client, admin_headers, store_headers)
        client.post(f"/orders/{order['id']}/cancel", json={"reason": "x", "refund": True}, headers=admin_headers)
        assert sent[0]["refund_amount"] is None


def test_order_writes_refresh_cached_overview(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=5)
    first = client.get("/analytics/overview", headers=admin_headers).json()
    assert first["total_orders"] == 0

    order = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 2}]).json()
    after_checkout = client.get("/analytics/overview", headers=admin_headers).json()
    assert after_checkout["total_orders"] == 1
    assert after_checkout["total_revenue"] == 50.0

    client.post(f"/orders/{order['id']}/cancel", json={"reason": "x"}, headers=admin_headers)
    after_cancel = client.get("/analytics/overview", headers=admin_headers).json()
    assert after_cancel["total_revenue"] == 0.0
    assert after_cancel["orders_by_status"]["cancelled"] == 1
