import pytest
from sqlmodel import select

from app.model.tenant import Tenant
from app.services import email_service
from factories import checkout, create_attribute, create_product, create_variant


@pytest.fixture
def digests(monkeypatch):
    sent = []

    def fake_send(to_email, store_name, notifications, app_url=None):
        sent.append({"to": to_email, "store": store_name, "ids": [n["id"] for n in notifications]})
        return True

    monkeypatch.setattr(email_service, "send_notification_digest", fake_send)
    return sent


def _feed(client, headers):
    response = client.get("/notifications", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_empty_store_has_no_notifications(client, admin_headers):
    feed = _feed(client, admin_headers)
    assert feed == {"notifications": [], "unread_count": 0, "total": 0}


def test_new_order_and_pending_payment(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    order = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 2}]).json()

    feed = _feed(client, admin_headers)
    ids = {n["id"] for n in feed["notifications"]}
    assert ids == {f"order-{order['id']}", f"payment-pending-{order['id']}"}
    assert feed["unread_count"] == 2

    new_order = next(n for n in feed["notifications"] if n["type"] == "new_order")
    assert order["order_number"] in new_order["message"]
    assert new_order["link"] == f"/dashboard/orders/{order['id']}"
    assert new_order["metadata"]["amount"] == 50.0


def test_failed_payment_and_cancelled_orders(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    failed = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 1}]).json()
    cancelled = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 1}]).json()
    client.put(f"/orders/{failed['id']}", json={"payment_status": "failed"}, headers=admin_headers)
    client.post(f"/orders/{cancelled['id']}/cancel", json={"reason": "Customer request"}, headers=admin_headers)

    ids = {n["id"] for n in _feed(client, admin_headers)["notifications"]}
    assert f"payment-failed-{failed['id']}" in ids
    assert f"payment-pending-{cancelled['id']}" not in ids
    assert f"order-{cancelled['id']}" not in ids


def test_low_stock_uses_store_threshold(client, admin_headers):
    low = create_product(client, admin_headers, name="Almost Gone", stock_quantity=2)
    create_product(client, admin_headers, name="Plenty", stock_quantity=50)
    size = create_attribute(client, admin_headers, "Size", ["S", "M"])
    shirt = create_product(client, admin_headers, name="Shirt")
    small = create_variant(client, admin_headers, shirt["id"], [size["values"][0]["id"]], 1)
    create_variant(client, admin_headers, shirt["id"], [size["values"][1]["id"]], 40)

    alerts = [n for n in _feed(client, admin_headers)["notifications"] if n["type"] == "low_stock"]
    assert [n["id"] for n in alerts] == [f"low-stock-variant-{small['id']}", f"low-stock-product-{low['id']}"]
    assert alerts[0]["metadata"]["variant_id"] == small["id"]

    client.put("/inventory/settings", json={"low_stock_threshold": 0}, headers=admin_headers)
    assert [n for n in _feed(client, admin_headers)["notifications"] if n["type"] == "low_stock"] == []


def test_feed_is_capped(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=100)
    for _ in range(12):
        checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 1}])

    feed = _feed(client, admin_headers)
    # 10 pedidos novos + 10 pagamentos pendentes por seção
    assert feed["total"] == 20
    assert len(feed["notifications"]) == 20


def test_digest_is_sent_once_per_hour(client, admin_headers, store_headers, digests):
    product = create_product(client, admin_headers, stock_quantity=50)
    order = checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 1}]).json()

    first = client.post("/notifications/digest", headers=admin_headers).json()
    assert first == {"sent": True, "skipped": False, "reason": None, "count": 1}
    assert digests == [{"to": "owner@acme.test", "store": "Acme Store", "ids": [f"payment-pending-{order['id']}"]}]

    second = client.post("/notifications/digest", headers=admin_headers).json()
    assert second["skipped"] is True
    assert second["reason"] == "rate_limited"
    assert len(digests) == 1


def test_digest_skips_when_nothing_to_report(client, admin_headers, digests):
    create_product(client, admin_headers, stock_quantity=50)
    response = client.post("/notifications/digest", headers=admin_headers).json()
    assert response["reason"] == "no_notifications"
    assert digests == []


def test_digest_needs_contact_email(client, admin_headers, store_headers, session, digests):
    tenant = session.exec(select(Tenant).where(Tenant.subdomain == "acme")).one()
    tenant.contact_email = None
    session.add(tenant)
    session.commit()

    create_product(client, admin_headers, stock_quantity=1)
    response = client.post("/notifications/digest", headers=admin_headers).json()
    assert response["reason"] == "no_contact_email"
    assert digests == []
