"""Helpers para montar dados via API nos testes."""
from fastapi.testclient import TestClient

SHIPPING = {"address": "Moi Avenue 1", "city": "Nairobi", "country": "KE"}


def register_store(client: TestClient, plan_id: int | None, subdomain: str = "acme", email: str = "owner@acme.test") -> dict:
    response = client.post(
        "/tenants/register",
        json={
            "name": f"{subdomain.title()} Store",
            "subdomain": subdomain,
            "admin_email": email,
            "admin_name": "Store Owner",
            "admin_password": "secret-pass-1",
            "plan_id": plan_id,
            "currency": "KES",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_product(client: TestClient, headers: dict, **overrides) -> dict:
    body = {"name": "Blue Shirt", "price": "25.00", "stock_quantity": 10}
    body.update(overrides)
    response = client.post("/products", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_attribute(client: TestClient, headers: dict, name: str, values: list[str]) -> dict:
    response = client.post(
        "/attributes",
        json={"name": name, "values": [{"value": v} for v in values]},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_variant(client: TestClient, headers: dict, product_id: int, value_ids: list[int], stock: int, **extra) -> dict:
    response = client.post(
        f"/products/{product_id}/variants",
        json={"attribute_value_ids": value_ids, "stock_quantity": stock, **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def checkout(client: TestClient, store_headers: dict, items: list[dict] | None = None, email: str = "buyer@example.com"):
    body = {"name": "Jane Buyer", "email": email, "shipping_address": SHIPPING}
    if items is not None:
        body["items"] = items
    return client.post("/store/checkout", json=body, headers=store_headers)
