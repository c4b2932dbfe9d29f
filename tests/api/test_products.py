from factories import create_attribute, create_product, create_variant, register_store


def test_create_product_generates_unique_slug(client, admin_headers):
    first = create_product(client, admin_headers)
    second = create_product(client, admin_headers)
    assert first["slug"] == "blue-shirt"
    assert second["slug"] == "blue-shirt-1"
    assert first["has_variants"] is False
    assert first["stock_quantity"] == 10


def test_duplicate_sku_conflicts(client, admin_headers):
    create_product(client, admin_headers, sku="SHIRT-1")
    response = client.post(
        "/products", json={"name": "Other", "price": "3.00", "sku": "SHIRT-1"}, headers=admin_headers
    )
    assert response.status_code == 409


def test_price_must_be_positive(client, admin_headers):
    response = client.post("/products", json={"name": "Free", "price": "0"}, headers=admin_headers)
    assert response.status_code == 400


def test_product_stock_follows_variants(client, admin_headers):
    size = create_attribute(client, admin_headers, "Size", ["Small", "Large"])
    color = create_attribute(client, admin_headers, "Color", ["Red"])
    small, large = (v["id"] for v in size["values"])
    red = color["values"][0]["id"]

    product = create_product(client, admin_headers, stock_quantity=50)
    v1 = create_variant(client, admin_headers, product["id"], [small, red], 3)
    create_variant(client, admin_headers, product["id"], [large, red], 4, price="30.00")

    assert v1["name"] == "Red - Small"
    assert v1["sku"] == "BLUE-RED-SMA-ACME"
    assert v1["effective_price"] == "25.00"

    detail = client.get(f"/products/{product['id']}", headers=admin_headers).json()
    assert detail["has_variants"] is True
    assert detail["stock_quantity"] == 7
    assert [v["effective_price"] for v in detail["variants"]] == ["25.00", "30.00"]

    # estoque enviado no produto é ignorado quando há variantes
    updated = client.put(f"/products/{product['id']}", json={"stock_quantity": 99}, headers=admin_headers).json()
    assert updated["stock_quantity"] == 7

    client.put(f"/products/{product['id']}/variants/{v1['id']}", json={"stock_quantity": 10}, headers=admin_headers)
    assert client.get(f"/products/{product['id']}", headers=admin_headers).json()["stock_quantity"] == 14


def test_duplicate_variant_combination(client, admin_headers):
    size = create_attribute(client, admin_headers, "Size", ["M"])
    value_id = size["values"][0]["id"]
    product = create_product(client, admin_headers)
    create_variant(client, admin_headers, product["id"], [value_id], 1)
    response = client.post(
        f"/products/{product['id']}/variants",
        json={"attribute_value_ids": [value_id], "stock_quantity": 1},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_one_value_per_attribute(client, admin_headers):
    size = create_attribute(client, admin_headers, "Size", ["S", "M"])
    product = create_product(client, admin_headers)
    response = client.post(
        f"/products/{product['id']}/variants",
        json={"attribute_value_ids": [v["id"] for v in size["values"]]},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_delete_product(client, admin_headers):
    product = create_product(client, admin_headers)
    assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/products/{product['id']}", headers=admin_headers).status_code == 404


def test_product_limit_of_plan(client, plans, landlord_headers):
    store = register_store(client, plans["Basic"], subdomain="tiny", email="owner@tiny.test")
    headers = {"Authorization": f"Bearer {store['access_token']}"}
    client.put(
        f"/admin/price-plans/{plans['Basic']}",
        json={"features": {"max_products": 1}},
        headers=landlord_headers,
    )
    create_product(client, headers)
    response = client.post("/products", json={"name": "Second", "price": "2.00"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"]["message"].startswith("Product limit reached (1/1)")



def test_storefront_lists_active_products(client, admin_headers, store_headers):
    create_product(client, admin_headers, name="Visible")
    create_product(client, admin_headers, name="Hidden", status="draft")
    items = client.get("/store/products", headers=store_headers).json()["items"]
    assert [p["name"] for p in items] == ["Visible"]

    detail = client.get("/store/products/visible", headers=store_headers).json()
    assert detail["in_stock"] is True
    assert client.get("/store/products/hidden", headers=store_headers).status_code == 404


def test_unknown_store_is_404(client):
    response = client.get("/store/info", headers={"X-Tenant-Subdomain": "ghost"})
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Store not found"
