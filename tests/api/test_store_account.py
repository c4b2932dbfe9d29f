from factories import checkout, create_product, register_store

CUSTOMER = {"name": "Jane Buyer", "email": "buyer@example.com", "password": "buyer-pass-1"}


def test_register_sets_session_cookie(client, store, store_headers):
    response = client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["customer"]["email"] == "buyer@example.com"
    assert body["customer"]["email_verified"] is False
    assert "customer_session" in client.cookies

    profile = client.get("/store/profile", headers=store_headers)
    assert profile.status_code == 200
    assert profile.json()["name"] == "Jane Buyer"


def test_duplicate_registration(client, store, store_headers):
    client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    response = client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    assert response.status_code == 409


def test_guest_cart_and_orders_follow_the_customer(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    # pedido de convidado com o mesmo email
    checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 1}])
    client.post("/store/cart", json={"product_id": product["id"], "quantity": 3}, headers=store_headers)

    body = client.post("/store/auth/register", json=CUSTOMER, headers=store_headers).json()
    assert body["merged_cart_items"] == 1
    assert body["linked_orders"] == 1

    cart = client.get("/store/cart", headers=store_headers).json()
    assert cart["item_count"] == 3
    orders = client.get("/store/profile/orders", headers=store_headers).json()
    assert len(orders["items"]) == 1


def test_login_and_logout(client, store, store_headers):
    client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    client.post("/store/auth/logout", headers=store_headers)
    client.cookies.clear()
    assert client.get("/store/profile", headers=store_headers).status_code == 401

    bad = client.post(
        "/store/auth/login", json={"email": CUSTOMER["email"], "password": "wrong-pass"}, headers=store_headers
    )
    assert bad.status_code == 401
    assert bad.json()["error"]["message"] == "Invalid credentials"

    good = client.post(
        "/store/auth/login", json={"email": CUSTOMER["email"], "password": CUSTOMER["password"]}, headers=store_headers
    )
    assert good.status_code == 200
    assert client.get("/store/profile", headers=store_headers).status_code == 200


def test_session_does_not_cross_stores(client, plans, store_headers):
    register_store(client, plans["Pro"], subdomain="other", email="owner@other.test")
    client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    response = client.get("/store/profile", headers={"X-Tenant-Subdomain": "other"})
    assert response.status_code == 401


def test_staff_sees_customers(client, admin_headers, store_headers):
    client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    listed = client.get("/customers", headers=admin_headers).json()
    assert [c["email"] for c in listed["items"]] == ["buyer@example.com"]

    export = client.get("/customers/export", headers=admin_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert "buyer@example.com" in export.text
