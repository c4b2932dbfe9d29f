from factories import register_store


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_register_store(client, plans):
    body = register_store(client, plans["Basic"], subdomain="Nairobi-Shoes", email="Owner@Shoes.test")
    tenant = body["tenant"]
    assert tenant["subdomain"] == "nairobi-shoes"
    assert tenant["status"] == "active"
    assert tenant["plan_id"] == plans["Basic"]
    assert tenant["contact_email"] == "owner@shoes.test"
    assert tenant["expire_date"] is not None
    assert body["token_type"] == "bearer"


def test_register_rejects_reserved_subdomain(client, plans):
    response = client.post(
        "/tenants/register",
        json={
            "name": "Admin",
            "subdomain": "admin",
            "admin_email": "x@example.com",
            "admin_name": "X",
            "admin_password": "secret-pass-1",
        },
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "This subdomain is reserved and cannot be used"


def test_register_duplicate_subdomain(client, plans, store):
    response = client.post(
        "/tenants/register",
        json={
            "name": "Other",
            "subdomain": "ACME",
            "admin_email": "other@example.com",
            "admin_name": "Other",
            "admin_password": "secret-pass-1",
        },
    )
    assert response.status_code == 409


def test_validation_error_shape(client):
    response = client.post("/tenants/register", json={"name": "x"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"


def test_tenant_login_and_me(client, store):
    response = client.post("/auth/tenant/login", json={"email": "owner@acme.test", "password": "secret-pass-1"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["email"] == "owner@acme.test"
    assert me["role"] == "tenant_admin"
    assert me["tenant"]["subdomain"] == "acme"
    assert "products.create" in me["permissions"]
    assert "tenants.create" not in me["permissions"]


def test_login_wrong_password(client, store):
    response = client.post("/auth/tenant/login", json={"email": "owner@acme.test", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid credentials"


def test_login_with_two_stores_requires_selection(client, plans, store):
    register_store(client, plans["Pro"], subdomain="second", email="owner@acme.test")
    body = client.post("/auth/tenant/login", json={"email": "owner@acme.test", "password": "secret-pass-1"}).json()
    assert body["requires_tenant_selection"] is True
    assert body["access_token"] is None
    assert {t["subdomain"] for t in body["tenants"]} == {"acme", "second"}

    picked = client.post(
        "/auth/tenant/login",
        json={"email": "owner@acme.test", "password": "secret-pass-1", "subdomain": "second"},
    ).json()
    assert picked["access_token"]


def test_requests_without_token_are_rejected(client, store):
    assert client.get("/products").status_code == 401


def test_landlord_registration_closes_after_first(client, landlord_headers):
    response = client.post(
        "/auth/landlord/register",
        json={"email": "second@dukanest.test", "password": "landlord-pass", "name": "Second"},
    )
    assert response.status_code == 403


def test_staff_cannot_create_products(client, admin_headers):
    response = client.post(
        "/users",
        json={"email": "staff@acme.test", "name": "Staff", "role": "staff", "password": "staff-pass-1"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text

    token = client.post(
        "/auth/tenant/login", json={"email": "staff@acme.test", "password": "staff-pass-1"}
    ).json()["access_token"]
    staff_headers = {"Authorization": f"Bearer {token}"}
    assert client.get("/products", headers=staff_headers).status_code == 200
    assert client.post("/products", json={"name": "X", "price": "1.00"}, headers=staff_headers).status_code == 403


def test_store_is_isolated_per_tenant(client, plans, admin_headers):
    other = register_store(client, plans["Enterprise"], subdomain="other", email="owner@other.test")
    other_headers = {"Authorization": f"Bearer {other['access_token']}"}
    product = client.post("/products", json={"name": "Secret", "price": "5.00"}, headers=other_headers).json()

    assert client.get(f"/products/{product['id']}", headers=admin_headers).status_code == 404
    assert client.get("/products", headers=admin_headers).json()["items"] == []
