import pytest

import app.api.admin as admin_api
from factories import create_product, register_store


def test_admin_routes_require_landlord(client, admin_headers):
    assert client.get("/admin/tenants", headers=admin_headers).status_code == 403
    assert client.get("/admin/tenants").status_code == 401


def test_list_and_search_tenants(client, plans, store, landlord_headers):
    register_store(client, plans["Pro"], subdomain="bookworm", email="owner@books.test")
    listed = client.get("/admin/tenants", headers=landlord_headers).json()
    assert listed["pagination"]["total"] == 2

    found = client.get("/admin/tenants", params={"search": "book"}, headers=landlord_headers).json()
    assert [t["subdomain"] for t in found["items"]] == ["bookworm"]
    assert found["items"][0]["plan_name"] == "Pro"

    by_plan = client.get("/admin/tenants", params={"plan_id": plans["Enterprise"]}, headers=landlord_headers).json()
    assert [t["subdomain"] for t in by_plan["items"]] == ["acme"]


def test_landlord_creates_tenant(client, plans, landlord_headers):
    response = client.post(
        "/admin/tenants",
        json={
            "name": "Mama Mboga",
            "subdomain": "mboga",
            "admin_email": "mama@mboga.test",
            "admin_name": "Mama",
            "plan_id": plans["Basic"],
        },
        headers=landlord_headers,
    )
    assert response.status_code == 201, response.text
    tenant_id = response.json()["id"]

    detail = client.get(f"/admin/tenants/{tenant_id}", headers=landlord_headers).json()
    assert detail["tenant"]["plan_name"] == "Basic"
    assert [s["email"] for s in detail["staff"]] == ["mama@mboga.test"]
    assert detail["subscription"]["plan"]["name"] == "Basic"


def test_change_subdomain_updates_storefront_lookup(client, store, store_headers, landlord_headers):
    assert client.get("/store/info", headers=store_headers).status_code == 200

    tenant_id = store["tenant"]["id"]
    response = client.put(f"/admin/tenants/{tenant_id}/subdomain", json={"subdomain": "acme-ke"}, headers=landlord_headers)
    assert response.status_code == 200
    assert response.json()["subdomain"] == "acme-ke"

    assert client.get("/store/info", headers=store_headers).status_code == 404
    assert client.get("/store/info", headers={"X-Tenant-Subdomain": "acme-ke"}).status_code == 200
    assert client.get("/store/info", headers={"Host": "acme-ke.dukanest.local"}).status_code == 200


def test_change_subdomain_conflicts(client, plans, store, landlord_headers):
    register_store(client, plans["Pro"], subdomain="taken", email="owner@taken.test")
    url = f"/admin/tenants/{store['tenant']['id']}/subdomain"
    assert client.put(url, json={"subdomain": "taken"}, headers=landlord_headers).status_code == 409
    assert client.put(url, json={"subdomain": "api"}, headers=landlord_headers).status_code == 400


def test_suspended_store_is_hidden(client, store, store_headers, landlord_headers):
    client.put(f"/admin/tenants/{store['tenant']['id']}/status", json={"status": "suspended"}, headers=landlord_headers)
    assert client.get("/store/info", headers=store_headers).status_code == 404


def test_delete_tenant_removes_its_data(client, store, admin_headers, landlord_headers):
    create_product(client, admin_headers)
    tenant_id = store["tenant"]["id"]
    assert client.delete(f"/admin/tenants/{tenant_id}", headers=landlord_headers).status_code == 204
    assert client.get(f"/admin/tenants/{tenant_id}", headers=landlord_headers).status_code == 404
    assert client.get("/admin/tenants", headers=landlord_headers).json()["pagination"]["total"] == 0


def test_landlord_cannot_demote_self(client, landlord_headers):
    me = client.get("/auth/me", headers=landlord_headers).json()
    response = client.put(f"/admin/users/{me['id']}", json={"role": "user"}, headers=landlord_headers)
    assert response.status_code == 400


def test_accounts_list_includes_memberships(client, store, landlord_headers):
    accounts = client.get("/admin/users", params={"search": "acme"}, headers=landlord_headers).json()["items"]
    assert [a["email"] for a in accounts] == ["owner@acme.test"]
    assert accounts[0]["memberships"][0]["subdomain"] == "acme"


def test_platform_dashboard(client, plans, store, landlord_headers):
    register_store(client, plans["Pro"], subdomain="second", email="owner@second.test")
    body = client.get("/admin/dashboard", headers=landlord_headers).json()
    assert body["tenants"]["total"] == 2
    assert body["tenants"]["by_status"]["active"] == 2
    assert body["monthly_recurring_revenue"] == pytest.approx(199.99 + 79.99)
    assert body["open_support_tickets"] == 0


class TestPricePlans:
    def test_public_pricing_sorted_by_price(self, client, plans):
        names = [p["name"] for p in client.get("/pricing").json()]
        assert names == ["Basic", "Pro", "Enterprise"]

    def test_create_update_delete(self, client, plans, landlord_headers):
        created = client.post(
            "/admin/price-plans",
            json={"name": "Starter", "price": "9.99", "features": {"max_products": 10}},
            headers=landlord_headers,
        )
        assert created.status_code == 201
        plan = created.json()
        assert plan["price"] == 9.99

        updated = client.put(
            f"/admin/price-plans/{plan['id']}", json={"status": "inactive"}, headers=landlord_headers
        ).json()
        assert updated["status"] == "inactive"
        assert "Starter" not in [p["name"] for p in client.get("/pricing").json()]

        assert client.delete(f"/admin/price-plans/{plan['id']}", headers=landlord_headers).status_code == 204

    def test_plan_in_use_cannot_be_deleted(self, client, plans, store, landlord_headers):
        response = client.delete(f"/admin/price-plans/{plans['Enterprise']}", headers=landlord_headers)
        assert response.status_code == 409

    def test_price_must_be_positive(self, client, landlord_headers):
        response = client.post("/admin/price-plans", json={"name": "Free", "price": "0"}, headers=landlord_headers)
        assert response.status_code == 400


class TestJobs:
    def test_enqueue_sync_job(self, client, store, landlord_headers, monkeypatch):
        enqueued = []

        async def fake_enqueue(function_name, job_id):
            enqueued.append((function_name, job_id))

        monkeypatch.setattr(admin_api, "enqueue_job", fake_enqueue)
        response = client.post(
            "/admin/jobs/sync-product-stock", json={"tenant_id": store["tenant"]["id"]}, headers=landlord_headers
        )
        assert response.status_code == 201
        job = response.json()
        assert job["status"] == "PENDING"
        assert job["job_type"] == "SYNC_PRODUCT_STOCK"
        assert enqueued == [("sync_product_stock_job", job["id"])]

        fetched = client.get(f"/admin/jobs/{job['id']}", headers=landlord_headers).json()
        assert fetched["input_data"] == {"tenant_id": store["tenant"]["id"]}

    def test_queue_unavailable_marks_job_failed(self, client, landlord_headers, monkeypatch):
        async def broken_pool(*args, **kwargs):
            raise OSError("connection refused")

        monkeypatch.setattr(admin_api, "create_pool", broken_pool)
        response = client.post("/admin/jobs/sync-product-stock", json={}, headers=landlord_headers)
        assert response.status_code == 503
        assert client.get("/admin/jobs/1", headers=landlord_headers).json()["status"] == "FAILED"
