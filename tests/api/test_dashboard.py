from factories import register_store


def test_settings_roundtrip(client, admin_headers):
    settings = client.get("/dashboard/settings", headers=admin_headers).json()
    assert settings["subdomain"] == "acme"
    assert settings["settings"]["low_stock_threshold"] == 10

    updated = client.put(
        "/dashboard/settings",
        json={"name": "Acme Kenya", "currency": "usd", "timezone": "Africa/Lagos", "custom_domain": "Shop.Acme.com"},
        headers=admin_headers,
    )
    assert updated.status_code == 200, updated.text
    body = updated.json()
    assert body["name"] == "Acme Kenya"
    assert body["currency"] == "USD"
    assert body["custom_domain"] == "shop.acme.com"


def test_settings_validation(client, admin_headers):
    assert client.put("/dashboard/settings", json={"currency": "XXX"}, headers=admin_headers).status_code == 400
    assert client.put("/dashboard/settings", json={"timezone": "Mars/Base"}, headers=admin_headers).status_code == 400
    assert (
        client.put("/dashboard/settings", json={"custom_domain": "x.dukanest.local"}, headers=admin_headers).status_code
        == 400
    )


def test_custom_domain_resolves_storefront(client, admin_headers):
    client.put("/dashboard/settings", json={"custom_domain": "shop.acme.com"}, headers=admin_headers)
    info = client.get("/store/info", headers={"Host": "shop.acme.com"})
    assert info.status_code == 200
    assert info.json()["subdomain"] == "acme"


def test_custom_domain_must_be_unique(client, plans, admin_headers):
    other = register_store(client, plans["Pro"], subdomain="other", email="owner@other.test")
    client.put("/dashboard/settings", json={"custom_domain": "shop.acme.com"}, headers=admin_headers)
    response = client.put(
        "/dashboard/settings",
        json={"custom_domain": "shop.acme.com"},
        headers={"Authorization": f"Bearer {other['access_token']}"},
    )
    assert response.status_code == 409


def test_currency_info(client, admin_headers):
    body = client.get("/settings/currency", headers=admin_headers).json()
    assert body["currency"] == "KES"
    assert "KES" in body["supported"]


def test_subscription_summary_and_change(client, plans):
    store = register_store(client, plans["Basic"], subdomain="growing", email="owner@growing.test")
    headers = {"Authorization": f"Bearer {store['access_token']}"}

    summary = client.get("/dashboard/subscription", headers=headers).json()
    assert summary["plan"]["name"] == "Basic"
    assert summary["status"] == "active"
    assert summary["days_until_expiry"] in (13, 14)

    downgrade = client.post(
        "/dashboard/subscription/change", json={"plan_id": plans["Basic"], "action": "downgrade"}, headers=headers
    )
    assert downgrade.status_code == 400

    upgraded = client.post(
        "/dashboard/subscription/change", json={"plan_id": plans["Pro"], "action": "upgrade"}, headers=headers
    ).json()
    assert upgraded["plan"]["name"] == "Pro"
    assert upgraded["subscription"]["action"] == "upgrade"
    assert upgraded["days_until_expiry"] in (29, 30)


def test_analytics_overview(client, admin_headers):
    response = client.get("/analytics/overview", headers=admin_headers)
    assert response.status_code == 200
