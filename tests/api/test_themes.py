def test_default_theme_is_installed_on_registration(client, admin_headers):
    current = client.get("/themes/current", headers=admin_headers)
    assert current.status_code == 200
    body = current.json()
    assert body["theme"]["slug"] == "default"
    assert body["colors"]["primary"] == "#3b82f6"


def test_theme_catalog_marks_active(client, admin_headers):
    themes = client.get("/themes", headers=admin_headers).json()
    active = [t["slug"] for t in themes if t["active"]]
    assert active == ["default"]
    assert "modern" in {t["slug"] for t in themes}


def test_install_and_customize(client, admin_headers):
    installed = client.post("/themes/install", json={"slug": "modern"}, headers=admin_headers).json()
    assert installed["created"] is True
    assert installed["theme"]["slug"] == "modern"

    customized = client.put(
        "/themes/current",
        json={"custom_colors": {"primary": "#ff0000"}, "custom_css": "body { margin: 0; }"},
        headers=admin_headers,
    ).json()
    assert customized["colors"]["primary"] == "#ff0000"
    assert customized["colors"]["secondary"] == "#8b5cf6"

    css = client.get("/themes/current/styles.css", headers=admin_headers)
    assert css.headers["content-type"].startswith("text/css")
    assert "--color-primary: #ff0000;" in css.text
    assert "body { margin: 0; }" in css.text

    # voltar ao default e reinstalar o modern mantém as customizações
    client.post("/themes/install", json={"slug": "default"}, headers=admin_headers)
    again = client.post("/themes/install", json={"slug": "modern"}, headers=admin_headers).json()
    assert again["created"] is False
    assert client.get("/themes/current", headers=admin_headers).json()["colors"]["primary"] == "#ff0000"


def test_install_unknown_theme(client, admin_headers):
    assert client.post("/themes/install", json={"slug": "nope"}, headers=admin_headers).status_code == 404
    assert client.post("/themes/install", json={}, headers=admin_headers).status_code == 400


def test_storefront_theme(client, store, store_headers):
    theme = client.get("/store/theme", headers=store_headers)
    assert theme.status_code == 200
    assert theme.json()["theme"]["slug"] == "default"


def test_installed_theme_cannot_be_deleted(client, landlord_headers, admin_headers):
    default = next(t for t in client.get("/themes", headers=admin_headers).json() if t["slug"] == "default")
    response = client.delete(f"/admin/themes/{default['id']}", headers=landlord_headers)
    assert response.status_code == 409
