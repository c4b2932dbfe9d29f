CONTACT_FIELDS = [
    {"id": "f1", "type": "text", "label": "Name", "name": "name", "required": True},
    {"id": "f2", "type": "email", "label": "Email", "name": "email", "required": True},
    {"id": "f3", "type": "textarea", "label": "Message", "name": "message"},
]


def test_only_published_pages_reach_the_storefront(client, admin_headers, store_headers):
    draft = client.post("/pages", json={"title": "About Us"}, headers=admin_headers)
    assert draft.status_code == 201
    assert draft.json()["slug"] == "about-us"
    assert client.get("/store/pages/about-us", headers=store_headers).status_code == 404

    client.put(f"/pages/{draft.json()['id']}", json={"status": "published"}, headers=admin_headers)
    page = client.get("/store/pages/about-us", headers=store_headers)
    assert page.status_code == 200
    assert page.json()["title"] == "About Us"


def test_blog_posts(client, admin_headers, store_headers):
    category = client.post("/blogs/categories", json={"name": "News"}, headers=admin_headers).json()
    created = client.post(
        "/blogs",
        json={"title": "We are open", "content": "Hello", "category_id": category["id"], "status": "published"},
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    client.post("/blogs", json={"title": "Secret draft"}, headers=admin_headers)

    listed = client.get("/store/blogs", headers=store_headers).json()
    assert [b["title"] for b in listed["items"]] == ["We are open"]
    assert client.get("/store/blogs/we-are-open", headers=store_headers).status_code == 200


def test_form_submission(client, admin_headers, store_headers):
    form = client.post("/forms", json={"title": "Contact", "fields": CONTACT_FIELDS}, headers=admin_headers)
    assert form.status_code == 201, form.text
    form_id = form.json()["id"]

    public = client.get(f"/store/forms/{form_id}", headers=store_headers).json()
    assert [f["name"] for f in public["fields"]] == ["name", "email", "message"]

    invalid = client.post(f"/store/forms/{form_id}/submit", json={"name": "Jane"}, headers=store_headers)
    assert invalid.status_code == 400
    assert invalid.json()["error"]["details"]["fields"] == {"email": "Email is required"}

    ok = client.post(
        f"/store/forms/{form_id}/submit",
        json={"name": "Jane", "email": "JANE@example.com", "message": "Hi"},
        headers=store_headers,
    )
    assert ok.status_code == 201
    assert ok.json()["success"] is True

    submissions = client.get(f"/forms/{form_id}/submissions", headers=admin_headers).json()
    assert submissions["items"][0]["data"]["email"] == "jane@example.com"


def test_form_field_names_must_be_unique(client, admin_headers):
    fields = CONTACT_FIELDS + [{"id": "f4", "type": "text", "label": "Again", "name": "name"}]
    assert client.post("/forms", json={"title": "Dup", "fields": fields}, headers=admin_headers).status_code == 400


def test_media_upload(client, store, admin_headers, storage):
    response = client.post(
        "/media/upload",
        files={"file": ("banner blue.png", b"\x89PNG fake", "image/png")},
        data={"alt_text": "Banner"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    media = response.json()
    assert media["s3_key"].startswith(f"{store['tenant']['id']}/media/banner_blue_")
    assert media["s3_key"] in storage.objects

    detail = client.get(f"/media/{media['id']}", headers=admin_headers).json()
    assert detail["download_url"].startswith("http://storage.test/")

    assert client.delete(f"/media/{media['id']}", headers=admin_headers).status_code == 204
    assert storage.objects == {}


def test_media_rejects_unknown_type(client, admin_headers):
    response = client.post(
        "/media/upload", files={"file": ("x.exe", b"MZ", "application/octet-stream")}, headers=admin_headers
    )
    assert response.status_code == 400


def test_support_ticket_flow(client, admin_headers, store_headers):
    client.post(
        "/store/auth/register",
        json={"name": "Jane", "email": "jane@example.com", "password": "buyer-pass-1"},
        headers=store_headers,
    )
    ticket = client.post(
        "/store/support/tickets",
        json={"subject": "Where is my order?", "description": "Ordered last week"},
        headers=store_headers,
    )
    assert ticket.status_code == 201, ticket.text
    ticket_id = ticket.json()["id"]
    assert ticket.json()["status"] == "open"

    reply = client.post(
        f"/support/tickets/{ticket_id}/messages", json={"message": "Shipped today"}, headers=admin_headers
    )
    assert reply.status_code == 201

    detail = client.get(f"/store/support/tickets/{ticket_id}", headers=store_headers).json()
    assert [m["message"] for m in detail["messages"]] == ["Shipped today"]
    assert detail["status"] == "in_progress"


def test_store_to_platform_ticket(client, admin_headers, landlord_headers):
    created = client.post(
        "/landlord-support/tickets",
        json={"subject": "Billing question", "description": "Invoice?", "priority": "high"},
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    tickets = client.get("/admin/support/tickets", headers=landlord_headers).json()["items"]
    assert [t["subject"] for t in tickets] == ["Billing question"]
    assert client.get("/admin/dashboard", headers=landlord_headers).json()["open_support_tickets"] == 1
