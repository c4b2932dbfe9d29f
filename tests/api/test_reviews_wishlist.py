from factories import create_product, register_store

CUSTOMER = {"name": "Jane Buyer", "email": "buyer@example.com", "password": "buyer-pass-1"}


def _login(client, store_headers, **overrides):
    response = client.post("/store/auth/register", json={**CUSTOMER, **overrides}, headers=store_headers)
    assert response.status_code == 201, response.text
    return response.json()["customer"]


def _review(client, store_headers, product_id, rating=5, comment="Great shirt"):
    return client.post(
        "/store/reviews",
        json={"product_id": product_id, "rating": rating, "comment": comment},
        headers=store_headers,
    )


# =============================================================================
# Lista de desejos
# =============================================================================


def test_wishlist_add_list_remove(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)

    added = client.post("/store/profile/wishlist", json={"product_id": product["id"]}, headers=store_headers)
    assert added.status_code == 201, added.text
    assert added.json()["product"]["slug"] == product["slug"]
    assert added.json()["product"]["price"] == "25.00"

    listed = client.get("/store/profile/wishlist", headers=store_headers).json()
    assert [item["product"]["id"] for item in listed] == [product["id"]]

    removed = client.delete(f"/store/profile/wishlist/{product['id']}", headers=store_headers)
    assert removed.status_code == 204
    assert client.get("/store/profile/wishlist", headers=store_headers).json() == []
    assert client.delete(f"/store/profile/wishlist/{product['id']}", headers=store_headers).status_code == 404


def test_wishlist_rejects_duplicates_and_unknown_products(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)

    client.post("/store/profile/wishlist", json={"product_id": product["id"]}, headers=store_headers)
    duplicate = client.post("/store/profile/wishlist", json={"product_id": product["id"]}, headers=store_headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["error"]["message"] == "Product already in wishlist"

    missing = client.post("/store/profile/wishlist", json={"product_id": 99999}, headers=store_headers)
    assert missing.status_code == 404


def test_wishlist_requires_login(client, store_headers):
    assert client.get("/store/profile/wishlist", headers=store_headers).status_code == 401


def test_wishlist_ignores_products_from_other_stores(client, plans, store_headers):
    other = register_store(client, plans["Pro"], subdomain="other", email="owner@other.test")
    foreign = create_product(client, {"Authorization": f"Bearer {other['access_token']}"})
    _login(client, store_headers)

    response = client.post("/store/profile/wishlist", json={"product_id": foreign["id"]}, headers=store_headers)
    assert response.status_code == 404


def test_deleting_product_clears_wishlist_and_reviews(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)
    client.post("/store/profile/wishlist", json={"product_id": product["id"]}, headers=store_headers)
    _review(client, store_headers, product["id"])

    assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 204
    assert client.get("/store/profile/wishlist", headers=store_headers).json() == []
    assert client.get("/store/profile/reviews", headers=store_headers).json() == []


# =============================================================================
# Avaliações
# =============================================================================


def test_review_starts_pending_and_is_hidden_from_storefront(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)

    created = _review(client, store_headers, product["id"], rating=4)
    assert created.status_code == 201, created.text
    assert created.json()["status"] == "pending"
    assert created.json()["customer_name"] == "Jane Buyer"

    public = client.get(f"/store/products/{product['slug']}/reviews", headers=store_headers).json()
    assert public["review_count"] == 0
    assert public["average_rating"] is None

    mine = client.get("/store/profile/reviews", headers=store_headers).json()
    assert [r["rating"] for r in mine] == [4]


def test_one_review_per_product(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)
    _review(client, store_headers, product["id"])

    again = _review(client, store_headers, product["id"], rating=1)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "You have already reviewed this product"


def test_review_rating_range(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)
    assert _review(client, store_headers, product["id"], rating=0).status_code == 400
    assert _review(client, store_headers, product["id"], rating=6).status_code == 400
    assert _review(client, store_headers, product["id"], comment="").status_code == 400


def test_approved_reviews_are_public_with_average(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)
    first = _review(client, store_headers, product["id"], rating=5).json()

    client.post("/store/auth/logout", headers=store_headers)
    client.cookies.clear()
    _login(client, store_headers, email="second@example.com", name="Sam Second")
    second = _review(client, store_headers, product["id"], rating=2, comment="Too small").json()

    for review in (first, second):
        moderated = client.put(f"/reviews/{review['id']}", json={"status": "approved"}, headers=admin_headers)
        assert moderated.status_code == 200
        assert moderated.json()["status"] == "approved"

    public = client.get(f"/store/products/{product['slug']}/reviews", headers=store_headers).json()
    assert public["review_count"] == 2
    assert public["average_rating"] == 3.5
    assert {r["customer_name"] for r in public["reviews"]} == {"Jane Buyer", "Sam Second"}


def test_staff_moderation_filters_and_delete(client, admin_headers, store_headers):
    product = create_product(client, admin_headers)
    _login(client, store_headers)
    review = _review(client, store_headers, product["id"]).json()

    pending = client.get("/reviews", params={"status": "pending"}, headers=admin_headers).json()
    assert [r["id"] for r in pending["items"]] == [review["id"]]
    assert pending["pagination"]["total"] == 1

    client.put(f"/reviews/{review['id']}", json={"status": "rejected"}, headers=admin_headers)
    assert client.get("/reviews", params={"status": "pending"}, headers=admin_headers).json()["items"] == []
    assert client.get(f"/store/products/{product['slug']}/reviews", headers=store_headers).json()["review_count"] == 0

    assert client.delete(f"/reviews/{review['id']}", headers=admin_headers).status_code == 204
    assert client.put(f"/reviews/{review['id']}", json={"status": "approved"}, headers=admin_headers).status_code == 404


def test_reviews_of_unknown_product(client, store, store_headers):
    assert client.get("/store/products/nope/reviews", headers=store_headers).status_code == 404
