from factories import create_attribute, create_product, create_variant


def _adjust(client, headers, **body):
    return client.post("/inventory/adjust", json=body, headers=headers)


def test_adjust_records_history(client, admin_headers):
    product = create_product(client, admin_headers, stock_quantity=5)

    increased = _adjust(client, admin_headers, product_id=product["id"], adjustment_type="increase", quantity=3)
    assert increased.status_code == 201
    assert increased.json()["quantity_before"] == 5
    assert increased.json()["quantity_after"] == 8
    assert increased.json()["quantity_change"] == 3

    decreased = _adjust(client, admin_headers, product_id=product["id"], adjustment_type="decrease", quantity=20).json()
    assert decreased["quantity_after"] == 0
    assert decreased["quantity_change"] == -8

    history = client.get("/inventory/history", params={"product_id": product["id"]}, headers=admin_headers).json()
    assert [h["adjustment_type"] for h in history["items"]] == ["decrease", "increase"]


def test_adjust_requires_exactly_one_target(client, admin_headers):
    assert _adjust(client, admin_headers, adjustment_type="set", quantity=1).status_code == 400


def test_product_with_variants_is_adjusted_through_variants(client, admin_headers):
    size = create_attribute(client, admin_headers, "Size", ["S"])
    product = create_product(client, admin_headers)
    variant = create_variant(client, admin_headers, product["id"], [size["values"][0]["id"]], 2)

    assert _adjust(client, admin_headers, product_id=product["id"], adjustment_type="set", quantity=9).status_code == 400

    response = _adjust(client, admin_headers, variant_id=variant["id"], adjustment_type="set", quantity=9)
    assert response.status_code == 201
    assert client.get(f"/products/{product['id']}", headers=admin_headers).json()["stock_quantity"] == 9


def test_bulk_adjust_reports_each_row(client, admin_headers):
    product = create_product(client, admin_headers, stock_quantity=1)
    response = client.post(
        "/inventory/bulk",
        json={
            "adjustments": [
                {"product_id": product["id"], "adjustment_type": "increase", "quantity": 4},
                {"product_id": 99999, "adjustment_type": "increase", "quantity": 1},
            ]
        },
        headers=admin_headers,
    ).json()
    assert response["processed"] == 2
    assert response["succeeded"] == 1
    assert response["results"][0]["quantity_after"] == 5
    assert response["results"][1]["error"] == "Product not found"


def test_low_stock_alerts_follow_threshold(client, admin_headers):
    create_product(client, admin_headers, name="Plenty", stock_quantity=50)
    create_product(client, admin_headers, name="Few", stock_quantity=3)
    create_product(client, admin_headers, name="None", stock_quantity=0)

    alerts = client.get("/inventory/alerts", headers=admin_headers).json()
    assert alerts["threshold"] == 10
    assert [(p["name"], p["out_of_stock"]) for p in alerts["products"]] == [("None", True), ("Few", False)]

    client.put("/inventory/settings", json={"low_stock_threshold": 0}, headers=admin_headers)
    alerts = client.get("/inventory/alerts", headers=admin_headers).json()
    assert [p["name"] for p in alerts["products"]] == ["None"]


# =============================================================================
# Planilha CSV
# =============================================================================


def _upload(client, headers, content: str, filename="stock.csv", content_type="text/csv"):
    return client.post(
        "/inventory/bulk/import",
        files={"file": (filename, content.encode("utf-8"), content_type)},
        headers=headers,
    )


def test_bulk_template_lists_store_items(client, admin_headers):
    create_product(client, admin_headers, sku="SHIRT-1")
    size = create_attribute(client, admin_headers, "Size", ["S"])
    cap = create_product(client, admin_headers, name="Cap")
    variant = create_variant(client, admin_headers, cap["id"], [size["values"][0]["id"]], 2)

    response = client.get("/inventory/bulk/template", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.startswith("\ufeff")

    lines = response.text.lstrip("\ufeff").splitlines()
    assert lines[0] == "Type,SKU,Adjustment Type,Quantity,Reason"
    assert "product,SHIRT-1,set,10,restock" in lines
    assert f"product,{cap['id']},set,10,restock" in lines
    assert f"variant,{variant['sku']},increase,5,manual_adjustment" in lines


def test_bulk_import_resolves_rows_for_bulk_update(client, admin_headers):
    product = create_product(client, admin_headers, sku="SHIRT-1", stock_quantity=5)
    size = create_attribute(client, admin_headers, "Size", ["S"])
    cap = create_product(client, admin_headers, name="Cap")
    variant = create_variant(client, admin_headers, cap["id"], [size["values"][0]["id"]], 4)

    content = (
        "\ufeffType,SKU,Adjustment Type,Quantity,Reason\n"
        "product,SHIRT-1,increase,5,restock\n"
        f"variant,{variant['id']},reduce,1,\n"
        "product,NOPE-404,set,3,\n"
        "product,SHIRT-1,set,lots,\n"
    )
    response = _upload(client, admin_headers, content)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["summary"] == {"total_rows": 4, "valid_updates": 2, "parse_errors": 1, "resolution_errors": 1}
    assert body["updates"][0] == {
        "product_id": product["id"],
        "variant_id": None,
        "adjustment_type": "increase",
        "quantity": 5,
        "reason": "restock",
    }
    assert body["updates"][1]["variant_id"] == variant["id"]
    assert body["updates"][1]["product_id"] is None
    assert body["updates"][1]["adjustment_type"] == "decrease"
    assert [(e["row"], e["sku"]) for e in body["errors"]] == [(4, "NOPE-404"), (5, "SHIRT-1")]
    assert body["errors"][0]["error"] == "Product not found"

    # nada foi aplicado ainda
    assert client.get(f"/products/{product['id']}", headers=admin_headers).json()["stock_quantity"] == 5

    applied = client.post("/inventory/bulk", json={"adjustments": body["updates"]}, headers=admin_headers).json()
    assert applied["succeeded"] == 2
    assert client.get(f"/products/{product['id']}", headers=admin_headers).json()["stock_quantity"] == 10
    assert client.get(f"/products/{cap['id']}", headers=admin_headers).json()["stock_quantity"] == 3


def test_bulk_import_rejects_bad_files(client, admin_headers):
    create_product(client, admin_headers, sku="SHIRT-1")

    not_csv = _upload(client, admin_headers, "hello", filename="stock.txt", content_type="text/plain")
    assert not_csv.status_code == 400
    assert not_csv.json()["error"]["message"] == "File must be a CSV"

    header_only = _upload(client, admin_headers, "Type,SKU,Adjustment Type,Quantity\n")
    assert header_only.status_code == 400

    missing = _upload(client, admin_headers, "Type,SKU,Quantity\nproduct,SHIRT-1,3\n")
    assert missing.status_code == 400
    assert missing.json()["error"]["message"] == "Missing required headers: adjustment type"

    nothing_valid = _upload(client, admin_headers, "Type,SKU,Adjustment Type,Quantity\nproduct,NOPE,set,1\n")
    assert nothing_valid.status_code == 400
    assert nothing_valid.json()["error"]["message"] == "No valid rows found in CSV"


def test_bulk_import_without_file(client, admin_headers):
    response = client.post("/inventory/bulk/import", headers=admin_headers)
    assert response.status_code == 400
