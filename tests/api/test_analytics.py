import csv
import io
from datetime import datetime, timedelta, timezone

from factories import checkout, create_attribute, create_product, create_variant

CUSTOMER = {"name": "Jane Buyer", "email": "buyer@example.com", "password": "buyer-pass-1"}


def _today():
    return datetime.now(timezone.utc).date()


def _paid_order(client, admin_headers, store_headers, product_id, quantity=2, email="buyer@example.com"):
    order = checkout(client, store_headers, items=[{"product_id": product_id, "quantity": quantity}], email=email).json()
    response = client.put(f"/orders/{order['id']}", json={"payment_status": "paid"}, headers=admin_headers)
    assert response.status_code == 200, response.text
    return order


def _csv_rows(response):
    assert response.status_code == 200, response.text
    assert response.headers["content-type"].startswith("text/csv")
    return list(csv.reader(io.StringIO(response.text)))


# =============================================================================
# Receita
# =============================================================================


def test_revenue_counts_paid_orders_only(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    _paid_order(client, admin_headers, store_headers, product["id"])
    checkout(client, store_headers, items=[{"product_id": product["id"], "quantity": 1}])

    body = client.get("/analytics/revenue", headers=admin_headers).json()
    today = _today().isoformat()
    assert body["total_revenue"] == 50.0
    assert body["order_count"] == 1
    assert body["average_order_value"] == 50.0
    assert body["trends"] == [{"date": today, "revenue": 50.0}]
    assert body["period"]["group_by"] == "day"
    assert body["period"]["end_date"] == today


def test_revenue_grouped_by_month_and_week(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    _paid_order(client, admin_headers, store_headers, product["id"], quantity=1)
    _paid_order(client, admin_headers, store_headers, product["id"], quantity=3)

    today = _today()
    monthly = client.get("/analytics/revenue", params={"group_by": "month"}, headers=admin_headers).json()
    assert monthly["trends"] == [{"date": f"{today.year:04d}-{today.month:02d}", "revenue": 100.0}]

    weekly = client.get("/analytics/revenue", params={"group_by": "week"}, headers=admin_headers).json()
    monday = today - timedelta(days=today.weekday())
    assert weekly["trends"] == [{"date": monday.isoformat(), "revenue": 100.0}]


def test_revenue_period_validation(client, admin_headers):
    response = client.get(
        "/analytics/revenue", params={"start_date": "2026-02-10", "end_date": "2026-02-01"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert client.get("/analytics/revenue", params={"group_by": "year"}, headers=admin_headers).status_code == 400


def test_revenue_outside_period_is_empty(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    _paid_order(client, admin_headers, store_headers, product["id"])
    body = client.get(
        "/analytics/revenue", params={"start_date": "2020-01-01", "end_date": "2020-01-31"}, headers=admin_headers
    ).json()
    assert body["total_revenue"] == 0.0
    assert body["trends"] == []


# =============================================================================
# Clientes
# =============================================================================


def test_customer_analytics(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    client.post(
        "/store/auth/register",
        json={"name": "Window Shopper", "email": "window@example.com", "password": "window-pass-1"},
        headers=store_headers,
    )
    # o pedido fica com o último cliente logado
    client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    _paid_order(client, admin_headers, store_headers, product["id"])

    body = client.get("/analytics/customers", headers=admin_headers).json()
    assert body["total_customers"] == 2
    assert body["new_customers"] == 2
    assert body["customers_with_orders"] == 1
    assert body["conversion_rate"] == 50.0
    assert body["acquisition_trend"] == [{"date": _today().isoformat(), "count": 2}]
    assert [c["email"] for c in body["top_customers"]] == ["buyer@example.com"]
    assert body["top_customers"][0]["total_revenue"] == 50.0
    assert body["lifetime_value"] == {"average": 50.0, "average_order_value": 50.0}


def test_customer_analytics_for_empty_store(client, admin_headers):
    body = client.get("/analytics/customers", headers=admin_headers).json()
    assert body["total_customers"] == 0
    assert body["conversion_rate"] == 0.0
    assert body["top_customers"] == []


# =============================================================================
# Estoque
# =============================================================================


def test_inventory_analytics(client, admin_headers):
    category = client.post("/categories", json={"name": "Shirts"}, headers=admin_headers).json()
    create_product(client, admin_headers, name="Low", stock_quantity=2, category_id=category["id"])
    create_product(client, admin_headers, name="Gone", stock_quantity=0)
    create_product(client, admin_headers, name="Plenty", price="10.00", stock_quantity=50, category_id=category["id"])
    create_product(client, admin_headers, name="Hidden", stock_quantity=1, status="draft")
    size = create_attribute(client, admin_headers, "Size", ["S"])
    cap = create_product(client, admin_headers, name="Cap", price="5.00")
    create_variant(client, admin_headers, cap["id"], [size["values"][0]["id"]], 3)

    body = client.get("/analytics/inventory", headers=admin_headers).json()
    summary = body["summary"]
    assert summary["total_products"] == 4
    assert summary["total_variants"] == 1
    # Low (2) + Cap (3, soma das variantes) + variante S (3)
    assert summary["low_stock_count"] == 3
    assert summary["out_of_stock_count"] == 1
    assert summary["total_inventory_value"] == 2 * 25.0 + 50 * 10.0 + 3 * 5.0
    assert [v["stock_quantity"] for v in body["low_stock"]["variants"]] == [3]
    assert body["by_category"] == [{"id": category["id"], "name": "Shirts", "quantity": 52, "value": 550.0}]
    assert body["threshold"] == 10

    strict = client.get("/analytics/inventory", params={"low_stock_threshold": 2}, headers=admin_headers).json()
    assert strict["summary"]["low_stock_count"] == 1
    assert strict["threshold"] == 2


# =============================================================================
# Exportação
# =============================================================================


def test_export_revenue_csv(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    order = _paid_order(client, admin_headers, store_headers, product["id"])

    response = client.get("/analytics/export", params={"type": "revenue"}, headers=admin_headers)
    rows = _csv_rows(response)
    assert rows[0] == ["Date", "Order Number", "Amount"]
    assert rows[1][1:] == [order["order_number"], "50.0"]
    assert response.headers["content-disposition"].startswith('attachment; filename="revenue-')


def test_export_sales_csv_lists_items(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50, sku="SHIRT-1")
    _paid_order(client, admin_headers, store_headers, product["id"], quantity=3)

    rows = _csv_rows(client.get("/analytics/export", params={"type": "sales"}, headers=admin_headers))
    assert rows[0] == ["Date", "Order Number", "Product", "SKU", "Quantity", "Unit Price", "Total"]
    assert rows[1][2:] == ["Blue Shirt", "SHIRT-1", "3", "25.0", "75.0"]


def test_export_overview_csv_is_metric_value(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    _paid_order(client, admin_headers, store_headers, product["id"])

    rows = _csv_rows(client.get("/analytics/export", headers=admin_headers))
    assert rows[0] == ["Metric", "Value"]
    metrics = dict(rows[1:])
    assert metrics["Total Orders"] == "1"
    assert metrics["Total Revenue"] == "50.0"
    assert metrics["Active Products"] == "1"


def test_export_inventory_json(client, admin_headers):
    create_product(client, admin_headers, stock_quantity=4)
    response = client.get("/analytics/export", params={"type": "inventory", "format": "json"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-disposition"].endswith('.json"')
    assert response.json() == [
        {
            "Product": "Blue Shirt",
            "SKU": "",
            "Category": "Uncategorized",
            "Stock Quantity": 4,
            "Unit Price": 25.0,
            "Total Value": 100.0,
        }
    ]


def test_export_customers_csv(client, admin_headers, store_headers):
    product = create_product(client, admin_headers, stock_quantity=50)
    client.post("/store/auth/register", json=CUSTOMER, headers=store_headers)
    _paid_order(client, admin_headers, store_headers, product["id"])

    rows = _csv_rows(client.get("/analytics/export", params={"type": "customers"}, headers=admin_headers))
    assert rows[0] == ["Registration Date", "Name", "Email", "Total Orders", "Total Revenue"]
    assert rows[1][1:] == ["Jane Buyer", "buyer@example.com", "1", "50.0"]


def test_export_rejects_unknown_type(client, admin_headers):
    response = client.get("/analytics/export", params={"type": "taxes"}, headers=admin_headers)
    assert response.status_code == 400
