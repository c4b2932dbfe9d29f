import asyncio
from datetime import timedelta

from sqlmodel import Session, update

from app.db.session import engine
from app.model.base import utc_now
from app.model.job import Job, JobStatus, JobType
from app.model.product import Product
from app.model.tenant import Tenant
from app.worker.job import check_subscription_expiry, sync_product_stock_job
from factories import create_attribute, create_product, create_variant, register_store


def _new_job(tenant_id):
    with Session(engine) as s:
        job = Job(job_type=JobType.SYNC_PRODUCT_STOCK, tenant_id=tenant_id, input_data={"tenant_id": tenant_id})
        s.add(job)
        s.commit()
        s.refresh(job)
        return job.id


def test_sync_job_repairs_drifted_stock(client, store, admin_headers):
    size = create_attribute(client, admin_headers, "Size", ["S", "M"])
    product = create_product(client, admin_headers)
    for value in size["values"]:
        create_variant(client, admin_headers, product["id"], [value["id"]], 2)

    with Session(engine) as s:
        s.exec(update(Product).where(Product.id == product["id"]).values(stock_quantity=40))
        s.commit()

    job_id = _new_job(store["tenant"]["id"])
    result = asyncio.run(sync_product_stock_job({}, job_id))
    assert result["ok"] is True
    assert result["products_updated"] == 1

    with Session(engine) as s:
        assert s.get(Product, product["id"]).stock_quantity == 4
        job = s.get(Job, job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result_data == {"products_checked": 1, "products_updated": 1}
        assert job.completed_at is not None


def test_sync_job_runs_once(store):
    job_id = _new_job(None)
    assert asyncio.run(sync_product_stock_job({}, job_id))["ok"] is True
    again = asyncio.run(sync_product_stock_job({}, job_id))
    assert again["error"] == "job_not_pending"


def test_missing_job(database):
    assert asyncio.run(sync_product_stock_job({}, 12345))["error"] == "job_not_found"


def test_expiry_cron(client, plans):
    overdue = register_store(client, plans["Basic"], subdomain="overdue", email="a@overdue.test")
    soon = register_store(client, plans["Basic"], subdomain="soon", email="b@soon.test")
    register_store(client, plans["Basic"], subdomain="later", email="c@later.test")

    now = utc_now()
    with Session(engine) as s:
        s.exec(update(Tenant).where(Tenant.id == overdue["tenant"]["id"]).values(expire_date=now - timedelta(days=1)))
        s.exec(update(Tenant).where(Tenant.id == soon["tenant"]["id"]).values(expire_date=now + timedelta(days=3)))
        s.commit()

    result = asyncio.run(check_subscription_expiry({}))
    assert result == {"expired": 1, "reminders_sent": 1, "errors": []}

    with Session(engine) as s:
        assert s.get(Tenant, overdue["tenant"]["id"]).status.value == "expired"
        assert s.get(Tenant, soon["tenant"]["id"]).status.value == "active"

    assert client.get("/store/info", headers={"X-Tenant-Subdomain": "overdue"}).status_code == 404
