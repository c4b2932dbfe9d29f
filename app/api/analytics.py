import csv
import io
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy import func
from sqlmodel import Session, select

from app.api.common import isoformat_utc, money
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.lib.cache import cache, cache_keys
from app.model.base import ensure_utc, utc_now
from app.model.catalog import Category
from app.model.customer import Customer
from app.model.membership import Membership
from app.model.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.model.product import Product, ProductStatus, ProductVariant
from app.model.tenant import Tenant
from app.services.tenant_service import get_low_stock_threshold

router = APIRouter(prefix="/analytics", tags=["Analytics"])

OVERVIEW_TTL_SECONDS = 60
SALES_TTL_SECONDS = 300

# Pedidos cancelados/reembolsados não entram na receita
_NOT_REVENUE = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)


def _overview(session: Session, tenant: Tenant) -> dict[str, Any]:
    tenant_id = tenant.id
    revenue, revenue_orders = session.exec(
        select(func.coalesce(func.sum(Order.total_amount), 0), func.count(Order.id)).where(
            Order.tenant_id == tenant_id, Order.status.not_in(_NOT_REVENUE)
        )
    ).one()
    revenue = Decimal(str(revenue))
    total_orders = session.exec(select(func.count(Order.id)).where(Order.tenant_id == tenant_id)).one()
    by_status = {s.value: 0 for s in OrderStatus}
    for status, count in session.exec(
        select(Order.status, func.count(Order.id)).where(Order.tenant_id == tenant_id).group_by(Order.status)
    ).all():
        by_status[status.value if hasattr(status, "value") else status] = count

    threshold = get_low_stock_threshold(tenant)
    low_stock = session.exec(
        select(func.count(Product.id)).where(Product.tenant_id == tenant_id, Product.stock_quantity <= threshold)
    ).one()

    recent = session.exec(
        select(Order).where(Order.tenant_id == tenant_id).order_by(Order.created_at.desc(), Order.id.desc()).limit(5)
    ).all()
    top = session.exec(
        select(
            OrderItem.product_id,
            OrderItem.product_name,
            func.sum(OrderItem.quantity),
            func.sum(OrderItem.total),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .where(OrderItem.tenant_id == tenant_id, Order.status.not_in(_NOT_REVENUE))
        .group_by(OrderItem.product_id, OrderItem.product_name)
        .order_by(func.sum(OrderItem.quantity).desc())
        .limit(5)
    ).all()

    return {
        "total_revenue": money(revenue),
        "total_orders": total_orders,
        "total_customers": session.exec(select(func.count(Customer.id)).where(Customer.tenant_id == tenant_id)).one(),
        "total_products": session.exec(select(func.count(Product.id)).where(Product.tenant_id == tenant_id)).one(),
        "average_order_value": money(revenue / revenue_orders) if revenue_orders else 0.0,
        "orders_by_status": by_status,
        "low_stock_count": low_stock,
        "low_stock_threshold": threshold,
        "currency": tenant.currency,
        "recent_orders": [
            {
                "id": o.id,
                "order_number": o.order_number,
                "name": o.name,
                "total_amount": money(o.total_amount),
                "status": o.status.value,
                "created_at": isoformat_utc(o.created_at),
            }
            for o in recent
        ],
        "top_products": [
            {
                "product_id": product_id,
                "product_name": name,
                "quantity_sold": int(quantity or 0),
                "revenue": money(Decimal(str(total or 0))),
            }
            for product_id, name, quantity, total in top
        ],
    }


@router.get("/overview")
def analytics_overview(
    membership: Membership = Depends(require_permission("analytics.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """Resumo da loja. Cache de 60 s, invalidado por qualquer escrita em pedidos."""
    return cache.get_or_set(
        cache_keys.analytics_overview(tenant.id),
        lambda: _overview(session, tenant),
        OVERVIEW_TTL_SECONDS,
    )


def _sales(session: Session, tenant_id: int, days: int) -> dict[str, Any]:
    today = utc_now().date()
    start = today - timedelta(days=days - 1)
    buckets: dict[str, dict[str, Any]] = {
        (start + timedelta(days=i)).isoformat(): {"revenue": Decimal("0"), "orders": 0} for i in range(days)
    }
    rows = session.exec(
        select(Order.created_at, Order.total_amount).where(
            Order.tenant_id == tenant_id,
            Order.status.not_in(_NOT_REVENUE),
            Order.created_at >= utc_now() - timedelta(days=days),
        )
    ).all()
    for created_at, total in rows:
        day = ensure_utc(created_at).date().isoformat()
        bucket = buckets.get(day)
        if bucket is None:
            continue
        bucket["revenue"] += Decimal(str(total))
        bucket["orders"] += 1

    series = [{"date": day, "revenue": money(b["revenue"]), "orders": b["orders"]} for day, b in buckets.items()]
    return {
        "days": days,
        "total_revenue": money(sum((b["revenue"] for b in buckets.values()), Decimal("0"))),
        "total_orders": sum(b["orders"] for b in buckets.values()),
        "series": series,
    }


@router.get("/sales")
def analytics_sales(
    days: int = Query(30, ge=1, le=365),
    membership: Membership = Depends(require_permission("analytics.read")),
    session: Session = Depends(get_session),
):
    """Receita e número de pedidos por dia (UTC) nos últimos `days` dias."""
    return cache.get_or_set(
        cache_keys.analytics_sales(membership.tenant_id, f"days={days}"),
        lambda: _sales(session, membership.tenant_id, days),
        SALES_TTL_SECONDS,
    )


# ---------------------------------------------------------------------------
# Relatórios (receita, clientes, estoque) e exportação
# ---------------------------------------------------------------------------

DEFAULT_PERIOD_DAYS = 30


def _period(start_date: Optional[date], end_date: Optional[date]) -> tuple[date, date, datetime, datetime]:
    """Período fechado [start_date, end_date]; padrão: últimos 30 dias."""
    end = end_date or utc_now().date()
    start = start_date or end - timedelta(days=DEFAULT_PERIOD_DAYS - 1)
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must be before end_date")
    start_at = datetime.combine(start, time.min, tzinfo=timezone.utc)
    end_before = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return start, end, start_at, end_before


def _period_info(start: date, end: date, **extra) -> dict[str, Any]:
    return {"start_date": start.isoformat(), "end_date": end.isoformat(), **extra}


def _bucket(day: date, group_by: str) -> str:
    if group_by == "week":
        # semana começa na segunda-feira
        return (day - timedelta(days=day.weekday())).isoformat()
    if group_by == "month":
        return f"{day.year:04d}-{day.month:02d}"
    return day.isoformat()


def _paid_orders(session: Session, tenant_id: int, start_at: datetime, end_before: datetime) -> list[Order]:
    return list(
        session.exec(
            select(Order)
            .where(
                Order.tenant_id == tenant_id,
                Order.payment_status == PaymentStatus.PAID,
                Order.created_at >= start_at,
                Order.created_at < end_before,
            )
            .order_by(Order.created_at, Order.id)
        ).all()
    )


def _revenue(session: Session, tenant_id: int, start_date, end_date, group_by: str) -> dict[str, Any]:
    start, end, start_at, end_before = _period(start_date, end_date)
    orders = _paid_orders(session, tenant_id, start_at, end_before)
    by_period: dict[str, Decimal] = {}
    for order in orders:
        key = _bucket(ensure_utc(order.created_at).date(), group_by)
        by_period[key] = by_period.get(key, Decimal("0")) + Decimal(str(order.total_amount))
    total = sum(by_period.values(), Decimal("0"))
    return {
        "total_revenue": money(total),
        "order_count": len(orders),
        "average_order_value": money(round(total / len(orders), 2)) if orders else 0.0,
        "trends": [{"date": key, "revenue": money(value)} for key, value in sorted(by_period.items())],
        "period": _period_info(start, end, group_by=group_by),
    }


@router.get("/revenue")
def analytics_revenue(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: Literal["day", "week", "month"] = "day",
    membership: Membership = Depends(require_permission("analytics.read")),
    session: Session = Depends(get_session),
):
    """Receita de pedidos pagos no período, agrupada por dia, semana ou mês."""
    return _revenue(session, membership.tenant_id, start_date, end_date, group_by)


def _customer_revenue(session: Session, tenant_id: int) -> dict[int, tuple[Decimal, int]]:
    """customer_id -> (receita paga, número de pedidos pagos)."""
    rows = session.exec(
        select(Order.customer_id, func.sum(Order.total_amount), func.count(Order.id))
        .where(
            Order.tenant_id == tenant_id,
            Order.payment_status == PaymentStatus.PAID,
            Order.customer_id.is_not(None),
        )
        .group_by(Order.customer_id)
    ).all()
    return {customer_id: (Decimal(str(total or 0)), count) for customer_id, total, count in rows}


def _customers(session: Session, tenant_id: int, start_date, end_date) -> dict[str, Any]:
    start, end, start_at, end_before = _period(start_date, end_date)
    total_customers = session.exec(select(func.count(Customer.id)).where(Customer.tenant_id == tenant_id)).one()
    new_in_period = session.exec(
        select(Customer.created_at).where(
            Customer.tenant_id == tenant_id,
            Customer.created_at >= start_at,
            Customer.created_at < end_before,
        )
    ).all()
    customers_with_orders = session.exec(
        select(func.count(func.distinct(Order.customer_id))).where(
            Order.tenant_id == tenant_id, Order.customer_id.is_not(None)
        )
    ).one()

    acquisition: dict[str, int] = {}
    for created_at in new_in_period:
        key = ensure_utc(created_at).date().isoformat()
        acquisition[key] = acquisition.get(key, 0) + 1

    revenue_by_customer = _customer_revenue(session, tenant_id)
    top_ids = sorted(revenue_by_customer, key=lambda cid: revenue_by_customer[cid][0], reverse=True)[:10]
    top = {
        c.id: c
        for c in session.exec(select(Customer).where(Customer.tenant_id == tenant_id, Customer.id.in_(top_ids))).all()
    }
    paid_revenue = sum((value for value, _ in revenue_by_customer.values()), Decimal("0"))
    paid_orders = sum(count for _, count in revenue_by_customer.values())

    return {
        "total_customers": total_customers,
        "new_customers": len(new_in_period),
        "customers_with_orders": customers_with_orders,
        "conversion_rate": round(customers_with_orders / total_customers * 100, 2) if total_customers else 0.0,
        "acquisition_trend": [{"date": key, "count": count} for key, count in sorted(acquisition.items())],
        "top_customers": [
            {
                "id": cid,
                "name": top[cid].name if cid in top else None,
                "email": top[cid].email if cid in top else None,
                "total_revenue": money(revenue_by_customer[cid][0]),
                "order_count": revenue_by_customer[cid][1],
            }
            for cid in top_ids
        ],
        "lifetime_value": {
            "average": money(round(paid_revenue / customers_with_orders, 2)) if customers_with_orders else 0.0,
            "average_order_value": money(round(paid_revenue / paid_orders, 2)) if paid_orders else 0.0,
        },
        "period": _period_info(start, end),
    }


@router.get("/customers")
def analytics_customers(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    membership: Membership = Depends(require_permission("analytics.read")),
    session: Session = Depends(get_session),
):
    """Clientes novos no período, conversão, melhores clientes e valor médio por cliente."""
    return _customers(session, membership.tenant_id, start_date, end_date)


def _inventory(session: Session, tenant: Tenant, threshold: int) -> dict[str, Any]:
    tenant_id = tenant.id
    active = (Product.tenant_id == tenant_id, Product.status == ProductStatus.ACTIVE)
    products = session.exec(select(Product).where(*active).order_by(Product.stock_quantity, Product.name)).all()
    variants = session.exec(
        select(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .where(ProductVariant.tenant_id == tenant_id)
        .order_by(ProductVariant.stock_quantity, ProductVariant.id)
    ).all()
    categories = {
        c.id: c.name for c in session.exec(select(Category).where(Category.tenant_id == tenant_id)).all()
    }

    low_products = [p for p in products if 1 <= (p.stock_quantity or 0) <= threshold]
    low_variants = [(v, p) for v, p in variants if 1 <= (v.stock_quantity or 0) <= threshold]
    out_products = sum(1 for p in products if not p.stock_quantity)
    out_variants = sum(1 for v, _ in variants if not v.stock_quantity)

    total_value = Decimal("0")
    by_category: dict[int, dict[str, Any]] = {}
    for p in products:
        value = Decimal(p.stock_quantity or 0) * Decimal(str(p.price))
        total_value += value
        if p.category_id is None:
            continue
        entry = by_category.setdefault(
            p.category_id,
            {"id": p.category_id, "name": categories.get(p.category_id, "Uncategorized"), "quantity": 0, "value": Decimal("0")},
        )
        entry["quantity"] += p.stock_quantity or 0
        entry["value"] += value

    return {
        "summary": {
            "total_products": len(products),
            "total_variants": len(variants),
            "low_stock_count": len(low_products) + len(low_variants),
            "out_of_stock_count": out_products + out_variants,
            "total_inventory_value": money(total_value),
        },
        "low_stock": {
            "products": [
                {"id": p.id, "name": p.name, "sku": p.sku, "stock_quantity": p.stock_quantity, "price": money(p.price)}
                for p in low_products
            ],
            "variants": [
                {
                    "id": v.id,
                    "product_id": p.id,
                    "product_name": p.name,
                    "variant_name": v.name,
                    "sku": v.sku,
                    "stock_quantity": v.stock_quantity,
                }
                for v, p in low_variants
            ],
        },
        "out_of_stock": {"products": out_products, "variants": out_variants},
        "by_category": [
            {**entry, "value": money(entry["value"])}
            for entry in sorted(by_category.values(), key=lambda e: e["value"], reverse=True)
        ],
        "threshold": threshold,
        "currency": tenant.currency,
    }


@router.get("/inventory")
def analytics_inventory(
    low_stock_threshold: Optional[int] = Query(None, ge=0),
    membership: Membership = Depends(require_permission("analytics.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """Valor do estoque, itens com estoque baixo/zerado e estoque por categoria (produtos ativos)."""
    threshold = low_stock_threshold if low_stock_threshold is not None else get_low_stock_threshold(tenant)
    return _inventory(session, tenant, threshold)


def _export_rows(session: Session, tenant: Tenant, kind: str, start_date, end_date) -> tuple[Any, str]:
    """Linhas (lista de dicts; dict único no overview) e nome base do arquivo."""
    start, end, start_at, end_before = _period(start_date, end_date)
    suffix = f"{start.isoformat()}-{end.isoformat()}"

    if kind == "revenue":
        rows = [
            {"Date": ensure_utc(o.created_at).date().isoformat(), "Order Number": o.order_number, "Amount": money(o.total_amount)}
            for o in _paid_orders(session, tenant.id, start_at, end_before)
        ]
        return rows, f"revenue-{suffix}"

    if kind == "sales":
        items = session.exec(
            select(OrderItem, Order, Product)
            .join(Order, Order.id == OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id, isouter=True)
            .where(
                OrderItem.tenant_id == tenant.id,
                Order.payment_status == PaymentStatus.PAID,
                Order.created_at >= start_at,
                Order.created_at < end_before,
            )
            .order_by(Order.created_at, OrderItem.id)
        ).all()
        rows = [
            {
                "Date": ensure_utc(o.created_at).date().isoformat(),
                "Order Number": o.order_number,
                "Product": i.product_name,
                "SKU": (p.sku if p else None) or "",
                "Quantity": i.quantity,
                "Unit Price": money(i.price),
                "Total": money(i.total),
            }
            for i, o, p in items
        ]
        return rows, f"sales-{suffix}"

    if kind == "customers":
        customers = session.exec(
            select(Customer)
            .where(Customer.tenant_id == tenant.id, Customer.created_at >= start_at, Customer.created_at < end_before)
            .order_by(Customer.created_at, Customer.id)
        ).all()
        revenue_by_customer = _customer_revenue(session, tenant.id)
        rows = [
            {
                "Registration Date": ensure_utc(c.created_at).date().isoformat(),
                "Name": c.name or "",
                "Email": c.email,
                "Total Orders": revenue_by_customer.get(c.id, (Decimal("0"), 0))[1],
                "Total Revenue": money(revenue_by_customer.get(c.id, (Decimal("0"), 0))[0]),
            }
            for c in customers
        ]
        return rows, f"customers-{suffix}"

    if kind == "inventory":
        categories = {
            c.id: c.name for c in session.exec(select(Category).where(Category.tenant_id == tenant.id)).all()
        }
        products = session.exec(
            select(Product)
            .where(Product.tenant_id == tenant.id, Product.status == ProductStatus.ACTIVE)
            .order_by(Product.name, Product.id)
        ).all()
        rows = [
            {
                "Product": p.name,
                "SKU": p.sku or "",
                "Category": categories.get(p.category_id, "Uncategorized"),
                "Stock Quantity": p.stock_quantity or 0,
                "Unit Price": money(p.price),
                "Total Value": money(Decimal(p.stock_quantity or 0) * Decimal(str(p.price))),
            }
            for p in products
        ]
        return rows, f"inventory-{utc_now().date().isoformat()}"

    orders_in_period = (Order.tenant_id == tenant.id, Order.created_at >= start_at, Order.created_at < end_before)
    paid_total = sum((Decimal(str(o.total_amount)) for o in _paid_orders(session, tenant.id, start_at, end_before)), Decimal("0"))
    summary = {
        "Period": f"{start.isoformat()} to {end.isoformat()}",
        "Total Orders": session.exec(select(func.count(Order.id)).where(*orders_in_period)).one(),
        "Total Revenue": money(paid_total),
        "New Customers": session.exec(
            select(func.count(Customer.id)).where(
                Customer.tenant_id == tenant.id, Customer.created_at >= start_at, Customer.created_at < end_before
            )
        ).one(),
        "Active Products": session.exec(
            select(func.count(Product.id)).where(Product.tenant_id == tenant.id, Product.status == ProductStatus.ACTIVE)
        ).one(),
    }
    return summary, f"overview-{suffix}"


@router.get("/export")
def analytics_export(
    type: Literal["overview", "revenue", "sales", "customers", "inventory"] = "overview",
    format: Literal["csv", "json"] = "csv",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    membership: Membership = Depends(require_permission("analytics.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """Exporta um relatório em CSV ou JSON. O overview vira pares Metric,Value no CSV."""
    data, filename = _export_rows(session, tenant, type, start_date, end_date)
    if format == "json":
        return JSONResponse(
            content=data,
            headers={"Content-Disposition": f'attachment; filename="{filename}.json"'},
        )

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    if isinstance(data, dict):
        writer.writerow(["Metric", "Value"])
        writer.writerows(data.items())
    elif data:
        writer.writerow(list(data[0]))
        writer.writerows([list(row.values()) for row in data])
    buffer.seek(0)
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )
