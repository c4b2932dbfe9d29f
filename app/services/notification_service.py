"""
Avisos do painel da loja.

Não há tabela de notificações: os avisos são montados na hora a partir de
pedidos novos, pagamentos pendentes/falhos e estoque baixo.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlmodel import Session, select

from app.lib.cache import cache, cache_keys
from app.lib.tenant_format import format_money
from app.model.base import ensure_utc, utc_now
from app.model.order import Order, OrderStatus, PaymentStatus
from app.model.product import Product, ProductStatus, ProductVariant
from app.model.tenant import Tenant
from app.services import email_service
from app.services.tenant_service import get_low_stock_threshold

logger = logging.getLogger(__name__)

FEED_LIMIT = 20
SECTION_LIMIT = 10
DIGEST_SECTION_LIMIT = 20
DIGEST_INTERVAL_SECONDS = 3600


def _notification(
    id: str, type: str, title: str, message: str, link: str, created_at: datetime, metadata: dict[str, Any]
) -> dict[str, Any]:
    return {
        "id": id,
        "type": type,
        "title": title,
        "message": message,
        "link": link,
        "created_at": ensure_utc(created_at),
        "read": False,
        "metadata": metadata,
    }


def new_order_notifications(session: Session, tenant: Tenant, limit: int = SECTION_LIMIT) -> list[dict[str, Any]]:
    orders = session.exec(
        select(Order)
        .where(Order.tenant_id == tenant.id, Order.status.in_((OrderStatus.PENDING, OrderStatus.PROCESSING)))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    ).all()
    return [
        _notification(
            f"order-{o.id}",
            "new_order",
            "New Order",
            f"Order {o.order_number} - {format_money(o.total_amount, tenant.currency)}",
            f"/dashboard/orders/{o.id}",
            o.created_at,
            {"order_id": o.id, "order_number": o.order_number, "amount": float(o.total_amount)},
        )
        for o in orders
    ]


def payment_notifications(
    session: Session, tenant: Tenant, payment_status: PaymentStatus, limit: int = SECTION_LIMIT
) -> list[dict[str, Any]]:
    """Pedidos não cancelados com pagamento pendente ou falho."""
    orders = session.exec(
        select(Order)
        .where(
            Order.tenant_id == tenant.id,
            Order.payment_status == payment_status,
            Order.status != OrderStatus.CANCELLED,
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    ).all()
    if payment_status == PaymentStatus.FAILED:
        prefix, kind, title, template = "payment-failed", "failed_payment", "Failed Payment", "Payment failed for order {}"
    else:
        prefix, kind, title, template = "payment-pending", "pending_payment", "Pending Payment", "Order {} is awaiting payment"
    return [
        _notification(
            f"{prefix}-{o.id}",
            kind,
            title,
            template.format(o.order_number),
            f"/dashboard/orders/{o.id}",
            o.created_at,
            {"order_id": o.id, "order_number": o.order_number},
        )
        for o in orders
    ]


def low_stock_notifications(session: Session, tenant: Tenant, limit: int = SECTION_LIMIT) -> list[dict[str, Any]]:
    """
    Produtos sem variantes e variantes com estoque <= limite da loja,
    do menor estoque para o maior.
    """
    threshold = get_low_stock_threshold(tenant)
    has_variants = select(ProductVariant.id).where(ProductVariant.product_id == Product.id).exists()
    products = session.exec(
        select(Product)
        .where(
            Product.tenant_id == tenant.id,
            Product.status.in_((ProductStatus.ACTIVE, ProductStatus.DRAFT)),
            Product.stock_quantity <= threshold,
            ~has_variants,
        )
        .order_by(Product.stock_quantity, Product.id)
        .limit(limit)
    ).all()
    variants = session.exec(
        select(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .where(
            ProductVariant.tenant_id == tenant.id,
            Product.status.in_((ProductStatus.ACTIVE, ProductStatus.DRAFT)),
            ProductVariant.stock_quantity <= threshold,
        )
        .order_by(ProductVariant.stock_quantity, ProductVariant.id)
        .limit(limit)
    ).all()

    items = [(p.stock_quantity, f"product-{p.id}", p.name, f"/dashboard/products/{p.id}", p.id, None) for p in products]
    items += [
        (v.stock_quantity, f"variant-{v.id}", f"{p.name} ({v.name})", f"/dashboard/products/{p.id}", p.id, v.id)
        for v, p in variants
    ]
    items.sort(key=lambda item: item[0])

    now = utc_now()
    return [
        _notification(
            f"low-stock-{key}",
            "low_stock",
            "Low Stock Alert",
            f"{name} - {stock} units remaining",
            link,
            now,
            {"product_id": product_id, "variant_id": variant_id, "stock_quantity": stock},
        )
        for stock, key, name, link, product_id, variant_id in items[:limit]
    ]


def collect_notifications(session: Session, tenant: Tenant) -> list[dict[str, Any]]:
    """Todos os avisos do painel, mais recentes primeiro."""
    notifications = (
        new_order_notifications(session, tenant)
        + payment_notifications(session, tenant, PaymentStatus.PENDING)
        + payment_notifications(session, tenant, PaymentStatus.FAILED)
        + low_stock_notifications(session, tenant)
    )
    notifications.sort(key=lambda n: n["created_at"], reverse=True)
    return notifications


def digest_notifications(session: Session, tenant: Tenant) -> list[dict[str, Any]]:
    return payment_notifications(
        session, tenant, PaymentStatus.PENDING, limit=DIGEST_SECTION_LIMIT
    ) + low_stock_notifications(session, tenant, limit=DIGEST_SECTION_LIMIT)


def send_digest(session: Session, tenant: Tenant) -> dict[str, Any]:
    """
    Envia o resumo por email para o contato da loja, no máximo uma vez por hora.

    Retorna {"sent", "skipped", "reason", "count"}.
    """
    key = cache_keys.notification_digest(tenant.id)
    if cache.get(key) is not None:
        return {"sent": False, "skipped": True, "reason": "rate_limited", "count": 0}
    if not tenant.contact_email:
        return {"sent": False, "skipped": True, "reason": "no_contact_email", "count": 0}

    notifications = digest_notifications(session, tenant)
    if not notifications:
        return {"sent": False, "skipped": True, "reason": "no_notifications", "count": 0}

    sent = email_service.send_notification_digest(tenant.contact_email, tenant.name, notifications)
    if sent:
        cache.set(key, utc_now().isoformat(), DIGEST_INTERVAL_SECONDS)
    else:
        logger.warning(f"Resumo de avisos não enviado (tenant={tenant.id})")
    return {"sent": sent, "skipped": False, "reason": None, "count": len(notifications)}
