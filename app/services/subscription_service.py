from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from app.lib.plan_limits import PLAN_LIMIT_KEYS, RESOURCES, evaluate_limit, get_plan_limits
from app.model.base import ensure_utc, utc_now
from app.model.content import Blog, Page
from app.model.customer import Customer
from app.model.media import Media
from app.model.membership import Membership, MembershipStatus
from app.model.order import Order
from app.model.price_plan import PricePlan, PricePlanStatus
from app.model.product import Product
from app.model.tenant import Tenant, TenantStatus

logger = logging.getLogger(__name__)

# recurso -> modelo contado por tenant_id
_COUNTED_MODELS: dict[str, Any] = {
    "products": Product,
    "orders": Order,
    "customers": Customer,
    "pages": Page,
    "blogs": Blog,
}


def count_resource(session: Session, tenant_id: int, resource: str) -> int:
    if resource == "staff_users":
        return session.exec(
            select(func.count(Membership.id)).where(
                Membership.tenant_id == tenant_id,
                Membership.status != MembershipStatus.REMOVED,
            )
        ).one()
    model = _COUNTED_MODELS[resource]
    return session.exec(select(func.count(model.id)).where(model.tenant_id == tenant_id)).one()


def storage_used_mb(session: Session, tenant_id: int) -> float:
    total = session.exec(
        select(func.coalesce(func.sum(Media.file_size), 0)).where(Media.tenant_id == tenant_id)
    ).one()
    return round(int(total) / (1024 * 1024), 2)


def check_limit(session: Session, tenant: Tenant, resource: str) -> tuple[bool, str | None]:
    """(allowed, reason) para criar mais um item de `resource` na loja."""
    if not tenant.plan_id:
        return False, "No active subscription plan"
    plan = session.get(PricePlan, tenant.plan_id)
    if not plan:
        return False, "Subscription plan not found"
    current = count_resource(session, tenant.id, resource)
    return evaluate_limit(plan.features, resource, current)


def enforce_limit(session: Session, tenant: Tenant, resource: str) -> None:
    allowed, reason = check_limit(session, tenant, resource)
    if not allowed:
        raise HTTPException(status_code=403, detail=reason)


def check_storage(session: Session, tenant: Tenant, additional_bytes: int) -> tuple[bool, str | None]:
    if not tenant.plan_id:
        return False, "No active subscription plan"
    plan = session.get(PricePlan, tenant.plan_id)
    if not plan:
        return False, "Subscription plan not found"
    limit = get_plan_limits(plan.features).get("max_storage_mb")
    if limit is None or limit == -1:
        return True, None
    used = storage_used_mb(session, tenant.id)
    if used + additional_bytes / (1024 * 1024) > limit:
        return False, f"Storage limit reached ({used}/{limit} MB). Please upgrade your plan to upload more files."
    return True, None


def get_tenant_usage(session: Session, tenant: Tenant) -> dict[str, Any]:
    plan = session.get(PricePlan, tenant.plan_id) if tenant.plan_id else None
    limits = get_plan_limits(plan.features if plan else None)
    usage: dict[str, Any] = {}
    for resource, (key, *_rest) in RESOURCES.items():
        usage[resource] = {"used": count_resource(session, tenant.id, resource), "limit": limits.get(key)}
    usage["storage_mb"] = {"used": storage_used_mb(session, tenant.id), "limit": limits.get("max_storage_mb")}
    return usage


def days_until_expiry(tenant: Tenant) -> int | None:
    expire = ensure_utc(tenant.expire_date)
    if expire is None:
        return None
    return (expire - utc_now()).days


def change_plan(session: Session, tenant: Tenant, plan: PricePlan, action: str) -> Tenant:
    """
    upgrade | downgrade | renew. Nova expiração = agora + duration_months.
    Reativa lojas expiradas. Não faz commit.
    """
    if plan.status != PricePlanStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Price plan is not active")
    current = session.get(PricePlan, tenant.plan_id) if tenant.plan_id else None
    if action == "renew" and current is not None and current.id != plan.id:
        raise HTTPException(status_code=400, detail="Renew must keep the current plan")
    if action == "upgrade" and current is not None and plan.price <= current.price:
        raise HTTPException(status_code=400, detail="Upgrade requires a more expensive plan")
    if action == "downgrade" and current is not None and plan.price >= current.price:
        raise HTTPException(status_code=400, detail="Downgrade requires a cheaper plan")

    now = utc_now()
    tenant.plan_id = plan.id
    tenant.expire_date = now + timedelta(days=30 * max(plan.duration_months, 1))
    if tenant.status == TenantStatus.EXPIRED:
        tenant.status = TenantStatus.ACTIVE
    data = dict(tenant.data or {})
    data["subscription"] = {
        "plan_name": plan.name,
        "price": str(plan.price),
        "action": action,
        "started_at": now.isoformat(),
    }
    tenant.data = data
    tenant.updated_at = now
    session.add(tenant)
    logger.info(f"Assinatura da loja {tenant.id}: {action} -> plano {plan.id}")
    return tenant


def expire_overdue_tenants(session: Session, now=None) -> list[Tenant]:
    """Marca como EXPIRED as lojas ativas com expire_date no passado. Não faz commit."""
    now = now or utc_now()
    expired: list[Tenant] = []
    tenants = session.exec(
        select(Tenant).where(Tenant.status == TenantStatus.ACTIVE, Tenant.expire_date.is_not(None))
    ).all()
    for tenant in tenants:
        if ensure_utc(tenant.expire_date) < now:
            tenant.status = TenantStatus.EXPIRED
            tenant.updated_at = now
            session.add(tenant)
            expired.append(tenant)
    if expired:
        logger.info(f"{len(expired)} loja(s) marcada(s) como expiradas")
    return expired


def tenants_due_for_reminder(session: Session, days: int = 7, now=None) -> list[tuple[Tenant, PricePlan]]:
    """Lojas ativas com plano cuja assinatura vence nos próximos `days` dias."""
    now = now or utc_now()
    horizon = now + timedelta(days=days)
    rows = session.exec(
        select(Tenant, PricePlan)
        .join(PricePlan, PricePlan.id == Tenant.plan_id)
        .where(Tenant.status == TenantStatus.ACTIVE, Tenant.expire_date.is_not(None))
    ).all()
    return [(t, p) for t, p in rows if now <= ensure_utc(t.expire_date) <= horizon]


DEFAULT_PRICE_PLANS: tuple[dict[str, Any], ...] = (
    {
        "name": "Basic",
        "price": "29.99",
        "features": {
            "max_products": 100,
            "max_orders": 500,
            "max_storage_mb": 500,
            "max_customers": 1000,
            "max_pages": 10,
            "max_blogs": 20,
            "max_staff_users": 2,
        },
    },
    {
        "name": "Pro",
        "price": "79.99",
        "features": {
            "max_products": 1000,
            "max_orders": 5000,
            "max_storage_mb": 5000,
            "max_customers": 10000,
            "max_pages": 50,
            "max_blogs": 200,
            "max_staff_users": 10,
        },
    },
    {
        "name": "Enterprise",
        "price": "199.99",
        "features": {key: -1 for key in PLAN_LIMIT_KEYS},
    },
)


def seed_default_price_plans(session: Session, trial_days: int = 14) -> list[PricePlan]:
    """Cria Basic/Pro/Enterprise quando ainda não existe nenhum plano. Faz commit."""
    if session.exec(select(PricePlan.id)).first() is not None:
        return []
    plans = [
        PricePlan(
            name=template["name"],
            price=Decimal(template["price"]),
            duration_months=1,
            trial_days=trial_days,
            features=dict(template["features"]),
            status=PricePlanStatus.ACTIVE,
        )
        for template in DEFAULT_PRICE_PLANS
    ]
    session.add_all(plans)
    session.commit()
    for plan in plans:
        session.refresh(plan)
    logger.info(f"Planos padrão criados: {[p.name for p in plans]}")
    return plans
