from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta

from fastapi import HTTPException
from sqlmodel import Session, select

from app.auth.password import hash_password
from app.lib.cache import cache, cache_keys
from app.lib.subdomain import normalize_subdomain, validate_subdomain
from app.model.account import Account
from app.model.base import utc_now
from app.model.membership import Membership, MembershipRole, MembershipStatus
from app.model.price_plan import PricePlan, PricePlanStatus
from app.model.tenant import Tenant, TenantStatus
from app.services.theme_service import install_default_theme

logger = logging.getLogger(__name__)

ROOT_DOMAIN = os.getenv("ROOT_DOMAIN", "dukanest.local")
TENANT_LOOKUP_TTL_SECONDS = 300
DEFAULT_LOW_STOCK_THRESHOLD = 10


def get_tenant_by_subdomain(session: Session, subdomain: str) -> Tenant | None:
    return session.exec(select(Tenant).where(Tenant.subdomain == normalize_subdomain(subdomain))).first()


def subdomain_from_host(host: str | None, root_domain: str = ROOT_DOMAIN) -> str | None:
    """'acme.dukanest.local:8000' -> 'acme'. Host fora do domínio raiz -> None."""
    if not host:
        return None
    hostname = host.split(":")[0].strip().lower()
    suffix = "." + root_domain.lower()
    if not hostname.endswith(suffix):
        return None
    label = hostname[: -len(suffix)]
    # Apenas um nível: "www.acme.dukanest.local" não é loja
    if not label or "." in label:
        return None
    return label


def resolve_storefront_tenant(session: Session, *, subdomain: str | None, host: str | None) -> Tenant:
    """
    Descobre a loja da requisição da vitrine.

    Ordem: header X-Tenant-Subdomain, subdomínio do Host sob ROOT_DOMAIN,
    domínio customizado. O id resolvido fica 5 minutos no cache.
    """
    tenant_id: int | None = None
    label = normalize_subdomain(subdomain) if subdomain else subdomain_from_host(host)

    if label:
        key = cache_keys.tenant_by_subdomain(label)
        tenant_id = cache.get(key)
        if tenant_id is None:
            tenant = get_tenant_by_subdomain(session, label)
            if tenant:
                tenant_id = tenant.id
                cache.set(key, tenant_id, TENANT_LOOKUP_TTL_SECONDS)
    elif host:
        domain = host.split(":")[0].strip().lower()
        key = cache_keys.tenant_by_domain(domain)
        tenant_id = cache.get(key)
        if tenant_id is None:
            tenant = session.exec(select(Tenant).where(Tenant.custom_domain == domain)).first()
            if tenant:
                tenant_id = tenant.id
                cache.set(key, tenant_id, TENANT_LOOKUP_TTL_SECONDS)

    if tenant_id is None:
        raise HTTPException(status_code=404, detail="Store not found")

    tenant = session.get(Tenant, tenant_id)
    if not tenant or tenant.status != TenantStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Store not found")
    return tenant


def forget_tenant_lookup(tenant: Tenant, old_subdomain: str | None = None) -> None:
    """Invalida o cache de resolução (subdomínio/domínio) da loja."""
    cache.delete(cache_keys.tenant_by_subdomain(tenant.subdomain))
    if old_subdomain:
        cache.delete(cache_keys.tenant_by_subdomain(old_subdomain))
    if tenant.custom_domain:
        cache.delete(cache_keys.tenant_by_domain(tenant.custom_domain))


def compute_expire_date(plan: PricePlan, start: datetime | None = None) -> datetime:
    """Trial (dias) quando o plano tem; senão a duração em meses (30 dias por mês)."""
    start = start or utc_now()
    if plan.trial_days and plan.trial_days > 0:
        return start + timedelta(days=plan.trial_days)
    return start + timedelta(days=30 * max(plan.duration_months, 1))


def get_low_stock_threshold(tenant: Tenant) -> int:
    data = tenant.data or {}
    try:
        return int(data.get("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD))
    except (TypeError, ValueError):
        return DEFAULT_LOW_STOCK_THRESHOLD


def check_subdomain_available(session: Session, subdomain: str, exclude_tenant_id: int | None = None) -> str:
    """Valida e normaliza o subdomínio; 400 se inválido, 409 se já estiver em uso."""
    is_valid, error = validate_subdomain(subdomain)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error)
    normalized = normalize_subdomain(subdomain)
    existing = get_tenant_by_subdomain(session, normalized)
    if existing and existing.id != exclude_tenant_id:
        raise HTTPException(status_code=409, detail="Subdomain is already taken")
    return normalized


def create_tenant_with_admin(
    session: Session,
    *,
    name: str,
    subdomain: str,
    admin_email: str,
    admin_name: str,
    admin_password: str | None = None,
    plan_id: int | None = None,
    contact_email: str | None = None,
    currency: str = "KES",
    timezone: str = "Africa/Nairobi",
    locale: str = "en-KE",
) -> tuple[Tenant, Account, Membership]:
    """
    Cria a loja, a conta admin (ou reaproveita pelo email), o Membership ADMIN
    e instala o tema padrão. Faz commit.
    """
    normalized = check_subdomain_available(session, subdomain)

    plan: PricePlan | None = None
    if plan_id is not None:
        plan = session.get(PricePlan, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Price plan not found")
        if plan.status != PricePlanStatus.ACTIVE:
            raise HTTPException(status_code=400, detail="Price plan is not active")

    email = admin_email.strip().lower()
    tenant = Tenant(
        name=name.strip(),
        subdomain=normalized,
        contact_email=(contact_email or email),
        currency=currency,
        timezone=timezone,
        locale=locale,
        plan_id=plan.id if plan else None,
        expire_date=compute_expire_date(plan) if plan else None,
        data={"low_stock_threshold": DEFAULT_LOW_STOCK_THRESHOLD},
    )
    if plan:
        tenant.data["subscription"] = {
            "plan_name": plan.name,
            "price": str(plan.price),
            "started_at": utc_now().isoformat(),
        }
    session.add(tenant)
    session.flush()

    account = session.exec(select(Account).where(Account.email == email)).first()
    if not account:
        account = Account(
            email=email,
            name=admin_name.strip() or email,
            password_hash=hash_password(admin_password) if admin_password else None,
        )
        session.add(account)
        session.flush()
    elif admin_password and not account.password_hash:
        account.password_hash = hash_password(admin_password)
        session.add(account)

    membership = Membership(
        tenant_id=tenant.id,
        account_id=account.id,
        role=MembershipRole.ADMIN,
        status=MembershipStatus.ACTIVE,
    )
    session.add(membership)

    install_default_theme(session, tenant.id)

    session.commit()
    session.refresh(tenant)
    session.refresh(account)
    session.refresh(membership)
    logger.info(f"Loja criada: {tenant.subdomain} (id={tenant.id}, admin={account.email})")
    return tenant, account, membership
