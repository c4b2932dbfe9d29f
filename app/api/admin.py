import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from arq import create_pool
from arq.connections import RedisSettings
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy import delete, func, or_
from sqlmodel import Session, SQLModel, select

from app.api.common import pagination
from app.api.dashboard import SubscriptionChangeRequest, subscription_summary
from app.api.tenant import TenantFields, TenantResponse, check_currency, check_timezone
from app.auth.dependencies import require_landlord
from app.db.session import get_session
from app.model.account import Account, AccountRole
from app.model.base import utc_now
from app.model.job import Job, JobStatus, JobType
from app.model.membership import Membership
from app.model.price_plan import PricePlan, PricePlanStatus
from app.model.product import ProductVariant, ProductVariantAttribute
from app.model.support import SupportTicket, SupportTicketMessage, TicketStatus
from app.model.tenant import Tenant, TenantStatus
from app.services import email_service
from app.services.audit_service import try_write_audit_log
from app.services.subscription_service import change_plan, days_until_expiry
from app.services.tenant_service import check_subdomain_available, create_tenant_with_admin, forget_tenant_lookup
from app.worker.worker_settings import WorkerSettings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


class AdminTenantCreate(TenantFields):
    admin_password: Optional[str] = Field(default=None, min_length=8)


class AdminTenantUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_email: Optional[str] = None
    plan_id: Optional[int] = None
    expire_date: Optional[datetime] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    locale: Optional[str] = Field(default=None, min_length=2, max_length=20)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return check_currency(v) if v is not None else None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return check_timezone(v) if v is not None else None


class SubdomainUpdate(PydanticBaseModel):
    subdomain: str


class TenantStatusUpdate(PydanticBaseModel):
    status: TenantStatus


class AdminTenantResponse(TenantResponse):
    plan_name: Optional[str] = None
    days_until_expiry: Optional[int] = None


def _tenant_response(session: Session, tenant: Tenant) -> AdminTenantResponse:
    plan = session.get(PricePlan, tenant.plan_id) if tenant.plan_id else None
    return AdminTenantResponse(
        **TenantResponse.model_validate(tenant).model_dump(),
        plan_name=plan.name if plan else None,
        days_until_expiry=days_until_expiry(tenant),
    )


def _get_tenant_or_404(session: Session, tenant_id: int) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.get("/admin/tenants")
def list_tenants(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Nome, subdomínio ou email de contato"),
    status: Optional[TenantStatus] = None,
    plan_id: Optional[int] = None,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    filters = []
    if search:
        term = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Tenant.name).like(term),
                func.lower(Tenant.subdomain).like(term),
                func.lower(Tenant.contact_email).like(term),
            )
        )
    if status is not None:
        filters.append(Tenant.status == status)
    if plan_id is not None:
        filters.append(Tenant.plan_id == plan_id)

    total = session.exec(select(func.count()).select_from(Tenant).where(*filters)).one()
    tenants = session.exec(
        select(Tenant).where(*filters).order_by(Tenant.created_at.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return {
        "items": [_tenant_response(session, t) for t in tenants],
        "pagination": pagination(total, page, limit),
    }


@router.post("/admin/tenants", response_model=AdminTenantResponse, status_code=201)
def create_tenant(
    body: AdminTenantCreate,
    background_tasks: BackgroundTasks,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant, admin, membership = create_tenant_with_admin(
        session,
        name=body.name,
        subdomain=body.subdomain,
        admin_email=body.admin_email,
        admin_name=body.admin_name,
        admin_password=body.admin_password,
        plan_id=body.plan_id,
        contact_email=body.contact_email,
        currency=body.currency,
        timezone=body.timezone,
        locale=body.locale,
    )
    try_write_audit_log(
        session,
        event_type="tenant_created_by_landlord",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        data={"subdomain": tenant.subdomain, "admin_account_id": admin.id},
    )
    background_tasks.add_task(email_service.send_tenant_welcome, admin.email, admin.name, tenant.name, tenant.subdomain)
    return _tenant_response(session, tenant)


@router.get("/admin/tenants/{tenant_id}")
def get_tenant(
    tenant_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant = _get_tenant_or_404(session, tenant_id)
    staff = session.exec(
        select(Membership, Account)
        .join(Account, Account.id == Membership.account_id)
        .where(Membership.tenant_id == tenant.id)
        .order_by(Membership.id)
    ).all()
    return {
        "tenant": _tenant_response(session, tenant),
        "subscription": subscription_summary(session, tenant),
        "staff": [
            {
                "membership_id": m.id,
                "account_id": a.id,
                "email": a.email,
                "name": a.name,
                "role": m.role.value,
                "status": m.status.value,
            }
            for m, a in staff
        ],
    }


@router.put("/admin/tenants/{tenant_id}", response_model=AdminTenantResponse)
def update_tenant(
    tenant_id: int,
    body: AdminTenantUpdate,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant = _get_tenant_or_404(session, tenant_id)
    data = body.model_dump(exclude_unset=True)
    if data.get("plan_id") is not None and not session.get(PricePlan, data["plan_id"]):
        raise HTTPException(status_code=404, detail="Price plan not found")
    for key, value in data.items():
        setattr(tenant, key, value)
    tenant.updated_at = utc_now()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    forget_tenant_lookup(tenant)
    try_write_audit_log(
        session,
        event_type="tenant_updated_by_landlord",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        data={"fields": sorted(data)},
    )
    return _tenant_response(session, tenant)


def _purge_tenant_rows(session: Session, tenant_id: int) -> None:
    """Remove todas as linhas da loja (filhos antes dos pais)."""
    variant_ids = select(ProductVariant.id).where(ProductVariant.tenant_id == tenant_id)
    session.exec(delete(ProductVariantAttribute).where(ProductVariantAttribute.variant_id.in_(variant_ids)))
    ticket_ids = select(SupportTicket.id).where(SupportTicket.tenant_id == tenant_id)
    session.exec(delete(SupportTicketMessage).where(SupportTicketMessage.ticket_id.in_(ticket_ids)))
    for table in reversed(SQLModel.metadata.sorted_tables):
        if table.name == "tenant" or "tenant_id" not in table.c:
            continue
        if table.name == "category":
            session.exec(table.update().where(table.c.tenant_id == tenant_id).values(parent_id=None))
        session.exec(table.delete().where(table.c.tenant_id == tenant_id))


@router.delete("/admin/tenants/{tenant_id}", status_code=204)
def delete_tenant(
    tenant_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant = _get_tenant_or_404(session, tenant_id)
    subdomain = tenant.subdomain
    forget_tenant_lookup(tenant)
    _purge_tenant_rows(session, tenant.id)
    session.delete(tenant)
    session.commit()
    logger.info(f"Loja removida pelo landlord {account.id}: {subdomain} (id={tenant_id})")
    try_write_audit_log(
        session,
        event_type="tenant_deleted",
        actor_account_id=account.id,
        data={"tenant_id": tenant_id, "subdomain": subdomain},
    )
    return Response(status_code=204)


@router.put("/admin/tenants/{tenant_id}/subdomain", response_model=AdminTenantResponse)
def update_tenant_subdomain(
    tenant_id: int,
    body: SubdomainUpdate,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant = _get_tenant_or_404(session, tenant_id)
    normalized = check_subdomain_available(session, body.subdomain, exclude_tenant_id=tenant.id)
    old = tenant.subdomain
    tenant.subdomain = normalized
    tenant.updated_at = utc_now()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    forget_tenant_lookup(tenant, old_subdomain=old)
    try_write_audit_log(
        session,
        event_type="tenant_subdomain_changed",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        data={"from": old, "to": normalized},
    )
    return _tenant_response(session, tenant)


@router.put("/admin/tenants/{tenant_id}/status", response_model=AdminTenantResponse)
def update_tenant_status(
    tenant_id: int,
    body: TenantStatusUpdate,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant = _get_tenant_or_404(session, tenant_id)
    previous = tenant.status
    tenant.status = body.status
    tenant.updated_at = utc_now()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    forget_tenant_lookup(tenant)
    try_write_audit_log(
        session,
        event_type="tenant_status_changed",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        data={"from": previous.value, "to": body.status.value},
    )
    return _tenant_response(session, tenant)


@router.put("/admin/tenants/{tenant_id}/subscription")
def update_tenant_subscription(
    tenant_id: int,
    body: SubscriptionChangeRequest,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    tenant = _get_tenant_or_404(session, tenant_id)
    plan = session.get(PricePlan, body.plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Price plan not found")
    change_plan(session, tenant, plan, body.action)
    session.commit()
    session.refresh(tenant)
    forget_tenant_lookup(tenant)
    try_write_audit_log(
        session,
        event_type="subscription_changed",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        data={"action": body.action, "to_plan_id": plan.id, "by": "landlord"},
    )
    return subscription_summary(session, tenant)


# ---------------------------------------------------------------------------
# Users (contas de plataforma)
# ---------------------------------------------------------------------------


class AccountRoleUpdate(PydanticBaseModel):
    role: AccountRole


def _account_dict(account: Account, memberships: list[tuple[Membership, Tenant]]) -> dict[str, Any]:
    return {
        "id": account.id,
        "email": account.email,
        "name": account.name,
        "role": account.role.value,
        "auth_provider": account.auth_provider,
        "created_at": account.created_at.isoformat() if account.created_at else None,
        "memberships": [
            {
                "membership_id": m.id,
                "tenant_id": t.id,
                "tenant_name": t.name,
                "subdomain": t.subdomain,
                "role": m.role.value,
                "status": m.status.value,
            }
            for m, t in memberships
        ],
    }


def _memberships_by_account(session: Session, account_ids: list[int]) -> dict[int, list[tuple[Membership, Tenant]]]:
    out: dict[int, list[tuple[Membership, Tenant]]] = {aid: [] for aid in account_ids}
    if not account_ids:
        return out
    rows = session.exec(
        select(Membership, Tenant)
        .join(Tenant, Tenant.id == Membership.tenant_id)
        .where(Membership.account_id.in_(account_ids))
        .order_by(Membership.id)
    ).all()
    for m, t in rows:
        out[m.account_id].append((m, t))
    return out


@router.get("/admin/users")
def list_accounts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[AccountRole] = None,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    filters = []
    if search:
        term = f"%{search.strip().lower()}%"
        filters.append(or_(func.lower(Account.email).like(term), func.lower(Account.name).like(term)))
    if role is not None:
        filters.append(Account.role == role)
    total = session.exec(select(func.count()).select_from(Account).where(*filters)).one()
    accounts = session.exec(
        select(Account).where(*filters).order_by(Account.id).offset((page - 1) * limit).limit(limit)
    ).all()
    memberships = _memberships_by_account(session, [a.id for a in accounts])
    return {
        "items": [_account_dict(a, memberships[a.id]) for a in accounts],
        "pagination": pagination(total, page, limit),
    }


@router.put("/admin/users/{account_id}")
def update_account_role(
    account_id: int,
    body: AccountRoleUpdate,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    target = session.get(Account, account_id)
    if not target:
        raise HTTPException(status_code=404, detail="Account not found")
    if target.id == account.id and body.role != AccountRole.LANDLORD:
        raise HTTPException(status_code=400, detail="You cannot remove your own landlord role")
    previous = target.role
    target.role = body.role
    target.updated_at = utc_now()
    session.add(target)
    session.commit()
    session.refresh(target)
    try_write_audit_log(
        session,
        event_type="account_role_changed",
        actor_account_id=account.id,
        data={"account_id": target.id, "from": previous.value, "to": body.role.value},
    )
    return _account_dict(target, _memberships_by_account(session, [target.id])[target.id])


# ---------------------------------------------------------------------------
# Dashboard da plataforma
# ---------------------------------------------------------------------------


@router.get("/admin/dashboard")
def landlord_dashboard(
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    by_status = {s.value: 0 for s in TenantStatus}
    for status, count in session.exec(select(Tenant.status, func.count()).group_by(Tenant.status)).all():
        by_status[TenantStatus(status).value] = count

    # Receita recorrente: soma do preço mensal dos planos das lojas ativas
    monthly_revenue = Decimal("0")
    active_rows = session.exec(
        select(PricePlan.price, PricePlan.duration_months, func.count())
        .join(Tenant, Tenant.plan_id == PricePlan.id)
        .where(Tenant.status == TenantStatus.ACTIVE)
        .group_by(PricePlan.id, PricePlan.price, PricePlan.duration_months)
    ).all()
    for price, months, count in active_rows:
        monthly_revenue += Decimal(price) / max(months, 1) * count

    open_tickets = session.exec(
        select(func.count())
        .select_from(SupportTicket)
        .where(SupportTicket.status.in_((TicketStatus.OPEN, TicketStatus.IN_PROGRESS)))
    ).one()
    recent = session.exec(select(Tenant).order_by(Tenant.created_at.desc()).limit(5)).all()
    return {
        "tenants": {"total": sum(by_status.values()), "by_status": by_status},
        "accounts": session.exec(select(func.count()).select_from(Account)).one(),
        "monthly_recurring_revenue": float(round(monthly_revenue, 2)),
        "open_support_tickets": open_tickets,
        "recent_tenants": [_tenant_response(session, t) for t in recent],
    }


# ---------------------------------------------------------------------------
# Price plans
# ---------------------------------------------------------------------------


class PricePlanFields(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    duration_months: int = Field(default=1, gt=0)
    trial_days: int = Field(default=0, ge=0)
    features: dict[str, Any] = {}
    status: PricePlanStatus = PricePlanStatus.ACTIVE


class PricePlanUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    duration_months: Optional[int] = Field(default=None, gt=0)
    trial_days: Optional[int] = Field(default=None, ge=0)
    features: Optional[dict[str, Any]] = None
    status: Optional[PricePlanStatus] = None


class PricePlanResponse(PydanticBaseModel):
    id: int
    name: str
    price: float
    duration_months: int
    trial_days: int
    features: dict[str, Any] = {}
    status: PricePlanStatus
    created_at: datetime

    class Config:
        from_attributes = True

    @field_validator("features", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or {}


def _get_plan_or_404(session: Session, plan_id: int) -> PricePlan:
    plan = session.get(PricePlan, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Price plan not found")
    return plan


@router.get("/pricing", response_model=list[PricePlanResponse], tags=["Pricing"])
def public_pricing(session: Session = Depends(get_session)):
    """Planos ativos, do mais barato ao mais caro (página pública de preços)."""
    return session.exec(
        select(PricePlan).where(PricePlan.status == PricePlanStatus.ACTIVE).order_by(PricePlan.price)
    ).all()


@router.get("/admin/price-plans", response_model=list[PricePlanResponse])
def list_price_plans(
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    return session.exec(select(PricePlan).order_by(PricePlan.price)).all()


@router.post("/admin/price-plans", response_model=PricePlanResponse, status_code=201)
def create_price_plan(
    body: PricePlanFields,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    plan = PricePlan(**body.model_dump())
    session.add(plan)
    session.commit()
    session.refresh(plan)
    logger.info(f"Plano criado: {plan.name} (id={plan.id})")
    return plan


@router.get("/admin/price-plans/{plan_id}", response_model=PricePlanResponse)
def get_price_plan(
    plan_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    return _get_plan_or_404(session, plan_id)


@router.put("/admin/price-plans/{plan_id}", response_model=PricePlanResponse)
def update_price_plan(
    plan_id: int,
    body: PricePlanUpdate,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    plan = _get_plan_or_404(session, plan_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(plan, key, value)
    plan.updated_at = utc_now()
    session.add(plan)
    session.commit()
    session.refresh(plan)
    return plan


@router.delete("/admin/price-plans/{plan_id}", status_code=204)
def delete_price_plan(
    plan_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    plan = _get_plan_or_404(session, plan_id)
    in_use = session.exec(select(func.count()).select_from(Tenant).where(Tenant.plan_id == plan.id)).one()
    if in_use:
        raise HTTPException(status_code=409, detail=f"Price plan is used by {in_use} store(s); deactivate it instead")
    session.delete(plan)
    session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class SyncStockJobRequest(PydanticBaseModel):
    tenant_id: Optional[int] = None


class JobResponse(PydanticBaseModel):
    id: int
    tenant_id: Optional[int] = None
    job_type: JobType
    status: JobStatus
    input_data: Optional[dict[str, Any]] = None
    result_data: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


async def enqueue_job(function_name: str, job_id: int) -> None:
    """Enfileira no Arq; 503 se o Redis estiver indisponível."""
    redis_dsn = WorkerSettings.redis_dsn()
    try:
        redis = await create_pool(RedisSettings.from_dsn(redis_dsn))
        await redis.enqueue_job(function_name, job_id)
    except (RedisTimeoutError, RedisConnectionError, OSError) as e:
        raise HTTPException(
            status_code=503,
            detail=f"Job queue unavailable (REDIS_URL={redis_dsn}): {str(e)}",
        ) from e


async def create_sync_stock_job(session: Session, tenant_id: int | None) -> Job:
    job = Job(
        tenant_id=tenant_id,
        job_type=JobType.SYNC_PRODUCT_STOCK,
        status=JobStatus.PENDING,
        input_data={"tenant_id": tenant_id},
    )
    session.add(job)
    session.commit()
    session.refresh(job)
    try:
        await enqueue_job("sync_product_stock_job", job.id)
    except HTTPException:
        job.status = JobStatus.FAILED
        job.error_message = "Job queue unavailable"
        job.completed_at = utc_now()
        session.add(job)
        session.commit()
        raise
    return job


@router.post("/admin/jobs/sync-product-stock", response_model=JobResponse, status_code=201)
async def sync_product_stock(
    body: SyncStockJobRequest,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    if body.tenant_id is not None:
        _get_tenant_or_404(session, body.tenant_id)
    return await create_sync_stock_job(session, body.tenant_id)


@router.get("/admin/jobs/{job_id}", response_model=JobResponse)
def get_job(
    job_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    job = session.get(Job, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job
