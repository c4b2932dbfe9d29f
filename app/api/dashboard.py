import re
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlmodel import Session, select

from app.api.common import normalize_email
from app.api.tenant import TenantResponse, check_currency, check_timezone
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.lib.tenant_format import CURRENCY_SYMBOLS, SUPPORTED_CURRENCIES, format_money
from app.model.base import utc_now
from app.model.membership import Membership
from app.model.price_plan import PricePlan
from app.model.tenant import Tenant
from app.services.audit_service import try_write_audit_log
from app.services.subscription_service import change_plan, days_until_expiry, get_tenant_usage
from app.services.tenant_service import ROOT_DOMAIN, forget_tenant_lookup

router = APIRouter(tags=["Dashboard"])

_DOMAIN_PATTERN = re.compile(r"^(?=.{4,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")


class SettingsUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_email: Optional[str] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    locale: Optional[str] = Field(default=None, min_length=2, max_length=20)
    custom_domain: Optional[str] = None

    @field_validator("contact_email")
    @classmethod
    def validate_contact_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return check_currency(v) if v is not None else None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return check_timezone(v) if v is not None else None

    @field_validator("custom_domain")
    @classmethod
    def validate_custom_domain(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return v
        domain = v.strip().lower()
        if not _DOMAIN_PATTERN.match(domain):
            raise ValueError("invalid domain name")
        if domain == ROOT_DOMAIN or domain.endswith("." + ROOT_DOMAIN):
            raise ValueError("custom domain cannot be under the platform domain")
        return domain


class SettingsResponse(TenantResponse):
    settings: dict[str, Any] = {}


class SubscriptionChangeRequest(PydanticBaseModel):
    plan_id: int
    action: Literal["upgrade", "downgrade", "renew"]


def _settings_response(tenant: Tenant) -> SettingsResponse:
    return SettingsResponse(**TenantResponse.model_validate(tenant).model_dump(), settings=tenant.data or {})


def subscription_summary(session: Session, tenant: Tenant) -> dict[str, Any]:
    plan = session.get(PricePlan, tenant.plan_id) if tenant.plan_id else None
    return {
        "tenant_id": tenant.id,
        "status": tenant.status.value,
        "plan": (
            {
                "id": plan.id,
                "name": plan.name,
                "price": float(plan.price),
                "duration_months": plan.duration_months,
                "features": plan.features or {},
            }
            if plan
            else None
        ),
        "expire_date": tenant.expire_date.isoformat() if tenant.expire_date else None,
        "days_until_expiry": days_until_expiry(tenant),
        "usage": get_tenant_usage(session, tenant),
        "subscription": (tenant.data or {}).get("subscription"),
    }


@router.get("/dashboard/settings", response_model=SettingsResponse)
def get_settings(
    membership: Membership = Depends(require_permission("settings.read")),
    tenant: Tenant = Depends(get_current_tenant),
):
    return _settings_response(tenant)


@router.put("/dashboard/settings", response_model=SettingsResponse)
def update_settings(
    body: SettingsUpdate,
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    data = body.model_dump(exclude_unset=True)
    if "custom_domain" in data:
        domain = data["custom_domain"] or None
        if domain:
            clash = session.exec(select(Tenant.id).where(Tenant.custom_domain == domain, Tenant.id != tenant.id)).first()
            if clash is not None:
                raise HTTPException(status_code=409, detail="Domain is already used by another store")
        # limpa o cache do domínio antigo antes de trocar
        forget_tenant_lookup(tenant)
        tenant.custom_domain = domain
    for key in ("name", "contact_email", "currency", "timezone", "locale"):
        if data.get(key) is not None:
            setattr(tenant, key, data[key].strip() if key == "name" else data[key])
    tenant.updated_at = utc_now()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    forget_tenant_lookup(tenant)
    try_write_audit_log(
        session,
        event_type="tenant_settings_updated",
        tenant_id=tenant.id,
        actor_account_id=membership.account_id,
        membership_id=membership.id,
        data={"fields": sorted(data)},
    )
    return _settings_response(tenant)


@router.get("/settings/currency")
def get_currency(
    membership: Membership = Depends(require_permission("settings.read")),
    tenant: Tenant = Depends(get_current_tenant),
):
    symbol, _ = CURRENCY_SYMBOLS.get(tenant.currency, (tenant.currency, True))
    return {
        "currency": tenant.currency,
        "symbol": symbol,
        "example": format_money(1234.5, tenant.currency),
        "supported": list(SUPPORTED_CURRENCIES),
    }


@router.get("/dashboard/subscription")
def get_subscription(
    membership: Membership = Depends(require_permission("settings.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    return subscription_summary(session, tenant)


@router.post("/dashboard/subscription/change")
def change_subscription(
    body: SubscriptionChangeRequest,
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    plan = session.get(PricePlan, body.plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Price plan not found")
    previous_plan_id = tenant.plan_id
    change_plan(session, tenant, plan, body.action)
    session.commit()
    session.refresh(tenant)
    try_write_audit_log(
        session,
        event_type="subscription_changed",
        tenant_id=tenant.id,
        actor_account_id=membership.account_id,
        membership_id=membership.id,
        data={"action": body.action, "from_plan_id": previous_plan_id, "to_plan_id": plan.id},
    )
    return subscription_summary(session, tenant)
