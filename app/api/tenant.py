import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlmodel import Session

from app.api.common import normalize_email
from app.auth.dependencies import permission_role
from app.auth.jwt import create_access_token
from app.db.session import get_session
from app.lib.tenant_format import SUPPORTED_CURRENCIES
from app.model.tenant import TenantStatus
from app.services import email_service
from app.services.audit_service import try_write_audit_log
from app.services.tenant_service import create_tenant_with_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tenant"])


def check_timezone(v: str) -> str:
    try:
        ZoneInfo(v)
    except Exception as e:
        raise ValueError("invalid timezone (expected IANA, e.g. Africa/Nairobi)") from e
    return v


def check_currency(v: str) -> str:
    code = v.strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValueError(f"unsupported currency (supported: {', '.join(SUPPORTED_CURRENCIES)})")
    return code


class TenantFields(PydanticBaseModel):
    """Campos comuns de criação de loja (registro público e landlord)."""

    name: str = Field(min_length=1, max_length=255)
    subdomain: str
    admin_email: str
    admin_name: str = Field(min_length=1, max_length=255)
    plan_id: Optional[int] = None
    contact_email: Optional[str] = None
    currency: str = "KES"
    timezone: str = "Africa/Nairobi"
    locale: str = "en-KE"

    @field_validator("admin_email")
    @classmethod
    def validate_admin_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("contact_email")
    @classmethod
    def validate_contact_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        return check_timezone(v)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return check_currency(v)

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("locale cannot be empty")
        return v.strip()


class TenantRegisterRequest(TenantFields):
    admin_password: str = Field(min_length=8)


class TenantResponse(PydanticBaseModel):
    id: int
    name: str
    subdomain: str
    custom_domain: Optional[str] = None
    status: TenantStatus
    plan_id: Optional[int] = None
    expire_date: Optional[datetime] = None
    contact_email: Optional[str] = None
    currency: str
    timezone: str
    locale: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TenantRegisterResponse(PydanticBaseModel):
    tenant: TenantResponse
    access_token: str
    token_type: str = "bearer"


@router.post("/tenants/register", response_model=TenantRegisterResponse, status_code=201)
def register_tenant(
    body: TenantRegisterRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
):
    """Registro público de uma nova loja com a conta admin."""
    tenant, account, membership = create_tenant_with_admin(
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
        event_type="tenant_registered",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        membership_id=membership.id,
        data={"subdomain": tenant.subdomain, "plan_id": tenant.plan_id},
    )
    background_tasks.add_task(
        email_service.send_tenant_welcome,
        account.email,
        account.name,
        tenant.name,
        tenant.subdomain,
    )
    token = create_access_token(
        account_id=account.id,
        tenant_id=tenant.id,
        role=permission_role(account, membership),
        email=account.email,
        name=account.name,
        membership_id=membership.id,
    )
    return TenantRegisterResponse(tenant=TenantResponse.model_validate(tenant), access_token=token)
