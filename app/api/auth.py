import logging
import os
from datetime import timedelta
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, select

from app.api.common import isoformat_utc, normalize_email
from app.auth.dependencies import get_current_account, get_token_payload, permission_role
from app.auth.jwt import create_access_token
from app.auth.password import generate_token, hash_password, verify_password
from app.db.session import get_session
from app.lib.permissions import get_role_permissions
from app.model.account import Account, AccountRole
from app.model.base import ensure_utc, utc_now
from app.model.membership import Membership, MembershipStatus
from app.model.tenant import Tenant
from app.services import email_service
from app.services.audit_service import try_write_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# Emails que sempre podem se registrar como landlord
LANDLORD_EMAILS_RAW = os.getenv("LANDLORD_EMAILS", "")
LANDLORD_EMAILS: set[str] = {e.strip().lower() for e in LANDLORD_EMAILS_RAW.split(",") if e.strip()}

RESET_TOKEN_HOURS = 1


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class TenantLoginRequest(LoginRequest):
    tenant_id: Optional[int] = None
    subdomain: Optional[str] = None


class LandlordRegisterRequest(LoginRequest):
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8)


class TenantOption(BaseModel):
    tenant_id: int
    name: str
    subdomain: str
    role: str


class AuthResponse(BaseModel):
    access_token: str | None = None
    token_type: str = "bearer"
    requires_tenant_selection: bool = False
    tenants: list[TenantOption] = []


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=10)
    password: str = Field(min_length=8)


def _membership_token(account: Account, membership: Membership) -> str:
    return create_access_token(
        account_id=account.id,
        tenant_id=membership.tenant_id,
        role=permission_role(account, membership),
        email=account.email,
        name=account.name,
        membership_id=membership.id,
    )


def _landlord_token(account: Account) -> str:
    return create_access_token(
        account_id=account.id,
        tenant_id=None,
        role="landlord",
        email=account.email,
        name=account.name,
    )


def _authenticate(session: Session, email: str, password: str) -> Account:
    account = session.exec(select(Account).where(Account.email == email)).first()
    if not account or not verify_password(password, account.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return account


@router.post("/landlord/register", response_model=AuthResponse, status_code=201)
def landlord_register(body: LandlordRegisterRequest, session: Session = Depends(get_session)):
    """
    Cria a conta do landlord.

    Permitido quando ainda não existe nenhum landlord ou quando o email está em LANDLORD_EMAILS.
    """
    has_landlord = session.exec(select(Account.id).where(Account.role == AccountRole.LANDLORD)).first()
    if has_landlord is not None and body.email not in LANDLORD_EMAILS:
        raise HTTPException(status_code=403, detail="Landlord registration is closed")

    existing = session.exec(select(Account).where(Account.email == body.email)).first()
    if existing:
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    account = Account(
        email=body.email,
        name=body.name.strip(),
        password_hash=hash_password(body.password),
        role=AccountRole.LANDLORD,
    )
    session.add(account)
    session.commit()
    session.refresh(account)
    try_write_audit_log(session, event_type="landlord_registered", actor_account_id=account.id, data={"email": account.email})
    return AuthResponse(access_token=_landlord_token(account))


@router.post("/landlord/login", response_model=AuthResponse)
def landlord_login(body: LoginRequest, session: Session = Depends(get_session)):
    account = _authenticate(session, body.email, body.password)
    if account.role != AccountRole.LANDLORD:
        raise HTTPException(status_code=403, detail="Landlord access required")
    return AuthResponse(access_token=_landlord_token(account))


@router.post("/tenant/login", response_model=AuthResponse)
def tenant_login(body: TenantLoginRequest, session: Session = Depends(get_session)):
    """
    Login de staff numa loja.

    Com um único membership ACTIVE, emite o token direto. Com vários e sem
    tenant_id/subdomain, devolve a lista para o usuário escolher.
    """
    account = _authenticate(session, body.email, body.password)

    rows = session.exec(
        select(Membership, Tenant)
        .join(Tenant, Tenant.id == Membership.tenant_id)
        .where(
            Membership.account_id == account.id,
            Membership.status == MembershipStatus.ACTIVE,
        )
        .order_by(Tenant.name)
    ).all()
    if not rows:
        raise HTTPException(status_code=403, detail="No active store for this account")

    selected = rows
    if body.tenant_id is not None:
        selected = [(m, t) for m, t in rows if t.id == body.tenant_id]
    elif body.subdomain:
        wanted = body.subdomain.strip().lower()
        selected = [(m, t) for m, t in rows if t.subdomain == wanted]
    if not selected:
        raise HTTPException(status_code=403, detail="Access denied (no active membership for this store)")

    if len(selected) > 1:
        return AuthResponse(
            requires_tenant_selection=True,
            tenants=[
                TenantOption(tenant_id=t.id, name=t.name, subdomain=t.subdomain, role=m.role.value)
                for m, t in selected
            ],
        )

    membership, tenant = selected[0]
    try_write_audit_log(
        session,
        event_type="tenant_login",
        tenant_id=tenant.id,
        actor_account_id=account.id,
        membership_id=membership.id,
    )
    return AuthResponse(access_token=_membership_token(account, membership))


@router.post("/refresh", response_model=AuthResponse)
def refresh_token(
    payload: dict[str, Any] = Depends(get_token_payload),
    account: Account = Depends(get_current_account),
    session: Session = Depends(get_session),
):
    """Emite um novo token com as mesmas claims, revalidando o membership."""
    tenant_id = payload.get("tenant_id")
    if tenant_id is None:
        if account.role != AccountRole.LANDLORD:
            raise HTTPException(status_code=401, detail="Invalid token")
        return AuthResponse(access_token=_landlord_token(account))

    membership = session.exec(
        select(Membership).where(
            Membership.account_id == account.id,
            Membership.tenant_id == int(tenant_id),
            Membership.status == MembershipStatus.ACTIVE,
        )
    ).first()
    if not membership:
        raise HTTPException(status_code=403, detail="Access denied (no active membership for this store)")
    return AuthResponse(access_token=_membership_token(account, membership))


@router.get("/me")
def get_me(
    payload: dict[str, Any] = Depends(get_token_payload),
    account: Account = Depends(get_current_account),
    session: Session = Depends(get_session),
):
    """Conta autenticada, loja do token (se houver) e permissões."""
    tenant_id = payload.get("tenant_id")
    membership = None
    tenant = None
    if tenant_id is not None:
        membership = session.exec(
            select(Membership).where(
                Membership.account_id == account.id,
                Membership.tenant_id == int(tenant_id),
            )
        ).first()
        tenant = session.get(Tenant, int(tenant_id))
    role = permission_role(account, membership)
    return {
        "id": account.id,
        "email": account.email,
        "name": account.name,
        "role": role,
        "account_role": account.role.value,
        "tenant": (
            {"id": tenant.id, "name": tenant.name, "subdomain": tenant.subdomain}
            if tenant
            else None
        ),
        "membership": (
            {"id": membership.id, "role": membership.role.value, "status": membership.status.value}
            if membership
            else None
        ),
        "permissions": get_role_permissions(role),
        "auth_provider": account.auth_provider,
        "created_at": isoformat_utc(account.created_at),
    }


@router.post("/tenant/forgot-password")
def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
):
    """Sempre 200, exista ou não a conta (não revela emails cadastrados)."""
    account = session.exec(select(Account).where(Account.email == body.email)).first()
    if account:
        account.reset_token = generate_token()
        account.reset_token_expires_at = utc_now() + timedelta(hours=RESET_TOKEN_HOURS)
        account.updated_at = utc_now()
        session.add(account)
        session.commit()
        background_tasks.add_task(
            email_service.send_password_reset,
            account.email,
            account.name,
            account.reset_token,
        )
    return {"message": "If an account exists for this email, a reset link has been sent"}


@router.post("/tenant/reset-password")
def reset_password(body: ResetPasswordRequest, session: Session = Depends(get_session)):
    account = session.exec(select(Account).where(Account.reset_token == body.token)).first()
    expires_at = ensure_utc(account.reset_token_expires_at) if account else None
    if not account or expires_at is None or expires_at < utc_now():
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    account.password_hash = hash_password(body.password)
    account.reset_token = None
    account.reset_token_expires_at = None
    account.updated_at = utc_now()
    session.add(account)
    session.commit()
    try_write_audit_log(session, event_type="password_reset", actor_account_id=account.id)
    return {"message": "Password has been reset"}
