from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlalchemy import func
from sqlmodel import Session, select

from app.api.common import normalize_email
from app.auth.dependencies import get_current_tenant, require_permission
from app.auth.password import hash_password
from app.db.session import get_session
from app.model.account import Account
from app.model.base import utc_now
from app.model.membership import Membership, MembershipRole, MembershipStatus
from app.model.tenant import Tenant
from app.services.audit_service import try_write_audit_log
from app.services.subscription_service import enforce_limit

router = APIRouter(prefix="/users", tags=["Users"])


class StaffUserCreate(PydanticBaseModel):
    email: str
    name: str = Field(min_length=1, max_length=255)
    role: MembershipRole = MembershipRole.STAFF
    password: Optional[str] = Field(default=None, min_length=8)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class StaffUserUpdate(PydanticBaseModel):
    role: Optional[MembershipRole] = None
    status: Optional[MembershipStatus] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class StaffUserResponse(PydanticBaseModel):
    membership_id: int
    account_id: int
    email: str
    name: str
    role: MembershipRole
    status: MembershipStatus
    created_at: datetime


def _response(membership: Membership, account: Account) -> StaffUserResponse:
    return StaffUserResponse(
        membership_id=membership.id,
        account_id=account.id,
        email=account.email,
        name=account.name,
        role=membership.role,
        status=membership.status,
        created_at=membership.created_at,
    )


def _active_admin_count(session: Session, tenant_id: int) -> int:
    return session.exec(
        select(func.count(Membership.id)).where(
            Membership.tenant_id == tenant_id,
            Membership.role == MembershipRole.ADMIN,
            Membership.status == MembershipStatus.ACTIVE,
        )
    ).one()


def _get_membership(session: Session, tenant_id: int, membership_id: int) -> tuple[Membership, Account]:
    membership = session.get(Membership, membership_id)
    if not membership or membership.tenant_id != tenant_id:
        raise HTTPException(status_code=404, detail="User not found")
    account = session.get(Account, membership.account_id)
    return membership, account


@router.get("", response_model=list[StaffUserResponse])
def list_users(
    include_removed: bool = False,
    membership: Membership = Depends(require_permission("users.read")),
    session: Session = Depends(get_session),
):
    query = (
        select(Membership, Account)
        .join(Account, Account.id == Membership.account_id)
        .where(Membership.tenant_id == membership.tenant_id)
        .order_by(Account.name)
    )
    if not include_removed:
        query = query.where(Membership.status != MembershipStatus.REMOVED)
    return [_response(m, a) for m, a in session.exec(query).all()]


@router.post("", response_model=StaffUserResponse, status_code=201)
def create_user(
    body: StaffUserCreate,
    membership: Membership = Depends(require_permission("users.create")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """Adiciona um usuário de staff à loja (cria a conta se o email ainda não existe)."""
    account = session.exec(select(Account).where(Account.email == body.email)).first()
    if not account:
        account = Account(
            email=body.email,
            name=body.name.strip(),
            password_hash=hash_password(body.password) if body.password else None,
            auth_provider="invite",
        )
        session.add(account)
        session.flush()

    existing = session.exec(
        select(Membership).where(Membership.tenant_id == tenant.id, Membership.account_id == account.id)
    ).first()
    if existing and existing.status != MembershipStatus.REMOVED:
        raise HTTPException(status_code=409, detail="User is already a member of this store")

    enforce_limit(session, tenant, "staff_users")

    if existing:
        existing.status = MembershipStatus.ACTIVE
        existing.role = body.role
        existing.updated_at = utc_now()
        target = existing
    else:
        target = Membership(
            tenant_id=tenant.id,
            account_id=account.id,
            role=body.role,
            status=MembershipStatus.ACTIVE,
        )
    session.add(target)
    session.commit()
    session.refresh(target)
    session.refresh(account)
    try_write_audit_log(
        session,
        event_type="membership_created",
        tenant_id=tenant.id,
        actor_account_id=membership.account_id,
        membership_id=target.id,
        data={"email": account.email, "role": target.role.value},
    )
    return _response(target, account)


@router.put("/{membership_id}", response_model=StaffUserResponse)
def update_user(
    membership_id: int,
    body: StaffUserUpdate,
    membership: Membership = Depends(require_permission("users.update")),
    session: Session = Depends(get_session),
):
    target, account = _get_membership(session, membership.tenant_id, membership_id)

    demoting = body.role is not None and body.role != MembershipRole.ADMIN
    deactivating = body.status is not None and body.status != MembershipStatus.ACTIVE
    if (
        target.role == MembershipRole.ADMIN
        and target.status == MembershipStatus.ACTIVE
        and (demoting or deactivating)
        and _active_admin_count(session, membership.tenant_id) <= 1
    ):
        raise HTTPException(status_code=409, detail="Cannot demote or deactivate the last active admin")

    prev = {"role": target.role.value, "status": target.status.value}
    if body.role is not None:
        target.role = body.role
    if body.status is not None:
        target.status = body.status
    if body.name is not None:
        account.name = body.name.strip()
        account.updated_at = utc_now()
        session.add(account)
    target.updated_at = utc_now()
    session.add(target)
    session.commit()
    session.refresh(target)
    session.refresh(account)
    try_write_audit_log(
        session,
        event_type="membership_updated",
        tenant_id=membership.tenant_id,
        actor_account_id=membership.account_id,
        membership_id=target.id,
        data={"from": prev, "to": {"role": target.role.value, "status": target.status.value}},
    )
    return _response(target, account)


@router.delete("/{membership_id}", status_code=204)
def remove_user(
    membership_id: int,
    membership: Membership = Depends(require_permission("users.delete")),
    session: Session = Depends(get_session),
):
    """Remove (soft-delete) o usuário da loja: status -> REMOVED."""
    target, account = _get_membership(session, membership.tenant_id, membership_id)
    if (
        target.role == MembershipRole.ADMIN
        and target.status == MembershipStatus.ACTIVE
        and _active_admin_count(session, membership.tenant_id) <= 1
    ):
        raise HTTPException(status_code=409, detail="Cannot remove the last active admin")

    prev_status = target.status
    target.status = MembershipStatus.REMOVED
    target.updated_at = utc_now()
    session.add(target)
    session.commit()
    try_write_audit_log(
        session,
        event_type="membership_status_changed",
        tenant_id=membership.tenant_id,
        actor_account_id=membership.account_id,
        membership_id=target.id,
        data={
            "from_status": prev_status.value,
            "to_status": MembershipStatus.REMOVED.value,
            "target_account_id": account.id,
        },
    )
    return Response(status_code=204)
