from typing import Any, Optional

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sqlmodel import Session, select

from app.auth.jwt import verify_customer_token, verify_token
from app.db.session import get_session
from app.lib.permissions import has_permission
from app.model.account import Account, AccountRole
from app.model.customer import Customer
from app.model.membership import Membership, MembershipRole, MembershipStatus
from app.model.tenant import Tenant
from app.services.tenant_service import resolve_storefront_tenant

bearer = HTTPBearer(auto_error=False)

CUSTOMER_COOKIE_NAME = "customer_session"


def get_token_payload(
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
) -> dict[str, Any]:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_token(credentials.credentials)


def get_current_account(
    payload: dict[str, Any] = Depends(get_token_payload),
    session: Session = Depends(get_session),
) -> Account:
    """Dependency que retorna a conta autenticada a partir do JWT."""
    account_id_raw = payload.get("sub")
    if not account_id_raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    account = session.get(Account, int(account_id_raw))
    if not account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account not found")
    return account


def get_current_membership(
    payload: dict[str, Any] = Depends(get_token_payload),
    session: Session = Depends(get_session),
) -> Membership:
    """
    Dependency que valida o acesso da conta à loja do JWT via Membership.

    Raises:
        HTTPException: 403 se não existir membership ACTIVE para (account_id, tenant_id)
    """
    account_id_raw = payload.get("sub")
    tenant_id_raw = payload.get("tenant_id")
    if not account_id_raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if not tenant_id_raw:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token is not bound to a store")

    membership = session.exec(
        select(Membership).where(
            Membership.account_id == int(account_id_raw),
            Membership.tenant_id == int(tenant_id_raw),
            Membership.status == MembershipStatus.ACTIVE,
        )
    ).first()
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied (no active membership for this store)",
        )
    return membership


def get_current_tenant(
    membership: Membership = Depends(get_current_membership),
    session: Session = Depends(get_session),
) -> Tenant:
    tenant = session.get(Tenant, membership.tenant_id)
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def require_landlord(account: Account = Depends(get_current_account)) -> Account:
    if account.role != AccountRole.LANDLORD:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Landlord access required")
    return account


def permission_role(account: Account, membership: Membership | None) -> str:
    """Role usada na tabela de permissões (app.lib.permissions)."""
    if account.role == AccountRole.LANDLORD:
        return "landlord"
    if membership is not None and membership.role == MembershipRole.ADMIN:
        return "tenant_admin"
    return "tenant_staff"


def require_permission(permission: str):
    """
    Dependency factory: exige a permissão para o usuário na loja do token.
    Retorna o Membership (a loja vem de membership.tenant_id).
    """
    def permission_checker(
        membership: Membership = Depends(get_current_membership),
        account: Account = Depends(get_current_account),
    ) -> Membership:
        role = permission_role(account, membership)
        if not has_permission(role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission}",
            )
        return membership

    return permission_checker


def get_storefront_tenant(
    request: Request,
    x_tenant_subdomain: Optional[str] = Header(None),
    session: Session = Depends(get_session),
) -> Tenant:
    """Loja da vitrine: header X-Tenant-Subdomain, subdomínio do Host ou domínio customizado."""
    return resolve_storefront_tenant(
        session,
        subdomain=x_tenant_subdomain,
        host=request.headers.get("host"),
    )


def get_optional_customer(
    customer_session: Optional[str] = Cookie(None),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
) -> Customer | None:
    """Cliente logado na loja atual, ou None (cookie ausente, inválido ou de outra loja)."""
    if not customer_session:
        return None
    try:
        payload = verify_customer_token(customer_session)
    except HTTPException:
        return None
    if payload.get("tenant_id") != tenant.id:
        return None
    customer = session.get(Customer, int(payload["sub"]))
    if not customer or customer.tenant_id != tenant.id:
        return None
    return customer


def get_current_customer(customer: Customer | None = Depends(get_optional_customer)) -> Customer:
    if customer is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return customer
