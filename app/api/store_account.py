"""Conta do cliente da vitrine: registro, login por cookie de sessão, perfil e endereços."""
import logging
import os
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Cookie, Depends, HTTPException, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlalchemy import func, update
from sqlmodel import Session, select

from app.api.common import normalize_email, pagination
from app.api.order import OrderDetailResponse, OrderResponse, order_response
from app.auth.dependencies import CUSTOMER_COOKIE_NAME, get_current_customer, get_storefront_tenant
from app.auth.jwt import CUSTOMER_SESSION_DAYS, create_customer_token
from app.auth.password import generate_token, hash_password, verify_password
from app.db.session import get_session
from app.model.base import ensure_utc, utc_now
from app.model.customer import Customer, CustomerAddress
from app.model.order import Order
from app.model.tenant import Tenant
from app.services import email_service
from app.services.cart_service import CART_COOKIE_NAME, merge_guest_cart
from app.services.order_service import get_order_items, link_guest_orders
from app.services.subscription_service import enforce_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/store", tags=["Store account"])

COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
RESET_TOKEN_HOURS = 1


class CustomerRegisterRequest(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    password: str = Field(min_length=8, max_length=128)
    mobile: Optional[str] = Field(default=None, max_length=50)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class CustomerLoginRequest(PydanticBaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class TokenRequest(PydanticBaseModel):
    token: str = Field(min_length=1)


class PasswordResetRequest(PydanticBaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class PasswordResetConfirm(PydanticBaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)


class ChangePasswordRequest(PydanticBaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=128)


class CustomerProfile(PydanticBaseModel):
    id: int
    name: str
    email: str
    username: Optional[str] = None
    mobile: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    image: Optional[str] = None
    email_verified: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    username: Optional[str] = Field(default=None, max_length=100)
    mobile: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    image: Optional[str] = None


class CustomerSessionResponse(PydanticBaseModel):
    customer: CustomerProfile
    merged_cart_items: int = 0
    linked_orders: int = 0


class AddressCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    phone: str = Field(min_length=1, max_length=50)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    is_default: bool = False

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class AddressResponse(PydanticBaseModel):
    id: int
    name: str
    email: str
    phone: str
    address: str
    city: str
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    is_default: bool

    class Config:
        from_attributes = True


class CustomerOrderList(PydanticBaseModel):
    items: list[OrderResponse]
    pagination: dict[str, Any]


def set_customer_cookie(response: Response, customer: Customer) -> None:
    response.set_cookie(
        key=CUSTOMER_COOKIE_NAME,
        value=create_customer_token(customer.id, customer.tenant_id),
        max_age=CUSTOMER_SESSION_DAYS * 24 * 3600,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def _start_session(
    session: Session,
    response: Response,
    tenant: Tenant,
    customer: Customer,
    cart_session_id: Optional[str],
) -> CustomerSessionResponse:
    """Seta o cookie, mescla o carrinho de convidado e vincula pedidos de convidado."""
    merged = merge_guest_cart(session, tenant.id, cart_session_id, customer.id)
    linked = link_guest_orders(session, tenant.id, customer)
    session.commit()
    session.refresh(customer)
    set_customer_cookie(response, customer)
    if cart_session_id:
        response.delete_cookie(CART_COOKIE_NAME, path="/")
    return CustomerSessionResponse(
        customer=CustomerProfile.model_validate(customer),
        merged_cart_items=merged,
        linked_orders=linked,
    )


# ---------------------------------------------------------------------------
# Autenticação
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=CustomerSessionResponse, status_code=201)
def register(
    body: CustomerRegisterRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    cart_session_id: Optional[str] = Cookie(None),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    existing = session.exec(
        select(Customer).where(Customer.tenant_id == tenant.id, Customer.email == body.email)
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    enforce_limit(session, tenant, "customers")

    customer = Customer(
        tenant_id=tenant.id,
        name=body.name.strip(),
        email=body.email,
        password_hash=hash_password(body.password),
        mobile=body.mobile,
        verification_token=generate_token(),
    )
    session.add(customer)
    session.flush()
    result = _start_session(session, response, tenant, customer, cart_session_id)
    background_tasks.add_task(
        email_service.send_customer_welcome,
        customer.email,
        customer.name,
        tenant.name,
        customer.verification_token,
    )
    logger.info(f"Cliente {customer.id} registrado na loja {tenant.id}")
    return result


@router.post("/auth/login", response_model=CustomerSessionResponse)
def login(
    body: CustomerLoginRequest,
    response: Response,
    cart_session_id: Optional[str] = Cookie(None),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer = session.exec(
        select(Customer).where(Customer.tenant_id == tenant.id, Customer.email == body.email)
    ).first()
    if not customer or not verify_password(body.password, customer.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _start_session(session, response, tenant, customer, cart_session_id)


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(CUSTOMER_COOKIE_NAME, path="/")
    return {"message": "Logged out"}


@router.post("/auth/verify-email")
def verify_email(
    body: TokenRequest,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer = session.exec(
        select(Customer).where(Customer.tenant_id == tenant.id, Customer.verification_token == body.token)
    ).first()
    if not customer:
        raise HTTPException(status_code=400, detail="Invalid verification token")
    customer.email_verified = True
    customer.verification_token = None
    customer.updated_at = utc_now()
    session.add(customer)
    session.commit()
    return {"message": "Email verified"}


@router.post("/auth/password-reset/request")
def request_password_reset(
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    """Sempre 200: não revela se o email tem conta na loja."""
    customer = session.exec(
        select(Customer).where(Customer.tenant_id == tenant.id, Customer.email == body.email)
    ).first()
    if customer:
        customer.reset_token = generate_token()
        customer.reset_token_expires_at = utc_now() + timedelta(hours=RESET_TOKEN_HOURS)
        customer.updated_at = utc_now()
        session.add(customer)
        session.commit()
        background_tasks.add_task(
            email_service.send_password_reset,
            customer.email,
            customer.name,
            customer.reset_token,
            tenant.name,
        )
    return {"message": "If an account exists for this email, a reset link has been sent"}


@router.post("/auth/password-reset")
def reset_password(
    body: PasswordResetConfirm,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer = session.exec(
        select(Customer).where(Customer.tenant_id == tenant.id, Customer.reset_token == body.token)
    ).first()
    expires_at = ensure_utc(customer.reset_token_expires_at) if customer else None
    if not customer or expires_at is None or expires_at < utc_now():
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    customer.password_hash = hash_password(body.password)
    customer.reset_token = None
    customer.reset_token_expires_at = None
    customer.updated_at = utc_now()
    session.add(customer)
    session.commit()
    return {"message": "Password has been reset"}


# ---------------------------------------------------------------------------
# Perfil
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=CustomerProfile)
def get_profile(customer: Customer = Depends(get_current_customer)):
    return customer


@router.put("/profile", response_model=CustomerProfile)
def update_profile(
    body: ProfileUpdate,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    for key, value in body.model_dump(exclude_unset=True).items():
        if key == "name" and not value:
            continue
        setattr(customer, key, value)
    customer.updated_at = utc_now()
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


@router.post("/profile/password")
def change_password(
    body: ChangePasswordRequest,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    if not verify_password(body.current_password, customer.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    customer.password_hash = hash_password(body.new_password)
    customer.updated_at = utc_now()
    session.add(customer)
    session.commit()
    return {"message": "Password updated"}


def _clear_default(session: Session, customer: Customer, keep_id: int | None = None) -> None:
    session.exec(
        update(CustomerAddress)
        .where(
            CustomerAddress.tenant_id == customer.tenant_id,
            CustomerAddress.customer_id == customer.id,
            CustomerAddress.id != (keep_id or 0),
        )
        .values(is_default=False)
    )


def _get_address(session: Session, customer: Customer, address_id: int) -> CustomerAddress:
    address = session.get(CustomerAddress, address_id)
    if not address or address.customer_id != customer.id or address.tenant_id != customer.tenant_id:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


@router.get("/profile/addresses", response_model=list[AddressResponse])
def list_addresses(
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    return session.exec(
        select(CustomerAddress)
        .where(CustomerAddress.customer_id == customer.id, CustomerAddress.tenant_id == customer.tenant_id)
        .order_by(CustomerAddress.is_default.desc(), CustomerAddress.id)
    ).all()


@router.post("/profile/addresses", response_model=AddressResponse, status_code=201)
def create_address(
    body: AddressCreate,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    """O primeiro endereço vira padrão; marcar outro como padrão desmarca os demais."""
    has_any = session.exec(
        select(func.count(CustomerAddress.id)).where(
            CustomerAddress.customer_id == customer.id, CustomerAddress.tenant_id == customer.tenant_id
        )
    ).one()
    address = CustomerAddress(
        tenant_id=customer.tenant_id,
        customer_id=customer.id,
        **body.model_dump(exclude={"is_default"}),
        is_default=body.is_default or not has_any,
    )
    session.add(address)
    session.flush()
    if address.is_default:
        _clear_default(session, customer, keep_id=address.id)
    session.commit()
    session.refresh(address)
    return address


@router.put("/profile/addresses/{address_id}", response_model=AddressResponse)
def update_address(
    address_id: int,
    body: AddressCreate,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    address = _get_address(session, customer, address_id)
    for key, value in body.model_dump(exclude={"is_default"}).items():
        setattr(address, key, value)
    if body.is_default:
        address.is_default = True
        _clear_default(session, customer, keep_id=address.id)
    address.updated_at = utc_now()
    session.add(address)
    session.commit()
    session.refresh(address)
    return address


@router.delete("/profile/addresses/{address_id}", status_code=204)
def delete_address(
    address_id: int,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    address = _get_address(session, customer, address_id)
    was_default = address.is_default
    session.delete(address)
    session.flush()
    if was_default:
        # promove o endereço mais antigo restante
        next_address = session.exec(
            select(CustomerAddress)
            .where(CustomerAddress.customer_id == customer.id, CustomerAddress.tenant_id == customer.tenant_id)
            .order_by(CustomerAddress.id)
        ).first()
        if next_address:
            next_address.is_default = True
            session.add(next_address)
    session.commit()
    return Response(status_code=204)


@router.get("/profile/orders", response_model=CustomerOrderList)
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    conditions = [Order.tenant_id == customer.tenant_id, Order.customer_id == customer.id]
    total = session.exec(select(func.count(Order.id)).where(*conditions)).one()
    orders = session.exec(
        select(Order).where(*conditions).order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return CustomerOrderList(items=[order_response(o) for o in orders], pagination=pagination(total, page, limit))


@router.get("/profile/orders/{order_id}", response_model=OrderDetailResponse)
def get_my_order(
    order_id: int,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    order = session.get(Order, order_id)
    if not order or order.tenant_id != customer.tenant_id or order.customer_id != customer.id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order_response(order, get_order_items(session, order))
