import csv
import io
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlalchemy import delete, func, or_, update
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, normalize_email, pagination
from app.auth.dependencies import get_current_tenant, require_permission
from app.auth.password import hash_password
from app.db.session import get_session
from app.model.base import utc_now
from app.model.cart import CartItem
from app.model.customer import Customer, CustomerAddress
from app.model.membership import Membership
from app.model.order import Order, OrderStatus
from app.model.review import ProductReview
from app.model.support import SupportTicket
from app.model.tenant import Tenant
from app.model.wishlist import ProductWishlist
from app.services.subscription_service import enforce_limit

router = APIRouter(prefix="/customers", tags=["Customers"])


class CustomerCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    username: Optional[str] = Field(default=None, max_length=100)
    mobile: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class CustomerUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = None
    username: Optional[str] = Field(default=None, max_length=100)
    mobile: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None
    email_verified: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v is not None else None


class CustomerResponse(PydanticBaseModel):
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
    notes: Optional[str] = None
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CustomerDetailResponse(CustomerResponse):
    order_count: int = 0
    total_spent: Decimal = Decimal("0")


class CustomerListResponse(PydanticBaseModel):
    items: list[CustomerResponse]
    pagination: dict[str, Any]


class AddressCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    phone: str = Field(min_length=1, max_length=50)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1, max_length=100)
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
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


# Pedidos que contam como receita
_REVENUE_EXCLUDED = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

_SORT_COLUMNS = {
    "name": Customer.name,
    "email": Customer.email,
    "created_at": Customer.created_at,
}


def _ensure_email_free(session: Session, tenant_id: int, email: str, exclude_id: int | None = None) -> None:
    clash = session.exec(
        select(Customer.id).where(
            Customer.tenant_id == tenant_id, Customer.email == email, Customer.id != (exclude_id or 0)
        )
    ).first()
    if clash is not None:
        raise HTTPException(status_code=409, detail="A customer with this email already exists")


def _search_conditions(tenant_id: int, search: Optional[str]) -> list:
    conditions = [Customer.tenant_id == tenant_id]
    if search:
        term = f"%{search.strip()}%"
        conditions.append(or_(Customer.name.ilike(term), Customer.email.ilike(term), Customer.mobile.ilike(term)))
    return conditions


@router.get("", response_model=CustomerListResponse)
def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    sort_by: Literal["name", "email", "created_at"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    membership: Membership = Depends(require_permission("customers.read")),
    session: Session = Depends(get_session),
):
    conditions = _search_conditions(membership.tenant_id, search)
    total = session.exec(select(func.count(Customer.id)).where(*conditions)).one()
    column = _SORT_COLUMNS[sort_by]
    customers = session.exec(
        select(Customer)
        .where(*conditions)
        .order_by(column.asc() if sort_order == "asc" else column.desc(), Customer.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return CustomerListResponse(
        items=[CustomerResponse.model_validate(c) for c in customers],
        pagination=pagination(total, page, limit),
    )


@router.get("/export")
def export_customers(
    search: Optional[str] = None,
    membership: Membership = Depends(require_permission("customers.read")),
    session: Session = Depends(get_session),
):
    """CSV com todos os clientes da loja (mesmo filtro de busca da listagem)."""
    customers = session.exec(
        select(Customer).where(*_search_conditions(membership.tenant_id, search)).order_by(Customer.id)
    ).all()
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["id", "name", "email", "mobile", "company", "city", "country", "email_verified", "created_at"])
    for c in customers:
        writer.writerow(
            [
                c.id,
                c.name,
                c.email,
                c.mobile or "",
                c.company or "",
                c.city or "",
                c.country or "",
                "yes" if c.email_verified else "no",
                c.created_at.isoformat(),
            ]
        )
    buffer.seek(0)
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="customers.csv"'},
    )


@router.post("", response_model=CustomerResponse, status_code=201)
def create_customer(
    body: CustomerCreate,
    membership: Membership = Depends(require_permission("customers.create")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    _ensure_email_free(session, tenant.id, body.email)
    enforce_limit(session, tenant, "customers")
    data = body.model_dump(exclude={"password"})
    data["name"] = body.name.strip()
    customer = Customer(
        tenant_id=tenant.id,
        password_hash=hash_password(body.password) if body.password else None,
        **data,
    )
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


@router.get("/{customer_id}", response_model=CustomerDetailResponse)
def get_customer(
    customer_id: int,
    membership: Membership = Depends(require_permission("customers.read")),
    session: Session = Depends(get_session),
):
    customer = get_owned_or_404(session, Customer, customer_id, membership.tenant_id, "Customer")
    order_count = session.exec(
        select(func.count(Order.id)).where(Order.tenant_id == customer.tenant_id, Order.customer_id == customer.id)
    ).one()
    total_spent = session.exec(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.tenant_id == customer.tenant_id,
            Order.customer_id == customer.id,
            Order.status.not_in(_REVENUE_EXCLUDED),
        )
    ).one()
    return CustomerDetailResponse(
        **CustomerResponse.model_validate(customer).model_dump(),
        order_count=order_count,
        total_spent=Decimal(str(total_spent)),
    )


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: int,
    body: CustomerUpdate,
    membership: Membership = Depends(require_permission("customers.update")),
    session: Session = Depends(get_session),
):
    customer = get_owned_or_404(session, Customer, customer_id, membership.tenant_id, "Customer")
    data = body.model_dump(exclude_unset=True)
    if data.get("email"):
        _ensure_email_free(session, customer.tenant_id, data["email"], exclude_id=customer.id)
    for key, value in data.items():
        if key in ("name", "email", "email_verified") and value is None:
            continue
        setattr(customer, key, value)
    customer.updated_at = utc_now()
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


@router.delete("/{customer_id}", status_code=204)
def delete_customer(
    customer_id: int,
    membership: Membership = Depends(require_permission("customers.delete")),
    session: Session = Depends(get_session),
):
    """Remove o cliente; os pedidos ficam como pedidos de convidado (customer_id NULL)."""
    tenant_id = membership.tenant_id
    customer = get_owned_or_404(session, Customer, customer_id, tenant_id, "Customer")
    session.exec(
        update(Order).where(Order.tenant_id == tenant_id, Order.customer_id == customer.id).values(customer_id=None)
    )
    session.exec(
        update(SupportTicket)
        .where(SupportTicket.tenant_id == tenant_id, SupportTicket.customer_id == customer.id)
        .values(customer_id=None)
    )
    session.exec(delete(CartItem).where(CartItem.tenant_id == tenant_id, CartItem.customer_id == customer.id))
    session.exec(delete(ProductWishlist).where(ProductWishlist.tenant_id == tenant_id, ProductWishlist.customer_id == customer.id))
    session.exec(delete(ProductReview).where(ProductReview.tenant_id == tenant_id, ProductReview.customer_id == customer.id))
    session.exec(
        delete(CustomerAddress).where(CustomerAddress.tenant_id == tenant_id, CustomerAddress.customer_id == customer.id)
    )
    session.delete(customer)
    session.commit()
    return Response(status_code=204)


@router.get("/{customer_id}/addresses", response_model=list[AddressResponse])
def list_customer_addresses(
    customer_id: int,
    membership: Membership = Depends(require_permission("customers.read")),
    session: Session = Depends(get_session),
):
    customer = get_owned_or_404(session, Customer, customer_id, membership.tenant_id, "Customer")
    return session.exec(
        select(CustomerAddress)
        .where(CustomerAddress.customer_id == customer.id, CustomerAddress.tenant_id == customer.tenant_id)
        .order_by(CustomerAddress.is_default.desc(), CustomerAddress.id)
    ).all()


@router.post("/{customer_id}/addresses", response_model=AddressResponse, status_code=201)
def create_customer_address(
    customer_id: int,
    body: AddressCreate,
    membership: Membership = Depends(require_permission("customers.update")),
    session: Session = Depends(get_session),
):
    customer = get_owned_or_404(session, Customer, customer_id, membership.tenant_id, "Customer")
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
        session.exec(
            update(CustomerAddress)
            .where(
                CustomerAddress.tenant_id == customer.tenant_id,
                CustomerAddress.customer_id == customer.id,
                CustomerAddress.id != address.id,
            )
            .values(is_default=False)
        )
    session.commit()
    session.refresh(address)
    return address


@router.delete("/{customer_id}/addresses/{address_id}", status_code=204)
def delete_customer_address(
    customer_id: int,
    address_id: int,
    membership: Membership = Depends(require_permission("customers.update")),
    session: Session = Depends(get_session),
):
    address = get_owned_or_404(session, CustomerAddress, address_id, membership.tenant_id, "Address")
    if address.customer_id != customer_id:
        raise HTTPException(status_code=404, detail="Address not found")
    session.delete(address)
    session.commit()
    return Response(status_code=204)
