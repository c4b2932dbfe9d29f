"""Carrinho (cliente logado ou convidado via cookie) e checkout da vitrine."""
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Cookie, Depends, HTTPException, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlmodel import Session

from app.api.common import normalize_email
from app.api.order import OrderDetailResponse, order_response
from app.auth.dependencies import get_current_customer, get_optional_customer, get_storefront_tenant
from app.db.session import get_session
from app.model.customer import Customer
from app.model.order import PaymentGateway
from app.model.tenant import Tenant
from app.services import cart_service, email_service
from app.services.cart_service import CART_COOKIE_NAME, CART_SESSION_DAYS
from app.services.order_service import CheckoutLine, place_order

router = APIRouter(prefix="/store", tags=["Cart"])


class CartItemRequest(PydanticBaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1, le=1000)


class CartUpdateRequest(PydanticBaseModel):
    quantity: int = Field(le=1000)


class CartLine(PydanticBaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    name: str
    variant_name: Optional[str] = None
    slug: str
    image: Optional[str] = None
    price: float
    quantity: int
    subtotal: float
    stock_quantity: int


class CartResponse(PydanticBaseModel):
    items: list[CartLine]
    total: float
    item_count: int


class CheckoutItem(PydanticBaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(ge=1, le=1000)


class CheckoutRequest(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = Field(default=None, max_length=50)
    shipping_address: dict[str, Any]
    billing_address: Optional[dict[str, Any]] = None
    payment_gateway: PaymentGateway = PaymentGateway.CASH_ON_DELIVERY
    # Vazio = usa o conteúdo do carrinho
    items: list[CheckoutItem] = []
    coupon: Optional[str] = Field(default=None, max_length=100)
    message: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("shipping_address")
    @classmethod
    def validate_shipping(cls, v: dict[str, Any]) -> dict[str, Any]:
        if not v:
            raise ValueError("shipping_address is required")
        return v


def _cart_owner(customer: Customer | None, cart_session_id: Optional[str]) -> tuple[int | None, str | None]:
    if customer is not None:
        return customer.id, None
    if cart_service.is_valid_cart_session_id(cart_session_id):
        return None, cart_session_id
    return None, None


def _ensure_guest_session(response: Response, customer: Customer | None, cart_session_id: Optional[str]) -> str | None:
    """Convidado sem cookie válido recebe um novo `cart_session_id`."""
    if customer is not None:
        return None
    if cart_service.is_valid_cart_session_id(cart_session_id):
        return cart_session_id
    new_id = cart_service.generate_cart_session_id()
    response.set_cookie(
        key=CART_COOKIE_NAME,
        value=new_id,
        max_age=CART_SESSION_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
        path="/",
    )
    return new_id


@router.get("/cart", response_model=CartResponse)
def get_cart(
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer_id, session_id = _cart_owner(customer, cart_session_id)
    return cart_service.get_cart(session, tenant.id, customer_id, session_id)


@router.get("/cart/count")
def cart_count(
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer_id, session_id = _cart_owner(customer, cart_session_id)
    return {"count": cart_service.count_items(session, tenant.id, customer_id, session_id)}


@router.post("/cart", response_model=CartResponse, status_code=201)
def add_to_cart(
    body: CartItemRequest,
    response: Response,
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    session_id = _ensure_guest_session(response, customer, cart_session_id)
    customer_id = customer.id if customer else None
    cart_service.add_item(
        session,
        tenant.id,
        product_id=body.product_id,
        quantity=body.quantity,
        variant_id=body.variant_id,
        customer_id=customer_id,
        session_id=session_id,
    )
    return cart_service.get_cart(session, tenant.id, customer_id, session_id)


@router.put("/cart/{item_id}", response_model=CartResponse)
def update_cart_item(
    item_id: int,
    body: CartUpdateRequest,
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer_id, session_id = _cart_owner(customer, cart_session_id)
    cart_service.update_item(session, tenant.id, item_id, body.quantity, customer_id, session_id)
    return cart_service.get_cart(session, tenant.id, customer_id, session_id)


@router.delete("/cart/{item_id}", response_model=CartResponse)
def remove_cart_item(
    item_id: int,
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer_id, session_id = _cart_owner(customer, cart_session_id)
    cart_service.remove_item(session, tenant.id, item_id, customer_id, session_id)
    return cart_service.get_cart(session, tenant.id, customer_id, session_id)


@router.delete("/cart", response_model=CartResponse)
def clear_cart(
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    customer_id, session_id = _cart_owner(customer, cart_session_id)
    cart_service.clear_cart(session, tenant.id, customer_id, session_id)
    return {"items": [], "total": 0.0, "item_count": 0}


@router.post("/cart/merge", response_model=CartResponse)
def merge_cart(
    response: Response,
    cart_session_id: Optional[str] = Cookie(None),
    customer: Customer = Depends(get_current_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    """Move o carrinho de convidado (cookie) para o cliente logado."""
    if cart_service.is_valid_cart_session_id(cart_session_id):
        cart_service.merge_guest_cart(session, tenant.id, cart_session_id, customer.id)
        session.commit()
        response.delete_cookie(CART_COOKIE_NAME, path="/")
    return cart_service.get_cart(session, tenant.id, customer.id, None)


@router.post("/checkout", response_model=OrderDetailResponse, status_code=201)
def checkout(
    body: CheckoutRequest,
    background_tasks: BackgroundTasks,
    cart_session_id: Optional[str] = Cookie(None),
    customer: Optional[Customer] = Depends(get_optional_customer),
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    """
    Finaliza a compra (cliente logado ou convidado).

    Sem `items` no corpo, compra o conteúdo do carrinho atual.
    """
    customer_id, session_id = _cart_owner(customer, cart_session_id)
    if body.items:
        lines = [CheckoutLine(product_id=i.product_id, variant_id=i.variant_id, quantity=i.quantity) for i in body.items]
    else:
        cart = cart_service.get_cart(session, tenant.id, customer_id, session_id)
        lines = [
            CheckoutLine(product_id=i["product_id"], variant_id=i["variant_id"], quantity=i["quantity"])
            for i in cart["items"]
        ]
    if not lines:
        raise HTTPException(status_code=400, detail="Cart is empty")

    order, items = place_order(
        session,
        tenant,
        lines=lines,
        name=body.name.strip(),
        email=body.email,
        phone=body.phone,
        shipping_address=body.shipping_address,
        billing_address=body.billing_address,
        payment_gateway=body.payment_gateway,
        customer=customer,
        cart_session_id=session_id,
        coupon=body.coupon,
        message=body.message,
    )

    email_items = [{"product_name": i.product_name, "quantity": i.quantity, "total": i.total} for i in items]
    background_tasks.add_task(
        email_service.send_order_placed,
        order.email,
        order.name,
        tenant.name,
        order.order_number,
        email_items,
        order.total_amount,
        tenant.currency,
    )
    if tenant.contact_email:
        background_tasks.add_task(
            email_service.send_new_order_alert,
            tenant.contact_email,
            tenant.name,
            order.order_number,
            order.name,
            order.total_amount,
            tenant.currency,
        )
    return order_response(order, items)
