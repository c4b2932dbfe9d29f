from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field
from sqlalchemy import delete, func, or_
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, pagination
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.lib.cache import cache
from app.lib.order import format_order_status, format_payment_status
from app.model.base import utc_now
from app.model.membership import Membership
from app.model.order import Order, OrderItem, OrderStatus, PaymentGateway, PaymentStatus
from app.model.tenant import Tenant
from app.services import email_service
from app.services.audit_service import try_write_audit_log
from app.services.order_service import cancel_order, change_status, get_order_items

router = APIRouter(prefix="/orders", tags=["Orders"])


class OrderItemResponse(PydanticBaseModel):
    id: int
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    product_name: str
    quantity: int
    price: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class OrderResponse(PydanticBaseModel):
    id: int
    order_number: str
    customer_id: Optional[int] = None
    name: str
    email: str
    phone: Optional[str] = None
    total_amount: Decimal
    status: OrderStatus
    status_label: str = ""
    payment_status: PaymentStatus
    payment_status_label: str = ""
    payment_gateway: Optional[PaymentGateway] = None
    transaction_id: Optional[str] = None
    shipping_address: Optional[dict[str, Any]] = None
    billing_address: Optional[dict[str, Any]] = None
    coupon: Optional[str] = None
    message: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderDetailResponse(OrderResponse):
    items: list[OrderItemResponse] = []


class OrderListResponse(PydanticBaseModel):
    items: list[OrderResponse]
    pagination: dict[str, Any]


class OrderUpdate(PydanticBaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    transaction_id: Optional[str] = Field(default=None, max_length=255)
    tracking_number: Optional[str] = Field(default=None, max_length=255)
    cancel_reason: Optional[str] = Field(default=None, max_length=500)


class CancelRequest(PydanticBaseModel):
    reason: str = Field(min_length=1, max_length=500)
    refund: bool = False


def order_response(order: Order, items: list[OrderItem] | None = None):
    data = OrderResponse.model_validate(order).model_dump()
    data["status_label"] = format_order_status(order.status.value)
    data["payment_status_label"] = format_payment_status(order.payment_status.value)
    if items is None:
        return OrderResponse(**data)
    return OrderDetailResponse(**data, items=[OrderItemResponse.model_validate(i) for i in items])


def notify_order_cancelled(
    background_tasks: BackgroundTasks, order: Order, tenant: Tenant, *, was_paid: bool, refund: bool
) -> None:
    """O valor do reembolso só vai no email quando houve pagamento e reembolso."""
    background_tasks.add_task(
        email_service.send_order_cancelled,
        order.email,
        order.name,
        tenant.name,
        order.order_number,
        order.cancel_reason or "",
        order.total_amount if refund and was_paid else None,
        tenant.currency,
    )


_SORT_COLUMNS = {
    "created_at": Order.created_at,
    "total_amount": Order.total_amount,
    "order_number": Order.order_number,
    "status": Order.status,
}


@router.get("", response_model=OrderListResponse)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    order_number: Optional[str] = None,
    customer_email: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sort_by: Literal["created_at", "total_amount", "order_number", "status"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    membership: Membership = Depends(require_permission("orders.read")),
    session: Session = Depends(get_session),
):
    conditions = [Order.tenant_id == membership.tenant_id]
    if search:
        term = f"%{search.strip()}%"
        conditions.append(or_(Order.order_number.ilike(term), Order.name.ilike(term), Order.email.ilike(term)))
    if status:
        conditions.append(Order.status == status)
    if payment_status:
        conditions.append(Order.payment_status == payment_status)
    if order_number:
        conditions.append(Order.order_number == order_number.strip())
    if customer_email:
        conditions.append(Order.email == customer_email.strip().lower())
    if date_from:
        conditions.append(Order.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
    if date_to:
        conditions.append(Order.created_at <= datetime.combine(date_to, time.max, tzinfo=timezone.utc))

    total = session.exec(select(func.count(Order.id)).where(*conditions)).one()
    column = _SORT_COLUMNS[sort_by]
    orders = session.exec(
        select(Order)
        .where(*conditions)
        .order_by(column.asc() if sort_order == "asc" else column.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return OrderListResponse(items=[order_response(o) for o in orders], pagination=pagination(total, page, limit))


@router.get("/{order_id}", response_model=OrderDetailResponse)
def get_order(
    order_id: int,
    membership: Membership = Depends(require_permission("orders.read")),
    session: Session = Depends(get_session),
):
    order = get_owned_or_404(session, Order, order_id, membership.tenant_id, "Order")
    return order_response(order, get_order_items(session, order))


@router.put("/{order_id}", response_model=OrderDetailResponse)
def update_order(
    order_id: int,
    body: OrderUpdate,
    background_tasks: BackgroundTasks,
    membership: Membership = Depends(require_permission("orders.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """
    Atualiza status e pagamento.

    Mudar para `cancelled` passa pelo cancelamento completo (estoque devolvido).
    """
    order = get_owned_or_404(session, Order, order_id, tenant.id, "Order")
    previous = order.status

    if body.status == OrderStatus.CANCELLED and previous != OrderStatus.CANCELLED:
        refund = body.payment_status == PaymentStatus.REFUNDED
        was_paid = cancel_order(
            session,
            order,
            reason=body.cancel_reason or "Cancelled by store",
            refund=refund,
        )
        notify_order_cancelled(background_tasks, order, tenant, was_paid=was_paid, refund=refund)
    else:
        if body.status is not None:
            change_status(session, order, body.status)
            if body.status == OrderStatus.REFUNDED:
                order.payment_status = PaymentStatus.REFUNDED
        if body.payment_status is not None and body.status != OrderStatus.REFUNDED:
            order.payment_status = body.payment_status
        if body.transaction_id is not None:
            order.transaction_id = body.transaction_id
        order.updated_at = utc_now()
        session.add(order)
        session.commit()
        session.refresh(order)
        cache.clear_tenant(tenant.id)

        if order.status != previous:
            if order.status == OrderStatus.SHIPPED:
                background_tasks.add_task(
                    email_service.send_order_shipped,
                    order.email,
                    order.name,
                    tenant.name,
                    order.order_number,
                    body.tracking_number,
                )
            elif order.status == OrderStatus.DELIVERED:
                background_tasks.add_task(
                    email_service.send_order_delivered,
                    order.email,
                    order.name,
                    tenant.name,
                    order.order_number,
                )

    if order.status != previous:
        try_write_audit_log(
            session,
            event_type="order_status_changed",
            tenant_id=tenant.id,
            actor_account_id=membership.account_id,
            membership_id=membership.id,
            data={"order_id": order.id, "from_status": previous.value, "to_status": order.status.value},
        )
    return order_response(order, get_order_items(session, order))


@router.post("/{order_id}/cancel", response_model=OrderDetailResponse)
def cancel(
    order_id: int,
    body: CancelRequest,
    background_tasks: BackgroundTasks,
    membership: Membership = Depends(require_permission("orders.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    order = get_owned_or_404(session, Order, order_id, tenant.id, "Order")
    previous = order.status
    was_paid = cancel_order(session, order, reason=body.reason.strip(), refund=body.refund)
    notify_order_cancelled(background_tasks, order, tenant, was_paid=was_paid, refund=body.refund)
    try_write_audit_log(
        session,
        event_type="order_cancelled",
        tenant_id=tenant.id,
        actor_account_id=membership.account_id,
        membership_id=membership.id,
        data={"order_id": order.id, "from_status": previous.value, "refund": body.refund},
    )
    return order_response(order, get_order_items(session, order))


@router.delete("/{order_id}", status_code=204)
def delete_order(
    order_id: int,
    membership: Membership = Depends(require_permission("orders.delete")),
    session: Session = Depends(get_session),
):
    """Exclui definitivamente; só pedidos cancelados ou reembolsados."""
    order = get_owned_or_404(session, Order, order_id, membership.tenant_id, "Order")
    if order.status not in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        raise HTTPException(status_code=400, detail="Only cancelled or refunded orders can be deleted")
    session.exec(delete(OrderItem).where(OrderItem.order_id == order.id, OrderItem.tenant_id == order.tenant_id))
    session.delete(order)
    session.commit()
    cache.clear_tenant(membership.tenant_id)
    return Response(status_code=204)
