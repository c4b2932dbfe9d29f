"""
Pedidos: checkout, cancelamento com devolução de estoque e mudança de status.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy import delete, update
from sqlmodel import Session, select

from app.lib.cache import cache
from app.lib.order import generate_order_number, is_valid_status_transition
from app.lib.variant import effective_price
from app.model.base import utc_now
from app.model.cart import CartItem
from app.model.customer import Customer
from app.model.order import Order, OrderItem, OrderStatus, PaymentGateway, PaymentStatus
from app.model.product import Product, ProductVariant
from app.model.tenant import Tenant
from app.services import inventory_service
from app.services.subscription_service import enforce_limit

logger = logging.getLogger(__name__)

_ORDER_NUMBER_ATTEMPTS = 5


@dataclass
class CheckoutLine:
    product_id: int
    quantity: int
    variant_id: int | None = None


def _unique_order_number(session: Session) -> str:
    for _ in range(_ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number()
        exists = session.exec(select(Order.id).where(Order.order_number == number)).first()
        if exists is None:
            return number
    raise HTTPException(status_code=500, detail="Could not generate a unique order number")


def _insufficient(name: str, available: int) -> HTTPException:
    return HTTPException(status_code=400, detail=f"Insufficient stock for {name}. Available: {available}")


def place_order(
    session: Session,
    tenant: Tenant,
    *,
    lines: list[CheckoutLine],
    name: str,
    email: str,
    phone: str | None,
    shipping_address: dict[str, Any],
    billing_address: dict[str, Any] | None,
    payment_gateway: PaymentGateway,
    customer: Customer | None = None,
    cart_session_id: str | None = None,
    coupon: str | None = None,
    message: str | None = None,
) -> tuple[Order, list[OrderItem]]:
    """
    Cria o pedido e baixa o estoque na mesma transação.

    A baixa é condicional (stock >= quantidade); se outro checkout levou o
    estoque antes, tudo é desfeito e a requisição recebe 400.
    """
    if not lines:
        raise HTTPException(status_code=400, detail="Order must have at least one item")
    enforce_limit(session, tenant, "orders")

    priced: list[tuple[CheckoutLine, Product, ProductVariant | None, Decimal, str]] = []
    for line in lines:
        product = session.get(Product, line.product_id)
        if not product or product.tenant_id != tenant.id:
            raise HTTPException(status_code=404, detail=f"Product {line.product_id} not found")

        variant = None
        if line.variant_id is not None:
            variant = session.get(ProductVariant, line.variant_id)
            if not variant or variant.tenant_id != tenant.id or variant.product_id != product.id:
                raise HTTPException(status_code=404, detail=f"Variant {line.variant_id} not found")

        display_name = product.name
        if variant is not None and variant.name and variant.name != "Default":
            display_name = f"{product.name} ({variant.name})"

        available = (variant.stock_quantity if variant is not None else product.stock_quantity) or 0
        if available < line.quantity:
            raise _insufficient(display_name, available)

        price = effective_price(variant.price if variant else None, product.sale_price, product.price)
        priced.append((line, product, variant, Decimal(price), display_name))

    total = sum((price * line.quantity for line, _, _, price, _ in priced), Decimal("0"))

    order = Order(
        tenant_id=tenant.id,
        order_number=_unique_order_number(session),
        customer_id=customer.id if customer else None,
        name=name,
        email=email.strip().lower(),
        phone=phone,
        total_amount=total,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_gateway=payment_gateway,
        shipping_address=shipping_address,
        billing_address=billing_address or shipping_address,
        coupon=coupon,
        message=message,
    )
    session.add(order)
    session.flush()

    items: list[OrderItem] = []
    try:
        for line, product, variant, price, display_name in priced:
            ok = inventory_service.decrement_stock(
                session,
                tenant_id=tenant.id,
                product_id=product.id,
                variant_id=variant.id if variant else None,
                quantity=line.quantity,
            )
            if not ok:
                session.refresh(variant if variant is not None else product)
                current = (variant.stock_quantity if variant is not None else product.stock_quantity) or 0
                raise _insufficient(display_name, current)
            item = OrderItem(
                tenant_id=tenant.id,
                order_id=order.id,
                product_id=product.id,
                variant_id=variant.id if variant else None,
                product_name=display_name,
                quantity=line.quantity,
                price=price,
                total=price * line.quantity,
            )
            session.add(item)
            items.append(item)

        # Esvazia o carrinho de quem comprou
        if customer is not None:
            session.exec(delete(CartItem).where(CartItem.tenant_id == tenant.id, CartItem.customer_id == customer.id))
        elif cart_session_id:
            session.exec(delete(CartItem).where(CartItem.tenant_id == tenant.id, CartItem.session_id == cart_session_id))

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    for item in items:
        session.refresh(item)
    cache.clear_tenant(tenant.id)
    logger.info(f"Pedido {order.order_number} criado (tenant {tenant.id}, total {total})")
    return order, items


def get_order_items(session: Session, order: Order) -> list[OrderItem]:
    return list(
        session.exec(
            select(OrderItem).where(OrderItem.order_id == order.id, OrderItem.tenant_id == order.tenant_id).order_by(OrderItem.id)
        ).all()
    )


def cancel_order(session: Session, order: Order, *, reason: str, refund: bool) -> bool:
    """
    Cancela o pedido e devolve o estoque de cada item.

    Returns:
        True quando o pedido já estava pago (o email informa o reembolso).
    """
    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Order is already cancelled")
    if order.status == OrderStatus.DELIVERED:
        raise HTTPException(status_code=400, detail="Cannot cancel a delivered order")
    if order.status == OrderStatus.REFUNDED:
        raise HTTPException(status_code=400, detail="Order has already been refunded")

    was_paid = order.payment_status == PaymentStatus.PAID
    try:
        for item in get_order_items(session, order):
            inventory_service.restore_stock(
                session,
                tenant_id=order.tenant_id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
            )
        order.status = OrderStatus.CANCELLED
        order.cancel_reason = reason
        if refund:
            order.payment_status = PaymentStatus.REFUNDED
        order.updated_at = utc_now()
        session.add(order)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(order)
    cache.clear_tenant(order.tenant_id)
    logger.info(f"Pedido {order.order_number} cancelado (refund={refund})")
    return was_paid


def change_status(session: Session, order: Order, new_status: OrderStatus) -> OrderStatus:
    """Valida a transição e aplica. Retorna o status anterior. Não faz commit."""
    previous = order.status
    if new_status == previous:
        return previous
    if not is_valid_status_transition(previous.value, new_status.value):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status transition from {previous.value} to {new_status.value}",
        )
    order.status = new_status
    order.updated_at = utc_now()
    session.add(order)
    return previous


def link_guest_orders(session: Session, tenant_id: int, customer: Customer) -> int:
    """Associa ao cliente os pedidos de convidado feitos com o mesmo email."""
    result = session.exec(
        update(Order)
        .where(
            Order.tenant_id == tenant_id,
            Order.customer_id.is_(None),
            Order.email == customer.email.lower(),
        )
        .values(customer_id=customer.id)
    )
    return result.rowcount or 0
