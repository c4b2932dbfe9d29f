from __future__ import annotations

import enum
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentGateway(str, enum.Enum):
    PESAPAL = "pesapal"
    PAYPAL = "paypal"
    CASH_ON_DELIVERY = "cash_on_delivery"


class Order(BaseModel, table=True):
    __tablename__ = "order"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    order_number: str = Field(unique=True, index=True)
    # NULL para pedidos de convidados (guest checkout)
    customer_id: int | None = Field(default=None, foreign_key="customer.id", nullable=True, index=True)
    name: str
    email: str = Field(index=True)
    phone: str | None = Field(default=None, nullable=True)
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        sa_type=enum_column(OrderStatus, "order_status"),
        index=True,
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        sa_type=enum_column(PaymentStatus, "payment_status"),
        index=True,
    )
    payment_gateway: PaymentGateway | None = Field(
        default=None,
        sa_type=enum_column(PaymentGateway, "payment_gateway"),
        nullable=True,
    )
    transaction_id: str | None = Field(default=None, nullable=True)
    shipping_address: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    billing_address: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    coupon: str | None = Field(default=None, nullable=True)
    coupon_discounted: Decimal | None = Field(default=None, max_digits=12, decimal_places=2, nullable=True)
    message: str | None = Field(default=None, nullable=True)
    cancel_reason: str | None = Field(default=None, nullable=True)


class OrderItem(BaseModel, table=True):
    __tablename__ = "order_item"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    # Vira NULL quando o produto é excluído; product_name preserva o histórico
    product_id: int | None = Field(default=None, foreign_key="product.id", nullable=True, index=True)
    variant_id: int | None = Field(default=None, foreign_key="product_variant.id", nullable=True)
    product_name: str
    quantity: int
    price: Decimal = Field(max_digits=12, decimal_places=2)
    total: Decimal = Field(max_digits=12, decimal_places=2)
