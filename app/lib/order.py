"""Helpers de pedido: número, transições de status e formatação."""

import random
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

# Máquina de estados do pedido. Status desconhecido não permite nada.
VALID_STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": (),
    "cancelled": ("refunded",),
    "refunded": (),
}

_ORDER_STATUS_LABELS = {
    "pending": "Pending",
    "processing": "Processing",
    "shipped": "Shipped",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
    "refunded": "Refunded",
}

_PAYMENT_STATUS_LABELS = {
    "pending": "Pending",
    "paid": "Paid",
    "failed": "Failed",
    "refunded": "Refunded",
}


def generate_order_number(now: datetime | None = None) -> str:
    """ORD-YYYYMMDD-NNNNNN (sufixo aleatório de 6 dígitos)."""
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{random.randint(0, 999999):06d}"


def is_valid_status_transition(current_status: str, new_status: str) -> bool:
    return new_status in VALID_STATUS_TRANSITIONS.get(current_status, ())


def calculate_order_total(items: Iterable[Any]) -> Decimal:
    total = Decimal("0")
    for item in items:
        price = item["price"] if isinstance(item, dict) else item.price
        quantity = item["quantity"] if isinstance(item, dict) else item.quantity
        total += Decimal(str(price)) * quantity
    return total


def format_order_status(status: str) -> str:
    return _ORDER_STATUS_LABELS.get(status, status)


def format_payment_status(status: str) -> str:
    return _PAYMENT_STATUS_LABELS.get(status, status)
