from __future__ import annotations

import logging
import os
import re
import secrets
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy import delete, func
from sqlmodel import Session, select

from app.lib.variant import effective_price
from app.model.base import utc_now
from app.model.cart import CartItem
from app.model.product import Product, ProductStatus, ProductVariant

logger = logging.getLogger(__name__)

CART_COOKIE_NAME = "cart_session_id"
CART_SESSION_DAYS = int(os.getenv("CART_SESSION_DAYS", "30"))

_SESSION_ID_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def generate_cart_session_id() -> str:
    """64 caracteres hexadecimais."""
    return secrets.token_hex(32)


def is_valid_cart_session_id(value: str | None) -> bool:
    return bool(value) and _SESSION_ID_PATTERN.match(value) is not None


def _owner_filter(customer_id: int | None, session_id: str | None):
    if customer_id is not None:
        return CartItem.customer_id == customer_id
    if session_id:
        return CartItem.session_id == session_id
    return None


def _items(session: Session, tenant_id: int, customer_id: int | None, session_id: str | None) -> list[CartItem]:
    owner = _owner_filter(customer_id, session_id)
    if owner is None:
        return []
    return list(
        session.exec(select(CartItem).where(CartItem.tenant_id == tenant_id, owner).order_by(CartItem.id)).all()
    )


def _load_purchasable(session: Session, tenant_id: int, product_id: int, variant_id: int | None):
    product = session.get(Product, product_id)
    if not product or product.tenant_id != tenant_id or product.status != ProductStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Product not found")
    variant = None
    if variant_id is not None:
        variant = session.get(ProductVariant, variant_id)
        if not variant or variant.tenant_id != tenant_id or variant.product_id != product.id:
            raise HTTPException(status_code=404, detail="Variant not found")
    return product, variant


def _check_stock(product: Product, variant: ProductVariant | None, quantity: int) -> None:
    available = (variant.stock_quantity if variant is not None else product.stock_quantity) or 0
    if quantity > available:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock for {product.name}. Available: {available}",
        )


def get_cart(session: Session, tenant_id: int, customer_id: int | None, session_id: str | None) -> dict[str, Any]:
    lines = []
    total = Decimal("0")
    item_count = 0
    for item in _items(session, tenant_id, customer_id, session_id):
        product = session.get(Product, item.product_id)
        if product is None:
            continue
        variant = session.get(ProductVariant, item.variant_id) if item.variant_id else None
        price = Decimal(effective_price(variant.price if variant else None, product.sale_price, product.price))
        subtotal = price * item.quantity
        total += subtotal
        item_count += item.quantity
        lines.append(
            {
                "id": item.id,
                "product_id": product.id,
                "variant_id": item.variant_id,
                "name": product.name,
                "variant_name": variant.name if variant else None,
                "slug": product.slug,
                "image": (variant.image if variant and variant.image else product.image),
                "price": float(price),
                "quantity": item.quantity,
                "subtotal": float(subtotal),
                "stock_quantity": (variant.stock_quantity if variant else product.stock_quantity) or 0,
            }
        )
    return {"items": lines, "total": float(total), "item_count": item_count}


def count_items(session: Session, tenant_id: int, customer_id: int | None, session_id: str | None) -> int:
    owner = _owner_filter(customer_id, session_id)
    if owner is None:
        return 0
    total = session.exec(
        select(func.coalesce(func.sum(CartItem.quantity), 0)).where(CartItem.tenant_id == tenant_id, owner)
    ).one()
    return int(total)


def add_item(
    session: Session,
    tenant_id: int,
    *,
    product_id: int,
    quantity: int,
    variant_id: int | None,
    customer_id: int | None,
    session_id: str | None,
) -> CartItem:
    """Adiciona ao carrinho; se a linha já existe, soma a quantidade."""
    product, variant = _load_purchasable(session, tenant_id, product_id, variant_id)
    owner = _owner_filter(customer_id, session_id)
    existing = session.exec(
        select(CartItem).where(
            CartItem.tenant_id == tenant_id,
            owner,
            CartItem.product_id == product_id,
            CartItem.variant_id == variant_id if variant_id is not None else CartItem.variant_id.is_(None),
        )
    ).first()

    new_quantity = quantity + (existing.quantity if existing else 0)
    _check_stock(product, variant, new_quantity)

    if existing:
        existing.quantity = new_quantity
        existing.updated_at = utc_now()
        item = existing
    else:
        item = CartItem(
            tenant_id=tenant_id,
            customer_id=customer_id,
            session_id=None if customer_id is not None else session_id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
        )
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def _get_owned_item(session: Session, tenant_id: int, item_id: int, customer_id: int | None, session_id: str | None) -> CartItem:
    item = session.get(CartItem, item_id)
    owned = item is not None and item.tenant_id == tenant_id and (
        (customer_id is not None and item.customer_id == customer_id)
        or (customer_id is None and session_id is not None and item.session_id == session_id)
    )
    if not owned:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return item


def update_item(
    session: Session,
    tenant_id: int,
    item_id: int,
    quantity: int,
    customer_id: int | None,
    session_id: str | None,
) -> CartItem | None:
    """Quantidade <= 0 remove a linha (retorna None)."""
    item = _get_owned_item(session, tenant_id, item_id, customer_id, session_id)
    if quantity <= 0:
        session.delete(item)
        session.commit()
        return None
    product, variant = _load_purchasable(session, tenant_id, item.product_id, item.variant_id)
    _check_stock(product, variant, quantity)
    item.quantity = quantity
    item.updated_at = utc_now()
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def remove_item(session: Session, tenant_id: int, item_id: int, customer_id: int | None, session_id: str | None) -> None:
    item = _get_owned_item(session, tenant_id, item_id, customer_id, session_id)
    session.delete(item)
    session.commit()


def clear_cart(session: Session, tenant_id: int, customer_id: int | None, session_id: str | None) -> None:
    owner = _owner_filter(customer_id, session_id)
    if owner is None:
        return
    session.exec(delete(CartItem).where(CartItem.tenant_id == tenant_id, owner))
    session.commit()


def merge_guest_cart(session: Session, tenant_id: int, session_id: str | None, customer_id: int) -> int:
    """
    Move o carrinho de convidado para o cliente. Linhas iguais somam a quantidade.
    Retorna quantas linhas do convidado foram processadas. Não faz commit.
    """
    if not session_id:
        return 0
    guest_items = _items(session, tenant_id, None, session_id)
    if not guest_items:
        return 0
    customer_items = {
        (i.product_id, i.variant_id): i for i in _items(session, tenant_id, customer_id, None)
    }
    for guest in guest_items:
        target = customer_items.get((guest.product_id, guest.variant_id))
        if target is not None:
            target.quantity += guest.quantity
            target.updated_at = utc_now()
            session.add(target)
            session.delete(guest)
        else:
            guest.customer_id = customer_id
            guest.session_id = None
            guest.updated_at = utc_now()
            session.add(guest)
            customer_items[(guest.product_id, guest.variant_id)] = guest
    logger.info(f"Carrinho de convidado mesclado no cliente {customer_id} ({len(guest_items)} linhas)")
    return len(guest_items)
