"""
Estoque: reconciliação produto ↔ variantes, ajustes manuais e baixas do checkout.

Invariantes:
  - estoque nunca negativo
  - produto com variantes: product.stock_quantity == soma das variantes
  - produto sem variantes: estoque independente

Nenhuma função aqui faz commit: quem chama controla a transação.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException
from sqlalchemy import func, update
from sqlmodel import Session, select

from app.model.base import utc_now
from app.model.inventory import AdjustmentType, InventoryHistory
from app.model.product import Product, ProductVariant

logger = logging.getLogger(__name__)


def get_product_variants(session: Session, product_id: int, tenant_id: int) -> list[ProductVariant]:
    return list(
        session.exec(
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id, ProductVariant.tenant_id == tenant_id)
            .order_by(ProductVariant.id)
        ).all()
    )


def sync_product_stock_from_variants(session: Session, product_id: int, tenant_id: int) -> int | None:
    """
    Recalcula o estoque do produto como a soma das variantes.

    Sem variantes não faz nada (retorna None): o estoque do produto é independente.
    Retorna o novo estoque quando há variantes.
    """
    total, count = session.exec(
        select(
            func.coalesce(func.sum(ProductVariant.stock_quantity), 0),
            func.count(ProductVariant.id),
        ).where(ProductVariant.product_id == product_id, ProductVariant.tenant_id == tenant_id)
    ).one()
    if not count:
        return None

    total = int(total)
    session.exec(
        update(Product)
        .where(Product.id == product_id, Product.tenant_id == tenant_id)
        .values(stock_quantity=total, updated_at=utc_now())
    )
    return total


@dataclass
class SyncResult:
    products_checked: int = 0
    products_updated: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"products_checked": self.products_checked, "products_updated": self.products_updated}


def sync_all_product_stocks(session: Session, tenant_id: int | None = None) -> SyncResult:
    """Reconcilia todos os produtos com variantes (de uma loja ou de todas)."""
    query = (
        select(
            ProductVariant.product_id,
            ProductVariant.tenant_id,
            func.coalesce(func.sum(ProductVariant.stock_quantity), 0),
        )
        .group_by(ProductVariant.product_id, ProductVariant.tenant_id)
    )
    if tenant_id is not None:
        query = query.where(ProductVariant.tenant_id == tenant_id)

    result = SyncResult()
    for product_id, product_tenant_id, total in session.exec(query).all():
        result.products_checked += 1
        product = session.get(Product, product_id)
        if product is None or product.stock_quantity == int(total):
            continue
        logger.info(
            f"Estoque do produto {product_id} (tenant {product_tenant_id}) "
            f"corrigido: {product.stock_quantity} -> {int(total)}"
        )
        product.stock_quantity = int(total)
        product.updated_at = utc_now()
        session.add(product)
        result.products_updated += 1
    session.flush()
    return result


def decrement_stock(session: Session, *, tenant_id: int, product_id: int, variant_id: int | None, quantity: int) -> bool:
    """
    Baixa condicional (stock >= quantity) num único UPDATE.

    Retorna False quando não havia estoque suficiente no momento do UPDATE,
    o que impede venda acima do estoque com checkouts concorrentes.
    """
    if variant_id is not None:
        result = session.exec(
            update(ProductVariant)
            .where(
                ProductVariant.id == variant_id,
                ProductVariant.tenant_id == tenant_id,
                ProductVariant.stock_quantity >= quantity,
            )
            .values(stock_quantity=ProductVariant.stock_quantity - quantity)
        )
        if result.rowcount != 1:
            return False
        sync_product_stock_from_variants(session, product_id, tenant_id)
        return True

    result = session.exec(
        update(Product)
        .where(
            Product.id == product_id,
            Product.tenant_id == tenant_id,
            Product.stock_quantity >= quantity,
        )
        .values(stock_quantity=Product.stock_quantity - quantity)
    )
    return result.rowcount == 1


def restore_stock(session: Session, *, tenant_id: int, product_id: int | None, variant_id: int | None, quantity: int) -> None:
    """Devolve `quantity` à variante (e reconcilia o produto) ou ao produto."""
    if variant_id is not None:
        variant = session.get(ProductVariant, variant_id)
        if variant and variant.tenant_id == tenant_id:
            session.exec(
                update(ProductVariant)
                .where(ProductVariant.id == variant_id, ProductVariant.tenant_id == tenant_id)
                .values(stock_quantity=ProductVariant.stock_quantity + quantity)
            )
            sync_product_stock_from_variants(session, variant.product_id, tenant_id)
            return
        logger.warning(f"Variante {variant_id} não existe mais; estoque não restaurado")
        return

    if product_id is None:
        # Produto excluído depois do pedido
        return
    session.exec(
        update(Product)
        .where(Product.id == product_id, Product.tenant_id == tenant_id)
        .values(stock_quantity=Product.stock_quantity + quantity)
    )
    # Item sem variante num produto que hoje tem variantes (variante excluída ou
    # criada depois da venda): o estoque do produto continua sendo a soma delas.
    sync_product_stock_from_variants(session, product_id, tenant_id)


def compute_adjusted_quantity(before: int, adjustment_type: AdjustmentType, quantity: int) -> int:
    """
    increase: soma; decrease: subtrai com piso em 0; set: valor absoluto.
    Demais tipos (sale, return, damage, transfer) só registram histórico.
    """
    if adjustment_type == AdjustmentType.INCREASE:
        return before + quantity
    if adjustment_type == AdjustmentType.DECREASE:
        return max(0, before - quantity)
    if adjustment_type == AdjustmentType.SET:
        return max(0, quantity)
    return before


def adjust_stock(
    session: Session,
    *,
    tenant_id: int,
    adjustment_type: AdjustmentType,
    quantity: int,
    product_id: int | None = None,
    variant_id: int | None = None,
    reason: str | None = None,
    notes: str | None = None,
    adjusted_by: int | None = None,
) -> InventoryHistory:
    """Ajuste manual de estoque com histórico. Exatamente um de product_id / variant_id."""
    if (product_id is None) == (variant_id is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of product_id or variant_id")

    if variant_id is not None:
        variant = session.get(ProductVariant, variant_id)
        if not variant or variant.tenant_id != tenant_id:
            raise HTTPException(status_code=404, detail="Variant not found")
        before = variant.stock_quantity or 0
        after = compute_adjusted_quantity(before, adjustment_type, quantity)
        variant.stock_quantity = after
        variant.updated_at = utc_now()
        session.add(variant)
        session.flush()
        sync_product_stock_from_variants(session, variant.product_id, tenant_id)
        history_product_id = variant.product_id
    else:
        product = session.get(Product, product_id)
        if not product or product.tenant_id != tenant_id:
            raise HTTPException(status_code=404, detail="Product not found")
        variants_count = session.exec(
            select(func.count(ProductVariant.id)).where(
                ProductVariant.product_id == product.id, ProductVariant.tenant_id == tenant_id
            )
        ).one()
        if variants_count:
            raise HTTPException(
                status_code=400,
                detail="Product stock is calculated from its variants; adjust a variant instead",
            )
        before = product.stock_quantity or 0
        after = compute_adjusted_quantity(before, adjustment_type, quantity)
        product.stock_quantity = after
        product.updated_at = utc_now()
        session.add(product)
        history_product_id = product.id

    history = InventoryHistory(
        tenant_id=tenant_id,
        product_id=history_product_id,
        variant_id=variant_id,
        adjustment_type=adjustment_type,
        quantity_before=before,
        quantity_after=after,
        quantity_change=after - before,
        reason=reason,
        notes=notes,
        adjusted_by=adjusted_by,
    )
    session.add(history)
    session.flush()
    return history
