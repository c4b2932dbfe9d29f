from __future__ import annotations

from sqlmodel import Field

from app.model.base import BaseModel


class CartItem(BaseModel, table=True):
    """
    Item de carrinho.

    O dono é o cliente logado (`customer_id`) ou a sessão de convidado
    (`session_id`, cookie `cart_session_id`). Exatamente um dos dois é preenchido.
    """

    __tablename__ = "cart_item"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    customer_id: int | None = Field(default=None, foreign_key="customer.id", nullable=True, index=True)
    session_id: str | None = Field(default=None, nullable=True, index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    variant_id: int | None = Field(default=None, foreign_key="product_variant.id", nullable=True)
    quantity: int = Field(default=1)
