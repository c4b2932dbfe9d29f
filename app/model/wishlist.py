from __future__ import annotations

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel


class ProductWishlist(BaseModel, table=True):
    """Produto salvo na lista de desejos do cliente (um por produto)."""

    __tablename__ = "product_wishlist"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "customer_id", "product_id", name="uq_product_wishlist_customer_product"),
    )
