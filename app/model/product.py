from __future__ import annotations

import enum
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.model.base import BaseModel, enum_column


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"
    ARCHIVED = "archived"


class Product(BaseModel, table=True):
    """
    Produto da loja.

    Quando existem variantes, `stock_quantity` é derivado (soma das variantes)
    e mantido por `sync_product_stock_from_variants`.
    """

    __tablename__ = "product"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str = Field(index=True)
    slug: str = Field(index=True)
    description: str | None = Field(default=None, nullable=True)
    short_description: str | None = Field(default=None, nullable=True)
    price: Decimal = Field(max_digits=12, decimal_places=2)
    sale_price: Decimal | None = Field(default=None, max_digits=12, decimal_places=2, nullable=True)
    sku: str | None = Field(default=None, nullable=True, index=True)
    stock_quantity: int = Field(default=0)
    status: ProductStatus = Field(
        default=ProductStatus.ACTIVE,
        sa_type=enum_column(ProductStatus, "product_status"),
        index=True,
    )
    image: str | None = Field(default=None, nullable=True)
    gallery: list[str] | None = Field(default=None, sa_type=sa.JSON)
    category_id: int | None = Field(default=None, foreign_key="category.id", nullable=True, index=True)
    data: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_product_tenant_slug"),
        UniqueConstraint("tenant_id", "sku", name="uq_product_tenant_sku"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
    )


class ProductVariant(BaseModel, table=True):
    __tablename__ = "product_variant"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    name: str = Field(default="Default")
    sku: str | None = Field(default=None, nullable=True, index=True)
    # NULL = usa o preço do produto
    price: Decimal | None = Field(default=None, max_digits=12, decimal_places=2, nullable=True)
    stock_quantity: int = Field(default=0)
    image: str | None = Field(default=None, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_product_variant_tenant_sku"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_product_variant_stock_non_negative"),
    )


class ProductVariantAttribute(SQLModel, table=True):
    """Tabela de ligação variante ↔ valor de atributo (N-M)."""

    __tablename__ = "product_variant_attribute"

    variant_id: int = Field(foreign_key="product_variant.id", primary_key=True)
    attribute_value_id: int = Field(foreign_key="attribute_value.id", primary_key=True)
    attribute_id: int = Field(foreign_key="attribute.id", index=True)
