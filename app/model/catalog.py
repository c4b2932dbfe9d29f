from __future__ import annotations

import enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class CategoryStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Category(BaseModel, table=True):
    __tablename__ = "category"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str
    slug: str = Field(index=True)
    description: str | None = Field(default=None, nullable=True)
    image: str | None = Field(default=None, nullable=True)
    parent_id: int | None = Field(default=None, foreign_key="category.id", nullable=True)
    status: CategoryStatus = Field(
        default=CategoryStatus.ACTIVE,
        sa_type=enum_column(CategoryStatus, "category_status"),
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_category_tenant_slug"),
    )


class AttributeType(str, enum.Enum):
    SELECT = "select"
    COLOR = "color"
    TEXT = "text"


class Attribute(BaseModel, table=True):
    """Atributo de variação (ex: Tamanho, Cor)."""

    __tablename__ = "attribute"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str
    type: AttributeType = Field(
        default=AttributeType.SELECT,
        sa_type=enum_column(AttributeType, "attribute_type"),
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_attribute_tenant_name"),
    )


class AttributeValue(BaseModel, table=True):
    __tablename__ = "attribute_value"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    attribute_id: int = Field(foreign_key="attribute.id", index=True)
    value: str
    color_code: str | None = Field(default=None, nullable=True)

    __table_args__ = (
        UniqueConstraint("attribute_id", "value", name="uq_attribute_value_attribute_value"),
    )
