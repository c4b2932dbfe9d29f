from __future__ import annotations

import enum

from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class AdjustmentType(str, enum.Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    SET = "set"
    SALE = "sale"
    RETURN = "return"
    DAMAGE = "damage"
    TRANSFER = "transfer"


class InventoryHistory(BaseModel, table=True):
    __tablename__ = "inventory_history"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    product_id: int | None = Field(default=None, foreign_key="product.id", nullable=True, index=True)
    variant_id: int | None = Field(default=None, foreign_key="product_variant.id", nullable=True, index=True)
    adjustment_type: AdjustmentType = Field(
        sa_type=enum_column(AdjustmentType, "adjustment_type"),
        index=True,
    )
    quantity_before: int
    quantity_after: int
    quantity_change: int
    reason: str | None = Field(default=None, nullable=True)
    notes: str | None = Field(default=None, nullable=True)
    adjusted_by: int | None = Field(default=None, foreign_key="account.id", nullable=True)
