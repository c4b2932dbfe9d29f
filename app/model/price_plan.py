from __future__ import annotations

import enum
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class PricePlanStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PricePlan(BaseModel, table=True):
    """Plano de assinatura do landlord. `features` carrega os limites (-1 = ilimitado)."""

    __tablename__ = "price_plan"

    name: str = Field(index=True)
    price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    duration_months: int = Field(default=1)
    trial_days: int = Field(default=0)
    features: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    status: PricePlanStatus = Field(
        default=PricePlanStatus.ACTIVE,
        sa_type=enum_column(PricePlanStatus, "price_plan_status"),
        index=True,
    )
