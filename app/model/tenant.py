from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


class Tenant(BaseModel, table=True):
    """Modelo Tenant - raiz do multi-tenant (não tem tenant_id)."""

    __tablename__ = "tenant"

    name: str = Field(index=True)
    # Subdomínio da loja (ex: "acme" -> acme.dukanest.com)
    subdomain: str = Field(unique=True, index=True)
    custom_domain: str | None = Field(default=None, nullable=True, unique=True, index=True)
    status: TenantStatus = Field(
        default=TenantStatus.ACTIVE,
        sa_type=enum_column(TenantStatus, "tenant_status"),
        index=True,
    )
    plan_id: int | None = Field(default=None, foreign_key="price_plan.id", index=True, nullable=True)
    expire_date: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
        nullable=True,
    )
    contact_email: str | None = Field(default=None, nullable=True)
    timezone: str = Field(default="Africa/Nairobi")
    locale: str = Field(default="en-KE")
    currency: str = Field(default="KES")
    # Configurações livres: low_stock_threshold, subscription (snapshot de preço), etc.
    data: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
