from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel


class Customer(BaseModel, table=True):
    """Cliente da vitrine (storefront). Isolado por tenant: o mesmo email pode existir em várias lojas."""

    __tablename__ = "customer"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str
    email: str = Field(index=True)
    password_hash: str | None = Field(default=None, nullable=True)
    username: str | None = Field(default=None, nullable=True)
    mobile: str | None = Field(default=None, nullable=True)
    company: str | None = Field(default=None, nullable=True)
    address: str | None = Field(default=None, nullable=True)
    city: str | None = Field(default=None, nullable=True)
    state: str | None = Field(default=None, nullable=True)
    country: str | None = Field(default=None, nullable=True)
    postal_code: str | None = Field(default=None, nullable=True)
    image: str | None = Field(default=None, nullable=True)
    notes: str | None = Field(default=None, nullable=True)
    email_verified: bool = Field(default=False)
    verification_token: str | None = Field(default=None, nullable=True, index=True)
    reset_token: str | None = Field(default=None, nullable=True, index=True)
    reset_token_expires_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_customer_tenant_email"),
    )


class CustomerAddress(BaseModel, table=True):
    __tablename__ = "customer_address"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    name: str
    email: str
    phone: str
    address: str
    city: str
    state: str | None = Field(default=None, nullable=True)
    country: str | None = Field(default=None, nullable=True)
    postal_code: str | None = Field(default=None, nullable=True)
    is_default: bool = Field(default=False)
