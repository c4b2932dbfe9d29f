from __future__ import annotations

from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel


class Theme(BaseModel, table=True):
    """Tema global (sem tenant_id), instalado pelas lojas via TenantTheme."""

    __tablename__ = "theme"

    title: str
    slug: str = Field(unique=True, index=True)
    description: str | None = Field(default=None, nullable=True)
    author: str = Field(default="DukaNest")
    version: str = Field(default="1.0.0")
    industry: str = Field(default="general")
    status: bool = Field(default=True, index=True)
    is_premium: bool = Field(default=False)
    price: Decimal | None = Field(default=None, max_digits=10, decimal_places=2, nullable=True)
    screenshot_url: str | None = Field(default=None, nullable=True)
    layout: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    config: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    colors: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    typography: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)


class TenantTheme(BaseModel, table=True):
    """Seleção + customizações de tema por loja. No máximo um ativo por tenant."""

    __tablename__ = "tenant_theme"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    theme_id: int = Field(foreign_key="theme.id", index=True)
    custom_colors: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    custom_fonts: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    custom_layouts: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    custom_css: str | None = Field(default=None, nullable=True)
    custom_js: str | None = Field(default=None, nullable=True)
    logo_url: str | None = Field(default=None, nullable=True)
    favicon_url: str | None = Field(default=None, nullable=True)
    meta_title: str | None = Field(default=None, nullable=True)
    meta_description: str | None = Field(default=None, nullable=True)
    meta_keywords: str | None = Field(default=None, nullable=True)
    social_links: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    is_active: bool = Field(default=True, index=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "theme_id", name="uq_tenant_theme_tenant_theme"),
    )
