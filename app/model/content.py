from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class ContentStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class BlogCategory(BaseModel, table=True):
    __tablename__ = "blog_category"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str
    slug: str = Field(index=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_blog_category_tenant_slug"),
    )


class Blog(BaseModel, table=True):
    __tablename__ = "blog"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    category_id: int | None = Field(default=None, foreign_key="blog_category.id", nullable=True, index=True)
    title: str
    slug: str = Field(index=True)
    excerpt: str | None = Field(default=None, nullable=True)
    content: str | None = Field(default=None, nullable=True)
    image: str | None = Field(default=None, nullable=True)
    status: ContentStatus = Field(
        default=ContentStatus.DRAFT,
        sa_type=enum_column(ContentStatus, "blog_status"),
        index=True,
    )
    published_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_blog_tenant_slug"),
    )


class Page(BaseModel, table=True):
    __tablename__ = "page"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    title: str
    slug: str = Field(index=True)
    content: str | None = Field(default=None, nullable=True)
    # Seções do page builder: [{"type": "hero", "props": {...}}, ...]
    sections: list[dict[str, Any]] | None = Field(default=None, sa_type=sa.JSON)
    status: ContentStatus = Field(
        default=ContentStatus.DRAFT,
        sa_type=enum_column(ContentStatus, "page_status"),
        index=True,
    )
    meta_title: str | None = Field(default=None, nullable=True)
    meta_description: str | None = Field(default=None, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_page_tenant_slug"),
    )
