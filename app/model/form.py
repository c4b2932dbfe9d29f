from __future__ import annotations

import enum
from typing import Any

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class FormStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Form(BaseModel, table=True):
    """Formulário do form builder. `fields` é a lista de campos (ver app.api.form.FormField)."""

    __tablename__ = "form"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    title: str
    slug: str = Field(index=True)
    description: str | None = Field(default=None, nullable=True)
    email: str | None = Field(default=None, nullable=True)
    button_text: str = Field(default="Submit")
    fields: list[dict[str, Any]] | None = Field(default=None, sa_type=sa.JSON)
    success_message: str | None = Field(default=None, nullable=True)
    status: FormStatus = Field(
        default=FormStatus.ACTIVE,
        sa_type=enum_column(FormStatus, "form_status"),
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_form_tenant_slug"),
    )


class FormSubmission(BaseModel, table=True):
    __tablename__ = "form_submission"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    form_id: int = Field(foreign_key="form.id", index=True)
    data: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
