from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Normaliza datetimes lidos do banco para UTC com tzinfo.

    SQLite devolve datetimes sem fuso mesmo com DateTime(timezone=True);
    o Postgres sempre devolve com fuso. Tratamos naive como UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class BaseModel(SQLModel):
    """Modelo base com campos comuns a todas as tabelas."""

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
    )


def enum_column(enum_cls: type, name: str) -> sa.Enum:
    """Persiste enums pelos *values* (strings), sem tipo nativo no banco."""
    return sa.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda e: [m.value for m in e],
    )
