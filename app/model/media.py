from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import SQLModel, Field

from app.model.base import utc_now


class MediaBase(SQLModel):
    """Modelo base para Media - sem updated_at (apenas id e created_at)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
    )


class Media(MediaBase, table=True):
    """Modelo Media - metadados de arquivos da loja armazenados no MinIO/S3."""

    __tablename__ = "media"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    filename: str = Field(index=True)
    content_type: str
    s3_key: str = Field(unique=True, index=True)
    s3_url: str
    file_size: int  # Tamanho em bytes
    alt_text: Optional[str] = Field(default=None, nullable=True)
