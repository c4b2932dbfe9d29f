import enum
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from app.model.base import BaseModel, enum_column


class AccountRole(str, enum.Enum):
    LANDLORD = "landlord"
    USER = "user"


class Account(BaseModel, table=True):
    """Modelo Account - contas de staff e do landlord (tabela account no banco)."""

    __tablename__ = "account"

    email: str = Field(index=True)
    name: str
    password_hash: str | None = Field(default=None, nullable=True)
    # Role de plataforma. A role dentro de uma loja vive no Membership.
    role: AccountRole = Field(
        default=AccountRole.USER,
        sa_type=enum_column(AccountRole, "account_role"),
        index=True,
    )
    auth_provider: str = Field(default="password")
    reset_token: str | None = Field(default=None, nullable=True, index=True)
    reset_token_expires_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
        nullable=True,
    )

    # Email globalmente único (um Account pode participar de múltiplos tenants via Membership)
    __table_args__ = (
        UniqueConstraint("email", name="uq_account_email"),
    )
