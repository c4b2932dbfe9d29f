from __future__ import annotations

import enum

import sqlalchemy as sa
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class TicketChannel(str, enum.Enum):
    # cliente da vitrine -> loja
    STOREFRONT = "storefront"
    # staff da loja -> landlord
    LANDLORD = "landlord"


class TicketStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AuthorKind(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    LANDLORD = "landlord"


class SupportTicket(BaseModel, table=True):
    __tablename__ = "support_ticket"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    channel: TicketChannel = Field(
        sa_type=enum_column(TicketChannel, "ticket_channel"),
        index=True,
    )
    subject: str
    description: str
    status: TicketStatus = Field(
        default=TicketStatus.OPEN,
        sa_type=enum_column(TicketStatus, "ticket_status"),
        index=True,
    )
    priority: TicketPriority = Field(
        default=TicketPriority.MEDIUM,
        sa_type=enum_column(TicketPriority, "ticket_priority"),
        index=True,
    )
    customer_id: int | None = Field(default=None, foreign_key="customer.id", nullable=True, index=True)
    account_id: int | None = Field(default=None, foreign_key="account.id", nullable=True, index=True)


class SupportTicketMessage(BaseModel, table=True):
    __tablename__ = "support_ticket_message"

    ticket_id: int = Field(foreign_key="support_ticket.id", index=True)
    author_kind: AuthorKind = Field(sa_type=enum_column(AuthorKind, "ticket_author_kind"))
    author_id: int
    message: str
    attachments: list[str] | None = Field(default=None, sa_type=sa.JSON)
