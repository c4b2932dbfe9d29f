"""
Tickets de suporte.

Dois canais: `storefront` (cliente -> loja) e `landlord` (staff da loja -> plataforma).
Cada canal tem rotas para quem abre e para quem atende.
"""
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel as PydanticBaseModel, Field
from sqlalchemy import func
from sqlmodel import Session, select

from app.api.common import pagination
from app.auth.dependencies import get_current_customer, require_landlord, require_permission
from app.db.session import get_session
from app.model.account import Account
from app.model.base import utc_now
from app.model.customer import Customer
from app.model.membership import Membership
from app.model.support import (
    AuthorKind,
    SupportTicket,
    SupportTicketMessage,
    TicketChannel,
    TicketPriority,
    TicketStatus,
)
from app.services import email_service

router = APIRouter(tags=["Support"])


class TicketCreate(PydanticBaseModel):
    subject: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)
    priority: TicketPriority = TicketPriority.MEDIUM


class TicketUpdate(PydanticBaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None


class MessageCreate(PydanticBaseModel):
    message: str = Field(min_length=1, max_length=5000)
    attachments: Optional[list[str]] = None


class MessageResponse(PydanticBaseModel):
    id: int
    author_kind: AuthorKind
    author_id: int
    message: str
    attachments: Optional[list[str]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TicketResponse(PydanticBaseModel):
    id: int
    tenant_id: int
    channel: TicketChannel
    subject: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    customer_id: Optional[int] = None
    account_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TicketDetailResponse(TicketResponse):
    messages: list[MessageResponse] = []


class TicketListResponse(PydanticBaseModel):
    items: list[TicketResponse]
    pagination: dict[str, Any]


def _detail(session: Session, ticket: SupportTicket) -> TicketDetailResponse:
    messages = session.exec(
        select(SupportTicketMessage)
        .where(SupportTicketMessage.ticket_id == ticket.id)
        .order_by(SupportTicketMessage.created_at, SupportTicketMessage.id)
    ).all()
    return TicketDetailResponse(
        **TicketResponse.model_validate(ticket).model_dump(),
        messages=[MessageResponse.model_validate(m) for m in messages],
    )


def _list(session: Session, conditions: list, page: int, limit: int) -> TicketListResponse:
    total = session.exec(select(func.count(SupportTicket.id)).where(*conditions)).one()
    tickets = session.exec(
        select(SupportTicket)
        .where(*conditions)
        .order_by(SupportTicket.updated_at.desc(), SupportTicket.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return TicketListResponse(
        items=[TicketResponse.model_validate(t) for t in tickets],
        pagination=pagination(total, page, limit),
    )


def _filters(status: Optional[TicketStatus], priority: Optional[TicketPriority]) -> list:
    conditions = []
    if status:
        conditions.append(SupportTicket.status == status)
    if priority:
        conditions.append(SupportTicket.priority == priority)
    return conditions


def _add_message(
    session: Session,
    ticket: SupportTicket,
    *,
    author_kind: AuthorKind,
    author_id: int,
    body: MessageCreate,
    responder: bool,
) -> SupportTicketMessage:
    """Grava a mensagem; a primeira resposta de quem atende move open -> in_progress."""
    if ticket.status == TicketStatus.CLOSED:
        raise HTTPException(status_code=400, detail="Ticket is closed")
    message = SupportTicketMessage(
        ticket_id=ticket.id,
        author_kind=author_kind,
        author_id=author_id,
        message=body.message.strip(),
        attachments=body.attachments,
    )
    session.add(message)
    if responder and ticket.status == TicketStatus.OPEN:
        ticket.status = TicketStatus.IN_PROGRESS
    elif not responder and ticket.status == TicketStatus.RESOLVED:
        # quem abriu respondeu de novo: reabre
        ticket.status = TicketStatus.OPEN
    ticket.updated_at = utc_now()
    session.add(ticket)
    session.commit()
    session.refresh(message)
    session.refresh(ticket)
    return message


def _apply_update(session: Session, ticket: SupportTicket, body: TicketUpdate) -> SupportTicket:
    if body.status is not None:
        ticket.status = body.status
    if body.priority is not None:
        ticket.priority = body.priority
    ticket.updated_at = utc_now()
    session.add(ticket)
    session.commit()
    session.refresh(ticket)
    return ticket


# ---------------------------------------------------------------------------
# Cliente da vitrine
# ---------------------------------------------------------------------------


def _customer_ticket(session: Session, customer: Customer, ticket_id: int) -> SupportTicket:
    ticket = session.get(SupportTicket, ticket_id)
    if (
        not ticket
        or ticket.tenant_id != customer.tenant_id
        or ticket.channel != TicketChannel.STOREFRONT
        or ticket.customer_id != customer.id
    ):
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("/store/support/tickets", response_model=TicketListResponse)
def customer_list_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[TicketStatus] = None,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    conditions = [
        SupportTicket.tenant_id == customer.tenant_id,
        SupportTicket.channel == TicketChannel.STOREFRONT,
        SupportTicket.customer_id == customer.id,
        *_filters(status, None),
    ]
    return _list(session, conditions, page, limit)


@router.post("/store/support/tickets", response_model=TicketDetailResponse, status_code=201)
def customer_create_ticket(
    body: TicketCreate,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    ticket = SupportTicket(
        tenant_id=customer.tenant_id,
        channel=TicketChannel.STOREFRONT,
        subject=body.subject.strip(),
        description=body.description.strip(),
        priority=body.priority,
        customer_id=customer.id,
    )
    session.add(ticket)
    session.commit()
    session.refresh(ticket)
    return _detail(session, ticket)


@router.get("/store/support/tickets/{ticket_id}", response_model=TicketDetailResponse)
def customer_get_ticket(
    ticket_id: int,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    return _detail(session, _customer_ticket(session, customer, ticket_id))


@router.post("/store/support/tickets/{ticket_id}/messages", response_model=MessageResponse, status_code=201)
def customer_add_message(
    ticket_id: int,
    body: MessageCreate,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    ticket = _customer_ticket(session, customer, ticket_id)
    return _add_message(
        session, ticket, author_kind=AuthorKind.CUSTOMER, author_id=customer.id, body=body, responder=False
    )


# ---------------------------------------------------------------------------
# Staff da loja atendendo clientes
# ---------------------------------------------------------------------------


def _store_ticket(session: Session, tenant_id: int, ticket_id: int) -> SupportTicket:
    ticket = session.get(SupportTicket, ticket_id)
    if not ticket or ticket.tenant_id != tenant_id or ticket.channel != TicketChannel.STOREFRONT:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("/support/tickets", response_model=TicketListResponse)
def store_list_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[TicketStatus] = None,
    priority: Optional[TicketPriority] = None,
    membership: Membership = Depends(require_permission("customers.read")),
    session: Session = Depends(get_session),
):
    conditions = [
        SupportTicket.tenant_id == membership.tenant_id,
        SupportTicket.channel == TicketChannel.STOREFRONT,
        *_filters(status, priority),
    ]
    return _list(session, conditions, page, limit)


@router.get("/support/tickets/{ticket_id}", response_model=TicketDetailResponse)
def store_get_ticket(
    ticket_id: int,
    membership: Membership = Depends(require_permission("customers.read")),
    session: Session = Depends(get_session),
):
    return _detail(session, _store_ticket(session, membership.tenant_id, ticket_id))


@router.put("/support/tickets/{ticket_id}", response_model=TicketDetailResponse)
def store_update_ticket(
    ticket_id: int,
    body: TicketUpdate,
    membership: Membership = Depends(require_permission("customers.update")),
    session: Session = Depends(get_session),
):
    ticket = _apply_update(session, _store_ticket(session, membership.tenant_id, ticket_id), body)
    return _detail(session, ticket)


@router.post("/support/tickets/{ticket_id}/messages", response_model=MessageResponse, status_code=201)
def store_reply(
    ticket_id: int,
    body: MessageCreate,
    background_tasks: BackgroundTasks,
    membership: Membership = Depends(require_permission("customers.update")),
    session: Session = Depends(get_session),
):
    ticket = _store_ticket(session, membership.tenant_id, ticket_id)
    message = _add_message(
        session, ticket, author_kind=AuthorKind.STAFF, author_id=membership.account_id, body=body, responder=True
    )
    customer = session.get(Customer, ticket.customer_id) if ticket.customer_id else None
    if customer:
        background_tasks.add_task(
            email_service.send_ticket_reply,
            customer.email,
            customer.name,
            ticket.id,
            ticket.subject,
            message.message,
        )
    return message


# ---------------------------------------------------------------------------
# Loja -> plataforma
# ---------------------------------------------------------------------------


def _tenant_landlord_ticket(session: Session, tenant_id: int, ticket_id: int) -> SupportTicket:
    ticket = session.get(SupportTicket, ticket_id)
    if not ticket or ticket.tenant_id != tenant_id or ticket.channel != TicketChannel.LANDLORD:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("/landlord-support/tickets", response_model=TicketListResponse)
def tenant_list_landlord_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[TicketStatus] = None,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    conditions = [
        SupportTicket.tenant_id == membership.tenant_id,
        SupportTicket.channel == TicketChannel.LANDLORD,
        *_filters(status, None),
    ]
    return _list(session, conditions, page, limit)


@router.post("/landlord-support/tickets", response_model=TicketDetailResponse, status_code=201)
def tenant_create_landlord_ticket(
    body: TicketCreate,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    ticket = SupportTicket(
        tenant_id=membership.tenant_id,
        channel=TicketChannel.LANDLORD,
        subject=body.subject.strip(),
        description=body.description.strip(),
        priority=body.priority,
        account_id=membership.account_id,
    )
    session.add(ticket)
    session.commit()
    session.refresh(ticket)
    return _detail(session, ticket)


@router.get("/landlord-support/tickets/{ticket_id}", response_model=TicketDetailResponse)
def tenant_get_landlord_ticket(
    ticket_id: int,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    return _detail(session, _tenant_landlord_ticket(session, membership.tenant_id, ticket_id))


@router.post("/landlord-support/tickets/{ticket_id}/messages", response_model=MessageResponse, status_code=201)
def tenant_add_landlord_message(
    ticket_id: int,
    body: MessageCreate,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    ticket = _tenant_landlord_ticket(session, membership.tenant_id, ticket_id)
    return _add_message(
        session, ticket, author_kind=AuthorKind.STAFF, author_id=membership.account_id, body=body, responder=False
    )


# ---------------------------------------------------------------------------
# Landlord
# ---------------------------------------------------------------------------


def _landlord_ticket(session: Session, ticket_id: int) -> SupportTicket:
    ticket = session.get(SupportTicket, ticket_id)
    if not ticket or ticket.channel != TicketChannel.LANDLORD:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("/admin/support/tickets", response_model=TicketListResponse)
def landlord_list_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[TicketStatus] = None,
    priority: Optional[TicketPriority] = None,
    tenant_id: Optional[int] = None,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    conditions = [SupportTicket.channel == TicketChannel.LANDLORD, *_filters(status, priority)]
    if tenant_id is not None:
        conditions.append(SupportTicket.tenant_id == tenant_id)
    return _list(session, conditions, page, limit)


@router.get("/admin/support/tickets/{ticket_id}", response_model=TicketDetailResponse)
def landlord_get_ticket(
    ticket_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    return _detail(session, _landlord_ticket(session, ticket_id))


@router.put("/admin/support/tickets/{ticket_id}", response_model=TicketDetailResponse)
def landlord_update_ticket(
    ticket_id: int,
    body: TicketUpdate,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    ticket = _apply_update(session, _landlord_ticket(session, ticket_id), body)
    return _detail(session, ticket)


@router.post("/admin/support/tickets/{ticket_id}/messages", response_model=MessageResponse, status_code=201)
def landlord_reply(
    ticket_id: int,
    body: MessageCreate,
    background_tasks: BackgroundTasks,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    ticket = _landlord_ticket(session, ticket_id)
    message = _add_message(
        session, ticket, author_kind=AuthorKind.LANDLORD, author_id=account.id, body=body, responder=True
    )
    opener = session.get(Account, ticket.account_id) if ticket.account_id else None
    if opener:
        background_tasks.add_task(
            email_service.send_ticket_reply,
            opener.email,
            opener.name,
            ticket.id,
            ticket.subject,
            message.message,
        )
    return message
