from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel as PydanticBaseModel
from sqlmodel import Session

from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.model.membership import Membership
from app.model.tenant import Tenant
from app.services.notification_service import FEED_LIMIT, collect_notifications, send_digest

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class NotificationResponse(PydanticBaseModel):
    id: str
    type: str
    title: str
    message: str
    link: str
    created_at: datetime
    read: bool
    metadata: dict[str, Any]


class NotificationFeed(PydanticBaseModel):
    notifications: list[NotificationResponse]
    unread_count: int
    total: int


class DigestResponse(PydanticBaseModel):
    sent: bool
    skipped: bool
    reason: Optional[str] = None
    count: int


@router.get("", response_model=NotificationFeed)
def list_notifications(
    membership: Membership = Depends(require_permission("orders.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """Pedidos novos, pagamentos pendentes/falhos e estoque baixo (até 20, mais recentes primeiro)."""
    notifications = collect_notifications(session, tenant)
    return NotificationFeed(
        notifications=notifications[:FEED_LIMIT],
        unread_count=sum(1 for n in notifications if not n["read"]),
        total=len(notifications),
    )


@router.post("/digest", response_model=DigestResponse)
def send_notification_digest(
    membership: Membership = Depends(require_permission("orders.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    return send_digest(session, tenant)
