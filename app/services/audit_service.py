import logging
from typing import Any

from sqlmodel import Session

from app.model.audit_log import AuditLog

logger = logging.getLogger(__name__)


def try_write_audit_log(
    session: Session,
    *,
    event_type: str,
    tenant_id: int | None = None,
    actor_account_id: int | None = None,
    membership_id: int | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """
    Auditoria best-effort: não deve quebrar a request se falhar.
    """
    try:
        session.add(
            AuditLog(
                tenant_id=tenant_id,
                actor_account_id=actor_account_id,
                membership_id=membership_id,
                event_type=event_type,
                data=data,
            )
        )
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning(f"Falha ao gravar audit log '{event_type}': {e}")
