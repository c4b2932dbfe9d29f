from __future__ import annotations

import logging
from typing import Any

from sqlmodel import Session

from app.db.session import engine
from app.lib.cache import cache
from app.model.base import utc_now
from app.model.job import Job, JobStatus
from app.services import email_service
from app.services.inventory_service import sync_all_product_stocks
from app.services.subscription_service import days_until_expiry, expire_overdue_tenants, tenants_due_for_reminder

logger = logging.getLogger(__name__)

REMINDER_WINDOW_DAYS = 7


def _safe_error_message(e: Exception, max_len: int = 500) -> str:
    msg = f"{type(e).__name__}: {str(e)}".strip()
    return msg[:max_len]


def _finish(session: Session, job: Job, status: JobStatus, *, result: dict | None = None, error: str | None = None) -> None:
    now = utc_now()
    job.status = status
    job.result_data = result
    job.error_message = error
    job.completed_at = now
    job.updated_at = now
    session.add(job)
    session.commit()


async def sync_product_stock_job(ctx: dict[str, Any], job_id: int) -> dict[str, Any]:
    """
    Reconcilia o estoque dos produtos com variantes (uma loja ou todas).
    Atualiza status do Job no banco e grava o resumo em result_data.
    """
    with Session(engine) as session:
        job = session.get(Job, job_id)
        if not job:
            return {"ok": False, "error": "job_not_found", "job_id": job_id}

        if job.status != JobStatus.PENDING:
            return {"ok": False, "error": "job_not_pending", "job_id": job_id, "status": job.status}

        now = utc_now()
        job.status = JobStatus.RUNNING
        job.started_at = now
        job.updated_at = now
        session.add(job)
        session.commit()

        tenant_id = (job.input_data or {}).get("tenant_id", job.tenant_id)
        try:
            result = sync_all_product_stocks(session, tenant_id=tenant_id)
            session.commit()
        except Exception as e:
            session.rollback()
            logger.exception(f"Falha no job {job_id} (SYNC_PRODUCT_STOCK)")
            _finish(session, job, JobStatus.FAILED, error=_safe_error_message(e))
            return {"ok": False, "error": job.error_message, "job_id": job_id}

        if tenant_id is not None:
            cache.clear_tenant(tenant_id)
        else:
            cache.clear()
        _finish(session, job, JobStatus.COMPLETED, result=result.as_dict())
        return {"ok": True, "job_id": job_id, **result.as_dict()}


async def check_subscription_expiry(ctx: dict[str, Any]) -> dict[str, Any]:
    """
    Cron diário: expira lojas vencidas e envia lembrete de pagamento
    para as que vencem em até REMINDER_WINDOW_DAYS dias.
    """
    with Session(engine) as session:
        expired = expire_overdue_tenants(session)
        session.commit()
        for tenant in expired:
            cache.clear_tenant(tenant.id)

        reminders = 0
        errors: list[str] = []
        for tenant, plan in tenants_due_for_reminder(session, days=REMINDER_WINDOW_DAYS):
            if not tenant.contact_email:
                continue
            days_left = max(days_until_expiry(tenant) or 0, 0)
            if email_service.send_payment_reminder(
                tenant.contact_email,
                tenant.name,
                plan.name,
                days_left,
                plan.price,
                expire_date=tenant.expire_date.date() if tenant.expire_date else None,
                locale=tenant.locale,
            ):
                reminders += 1
            else:
                errors.append(f"tenant {tenant.id}")

    logger.info(f"Assinaturas: {len(expired)} expirada(s), {reminders} lembrete(s) enviado(s)")
    return {"expired": len(expired), "reminders_sent": reminders, "errors": errors}
