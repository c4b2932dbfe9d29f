"""Helpers compartilhados pelos routers."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Type, TypeVar

from fastapi import HTTPException
from sqlmodel import Session, SQLModel

from app.model.base import ensure_utc

M = TypeVar("M", bound=SQLModel)


def isoformat_utc(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def get_owned_or_404(session: Session, model: Type[M], obj_id: int, tenant_id: int, label: str) -> M:
    """Busca por id garantindo que o registro pertence à loja (senão 404)."""
    obj = session.get(model, obj_id)
    if obj is None or getattr(obj, "tenant_id", None) != tenant_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def pagination(total: int, page: int, limit: int) -> dict[str, Any]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def normalize_email(value: str) -> str:
    email = (value or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValueError("invalid email address")
    return email
