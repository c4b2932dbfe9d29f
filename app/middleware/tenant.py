from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable

from fastapi import HTTPException, Request

from app.auth.jwt import verify_token
from app.services.tenant_service import subdomain_from_host

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


async def tenant_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Any]],
):
    """
    Middleware de contexto (não-enforcement):

    - Subdomínio da vitrine (Host sob ROOT_DOMAIN) em request.state.store_subdomain
    - Se houver Authorization: Bearer <token> de staff, coloca
      {account_id, tenant_id, role} em request.state
    - NÃO consulta DB e NÃO bloqueia request em caso de token inválido
      (o enforcement real fica nas dependencies de app.auth.dependencies).
    """
    request.state.store_subdomain = subdomain_from_host(request.headers.get("host"))
    request.state.tenant_id = None

    auth = request.headers.get("authorization") or ""
    token = auth.removeprefix("Bearer ").strip() if auth.startswith("Bearer ") else ""
    if token:
        try:
            payload = verify_token(token)
        except HTTPException:
            payload = {}
        try:
            if payload.get("sub") is not None:
                request.state.account_id = int(payload["sub"])
            if payload.get("tenant_id") is not None:
                request.state.tenant_id = int(payload["tenant_id"])
            if payload.get("role") is not None:
                request.state.role = str(payload["role"])
        except (TypeError, ValueError):
            # Token com formato inesperado: segue sem contexto
            request.state.tenant_id = None

    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    if elapsed >= SLOW_REQUEST_SECONDS:
        logger.warning(
            f"Requisição lenta: {request.method} {request.url.path} "
            f"({elapsed:.2f}s, tenant={get_tenant_id(request) or request.state.store_subdomain})"
        )
    return response


def get_tenant_id(request: Request) -> int | None:
    """
    Helper leve para extrair tenant_id do contexto (logs).
    Preferir enforcement via get_current_membership().
    """
    v = getattr(request.state, "tenant_id", None)
    return int(v) if v is not None else None
