import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException
from jose import jwt, JWTError

# Configuração JWT
JWT_SECRET = os.getenv("JWT_SECRET", "CHANGE_ME")
JWT_ISSUER = os.getenv("JWT_ISSUER", "dukanest")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 8

# Sessão do cliente da vitrine (cookie http-only)
CUSTOMER_TOKEN_TYPE = "customer"
CUSTOMER_SESSION_DAYS = int(os.getenv("CUSTOMER_SESSION_DAYS", "7"))


def create_access_token(
    account_id: int,
    tenant_id: Optional[int],
    role: str,
    email: str,
    name: str,
    membership_id: Optional[int] = None,
) -> str:
    """
    Cria o token JWT de staff/landlord.

    Args:
        account_id: ID da conta no banco
        tenant_id: ID da loja (None para o landlord fora de uma loja)
        role: landlord, tenant_admin ou tenant_staff (ver app.lib.permissions)
        email: Email da conta
        name: Nome da conta
        membership_id: Membership usado no login (quando houver tenant)

    Returns:
        Token JWT codificado
    """
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(account_id),
        "email": email,
        "name": name,
        "tenant_id": tenant_id,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=JWT_EXPIRATION_HOURS)).timestamp()),
        "iss": JWT_ISSUER,
    }
    if membership_id is not None:
        payload["membership_id"] = membership_id
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _decode(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
        )
    except JWTError:
        # Evita vazar detalhes internos no payload de erro.
        raise HTTPException(status_code=401, detail="Invalid token")


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verifica e decodifica um token de staff/landlord.

    Raises:
        HTTPException: 401 se o token for inválido, expirado ou de cliente
    """
    payload = _decode(token)
    if payload.get("typ") == CUSTOMER_TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload


def create_customer_token(customer_id: int, tenant_id: int) -> str:
    """Token assinado guardado no cookie `customer_session`."""
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(customer_id),
        "tenant_id": tenant_id,
        "typ": CUSTOMER_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=CUSTOMER_SESSION_DAYS)).timestamp()),
        "iss": JWT_ISSUER,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_customer_token(token: str) -> Dict[str, Any]:
    payload = _decode(token)
    if payload.get("typ") != CUSTOMER_TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Invalid session")
    return payload
