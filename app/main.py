import os
import logging
from pathlib import Path
from fastapi import FastAPI
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Carrega variáveis de ambiente do .env antes de importar os módulos que leem os.getenv
from dotenv import load_dotenv

project_root = Path(__file__).resolve().parent.parent
load_dotenv(project_root / ".env")
load_dotenv(".env")

from app.api.route import router
from app.middleware.tenant import tenant_context_middleware

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="DukaNest API",
    description="API multi-loja de e-commerce (lojas, vitrine, pedidos e administração da plataforma)",
    version="1.0.0"
)

# Configuração CORS
# Pode ser configurado via variável de ambiente CORS_ORIGINS (separado por vírgula)
cors_origins_env = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")
cors_origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _tenant_context(request: Request, call_next):
    return await tenant_context_middleware(request, call_next)


app.include_router(router)


def _error_payload(*, code: str, message: str, details: object | None = None) -> dict:
    payload: dict = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Normaliza erros HTTP do FastAPI/Starlette para um payload consistente.
    code = f"HTTP_{exc.status_code}"
    details = None
    if isinstance(exc.detail, str):
        message = exc.detail
    elif isinstance(exc.detail, dict):
        # detail estruturado: {"message": ..., "fields": {...}} (ex.: envio de formulário)
        message = str(exc.detail.get("message") or "Request failed")
        details = {k: v for k, v in exc.detail.items() if k != "message"} or None
    else:
        message = "Request failed"
        details = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(code=code, message=message, details=details),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Erros de validação viram 400 com a lista do pydantic.
    return JSONResponse(
        status_code=400,
        content=_error_payload(
            code="VALIDATION_ERROR",
            message="Invalid request",
            details=jsonable_encoder(exc.errors()),
        ),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Violação de índice único que escapou das checagens das rotas
    logger.warning(f"IntegrityError em {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=409,
        content=_error_payload(code="CONFLICT", message="Resource conflicts with an existing record"),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Loga o erro completo para debug
    logger.error(f"Erro não tratado: {exc}", exc_info=True)

    error_message = "Internal server error"
    if os.getenv("APP_ENV", "production") == "development":
        # Limita o tamanho da mensagem, sem stacktrace
        error_message = str(exc) or error_message
        max_message_length = 500
        if len(error_message) > max_message_length:
            error_message = error_message[:max_message_length] + "..."

    return JSONResponse(
        status_code=500,
        content=_error_payload(
            code="INTERNAL_ERROR",
            message=error_message
        ),
    )
