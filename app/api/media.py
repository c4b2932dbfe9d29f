import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from pydantic import BaseModel as PydanticBaseModel, Field
from sqlalchemy import func
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, pagination
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.model.media import Media
from app.model.membership import Membership
from app.model.tenant import Tenant
from app.services.subscription_service import check_storage
from app.storage import ALLOWED_MEDIA_TYPES, MAX_UPLOAD_BYTES, StorageError, StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["Media"])


class MediaResponse(PydanticBaseModel):
    id: int
    filename: str
    content_type: str
    s3_key: str
    s3_url: str
    file_size: int
    alt_text: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MediaDetailResponse(MediaResponse):
    download_url: Optional[str] = None


class MediaListResponse(PydanticBaseModel):
    items: list[MediaResponse]
    pagination: dict[str, Any]


class MediaUpdate(PydanticBaseModel):
    alt_text: Optional[str] = Field(default=None, max_length=500)


async def read_validated_upload(
    file: UploadFile,
    session: Session,
    tenant: Tenant,
    allowed_types: frozenset[str] = ALLOWED_MEDIA_TYPES,
) -> bytes:
    """Lê o upload validando tipo, tamanho e o limite de armazenamento do plano."""
    if file.content_type not in allowed_types:
        raise HTTPException(status_code=400, detail=f"File type not allowed: {file.content_type}")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File is larger than 10 MB")
    allowed, reason = check_storage(session, tenant, len(content))
    if not allowed:
        raise HTTPException(status_code=403, detail=reason)
    return content


@router.post("/upload", response_model=MediaResponse, status_code=201)
async def upload_media(
    file: UploadFile = File(...),
    alt_text: Optional[str] = Form(None),
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
):
    content = await read_validated_upload(file, session, tenant)
    try:
        media = storage.upload_media(session, tenant.id, file, content, alt_text=alt_text)
    except StorageError as e:
        logger.error(f"Erro no upload para o storage (tenant {tenant.id}): {e}")
        raise HTTPException(status_code=502, detail="Storage service unavailable")
    return media


@router.get("", response_model=MediaListResponse)
def list_media(
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    content_type: Optional[str] = Query(None, description="prefixo, ex: image/"),
    search: Optional[str] = None,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    conditions = [Media.tenant_id == membership.tenant_id]
    if content_type:
        conditions.append(Media.content_type.startswith(content_type))
    if search:
        conditions.append(Media.filename.ilike(f"%{search.strip()}%"))
    total = session.exec(select(func.count(Media.id)).where(*conditions)).one()
    rows = session.exec(
        select(Media).where(*conditions).order_by(Media.created_at.desc(), Media.id.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return MediaListResponse(items=[MediaResponse.model_validate(m) for m in rows], pagination=pagination(total, page, limit))


@router.get("/{media_id}", response_model=MediaDetailResponse)
def get_media(
    media_id: int,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
):
    media = get_owned_or_404(session, Media, media_id, membership.tenant_id, "Media")
    try:
        download_url = storage.get_presigned_url(media.s3_key)
    except StorageError as e:
        logger.warning(f"Não foi possível gerar URL assinada para {media.s3_key}: {e}")
        download_url = None
    return MediaDetailResponse(**MediaResponse.model_validate(media).model_dump(), download_url=download_url)


@router.put("/{media_id}", response_model=MediaResponse)
def update_media(
    media_id: int,
    body: MediaUpdate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    media = get_owned_or_404(session, Media, media_id, membership.tenant_id, "Media")
    media.alt_text = body.alt_text
    session.add(media)
    session.commit()
    session.refresh(media)
    return media


@router.delete("/{media_id}", status_code=204)
def delete_media(
    media_id: int,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
):
    """Remove o objeto do storage e depois o registro."""
    media = get_owned_or_404(session, Media, media_id, membership.tenant_id, "Media")
    try:
        storage.delete_file(media.s3_key)
    except StorageError as e:
        logger.error(f"Erro ao deletar {media.s3_key} do storage: {e}")
        raise HTTPException(status_code=502, detail="Storage service unavailable")
    session.delete(media)
    session.commit()
    return Response(status_code=204)
