from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel as PydanticBaseModel, Field
from sqlalchemy import func
from sqlmodel import Session, select

from app.auth.dependencies import get_current_tenant, require_landlord, require_permission
from app.api.media import read_validated_upload
from app.db.session import get_session
from app.lib.slug import generate_slug
from app.lib.theme import generate_theme_css
from app.model.account import Account
from app.model.base import utc_now
from app.model.membership import Membership
from app.model.tenant import Tenant
from app.model.theme import TenantTheme, Theme
from app.services.theme_service import (
    CUSTOMIZATION_FIELDS,
    customization_dict,
    get_active_tenant_theme,
    install_theme,
    merged_theme_for_tenant,
    theme_dict,
)
from app.storage import StorageError, StorageService, get_storage_service

router = APIRouter(tags=["Themes"])

BRANDING_TYPES = frozenset(["image/png", "image/jpeg", "image/svg+xml", "image/webp", "image/x-icon", "image/vnd.microsoft.icon"])


class ThemeSummary(PydanticBaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    author: str
    version: str
    industry: str
    is_premium: bool
    price: Optional[Decimal] = None
    screenshot_url: Optional[str] = None
    installed: bool = False
    active: bool = False


class InstallRequest(PydanticBaseModel):
    theme_id: Optional[int] = None
    slug: Optional[str] = None


class Customization(PydanticBaseModel):
    custom_colors: Optional[dict[str, Any]] = None
    custom_fonts: Optional[dict[str, Any]] = None
    custom_layouts: Optional[dict[str, Any]] = None
    custom_css: Optional[str] = Field(default=None, max_length=100_000)
    custom_js: Optional[str] = Field(default=None, max_length=100_000)
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    meta_title: Optional[str] = Field(default=None, max_length=255)
    meta_description: Optional[str] = Field(default=None, max_length=500)
    meta_keywords: Optional[str] = Field(default=None, max_length=500)
    social_links: Optional[dict[str, Any]] = None


class ThemeExport(PydanticBaseModel):
    theme_slug: str
    theme_version: Optional[str] = None
    exported_at: Optional[datetime] = None
    customization: Customization


class ThemeWrite(PydanticBaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    author: str = "DukaNest"
    version: str = "1.0.0"
    industry: str = "general"
    status: bool = True
    is_premium: bool = False
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    screenshot_url: Optional[str] = None
    layout: Optional[dict[str, Any]] = None
    config: Optional[dict[str, Any]] = None
    colors: Optional[dict[str, Any]] = None
    typography: Optional[dict[str, Any]] = None


def _find_theme(session: Session, theme_id: Optional[int] = None, slug: Optional[str] = None) -> Theme:
    theme = None
    if theme_id is not None:
        theme = session.get(Theme, theme_id)
    elif slug:
        theme = session.exec(select(Theme).where(Theme.slug == slug)).first()
    if not theme or not theme.status:
        raise HTTPException(status_code=404, detail="Theme not found")
    return theme


def _current_or_404(session: Session, tenant_id: int) -> TenantTheme:
    tenant_theme = get_active_tenant_theme(session, tenant_id)
    if not tenant_theme:
        raise HTTPException(status_code=404, detail="No active theme installed")
    return tenant_theme


def _apply_customization(tenant_theme: TenantTheme, body: Customization) -> None:
    """Só substitui os campos enviados com valor (null mantém o atual)."""
    for field in CUSTOMIZATION_FIELDS:
        value = getattr(body, field)
        if value is not None:
            setattr(tenant_theme, field, value)
    tenant_theme.updated_at = utc_now()


@router.get("/themes", response_model=list[ThemeSummary])
def list_themes(
    industry: Optional[str] = None,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    query = select(Theme).where(Theme.status == True)  # noqa: E712
    if industry:
        query = query.where(Theme.industry == industry)
    installed = {
        tt.theme_id: tt.is_active
        for tt in session.exec(select(TenantTheme).where(TenantTheme.tenant_id == membership.tenant_id)).all()
    }
    return [
        ThemeSummary(
            **{k: v for k, v in theme_dict(t).items() if k in ThemeSummary.model_fields},
            installed=t.id in installed,
            active=installed.get(t.id, False),
        )
        for t in session.exec(query.order_by(Theme.title)).all()
    ]


@router.post("/themes/install")
def install(
    body: InstallRequest,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    """Ativa o tema na loja; customizações de uma instalação anterior são mantidas."""
    if body.theme_id is None and not body.slug:
        raise HTTPException(status_code=400, detail="Provide theme_id or slug")
    theme = _find_theme(session, body.theme_id, body.slug)
    tenant_theme, created = install_theme(session, membership.tenant_id, theme)
    session.commit()
    session.refresh(tenant_theme)
    return {
        "message": "Theme installed" if created else "Theme activated",
        "theme": theme_dict(theme),
        "tenant_theme_id": tenant_theme.id,
        "created": created,
    }


@router.get("/themes/current")
def get_current_theme(
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    merged = merged_theme_for_tenant(session, membership.tenant_id)
    if merged is None:
        raise HTTPException(status_code=404, detail="No active theme installed")
    return merged


@router.put("/themes/current")
def customize_current_theme(
    body: Customization,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    tenant_theme = _current_or_404(session, membership.tenant_id)
    _apply_customization(tenant_theme, body)
    session.add(tenant_theme)
    session.commit()
    return merged_theme_for_tenant(session, membership.tenant_id)


@router.get("/themes/current/styles.css", response_class=PlainTextResponse)
def current_theme_css(
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    merged = merged_theme_for_tenant(session, membership.tenant_id)
    if merged is None:
        raise HTTPException(status_code=404, detail="No active theme installed")
    return PlainTextResponse(generate_theme_css(merged), media_type="text/css")


@router.get("/themes/export", response_model=ThemeExport)
def export_theme(
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    tenant_theme = _current_or_404(session, membership.tenant_id)
    theme = session.get(Theme, tenant_theme.theme_id)
    return ThemeExport(
        theme_slug=theme.slug,
        theme_version=theme.version,
        exported_at=utc_now(),
        customization=Customization(**customization_dict(tenant_theme)),
    )


@router.post("/themes/import")
def import_theme(
    body: ThemeExport,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    """Instala o tema do arquivo exportado e aplica as customizações."""
    theme = _find_theme(session, slug=body.theme_slug)
    tenant_theme, _ = install_theme(session, membership.tenant_id, theme)
    _apply_customization(tenant_theme, body.customization)
    session.add(tenant_theme)
    session.commit()
    return merged_theme_for_tenant(session, membership.tenant_id)


@router.post("/themes/upload-branding")
async def upload_branding(
    kind: Literal["logo", "favicon"] = Form(...),
    file: UploadFile = File(...),
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
):
    tenant_theme = _current_or_404(session, tenant.id)
    content = await read_validated_upload(file, session, tenant, allowed_types=BRANDING_TYPES)
    try:
        media = storage.upload_media(session, tenant.id, file, content, alt_text=f"{tenant.name} {kind}", kind="branding")
    except StorageError:
        raise HTTPException(status_code=502, detail="Storage service unavailable")
    if kind == "logo":
        tenant_theme.logo_url = media.s3_url
    else:
        tenant_theme.favicon_url = media.s3_url
    tenant_theme.updated_at = utc_now()
    session.add(tenant_theme)
    session.commit()
    return {"kind": kind, "url": media.s3_url, "media_id": media.id}


@router.get("/themes/{theme_id}")
def get_theme(
    theme_id: int,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    return theme_dict(_find_theme(session, theme_id=theme_id))


# ---------------------------------------------------------------------------
# Landlord: catálogo global de temas
# ---------------------------------------------------------------------------


@router.get("/admin/themes")
def admin_list_themes(
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    usage = dict(
        session.exec(
            select(TenantTheme.theme_id, func.count(TenantTheme.id))
            .where(TenantTheme.is_active == True)  # noqa: E712
            .group_by(TenantTheme.theme_id)
        ).all()
    )
    return [
        {**theme_dict(t), "active_installs": usage.get(t.id, 0)}
        for t in session.exec(select(Theme).order_by(Theme.title)).all()
    ]


@router.post("/admin/themes", status_code=201)
def admin_create_theme(
    body: ThemeWrite,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    slug = generate_slug(body.slug or body.title)
    if session.exec(select(Theme.id).where(Theme.slug == slug)).first() is not None:
        raise HTTPException(status_code=409, detail=f"Theme '{slug}' already exists")
    theme = Theme(**body.model_dump(exclude={"slug"}), slug=slug)
    session.add(theme)
    session.commit()
    session.refresh(theme)
    return theme_dict(theme)


@router.put("/admin/themes/{theme_id}")
def admin_update_theme(
    theme_id: int,
    body: ThemeWrite,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    theme = session.get(Theme, theme_id)
    if not theme:
        raise HTTPException(status_code=404, detail="Theme not found")
    for key, value in body.model_dump(exclude={"slug"}, exclude_unset=True).items():
        setattr(theme, key, value)
    if body.slug:
        slug = generate_slug(body.slug)
        clash = session.exec(select(Theme.id).where(Theme.slug == slug, Theme.id != theme.id)).first()
        if clash is not None:
            raise HTTPException(status_code=409, detail=f"Theme '{slug}' already exists")
        theme.slug = slug
    theme.updated_at = utc_now()
    session.add(theme)
    session.commit()
    session.refresh(theme)
    return theme_dict(theme)


@router.delete("/admin/themes/{theme_id}", status_code=204)
def admin_delete_theme(
    theme_id: int,
    account: Account = Depends(require_landlord),
    session: Session = Depends(get_session),
):
    theme = session.get(Theme, theme_id)
    if not theme:
        raise HTTPException(status_code=404, detail="Theme not found")
    in_use = session.exec(select(TenantTheme.id).where(TenantTheme.theme_id == theme.id)).first()
    if in_use is not None:
        raise HTTPException(status_code=409, detail="Theme is installed by at least one store")
    session.delete(theme)
    session.commit()
    return Response(status_code=204)
