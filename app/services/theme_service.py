from __future__ import annotations

import logging
from typing import Any

from sqlmodel import Session, select

from app.lib.theme import DEFAULT_THEME_SLUG, THEME_TEMPLATES, merge_theme
from app.model.base import utc_now
from app.model.theme import TenantTheme, Theme

logger = logging.getLogger(__name__)


def ensure_default_themes(session: Session, commit: bool = True) -> list[Theme]:
    """Cria os temas embutidos que ainda não existem. Retorna os criados."""
    existing = set(session.exec(select(Theme.slug)).all())
    created: list[Theme] = []
    for slug, template in THEME_TEMPLATES.items():
        if slug in existing:
            continue
        theme = Theme(
            title=template["title"],
            slug=slug,
            description=template["description"],
            industry=template["industry"],
            layout=template["layout"],
            colors=template["colors"],
            typography=template["typography"],
            config=template["config"],
        )
        session.add(theme)
        created.append(theme)
    if created and commit:
        session.commit()
        for theme in created:
            session.refresh(theme)
    elif created:
        session.flush()
        logger.info(f"Temas padrão criados: {[t.slug for t in created]}")
    return created


def get_active_tenant_theme(session: Session, tenant_id: int) -> TenantTheme | None:
    return session.exec(
        select(TenantTheme).where(
            TenantTheme.tenant_id == tenant_id,
            TenantTheme.is_active == True,  # noqa: E712
        )
    ).first()


def install_theme(session: Session, tenant_id: int, theme: Theme) -> tuple[TenantTheme, bool]:
    """
    Ativa `theme` para a loja: desativa os outros, reativa o registro existente
    (mantendo customizações) ou cria um novo.

    Returns:
        (tenant_theme, created). Não faz commit.
    """
    others = session.exec(
        select(TenantTheme).where(
            TenantTheme.tenant_id == tenant_id,
            TenantTheme.theme_id != theme.id,
            TenantTheme.is_active == True,  # noqa: E712
        )
    ).all()
    for other in others:
        other.is_active = False
        other.updated_at = utc_now()
        session.add(other)

    tenant_theme = session.exec(
        select(TenantTheme).where(
            TenantTheme.tenant_id == tenant_id,
            TenantTheme.theme_id == theme.id,
        )
    ).first()
    created = tenant_theme is None
    if created:
        tenant_theme = TenantTheme(tenant_id=tenant_id, theme_id=theme.id, is_active=True)
    else:
        tenant_theme.is_active = True
        tenant_theme.updated_at = utc_now()
    session.add(tenant_theme)
    return tenant_theme, created


def install_default_theme(session: Session, tenant_id: int) -> TenantTheme | None:
    theme = session.exec(select(Theme).where(Theme.slug == DEFAULT_THEME_SLUG)).first()
    if not theme:
        ensure_default_themes(session, commit=False)
        theme = session.exec(select(Theme).where(Theme.slug == DEFAULT_THEME_SLUG)).first()
    if not theme:
        return None
    tenant_theme, _ = install_theme(session, tenant_id, theme)
    return tenant_theme


def theme_dict(theme: Theme) -> dict[str, Any]:
    return {
        "id": theme.id,
        "title": theme.title,
        "slug": theme.slug,
        "description": theme.description,
        "author": theme.author,
        "version": theme.version,
        "industry": theme.industry,
        "status": theme.status,
        "is_premium": theme.is_premium,
        "price": float(theme.price) if theme.price is not None else None,
        "screenshot_url": theme.screenshot_url,
        "layout": theme.layout or {},
        "config": theme.config or {},
        "colors": theme.colors or {},
        "typography": theme.typography or {},
    }


CUSTOMIZATION_FIELDS: tuple[str, ...] = (
    "custom_colors",
    "custom_fonts",
    "custom_layouts",
    "custom_css",
    "custom_js",
    "logo_url",
    "favicon_url",
    "meta_title",
    "meta_description",
    "meta_keywords",
    "social_links",
)


def customization_dict(tenant_theme: TenantTheme) -> dict[str, Any]:
    return {field: getattr(tenant_theme, field) for field in CUSTOMIZATION_FIELDS}


def merged_theme_for_tenant(session: Session, tenant_id: int) -> dict[str, Any] | None:
    """Tema ativo + customizações, no formato que a vitrine consome."""
    tenant_theme = get_active_tenant_theme(session, tenant_id)
    if not tenant_theme:
        return None
    theme = session.get(Theme, tenant_theme.theme_id)
    if not theme:
        return None
    base = theme_dict(theme)
    customization = customization_dict(tenant_theme)
    merged = merge_theme(base, customization)
    return {
        "theme": base,
        "customization": customization,
        "colors": merged["colors"],
        "typography": merged["typography"],
        "layout": merged["layout"],
        "custom_css": merged["custom_css"],
        "custom_js": tenant_theme.custom_js,
        "logo_url": tenant_theme.logo_url,
        "favicon_url": tenant_theme.favicon_url,
        "meta": {
            "title": tenant_theme.meta_title,
            "description": tenant_theme.meta_description,
            "keywords": tenant_theme.meta_keywords,
        },
        "social_links": tenant_theme.social_links or {},
    }
