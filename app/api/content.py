from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field
from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, pagination
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.lib.slug import generate_slug, unique_slug
from app.model.base import utc_now
from app.model.content import Blog, BlogCategory, ContentStatus, Page
from app.model.membership import Membership
from app.model.tenant import Tenant
from app.services.subscription_service import enforce_limit

router = APIRouter(tags=["Content"])


def _slug_for(session: Session, model, tenant_id: int, wanted: str, exclude_id: int | None = None) -> str:
    taken = set(
        session.exec(select(model.slug).where(model.tenant_id == tenant_id, model.id != (exclude_id or 0))).all()
    )
    return unique_slug(generate_slug(wanted), taken)


def _publish_date(status: ContentStatus, current: datetime | None) -> datetime | None:
    if status == ContentStatus.PUBLISHED:
        return current or utc_now()
    return current


# ---------------------------------------------------------------------------
# Categorias do blog
# ---------------------------------------------------------------------------


class BlogCategoryCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)


class BlogCategoryResponse(PydanticBaseModel):
    id: int
    name: str
    slug: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/blogs/categories", response_model=list[BlogCategoryResponse])
def list_blog_categories(
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    return session.exec(
        select(BlogCategory).where(BlogCategory.tenant_id == membership.tenant_id).order_by(BlogCategory.name)
    ).all()


@router.post("/blogs/categories", response_model=BlogCategoryResponse, status_code=201)
def create_blog_category(
    body: BlogCategoryCreate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    category = BlogCategory(
        tenant_id=membership.tenant_id,
        name=body.name.strip(),
        slug=_slug_for(session, BlogCategory, membership.tenant_id, body.slug or body.name),
    )
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.put("/blogs/categories/{category_id}", response_model=BlogCategoryResponse)
def update_blog_category(
    category_id: int,
    body: BlogCategoryCreate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    category = get_owned_or_404(session, BlogCategory, category_id, membership.tenant_id, "Blog category")
    category.name = body.name.strip()
    if body.slug:
        category.slug = _slug_for(session, BlogCategory, membership.tenant_id, body.slug, exclude_id=category.id)
    category.updated_at = utc_now()
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.delete("/blogs/categories/{category_id}", status_code=204)
def delete_blog_category(
    category_id: int,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    category = get_owned_or_404(session, BlogCategory, category_id, membership.tenant_id, "Blog category")
    session.exec(
        update(Blog)
        .where(Blog.tenant_id == membership.tenant_id, Blog.category_id == category.id)
        .values(category_id=None)
    )
    session.delete(category)
    session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Blogs
# ---------------------------------------------------------------------------


class BlogCreate(PydanticBaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    excerpt: Optional[str] = Field(default=None, max_length=1000)
    content: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    status: ContentStatus = ContentStatus.DRAFT


class BlogUpdate(PydanticBaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    excerpt: Optional[str] = Field(default=None, max_length=1000)
    content: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    status: Optional[ContentStatus] = None


class BlogResponse(PydanticBaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    status: ContentStatus
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BlogListResponse(PydanticBaseModel):
    items: list[BlogResponse]
    pagination: dict[str, Any]


@router.get("/blogs", response_model=BlogListResponse)
def list_blogs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[ContentStatus] = None,
    category_id: Optional[int] = None,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    conditions = [Blog.tenant_id == membership.tenant_id]
    if search:
        term = f"%{search.strip()}%"
        conditions.append(or_(Blog.title.ilike(term), Blog.excerpt.ilike(term)))
    if status:
        conditions.append(Blog.status == status)
    if category_id is not None:
        conditions.append(Blog.category_id == category_id)
    total = session.exec(select(func.count(Blog.id)).where(*conditions)).one()
    blogs = session.exec(
        select(Blog).where(*conditions).order_by(Blog.created_at.desc(), Blog.id.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return BlogListResponse(
        items=[BlogResponse.model_validate(b) for b in blogs],
        pagination=pagination(total, page, limit),
    )


@router.post("/blogs", response_model=BlogResponse, status_code=201)
def create_blog(
    body: BlogCreate,
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    enforce_limit(session, tenant, "blogs")
    if body.category_id is not None:
        get_owned_or_404(session, BlogCategory, body.category_id, tenant.id, "Blog category")
    blog = Blog(
        tenant_id=tenant.id,
        title=body.title.strip(),
        slug=_slug_for(session, Blog, tenant.id, body.slug or body.title),
        excerpt=body.excerpt,
        content=body.content,
        image=body.image,
        category_id=body.category_id,
        status=body.status,
        published_at=_publish_date(body.status, None),
    )
    session.add(blog)
    session.commit()
    session.refresh(blog)
    return blog


@router.get("/blogs/{blog_id}", response_model=BlogResponse)
def get_blog(
    blog_id: int,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    return get_owned_or_404(session, Blog, blog_id, membership.tenant_id, "Blog")


@router.put("/blogs/{blog_id}", response_model=BlogResponse)
def update_blog(
    blog_id: int,
    body: BlogUpdate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    blog = get_owned_or_404(session, Blog, blog_id, membership.tenant_id, "Blog")
    data = body.model_dump(exclude_unset=True)
    if data.get("category_id") is not None:
        get_owned_or_404(session, BlogCategory, data["category_id"], membership.tenant_id, "Blog category")
    if data.get("slug"):
        blog.slug = _slug_for(session, Blog, membership.tenant_id, data["slug"], exclude_id=blog.id)
    if data.get("title"):
        blog.title = data["title"].strip()
    for key in ("excerpt", "content", "image", "category_id"):
        if key in data:
            setattr(blog, key, data[key])
    if data.get("status"):
        blog.status = data["status"]
        blog.published_at = _publish_date(blog.status, blog.published_at)
    blog.updated_at = utc_now()
    session.add(blog)
    session.commit()
    session.refresh(blog)
    return blog


@router.delete("/blogs/{blog_id}", status_code=204)
def delete_blog(
    blog_id: int,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    blog = get_owned_or_404(session, Blog, blog_id, membership.tenant_id, "Blog")
    session.delete(blog)
    session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Páginas
# ---------------------------------------------------------------------------


class PageCreate(PydanticBaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    sections: Optional[list[dict[str, Any]]] = None
    status: ContentStatus = ContentStatus.DRAFT
    meta_title: Optional[str] = Field(default=None, max_length=255)
    meta_description: Optional[str] = Field(default=None, max_length=500)


class PageUpdate(PydanticBaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    sections: Optional[list[dict[str, Any]]] = None
    status: Optional[ContentStatus] = None
    meta_title: Optional[str] = Field(default=None, max_length=255)
    meta_description: Optional[str] = Field(default=None, max_length=500)


class PageResponse(PydanticBaseModel):
    id: int
    title: str
    slug: str
    content: Optional[str] = None
    sections: Optional[list[dict[str, Any]]] = None
    status: ContentStatus
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("/pages", response_model=list[PageResponse])
def list_pages(
    status: Optional[ContentStatus] = None,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    query = select(Page).where(Page.tenant_id == membership.tenant_id)
    if status:
        query = query.where(Page.status == status)
    return session.exec(query.order_by(Page.title)).all()


@router.post("/pages", response_model=PageResponse, status_code=201)
def create_page(
    body: PageCreate,
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    enforce_limit(session, tenant, "pages")
    data = body.model_dump()
    data["title"] = body.title.strip()
    data["slug"] = _slug_for(session, Page, tenant.id, body.slug or body.title)
    page = Page(tenant_id=tenant.id, **data)
    session.add(page)
    session.commit()
    session.refresh(page)
    return page


@router.get("/pages/{page_id}", response_model=PageResponse)
def get_page(
    page_id: int,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    return get_owned_or_404(session, Page, page_id, membership.tenant_id, "Page")


@router.put("/pages/{page_id}", response_model=PageResponse)
def update_page(
    page_id: int,
    body: PageUpdate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    page = get_owned_or_404(session, Page, page_id, membership.tenant_id, "Page")
    data = body.model_dump(exclude_unset=True)
    if data.get("slug"):
        page.slug = _slug_for(session, Page, membership.tenant_id, data["slug"], exclude_id=page.id)
    if data.get("title"):
        page.title = data["title"].strip()
    for key in ("content", "sections", "meta_title", "meta_description"):
        if key in data:
            setattr(page, key, data[key])
    if data.get("status"):
        page.status = data["status"]
    page.updated_at = utc_now()
    session.add(page)
    session.commit()
    session.refresh(page)
    return page


@router.delete("/pages/{page_id}", status_code=204)
def delete_page(
    page_id: int,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    page = get_owned_or_404(session, Page, page_id, membership.tenant_id, "Page")
    session.delete(page)
    session.commit()
    return Response(status_code=204)
