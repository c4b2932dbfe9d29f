"""Rotas públicas da vitrine: a loja vem do header X-Tenant-Subdomain ou do Host."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel as PydanticBaseModel
from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.api.common import pagination
from app.api.form import validate_submission
from app.api.order import OrderDetailResponse, order_response
from app.auth.dependencies import get_storefront_tenant
from app.db.session import get_session
from app.lib.variant import effective_price
from app.model.catalog import Attribute, AttributeValue, Category, CategoryStatus
from app.model.content import Blog, BlogCategory, ContentStatus, Page
from app.model.form import Form, FormStatus, FormSubmission
from app.model.order import Order
from app.model.product import Product, ProductStatus, ProductVariant, ProductVariantAttribute
from app.model.tenant import Tenant
from app.services import email_service
from app.services.order_service import get_order_items
from app.services.theme_service import merged_theme_for_tenant

router = APIRouter(prefix="/store", tags=["Storefront"])


class StoreInfo(PydanticBaseModel):
    id: int
    name: str
    subdomain: str
    currency: str
    locale: str
    timezone: str


class StoreVariant(PydanticBaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    price: Decimal
    stock_quantity: int
    in_stock: bool
    image: Optional[str] = None
    attributes: dict[str, str] = {}


class StoreProduct(PydanticBaseModel):
    id: int
    name: str
    slug: str
    short_description: Optional[str] = None
    price: Decimal
    sale_price: Optional[Decimal] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    stock_quantity: int
    in_stock: bool


class StoreProductDetail(StoreProduct):
    description: Optional[str] = None
    gallery: Optional[list[str]] = None
    sku: Optional[str] = None
    variants: list[StoreVariant] = []


class StoreProductList(PydanticBaseModel):
    items: list[StoreProduct]
    pagination: dict[str, Any]


class StoreCategory(PydanticBaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    product_count: int = 0


class StorePage(PydanticBaseModel):
    title: str
    slug: str
    content: Optional[str] = None
    sections: Optional[list[dict[str, Any]]] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None

    class Config:
        from_attributes = True


class StoreBlog(PydanticBaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StoreBlogDetail(StoreBlog):
    content: Optional[str] = None
    category_name: Optional[str] = None


class StoreBlogList(PydanticBaseModel):
    items: list[StoreBlog]
    pagination: dict[str, Any]


class StoreForm(PydanticBaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    button_text: str
    fields: list[dict[str, Any]] = []


class FormSubmitResponse(PydanticBaseModel):
    success: bool
    message: str


def _store_product(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "short_description": product.short_description,
        "price": product.price,
        "sale_price": product.sale_price,
        "image": product.image,
        "category_id": product.category_id,
        "stock_quantity": product.stock_quantity,
        "in_stock": product.stock_quantity > 0,
    }


@router.get("/info", response_model=StoreInfo)
def store_info(tenant: Tenant = Depends(get_storefront_tenant)):
    return StoreInfo(
        id=tenant.id,
        name=tenant.name,
        subdomain=tenant.subdomain,
        currency=tenant.currency,
        locale=tenant.locale,
        timezone=tenant.timezone,
    )


_SORTS = {
    "newest": Product.created_at.desc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "name": Product.name.asc(),
}


@router.get("/products", response_model=StoreProductList)
def store_products(
    page: int = Query(1, ge=1),
    limit: int = Query(24, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = Query(None, description="slug da categoria"),
    category_id: Optional[int] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    in_stock: Optional[bool] = None,
    sort: Literal["newest", "price_asc", "price_desc", "name"] = "newest",
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    """Catálogo público: só produtos ativos."""
    conditions = [Product.tenant_id == tenant.id, Product.status == ProductStatus.ACTIVE]
    if search:
        term = f"%{search.strip()}%"
        conditions.append(or_(Product.name.ilike(term), Product.short_description.ilike(term)))
    if category:
        cat = session.exec(select(Category).where(Category.tenant_id == tenant.id, Category.slug == category)).first()
        if not cat:
            raise HTTPException(status_code=404, detail="Category not found")
        conditions.append(Product.category_id == cat.id)
    if category_id is not None:
        conditions.append(Product.category_id == category_id)
    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)
    if in_stock:
        conditions.append(Product.stock_quantity > 0)

    total = session.exec(select(func.count(Product.id)).where(*conditions)).one()
    products = session.exec(
        select(Product).where(*conditions).order_by(_SORTS[sort], Product.id).offset((page - 1) * limit).limit(limit)
    ).all()
    return StoreProductList(
        items=[StoreProduct(**_store_product(p)) for p in products],
        pagination=pagination(total, page, limit),
    )


@router.get("/products/{slug}", response_model=StoreProductDetail)
def store_product_detail(
    slug: str,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    product = session.exec(
        select(Product).where(
            Product.tenant_id == tenant.id,
            Product.slug == slug,
            Product.status == ProductStatus.ACTIVE,
        )
    ).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    variants = session.exec(
        select(ProductVariant)
        .where(ProductVariant.product_id == product.id, ProductVariant.tenant_id == tenant.id)
        .order_by(ProductVariant.id)
    ).all()
    store_variants = []
    for variant in variants:
        rows = session.exec(
            select(Attribute.name, AttributeValue.value)
            .join(ProductVariantAttribute, ProductVariantAttribute.attribute_value_id == AttributeValue.id)
            .join(Attribute, Attribute.id == AttributeValue.attribute_id)
            .where(ProductVariantAttribute.variant_id == variant.id)
        ).all()
        store_variants.append(
            StoreVariant(
                id=variant.id,
                name=variant.name,
                sku=variant.sku,
                price=effective_price(variant.price, product.sale_price, product.price),
                stock_quantity=variant.stock_quantity,
                in_stock=variant.stock_quantity > 0,
                image=variant.image,
                attributes={name: value for name, value in rows},
            )
        )
    return StoreProductDetail(
        **_store_product(product),
        description=product.description,
        gallery=product.gallery,
        sku=product.sku,
        variants=store_variants,
    )


@router.get("/categories", response_model=list[StoreCategory])
def store_categories(
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    counts = dict(
        session.exec(
            select(Product.category_id, func.count(Product.id))
            .where(Product.tenant_id == tenant.id, Product.status == ProductStatus.ACTIVE)
            .group_by(Product.category_id)
        ).all()
    )
    categories = session.exec(
        select(Category)
        .where(Category.tenant_id == tenant.id, Category.status == CategoryStatus.ACTIVE)
        .order_by(Category.name)
    ).all()
    return [
        StoreCategory(
            id=c.id,
            name=c.name,
            slug=c.slug,
            description=c.description,
            image=c.image,
            parent_id=c.parent_id,
            product_count=counts.get(c.id, 0),
        )
        for c in categories
    ]


@router.get("/theme")
def store_theme(
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    """Tema ativo da loja já mesclado com as customizações."""
    merged = merged_theme_for_tenant(session, tenant.id)
    if merged is None:
        raise HTTPException(status_code=404, detail="Store has no active theme")
    return merged


@router.get("/pages/{slug}", response_model=StorePage)
def store_page(
    slug: str,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    page = session.exec(
        select(Page).where(Page.tenant_id == tenant.id, Page.slug == slug, Page.status == ContentStatus.PUBLISHED)
    ).first()
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    return page


@router.get("/blogs", response_model=StoreBlogList)
def store_blogs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: Optional[str] = None,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    conditions = [Blog.tenant_id == tenant.id, Blog.status == ContentStatus.PUBLISHED]
    if category:
        cat = session.exec(
            select(BlogCategory).where(BlogCategory.tenant_id == tenant.id, BlogCategory.slug == category)
        ).first()
        if not cat:
            raise HTTPException(status_code=404, detail="Blog category not found")
        conditions.append(Blog.category_id == cat.id)
    total = session.exec(select(func.count(Blog.id)).where(*conditions)).one()
    blogs = session.exec(
        select(Blog)
        .where(*conditions)
        .order_by(Blog.published_at.desc(), Blog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return StoreBlogList(items=[StoreBlog.model_validate(b) for b in blogs], pagination=pagination(total, page, limit))


@router.get("/blogs/{slug}", response_model=StoreBlogDetail)
def store_blog_detail(
    slug: str,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    blog = session.exec(
        select(Blog).where(Blog.tenant_id == tenant.id, Blog.slug == slug, Blog.status == ContentStatus.PUBLISHED)
    ).first()
    if not blog:
        raise HTTPException(status_code=404, detail="Blog not found")
    category = session.get(BlogCategory, blog.category_id) if blog.category_id else None
    return StoreBlogDetail(
        **StoreBlog.model_validate(blog).model_dump(),
        content=blog.content,
        category_name=category.name if category else None,
    )


@router.get("/orders/track", response_model=OrderDetailResponse)
def track_order(
    order_number: str,
    email: str,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    """Rastreio para convidados: número do pedido + email usado na compra."""
    order = session.exec(
        select(Order).where(
            Order.tenant_id == tenant.id,
            Order.order_number == order_number.strip(),
            Order.email == email.strip().lower(),
        )
    ).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order_response(order, get_order_items(session, order))


def _active_form(session: Session, tenant_id: int, form_id: int) -> Form:
    form = session.get(Form, form_id)
    if not form or form.tenant_id != tenant_id or form.status != FormStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.get("/forms/{form_id}", response_model=StoreForm)
def store_form(
    form_id: int,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    form = _active_form(session, tenant.id, form_id)
    return StoreForm(
        id=form.id,
        title=form.title,
        slug=form.slug,
        description=form.description,
        button_text=form.button_text,
        fields=form.fields or [],
    )


@router.post("/forms/{form_id}/submit", response_model=FormSubmitResponse, status_code=201)
def submit_form(
    form_id: int,
    payload: dict[str, Any],
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    form = _active_form(session, tenant.id, form_id)
    clean, errors = validate_submission(form.fields or [], payload)
    if errors:
        raise HTTPException(status_code=400, detail={"message": "Invalid form submission", "fields": errors})

    submission = FormSubmission(tenant_id=tenant.id, form_id=form.id, data=clean)
    session.add(submission)
    session.commit()

    recipient = form.email or tenant.contact_email
    if recipient:
        background_tasks.add_task(email_service.send_form_submission, recipient, form.title, tenant.name, clean)
    return FormSubmitResponse(success=True, message=form.success_message or "Thank you! Your submission was received.")
