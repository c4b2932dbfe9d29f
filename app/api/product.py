from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlalchemy import delete, func, or_, update
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, pagination
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.lib.cache import cache
from app.lib.slug import generate_slug, unique_slug
from app.lib.variant import variant_name, variant_sku
from app.model.base import utc_now
from app.model.cart import CartItem
from app.model.catalog import Attribute, AttributeValue, Category
from app.model.inventory import InventoryHistory
from app.model.membership import Membership
from app.model.order import OrderItem
from app.model.product import Product, ProductStatus, ProductVariant, ProductVariantAttribute
from app.model.review import ProductReview
from app.model.tenant import Tenant
from app.model.wishlist import ProductWishlist
from app.services.inventory_service import get_product_variants, sync_product_stock_from_variants
from app.services.subscription_service import enforce_limit

router = APIRouter(prefix="/products", tags=["Products"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class ProductCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    short_description: Optional[str] = Field(default=None, max_length=500)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    sale_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    sku: Optional[str] = Field(default=None, max_length=100)
    stock_quantity: int = Field(default=0, ge=0)
    status: ProductStatus = ProductStatus.ACTIVE
    image: Optional[str] = None
    gallery: Optional[list[str]] = None
    category_id: Optional[int] = None
    data: Optional[dict[str, Any]] = None

    @field_validator("sku")
    @classmethod
    def strip_sku(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None


class ProductUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    short_description: Optional[str] = Field(default=None, max_length=500)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    sale_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    sku: Optional[str] = Field(default=None, max_length=100)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    status: Optional[ProductStatus] = None
    image: Optional[str] = None
    gallery: Optional[list[str]] = None
    category_id: Optional[int] = None
    data: Optional[dict[str, Any]] = None


class VariantAttributeResponse(PydanticBaseModel):
    attribute_id: int
    attribute_name: str
    attribute_value_id: int
    value: str
    color_code: Optional[str] = None


class VariantResponse(PydanticBaseModel):
    id: int
    product_id: int
    name: str
    sku: Optional[str] = None
    price: Optional[Decimal] = None
    effective_price: Decimal
    stock_quantity: int
    image: Optional[str] = None
    attributes: list[VariantAttributeResponse] = []
    created_at: datetime
    updated_at: datetime


class ProductResponse(PydanticBaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: Decimal
    sale_price: Optional[Decimal] = None
    sku: Optional[str] = None
    stock_quantity: int
    status: ProductStatus
    image: Optional[str] = None
    gallery: Optional[list[str]] = None
    category_id: Optional[int] = None
    data: Optional[dict[str, Any]] = None
    has_variants: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductDetailResponse(ProductResponse):
    variants: list[VariantResponse] = []


class ProductListResponse(PydanticBaseModel):
    items: list[ProductResponse]
    pagination: dict[str, Any]


class VariantCreate(PydanticBaseModel):
    attribute_value_ids: list[int] = []
    sku: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    image: Optional[str] = None


class VariantUpdate(PydanticBaseModel):
    attribute_value_ids: Optional[list[int]] = None
    sku: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _product_slug(session: Session, tenant_id: int, wanted: str, exclude_id: int | None = None) -> str:
    base = generate_slug(wanted)
    taken = set(
        session.exec(
            select(Product.slug).where(
                Product.tenant_id == tenant_id,
                Product.slug.like(f"{base}%"),
                Product.id != (exclude_id or 0),
            )
        ).all()
    )
    return unique_slug(base, taken)


def _ensure_sku_free(session: Session, model, tenant_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    clash = session.exec(
        select(model.id).where(model.tenant_id == tenant_id, model.sku == sku, model.id != (exclude_id or 0))
    ).first()
    if clash is not None:
        raise HTTPException(status_code=409, detail=f"SKU '{sku}' already exists")


def _check_category(session: Session, tenant_id: int, category_id: int | None) -> None:
    if category_id is not None:
        get_owned_or_404(session, Category, category_id, tenant_id, "Category")


def _variant_count(session: Session, product_id: int, tenant_id: int) -> int:
    return session.exec(
        select(func.count(ProductVariant.id)).where(
            ProductVariant.product_id == product_id, ProductVariant.tenant_id == tenant_id
        )
    ).one()


def _product_response(session: Session, product: Product, model=ProductResponse, **extra):
    data = ProductResponse.model_validate(product).model_dump()
    data["has_variants"] = _variant_count(session, product.id, product.tenant_id) > 0
    data.update(extra)
    return model(**data)


def _variant_attributes(session: Session, variant_id: int) -> list[VariantAttributeResponse]:
    rows = session.exec(
        select(AttributeValue, Attribute)
        .join(ProductVariantAttribute, ProductVariantAttribute.attribute_value_id == AttributeValue.id)
        .join(Attribute, Attribute.id == AttributeValue.attribute_id)
        .where(ProductVariantAttribute.variant_id == variant_id)
        .order_by(Attribute.name)
    ).all()
    return [
        VariantAttributeResponse(
            attribute_id=attribute.id,
            attribute_name=attribute.name,
            attribute_value_id=value.id,
            value=value.value,
            color_code=value.color_code,
        )
        for value, attribute in rows
    ]


def _variant_response(session: Session, variant: ProductVariant, product: Product) -> VariantResponse:
    return VariantResponse(
        id=variant.id,
        product_id=variant.product_id,
        name=variant.name,
        sku=variant.sku,
        price=variant.price,
        effective_price=variant.price if variant.price is not None else product.price,
        stock_quantity=variant.stock_quantity,
        image=variant.image,
        attributes=_variant_attributes(session, variant.id),
        created_at=variant.created_at,
        updated_at=variant.updated_at,
    )


def _resolve_attribute_values(session: Session, tenant_id: int, value_ids: list[int]) -> list[tuple[Attribute, AttributeValue]]:
    """Carrega os valores pedidos; um valor por atributo."""
    resolved: list[tuple[Attribute, AttributeValue]] = []
    seen_attributes: set[int] = set()
    for value_id in dict.fromkeys(value_ids):
        value = get_owned_or_404(session, AttributeValue, value_id, tenant_id, "Attribute value")
        if value.attribute_id in seen_attributes:
            raise HTTPException(status_code=400, detail="A variant can have only one value per attribute")
        seen_attributes.add(value.attribute_id)
        resolved.append((session.get(Attribute, value.attribute_id), value))
    return resolved


def _ensure_combination_free(session: Session, product_id: int, value_ids: set[int], exclude_id: int | None = None) -> None:
    if not value_ids:
        return
    for other in session.exec(
        select(ProductVariant.id).where(ProductVariant.product_id == product_id, ProductVariant.id != (exclude_id or 0))
    ).all():
        other_ids = set(
            session.exec(
                select(ProductVariantAttribute.attribute_value_id).where(ProductVariantAttribute.variant_id == other)
            ).all()
        )
        if other_ids == value_ids:
            raise HTTPException(status_code=409, detail="A variant with these attribute values already exists")


def _generated_variant_sku(session: Session, tenant: Tenant, product: Product, pairs: list[tuple[str, str]]) -> str:
    base = variant_sku(product.name, pairs, tenant.subdomain)
    taken = set(
        session.exec(
            select(ProductVariant.sku).where(ProductVariant.tenant_id == tenant.id, ProductVariant.sku.like(f"{base}%"))
        ).all()
    )
    if base not in taken:
        return base
    counter = 2
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"


def _link_values(session: Session, variant: ProductVariant, resolved: list[tuple[Attribute, AttributeValue]]) -> None:
    session.exec(delete(ProductVariantAttribute).where(ProductVariantAttribute.variant_id == variant.id))
    for attribute, value in resolved:
        session.add(
            ProductVariantAttribute(variant_id=variant.id, attribute_value_id=value.id, attribute_id=attribute.id)
        )


def _get_variant(session: Session, product: Product, variant_id: int) -> ProductVariant:
    variant = session.get(ProductVariant, variant_id)
    if not variant or variant.tenant_id != product.tenant_id or variant.product_id != product.id:
        raise HTTPException(status_code=404, detail="Variant not found")
    return variant


# ---------------------------------------------------------------------------
# Produtos
# ---------------------------------------------------------------------------

_SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}


@router.get("", response_model=ProductListResponse)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[ProductStatus] = None,
    category_id: Optional[int] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    in_stock: Optional[bool] = None,
    sort_by: Literal["name", "price", "created_at", "updated_at"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    conditions = [Product.tenant_id == membership.tenant_id]
    if search:
        term = f"%{search.strip()}%"
        conditions.append(or_(Product.name.ilike(term), Product.sku.ilike(term), Product.description.ilike(term)))
    if status:
        conditions.append(Product.status == status)
    if category_id is not None:
        conditions.append(Product.category_id == category_id)
    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)
    if in_stock is True:
        conditions.append(Product.stock_quantity > 0)
    elif in_stock is False:
        conditions.append(Product.stock_quantity == 0)

    total = session.exec(select(func.count(Product.id)).where(*conditions)).one()
    column = _SORT_COLUMNS[sort_by]
    products = session.exec(
        select(Product)
        .where(*conditions)
        .order_by(column.asc() if sort_order == "asc" else column.desc(), Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return ProductListResponse(
        items=[_product_response(session, p) for p in products],
        pagination=pagination(total, page, limit),
    )


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    body: ProductCreate,
    membership: Membership = Depends(require_permission("products.create")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    enforce_limit(session, tenant, "products")
    _check_category(session, tenant.id, body.category_id)
    _ensure_sku_free(session, Product, tenant.id, body.sku)

    data = body.model_dump()
    data["name"] = body.name.strip()
    data["slug"] = _product_slug(session, tenant.id, body.slug or body.name)
    product = Product(tenant_id=tenant.id, **data)
    session.add(product)
    session.commit()
    session.refresh(product)
    cache.clear_tenant(tenant.id)
    return _product_response(session, product)


@router.get("/{product_id}", response_model=ProductDetailResponse)
def get_product(
    product_id: int,
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    product = get_owned_or_404(session, Product, product_id, membership.tenant_id, "Product")
    variants = get_product_variants(session, product.id, product.tenant_id)
    return _product_response(
        session,
        product,
        model=ProductDetailResponse,
        variants=[_variant_response(session, v, product) for v in variants],
    )


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    body: ProductUpdate,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    """
    Atualiza o produto.

    Se o produto tem variantes, `stock_quantity` enviado é ignorado e o
    estoque é recalculado a partir das variantes.
    """
    tenant_id = membership.tenant_id
    product = get_owned_or_404(session, Product, product_id, tenant_id, "Product")
    data = body.model_dump(exclude_unset=True)

    if "category_id" in data:
        _check_category(session, tenant_id, data["category_id"])
    if "sku" in data:
        data["sku"] = (data["sku"] or "").strip() or None
        _ensure_sku_free(session, Product, tenant_id, data["sku"], exclude_id=product.id)
    if data.get("slug"):
        data["slug"] = _product_slug(session, tenant_id, data["slug"], exclude_id=product.id)
    elif "slug" in data:
        data.pop("slug")
    if data.get("name"):
        data["name"] = data["name"].strip()
    for key in ("name", "price", "status"):
        if key in data and data[key] is None:
            data.pop(key)

    has_variants = _variant_count(session, product.id, tenant_id) > 0
    if has_variants or data.get("stock_quantity") is None:
        data.pop("stock_quantity", None)

    for key, value in data.items():
        setattr(product, key, value)
    product.updated_at = utc_now()
    session.add(product)
    session.flush()
    if has_variants:
        sync_product_stock_from_variants(session, product.id, tenant_id)
    session.commit()
    session.refresh(product)
    cache.clear_tenant(tenant_id)
    return _product_response(session, product)


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    membership: Membership = Depends(require_permission("products.delete")),
    session: Session = Depends(get_session),
):
    """
    Exclui o produto e suas variantes.

    Itens de pedido e histórico de estoque ficam com product_id/variant_id NULL;
    itens de carrinho, lista de desejos e avaliações são removidos.
    """
    tenant_id = membership.tenant_id
    product = get_owned_or_404(session, Product, product_id, tenant_id, "Product")
    variant_ids = list(
        session.exec(
            select(ProductVariant.id).where(ProductVariant.product_id == product.id, ProductVariant.tenant_id == tenant_id)
        ).all()
    )

    session.exec(
        update(OrderItem)
        .where(OrderItem.tenant_id == tenant_id, OrderItem.product_id == product.id)
        .values(product_id=None, variant_id=None)
    )
    session.exec(
        update(InventoryHistory)
        .where(InventoryHistory.tenant_id == tenant_id, InventoryHistory.product_id == product.id)
        .values(product_id=None, variant_id=None)
    )
    session.exec(delete(CartItem).where(CartItem.tenant_id == tenant_id, CartItem.product_id == product.id))
    session.exec(delete(ProductWishlist).where(ProductWishlist.tenant_id == tenant_id, ProductWishlist.product_id == product.id))
    session.exec(delete(ProductReview).where(ProductReview.tenant_id == tenant_id, ProductReview.product_id == product.id))
    if variant_ids:
        session.exec(delete(ProductVariantAttribute).where(ProductVariantAttribute.variant_id.in_(variant_ids)))
        session.exec(delete(ProductVariant).where(ProductVariant.id.in_(variant_ids)))
    session.delete(product)
    session.commit()
    cache.clear_tenant(tenant_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Variantes
# ---------------------------------------------------------------------------


@router.get("/{product_id}/variants", response_model=list[VariantResponse])
def list_variants(
    product_id: int,
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    product = get_owned_or_404(session, Product, product_id, membership.tenant_id, "Product")
    return [_variant_response(session, v, product) for v in get_product_variants(session, product.id, product.tenant_id)]


@router.post("/{product_id}/variants", response_model=VariantResponse, status_code=201)
def create_variant(
    product_id: int,
    body: VariantCreate,
    membership: Membership = Depends(require_permission("products.create")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    product = get_owned_or_404(session, Product, product_id, tenant.id, "Product")
    resolved = _resolve_attribute_values(session, tenant.id, body.attribute_value_ids)
    _ensure_combination_free(session, product.id, {v.id for _, v in resolved})
    pairs = [(attribute.name, value.value) for attribute, value in resolved]

    sku = (body.sku or "").strip() or None
    if sku:
        _ensure_sku_free(session, ProductVariant, tenant.id, sku)
    else:
        sku = _generated_variant_sku(session, tenant, product, pairs)

    variant = ProductVariant(
        tenant_id=tenant.id,
        product_id=product.id,
        name=variant_name(pairs),
        sku=sku,
        price=body.price,
        stock_quantity=body.stock_quantity,
        image=body.image,
    )
    session.add(variant)
    session.flush()
    _link_values(session, variant, resolved)
    session.flush()
    sync_product_stock_from_variants(session, product.id, tenant.id)
    session.commit()
    session.refresh(variant)
    session.refresh(product)
    cache.clear_tenant(tenant.id)
    return _variant_response(session, variant, product)


@router.put("/{product_id}/variants/{variant_id}", response_model=VariantResponse)
def update_variant(
    product_id: int,
    variant_id: int,
    body: VariantUpdate,
    membership: Membership = Depends(require_permission("products.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    product = get_owned_or_404(session, Product, product_id, tenant.id, "Product")
    variant = _get_variant(session, product, variant_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("attribute_value_ids") is not None:
        resolved = _resolve_attribute_values(session, tenant.id, data["attribute_value_ids"])
        _ensure_combination_free(session, product.id, {v.id for _, v in resolved}, exclude_id=variant.id)
        _link_values(session, variant, resolved)
        variant.name = variant_name([(a.name, v.value) for a, v in resolved])
    if "sku" in data:
        sku = (data["sku"] or "").strip() or None
        if sku:
            _ensure_sku_free(session, ProductVariant, tenant.id, sku, exclude_id=variant.id)
            variant.sku = sku
    if "price" in data:
        variant.price = data["price"]
    if data.get("stock_quantity") is not None:
        variant.stock_quantity = data["stock_quantity"]
    if "image" in data:
        variant.image = data["image"]

    variant.updated_at = utc_now()
    session.add(variant)
    session.flush()
    sync_product_stock_from_variants(session, product.id, tenant.id)
    session.commit()
    session.refresh(variant)
    session.refresh(product)
    cache.clear_tenant(tenant.id)
    return _variant_response(session, variant, product)


@router.delete("/{product_id}/variants/{variant_id}", status_code=204)
def delete_variant(
    product_id: int,
    variant_id: int,
    membership: Membership = Depends(require_permission("products.delete")),
    session: Session = Depends(get_session),
):
    """Remove a variante; quando era a última, o estoque do produto volta a ser independente."""
    tenant_id = membership.tenant_id
    product = get_owned_or_404(session, Product, product_id, tenant_id, "Product")
    variant = _get_variant(session, product, variant_id)

    session.exec(
        update(OrderItem).where(OrderItem.tenant_id == tenant_id, OrderItem.variant_id == variant.id).values(variant_id=None)
    )
    session.exec(
        update(InventoryHistory)
        .where(InventoryHistory.tenant_id == tenant_id, InventoryHistory.variant_id == variant.id)
        .values(variant_id=None)
    )
    session.exec(delete(CartItem).where(CartItem.tenant_id == tenant_id, CartItem.variant_id == variant.id))
    session.exec(delete(ProductVariantAttribute).where(ProductVariantAttribute.variant_id == variant.id))
    session.delete(variant)
    session.flush()
    sync_product_stock_from_variants(session, product.id, tenant_id)
    session.commit()
    cache.clear_tenant(tenant_id)
    return Response(status_code=204)
