from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlalchemy import func, update
from sqlmodel import Session, select

from app.api.common import get_owned_or_404
from app.auth.dependencies import require_permission
from app.db.session import get_session
from app.lib.slug import generate_slug, unique_slug
from app.model.base import utc_now
from app.model.catalog import Attribute, AttributeType, AttributeValue, Category, CategoryStatus
from app.model.membership import Membership
from app.model.product import Product, ProductVariantAttribute

router = APIRouter(tags=["Catalog"])


# ---------------------------------------------------------------------------
# Categorias
# ---------------------------------------------------------------------------


class CategoryCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    status: CategoryStatus = CategoryStatus.ACTIVE


class CategoryUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    status: Optional[CategoryStatus] = None


class CategoryResponse(PydanticBaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    status: CategoryStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def _category_slug(session: Session, tenant_id: int, wanted: str, exclude_id: int | None = None) -> str:
    taken = set(
        session.exec(
            select(Category.slug).where(Category.tenant_id == tenant_id, Category.id != (exclude_id or 0))
        ).all()
    )
    return unique_slug(generate_slug(wanted), taken)


def _check_parent(session: Session, tenant_id: int, parent_id: int | None, category_id: int | None = None) -> None:
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise HTTPException(status_code=400, detail="A category cannot be its own parent")
    get_owned_or_404(session, Category, parent_id, tenant_id, "Parent category")


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(
    status: Optional[CategoryStatus] = None,
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    query = select(Category).where(Category.tenant_id == membership.tenant_id)
    if status:
        query = query.where(Category.status == status)
    return session.exec(query.order_by(Category.name)).all()


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(
    body: CategoryCreate,
    membership: Membership = Depends(require_permission("products.create")),
    session: Session = Depends(get_session),
):
    _check_parent(session, membership.tenant_id, body.parent_id)
    category = Category(
        tenant_id=membership.tenant_id,
        name=body.name.strip(),
        slug=_category_slug(session, membership.tenant_id, body.slug or body.name),
        description=body.description,
        image=body.image,
        parent_id=body.parent_id,
        status=body.status,
    )
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    return get_owned_or_404(session, Category, category_id, membership.tenant_id, "Category")


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    category = get_owned_or_404(session, Category, category_id, membership.tenant_id, "Category")
    data = body.model_dump(exclude_unset=True)
    if "parent_id" in data:
        _check_parent(session, membership.tenant_id, data["parent_id"], category.id)
    if data.get("slug"):
        data["slug"] = _category_slug(session, membership.tenant_id, data["slug"], exclude_id=category.id)
    for key, value in data.items():
        if value is not None or key in ("description", "image", "parent_id"):
            setattr(category, key, value)
    category.updated_at = utc_now()
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    membership: Membership = Depends(require_permission("products.delete")),
    session: Session = Depends(get_session),
):
    """Exclui a categoria; produtos e subcategorias ficam sem categoria."""
    category = get_owned_or_404(session, Category, category_id, membership.tenant_id, "Category")
    session.exec(
        update(Product)
        .where(Product.tenant_id == membership.tenant_id, Product.category_id == category.id)
        .values(category_id=None)
    )
    session.exec(
        update(Category)
        .where(Category.tenant_id == membership.tenant_id, Category.parent_id == category.id)
        .values(parent_id=None)
    )
    session.delete(category)
    session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Atributos de variação
# ---------------------------------------------------------------------------


class AttributeValueCreate(PydanticBaseModel):
    value: str = Field(min_length=1, max_length=100)
    color_code: Optional[str] = Field(default=None, max_length=20)

    @field_validator("color_code")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v and not (v.startswith("#") and len(v) in (4, 7)):
            raise ValueError("color_code must be a hex color like #fff or #ffffff")
        return v


class AttributeValueResponse(PydanticBaseModel):
    id: int
    attribute_id: int
    value: str
    color_code: Optional[str] = None

    class Config:
        from_attributes = True


class AttributeCreate(PydanticBaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: AttributeType = AttributeType.SELECT
    values: list[AttributeValueCreate] = []


class AttributeUpdate(PydanticBaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[AttributeType] = None


class AttributeResponse(PydanticBaseModel):
    id: int
    name: str
    type: AttributeType
    values: list[AttributeValueResponse] = []
    created_at: datetime


def _attribute_response(session: Session, attribute: Attribute) -> AttributeResponse:
    values = session.exec(
        select(AttributeValue).where(AttributeValue.attribute_id == attribute.id).order_by(AttributeValue.id)
    ).all()
    return AttributeResponse(
        id=attribute.id,
        name=attribute.name,
        type=attribute.type,
        values=[AttributeValueResponse.model_validate(v) for v in values],
        created_at=attribute.created_at,
    )


def _ensure_attribute_name_free(session: Session, tenant_id: int, name: str, exclude_id: int | None = None) -> None:
    clash = session.exec(
        select(Attribute.id).where(
            Attribute.tenant_id == tenant_id,
            func.lower(Attribute.name) == name.lower(),
            Attribute.id != (exclude_id or 0),
        )
    ).first()
    if clash is not None:
        raise HTTPException(status_code=409, detail=f"Attribute '{name}' already exists")


@router.get("/attributes", response_model=list[AttributeResponse])
def list_attributes(
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    attributes = session.exec(
        select(Attribute).where(Attribute.tenant_id == membership.tenant_id).order_by(Attribute.name)
    ).all()
    return [_attribute_response(session, a) for a in attributes]


@router.post("/attributes", response_model=AttributeResponse, status_code=201)
def create_attribute(
    body: AttributeCreate,
    membership: Membership = Depends(require_permission("products.create")),
    session: Session = Depends(get_session),
):
    name = body.name.strip()
    _ensure_attribute_name_free(session, membership.tenant_id, name)
    attribute = Attribute(tenant_id=membership.tenant_id, name=name, type=body.type)
    session.add(attribute)
    session.flush()
    seen: set[str] = set()
    for value in body.values:
        if value.value.strip().lower() in seen:
            continue
        seen.add(value.value.strip().lower())
        session.add(
            AttributeValue(
                tenant_id=membership.tenant_id,
                attribute_id=attribute.id,
                value=value.value.strip(),
                color_code=value.color_code,
            )
        )
    session.commit()
    session.refresh(attribute)
    return _attribute_response(session, attribute)


@router.get("/attributes/{attribute_id}", response_model=AttributeResponse)
def get_attribute(
    attribute_id: int,
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    attribute = get_owned_or_404(session, Attribute, attribute_id, membership.tenant_id, "Attribute")
    return _attribute_response(session, attribute)


@router.put("/attributes/{attribute_id}", response_model=AttributeResponse)
def update_attribute(
    attribute_id: int,
    body: AttributeUpdate,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    attribute = get_owned_or_404(session, Attribute, attribute_id, membership.tenant_id, "Attribute")
    if body.name is not None:
        name = body.name.strip()
        _ensure_attribute_name_free(session, membership.tenant_id, name, exclude_id=attribute.id)
        attribute.name = name
    if body.type is not None:
        attribute.type = body.type
    attribute.updated_at = utc_now()
    session.add(attribute)
    session.commit()
    session.refresh(attribute)
    return _attribute_response(session, attribute)


def _attribute_in_use(session: Session, attribute_value_ids: list[int]) -> bool:
    if not attribute_value_ids:
        return False
    used = session.exec(
        select(ProductVariantAttribute.variant_id).where(
            ProductVariantAttribute.attribute_value_id.in_(attribute_value_ids)
        )
    ).first()
    return used is not None


@router.delete("/attributes/{attribute_id}", status_code=204)
def delete_attribute(
    attribute_id: int,
    membership: Membership = Depends(require_permission("products.delete")),
    session: Session = Depends(get_session),
):
    attribute = get_owned_or_404(session, Attribute, attribute_id, membership.tenant_id, "Attribute")
    values = session.exec(select(AttributeValue).where(AttributeValue.attribute_id == attribute.id)).all()
    if _attribute_in_use(session, [v.id for v in values]):
        raise HTTPException(status_code=409, detail="Attribute is used by product variants")
    for value in values:
        session.delete(value)
    session.delete(attribute)
    session.commit()
    return Response(status_code=204)


@router.get("/attributes/{attribute_id}/values", response_model=list[AttributeValueResponse])
def list_attribute_values(
    attribute_id: int,
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    attribute = get_owned_or_404(session, Attribute, attribute_id, membership.tenant_id, "Attribute")
    return session.exec(
        select(AttributeValue).where(AttributeValue.attribute_id == attribute.id).order_by(AttributeValue.id)
    ).all()


@router.post("/attributes/{attribute_id}/values", response_model=AttributeValueResponse, status_code=201)
def create_attribute_value(
    attribute_id: int,
    body: AttributeValueCreate,
    membership: Membership = Depends(require_permission("products.create")),
    session: Session = Depends(get_session),
):
    attribute = get_owned_or_404(session, Attribute, attribute_id, membership.tenant_id, "Attribute")
    value = body.value.strip()
    clash = session.exec(
        select(AttributeValue.id).where(
            AttributeValue.attribute_id == attribute.id,
            func.lower(AttributeValue.value) == value.lower(),
        )
    ).first()
    if clash is not None:
        raise HTTPException(status_code=409, detail=f"Value '{value}' already exists for {attribute.name}")
    attribute_value = AttributeValue(
        tenant_id=membership.tenant_id,
        attribute_id=attribute.id,
        value=value,
        color_code=body.color_code,
    )
    session.add(attribute_value)
    session.commit()
    session.refresh(attribute_value)
    return attribute_value


@router.put("/attributes/{attribute_id}/values/{value_id}", response_model=AttributeValueResponse)
def update_attribute_value(
    attribute_id: int,
    value_id: int,
    body: AttributeValueCreate,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    attribute_value = get_owned_or_404(session, AttributeValue, value_id, membership.tenant_id, "Attribute value")
    if attribute_value.attribute_id != attribute_id:
        raise HTTPException(status_code=404, detail="Attribute value not found")
    attribute_value.value = body.value.strip()
    attribute_value.color_code = body.color_code
    attribute_value.updated_at = utc_now()
    session.add(attribute_value)
    session.commit()
    session.refresh(attribute_value)
    return attribute_value


@router.delete("/attributes/{attribute_id}/values/{value_id}", status_code=204)
def delete_attribute_value(
    attribute_id: int,
    value_id: int,
    membership: Membership = Depends(require_permission("products.delete")),
    session: Session = Depends(get_session),
):
    attribute_value = get_owned_or_404(session, AttributeValue, value_id, membership.tenant_id, "Attribute value")
    if attribute_value.attribute_id != attribute_id:
        raise HTTPException(status_code=404, detail="Attribute value not found")
    if _attribute_in_use(session, [attribute_value.id]):
        raise HTTPException(status_code=409, detail="Attribute value is used by product variants")
    session.delete(attribute_value)
    session.commit()
    return Response(status_code=204)
