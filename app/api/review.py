"""
Avaliações de produtos.

Clientes avaliam pela vitrine (uma avaliação por produto, nasce `pending`);
a equipe da loja aprova ou rejeita. A vitrine só mostra as aprovadas.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, pagination
from app.auth.dependencies import get_current_customer, get_storefront_tenant, require_permission
from app.db.session import get_session
from app.model.base import utc_now
from app.model.customer import Customer
from app.model.membership import Membership
from app.model.product import Product, ProductStatus
from app.model.review import ProductReview, ReviewStatus
from app.model.tenant import Tenant

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reviews"])


class ReviewCreate(PydanticBaseModel):
    product_id: int
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1, max_length=1000)


class ReviewProduct(PydanticBaseModel):
    id: int
    name: str
    slug: str
    image: Optional[str] = None


class ReviewResponse(PydanticBaseModel):
    id: int
    product: ReviewProduct
    customer_id: int
    customer_name: str
    rating: int
    comment: str
    status: ReviewStatus
    created_at: datetime
    updated_at: datetime


class ReviewListResponse(PydanticBaseModel):
    items: list[ReviewResponse]
    pagination: dict[str, Any]


class PublicReview(PydanticBaseModel):
    id: int
    customer_name: str
    rating: int
    comment: str
    created_at: datetime


class ProductReviewsResponse(PydanticBaseModel):
    product_id: int
    average_rating: Optional[float] = None
    review_count: int
    reviews: list[PublicReview]


class ReviewModeration(PydanticBaseModel):
    status: ReviewStatus


def _review_response(review: ProductReview, product: Product, customer: Customer) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        product=ReviewProduct(id=product.id, name=product.name, slug=product.slug, image=product.image),
        customer_id=customer.id,
        customer_name=customer.name,
        rating=review.rating,
        comment=review.comment,
        status=review.status,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def _reviews_query(*conditions):
    return (
        select(ProductReview, Product, Customer)
        .join(Product, Product.id == ProductReview.product_id)
        .join(Customer, Customer.id == ProductReview.customer_id)
        .where(*conditions)
    )


# ---------------------------------------------------------------------------
# Vitrine
# ---------------------------------------------------------------------------


@router.post("/store/reviews", response_model=ReviewResponse, status_code=201)
def create_review(
    body: ReviewCreate,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    product = session.get(Product, body.product_id)
    if not product or product.tenant_id != customer.tenant_id:
        raise HTTPException(status_code=404, detail="Product not found")

    already = session.exec(
        select(ProductReview.id).where(
            ProductReview.tenant_id == customer.tenant_id,
            ProductReview.customer_id == customer.id,
            ProductReview.product_id == product.id,
        )
    ).first()
    if already:
        raise HTTPException(status_code=400, detail="You have already reviewed this product")

    review = ProductReview(
        tenant_id=customer.tenant_id,
        customer_id=customer.id,
        product_id=product.id,
        rating=body.rating,
        comment=body.comment.strip(),
    )
    session.add(review)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=400, detail="You have already reviewed this product")
    session.refresh(review)
    logger.info(f"Avaliação {review.id} criada (tenant={customer.tenant_id}, produto={product.id})")
    return _review_response(review, product, customer)


@router.get("/store/profile/reviews", response_model=list[ReviewResponse])
def list_my_reviews(
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    rows = session.exec(
        _reviews_query(ProductReview.tenant_id == customer.tenant_id, ProductReview.customer_id == customer.id)
        .order_by(ProductReview.created_at.desc(), ProductReview.id.desc())
    ).all()
    return [_review_response(r, p, c) for r, p, c in rows]


@router.get("/store/products/{slug}/reviews", response_model=ProductReviewsResponse)
def product_reviews(
    slug: str,
    tenant: Tenant = Depends(get_storefront_tenant),
    session: Session = Depends(get_session),
):
    product = session.exec(
        select(Product).where(
            Product.tenant_id == tenant.id, Product.slug == slug, Product.status == ProductStatus.ACTIVE
        )
    ).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    rows = session.exec(
        _reviews_query(
            ProductReview.tenant_id == tenant.id,
            ProductReview.product_id == product.id,
            ProductReview.status == ReviewStatus.APPROVED,
        ).order_by(ProductReview.created_at.desc(), ProductReview.id.desc())
    ).all()
    ratings = [r.rating for r, _, _ in rows]
    return ProductReviewsResponse(
        product_id=product.id,
        average_rating=round(sum(ratings) / len(ratings), 2) if ratings else None,
        review_count=len(ratings),
        reviews=[
            PublicReview(id=r.id, customer_name=c.name, rating=r.rating, comment=r.comment, created_at=r.created_at)
            for r, _, c in rows
        ],
    )


# ---------------------------------------------------------------------------
# Painel da loja (moderação)
# ---------------------------------------------------------------------------


@router.get("/reviews", response_model=ReviewListResponse)
def list_reviews(
    status: Optional[ReviewStatus] = None,
    product_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    conditions = [ProductReview.tenant_id == membership.tenant_id]
    if status is not None:
        conditions.append(ProductReview.status == status)
    if product_id is not None:
        conditions.append(ProductReview.product_id == product_id)

    total = session.exec(select(func.count(ProductReview.id)).where(*conditions)).one()
    rows = session.exec(
        _reviews_query(*conditions)
        .order_by(ProductReview.created_at.desc(), ProductReview.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return ReviewListResponse(
        items=[_review_response(r, p, c) for r, p, c in rows],
        pagination=pagination(total, page, limit),
    )


@router.put("/reviews/{review_id}", response_model=ReviewResponse)
def moderate_review(
    review_id: int,
    body: ReviewModeration,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    review = get_owned_or_404(session, ProductReview, review_id, membership.tenant_id, "Review")
    review.status = body.status
    review.updated_at = utc_now()
    session.add(review)
    session.commit()
    session.refresh(review)
    return _review_response(review, session.get(Product, review.product_id), session.get(Customer, review.customer_id))


@router.delete("/reviews/{review_id}", status_code=204)
def delete_review(
    review_id: int,
    membership: Membership = Depends(require_permission("products.delete")),
    session: Session = Depends(get_session),
):
    review = get_owned_or_404(session, ProductReview, review_id, membership.tenant_id, "Review")
    session.delete(review)
    session.commit()
    return Response(status_code=204)
