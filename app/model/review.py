from __future__ import annotations

import enum

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.model.base import BaseModel, enum_column


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProductReview(BaseModel, table=True):
    """
    Avaliação de produto feita por um cliente.

    Nasce `pending`; só avaliações `approved` aparecem na vitrine.
    Um cliente avalia cada produto uma única vez.
    """

    __tablename__ = "product_review"

    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    rating: int
    comment: str
    status: ReviewStatus = Field(
        default=ReviewStatus.PENDING,
        sa_type=enum_column(ReviewStatus, "review_status"),
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "customer_id", "product_id", name="uq_product_review_customer_product"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_review_rating_range"),
    )
