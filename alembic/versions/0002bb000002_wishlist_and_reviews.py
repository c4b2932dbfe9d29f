"""product wishlist and product reviews

Revision ID: 0002bb000002
Revises: 0001aa000001
Create Date: 2026-10-17 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002bb000002"
down_revision: Union[str, None] = "0001aa000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _owned_columns() -> list:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenant.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade() -> None:
    op.create_table(
        "product_wishlist",
        *_owned_columns(),
        sa.UniqueConstraint("tenant_id", "customer_id", "product_id", name="uq_product_wishlist_customer_product"),
    )
    for column in ("tenant_id", "customer_id", "product_id"):
        op.create_index(op.f(f"ix_product_wishlist_{column}"), "product_wishlist", [column], unique=False)

    op.create_table(
        "product_review",
        *_owned_columns(),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.UniqueConstraint("tenant_id", "customer_id", "product_id", name="uq_product_review_customer_product"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_review_rating_range"),
    )
    for column in ("tenant_id", "customer_id", "product_id", "status"):
        op.create_index(op.f(f"ix_product_review_{column}"), "product_review", [column], unique=False)


def downgrade() -> None:
    op.drop_table("product_review")
    op.drop_table("product_wishlist")
