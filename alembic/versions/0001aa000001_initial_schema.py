"""initial schema (tenancy, catalog, orders, storefront, content, support)

Revision ID: 0001aa000001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001aa000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _tenant_fk() -> list:
    return [
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenant.id"]),
    ]


def _index(table: str, *columns: str, unique: bool = False) -> None:
    for column in columns:
        op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=unique)


def upgrade() -> None:
    op.create_table(
        "price_plan",
        *_base_columns(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("trial_days", sa.Integer(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("price_plan", "name", "status")

    op.create_table(
        "tenant",
        *_base_columns(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("subdomain", sa.String(), nullable=False),
        sa.Column("custom_domain", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=9), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("expire_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=False),
        sa.Column("currency", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["price_plan.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("tenant", "subdomain", "custom_domain", unique=True)
    _index("tenant", "name", "status", "plan_id")

    op.create_table(
        "account",
        *_base_columns(),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("role", sa.String(length=8), nullable=False),
        sa.Column("auth_provider", sa.String(), nullable=False),
        sa.Column("reset_token", sa.String(), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_account_email"),
    )
    _index("account", "email", "role", "reset_token")

    op.create_table(
        "membership",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=5), nullable=False),
        sa.Column("status", sa.String(length=7), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "account_id", name="uq_membership_tenant_account"),
    )
    _index("membership", "tenant_id", "account_id", "role", "status")

    op.create_table(
        "audit_log",
        *_base_columns(),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("actor_account_id", sa.Integer(), nullable=True),
        sa.Column("membership_id", sa.Integer(), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenant.id"]),
        sa.ForeignKeyConstraint(["actor_account_id"], ["account.id"]),
        sa.ForeignKeyConstraint(["membership_id"], ["membership.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("audit_log", "tenant_id", "actor_account_id", "membership_id", "event_type")

    op.create_table(
        "job",
        *_base_columns(),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("job_type", sa.Enum("SYNC_PRODUCT_STOCK", name="jobtype"), nullable=False),
        sa.Column("status", sa.Enum("PENDING", "RUNNING", "COMPLETED", "FAILED", name="jobstatus"), nullable=False),
        sa.Column("input_data", sa.JSON(), nullable=True),
        sa.Column("result_data", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenant.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("job", "tenant_id", "job_type", "status")

    # Catálogo
    op.create_table(
        "category",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_category_tenant_slug"),
    )
    _index("category", "tenant_id", "slug")

    op.create_table(
        "attribute",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(length=6), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_attribute_tenant_name"),
    )
    _index("attribute", "tenant_id")

    op.create_table(
        "attribute_value",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("attribute_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.Column("color_code", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["attribute_id"], ["attribute.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("attribute_id", "value", name="uq_attribute_value_attribute_value"),
    )
    _index("attribute_value", "tenant_id", "attribute_id")

    op.create_table(
        "product",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("short_description", sa.String(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("gallery", sa.JSON(), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_product_tenant_slug"),
        sa.UniqueConstraint("tenant_id", "sku", name="uq_product_tenant_sku"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
    )
    _index("product", "tenant_id", "name", "slug", "sku", "status", "category_id")

    op.create_table(
        "product_variant",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False),
        sa.Column("image", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "sku", name="uq_product_variant_tenant_sku"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_product_variant_stock_non_negative"),
    )
    _index("product_variant", "tenant_id", "product_id", "sku")

    op.create_table(
        "product_variant_attribute",
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("attribute_value_id", sa.Integer(), nullable=False),
        sa.Column("attribute_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variant.id"]),
        sa.ForeignKeyConstraint(["attribute_value_id"], ["attribute_value.id"]),
        sa.ForeignKeyConstraint(["attribute_id"], ["attribute.id"]),
        sa.PrimaryKeyConstraint("variant_id", "attribute_value_id"),
    )
    _index("product_variant_attribute", "attribute_id")

    # Clientes e pedidos
    op.create_table(
        "customer",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("mobile", sa.String(), nullable=True),
        sa.Column("company", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("postal_code", sa.String(), nullable=True),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("verification_token", sa.String(), nullable=True),
        sa.Column("reset_token", sa.String(), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_customer_tenant_email"),
    )
    _index("customer", "tenant_id", "email", "verification_token", "reset_token")

    op.create_table(
        "customer_address",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("city", sa.String(), nullable=False),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("postal_code", sa.String(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("customer_address", "tenant_id", "customer_id")

    op.create_table(
        "order",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("order_number", sa.String(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("payment_status", sa.String(length=8), nullable=False),
        sa.Column("payment_gateway", sa.String(length=16), nullable=True),
        sa.Column("transaction_id", sa.String(), nullable=True),
        sa.Column("shipping_address", sa.JSON(), nullable=True),
        sa.Column("billing_address", sa.JSON(), nullable=True),
        sa.Column("coupon", sa.String(), nullable=True),
        sa.Column("coupon_discounted", sa.Numeric(12, 2), nullable=True),
        sa.Column("message", sa.String(), nullable=True),
        sa.Column("cancel_reason", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("order", "order_number", unique=True)
    _index("order", "tenant_id", "customer_id", "email", "status", "payment_status")

    op.create_table(
        "order_item",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("variant_id", sa.Integer(), nullable=True),
        sa.Column("product_name", sa.String(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["order.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variant.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("order_item", "tenant_id", "order_id", "product_id")

    op.create_table(
        "cart_item",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("session_id", sa.String(), nullable=True),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variant.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("cart_item", "tenant_id", "customer_id", "session_id", "product_id")

    op.create_table(
        "inventory_history",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("variant_id", sa.Integer(), nullable=True),
        sa.Column("adjustment_type", sa.String(length=8), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("adjusted_by", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variant.id"]),
        sa.ForeignKeyConstraint(["adjusted_by"], ["account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("inventory_history", "tenant_id", "product_id", "variant_id", "adjustment_type")

    # Temas
    op.create_table(
        "theme",
        *_base_columns(),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("version", sa.String(), nullable=False),
        sa.Column("industry", sa.String(), nullable=False),
        sa.Column("status", sa.Boolean(), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("screenshot_url", sa.String(), nullable=True),
        sa.Column("layout", sa.JSON(), nullable=True),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("colors", sa.JSON(), nullable=True),
        sa.Column("typography", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("theme", "slug", unique=True)
    _index("theme", "status")

    op.create_table(
        "tenant_theme",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("theme_id", sa.Integer(), nullable=False),
        sa.Column("custom_colors", sa.JSON(), nullable=True),
        sa.Column("custom_fonts", sa.JSON(), nullable=True),
        sa.Column("custom_layouts", sa.JSON(), nullable=True),
        sa.Column("custom_css", sa.String(), nullable=True),
        sa.Column("custom_js", sa.String(), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("favicon_url", sa.String(), nullable=True),
        sa.Column("meta_title", sa.String(), nullable=True),
        sa.Column("meta_description", sa.String(), nullable=True),
        sa.Column("meta_keywords", sa.String(), nullable=True),
        sa.Column("social_links", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["theme_id"], ["theme.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "theme_id", name="uq_tenant_theme_tenant_theme"),
    )
    _index("tenant_theme", "tenant_id", "theme_id", "is_active")

    # Conteúdo
    op.create_table(
        "blog_category",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_blog_category_tenant_slug"),
    )
    _index("blog_category", "tenant_id", "slug")

    op.create_table(
        "blog",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("excerpt", sa.String(), nullable=True),
        sa.Column("content", sa.String(), nullable=True),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=9), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["category_id"], ["blog_category.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_blog_tenant_slug"),
    )
    _index("blog", "tenant_id", "category_id", "slug", "status")

    op.create_table(
        "page",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=True),
        sa.Column("sections", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=9), nullable=False),
        sa.Column("meta_title", sa.String(), nullable=True),
        sa.Column("meta_description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_page_tenant_slug"),
    )
    _index("page", "tenant_id", "slug", "status")

    op.create_table(
        "form",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("button_text", sa.String(), nullable=False),
        sa.Column("fields", sa.JSON(), nullable=True),
        sa.Column("success_message", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_form_tenant_slug"),
    )
    _index("form", "tenant_id", "slug")

    op.create_table(
        "form_submission",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("form_id", sa.Integer(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["form_id"], ["form.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("form_submission", "tenant_id", "form_id")

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        *_tenant_fk(),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("s3_key", sa.String(), nullable=False),
        sa.Column("s3_url", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("alt_text", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("media", "s3_key", unique=True)
    _index("media", "tenant_id", "filename")

    # Suporte
    op.create_table(
        "support_ticket",
        *_base_columns(),
        *_tenant_fk(),
        sa.Column("channel", sa.String(length=10), nullable=False),
        sa.Column("subject", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=11), nullable=False),
        sa.Column("priority", sa.String(length=6), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("account_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"]),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("support_ticket", "tenant_id", "channel", "status", "priority", "customer_id", "account_id")

    op.create_table(
        "support_ticket_message",
        *_base_columns(),
        sa.Column("ticket_id", sa.Integer(), nullable=False),
        sa.Column("author_kind", sa.String(length=8), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["ticket_id"], ["support_ticket.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("support_ticket_message", "ticket_id")


def downgrade() -> None:
    for table in (
        "support_ticket_message",
        "support_ticket",
        "media",
        "form_submission",
        "form",
        "page",
        "blog",
        "blog_category",
        "tenant_theme",
        "theme",
        "inventory_history",
        "cart_item",
        "order_item",
        "order",
        "customer_address",
        "customer",
        "product_variant_attribute",
        "product_variant",
        "product",
        "attribute_value",
        "attribute",
        "category",
        "job",
        "audit_log",
        "membership",
        "account",
        "tenant",
        "price_plan",
    ):
        op.drop_table(table)
    sa.Enum(name="jobstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="jobtype").drop(op.get_bind(), checkfirst=True)
