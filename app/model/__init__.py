from app.model.base import BaseModel
from app.model.price_plan import PricePlan, PricePlanStatus
from app.model.tenant import Tenant, TenantStatus
from app.model.account import Account, AccountRole
from app.model.membership import Membership, MembershipRole, MembershipStatus
from app.model.audit_log import AuditLog
from app.model.job import Job, JobStatus, JobType
from app.model.catalog import Attribute, AttributeType, AttributeValue, Category, CategoryStatus
from app.model.product import Product, ProductStatus, ProductVariant, ProductVariantAttribute
from app.model.customer import Customer, CustomerAddress
from app.model.order import Order, OrderItem, OrderStatus, PaymentGateway, PaymentStatus
from app.model.cart import CartItem
from app.model.wishlist import ProductWishlist
from app.model.review import ProductReview, ReviewStatus
from app.model.inventory import AdjustmentType, InventoryHistory
from app.model.theme import TenantTheme, Theme
from app.model.content import Blog, BlogCategory, ContentStatus, Page
from app.model.form import Form, FormStatus, FormSubmission
from app.model.media import Media
from app.model.support import (
    AuthorKind,
    SupportTicket,
    SupportTicketMessage,
    TicketChannel,
    TicketPriority,
    TicketStatus,
)

__all__ = [
    "BaseModel",
    "PricePlan", "PricePlanStatus",
    "Tenant", "TenantStatus",
    "Account", "AccountRole",
    "Membership", "MembershipRole", "MembershipStatus",
    "AuditLog",
    "Job", "JobStatus", "JobType",
    "Attribute", "AttributeType", "AttributeValue", "Category", "CategoryStatus",
    "Product", "ProductStatus", "ProductVariant", "ProductVariantAttribute",
    "Customer", "CustomerAddress",
    "Order", "OrderItem", "OrderStatus", "PaymentGateway", "PaymentStatus",
    "CartItem",
    "ProductWishlist",
    "ProductReview", "ReviewStatus",
    "AdjustmentType", "InventoryHistory",
    "TenantTheme", "Theme",
    "Blog", "BlogCategory", "ContentStatus", "Page",
    "Form", "FormStatus", "FormSubmission",
    "Media",
    "AuthorKind", "SupportTicket", "SupportTicketMessage", "TicketChannel", "TicketPriority", "TicketStatus",
]
