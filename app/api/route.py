from fastapi import APIRouter

from app.api.admin import router as admin_router
from app.api.analytics import router as analytics_router
from app.api.auth import router as auth_router
from app.api.catalog import router as catalog_router
from app.api.content import router as content_router
from app.api.customer import router as customer_router
from app.api.dashboard import router as dashboard_router
from app.api.form import router as form_router
from app.api.inventory import router as inventory_router
from app.api.media import router as media_router
from app.api.notification import router as notification_router
from app.api.order import router as order_router
from app.api.product import router as product_router
from app.api.review import router as review_router
from app.api.store_account import router as store_account_router
from app.api.store_cart import router as store_cart_router
from app.api.storefront import router as storefront_router
from app.api.support import router as support_router
from app.api.tenant import router as tenant_router
from app.api.theme import router as theme_router
from app.api.user import router as user_router
from app.api.wishlist import router as wishlist_router


router = APIRouter()  # Sem tag padrão - cada router define sua própria tag

# Painel da loja (staff)
router.include_router(auth_router)
router.include_router(tenant_router)
router.include_router(user_router)
router.include_router(dashboard_router)
router.include_router(catalog_router)
router.include_router(product_router)
router.include_router(inventory_router)
router.include_router(order_router)
router.include_router(customer_router)
router.include_router(theme_router)
router.include_router(content_router)
router.include_router(form_router)
router.include_router(media_router)
router.include_router(analytics_router)
router.include_router(notification_router)

# Vitrine (clientes)
router.include_router(storefront_router)
router.include_router(store_account_router)
router.include_router(store_cart_router)
router.include_router(wishlist_router)
router.include_router(review_router)

# Suporte (os três canais) e plataforma
router.include_router(support_router)
router.include_router(admin_router)


@router.get("/health", tags=["System"])
def health():
    """Health check endpoint."""
    return {"status": "ok"}
