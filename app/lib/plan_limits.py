"""
Limites dos planos de assinatura (parte pura).

`features` do PricePlan carrega os limites; -1 ou ausente = ilimitado.
Chaves legadas (*_permission_feature) ainda são aceitas.
A contagem de uso no banco fica em app.services.subscription_service.
"""

from typing import Any

PLAN_LIMIT_KEYS: tuple[str, ...] = (
    "max_products",
    "max_orders",
    "max_storage_mb",
    "max_customers",
    "max_pages",
    "max_blogs",
    "max_staff_users",
)

_LEGACY_KEYS = {
    "max_products": "product_permission_feature",
    "max_storage_mb": "storage_permission_feature",
    "max_pages": "page_permission_feature",
    "max_blogs": "blog_permission_feature",
}

# recurso -> (chave do limite, rótulo, verbo da mensagem, plural)
RESOURCES: dict[str, tuple[str, str, str, str]] = {
    "products": ("max_products", "Product", "add", "products"),
    "orders": ("max_orders", "Order", "process", "orders"),
    "customers": ("max_customers", "Customer", "add", "customers"),
    "pages": ("max_pages", "Page", "add", "pages"),
    "blogs": ("max_blogs", "Blog", "add", "blog posts"),
    "staff_users": ("max_staff_users", "Staff user", "add", "staff users"),
}


def get_plan_limits(features: Any) -> dict[str, int | None]:
    if not isinstance(features, dict):
        return {}
    limits: dict[str, int | None] = {}
    for key in PLAN_LIMIT_KEYS:
        value = features.get(key)
        if value is None and key in _LEGACY_KEYS:
            value = features.get(_LEGACY_KEYS[key])
        limits[key] = int(value) if value is not None else None
    return limits


def is_unlimited(limit: int | None) -> bool:
    return limit is None or limit == -1


def limit_reached_message(resource: str, count: int, limit: int) -> str:
    _, label, verb, plural = RESOURCES[resource]
    return f"{label} limit reached ({count}/{limit}). Please upgrade your plan to {verb} more {plural}."


def evaluate_limit(features: Any, resource: str, current_count: int) -> tuple[bool, str | None]:
    """(allowed, reason) para criar mais um item do recurso dado o uso atual."""
    key = RESOURCES[resource][0]
    limit = get_plan_limits(features).get(key)
    if is_unlimited(limit):
        return True, None
    if current_count >= limit:
        return False, limit_reached_message(resource, current_count, limit)
    return True, None
