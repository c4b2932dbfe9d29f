"""Permissões por role (landlord, tenant_admin, tenant_staff, customer)."""

from typing import Iterable

ALL_PERMISSIONS: tuple[str, ...] = (
    "products.create", "products.read", "products.update", "products.delete",
    "orders.create", "orders.read", "orders.update", "orders.delete",
    "customers.create", "customers.read", "customers.update", "customers.delete",
    "users.create", "users.read", "users.update", "users.delete",
    "settings.read", "settings.update",
    "analytics.read",
    "tenants.create", "tenants.read", "tenants.update", "tenants.delete",
)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "landlord": ALL_PERMISSIONS,
    # tudo da loja, nada de tenants.*
    "tenant_admin": tuple(p for p in ALL_PERMISSIONS if not p.startswith("tenants.")),
    "tenant_staff": (
        "products.read", "products.update",
        "orders.read", "orders.update",
        "customers.read", "customers.update",
        "settings.read",
    ),
    "customer": ("products.read", "orders.create", "orders.read"),
}


def get_role_permissions(role: str) -> list[str]:
    return list(ROLE_PERMISSIONS.get(role, ()))


def has_permission(role: str, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, ())


def has_any_permission(role: str, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: str, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, p) for p in permissions)
