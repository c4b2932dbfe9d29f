from app.auth.jwt import create_access_token, create_customer_token, verify_customer_token, verify_token
from app.auth.dependencies import (
    get_current_account,
    get_current_customer,
    get_current_membership,
    get_current_tenant,
    get_optional_customer,
    get_storefront_tenant,
    require_landlord,
    require_permission,
)
from app.auth.password import hash_password, verify_password

__all__ = [
    "create_access_token",
    "create_customer_token",
    "verify_customer_token",
    "verify_token",
    "get_current_account",
    "get_current_customer",
    "get_current_membership",
    "get_current_tenant",
    "get_optional_customer",
    "get_storefront_tenant",
    "require_landlord",
    "require_permission",
    "hash_password",
    "verify_password",
]
