import pytest

from app.lib.permissions import get_role_permissions, has_all_permissions, has_any_permission, has_permission


def test_landlord_has_everything():
    assert has_permission("landlord", "tenants.delete")
    assert has_permission("landlord", "products.create")


def test_tenant_admin_has_no_tenant_permissions():
    assert has_permission("tenant_admin", "settings.update")
    assert not any(p.startswith("tenants.") for p in get_role_permissions("tenant_admin"))


@pytest.mark.parametrize("permission", ["products.create", "products.delete", "settings.update", "users.create"])
def test_staff_restrictions(permission):
    assert not has_permission("tenant_staff", permission)


def test_staff_can_manage_orders():
    assert has_all_permissions("tenant_staff", ["orders.read", "orders.update"])


def test_unknown_role_has_nothing():
    assert get_role_permissions("guest") == []
    assert not has_any_permission("guest", ["products.read"])
