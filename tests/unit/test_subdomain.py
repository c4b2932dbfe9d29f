import pytest

from app.lib.subdomain import is_reserved_subdomain, normalize_subdomain, validate_subdomain


@pytest.mark.parametrize("value", ["acme", "my-shop", "shop123", "abc", "a" * 63])
def test_valid_subdomains(value):
    assert validate_subdomain(value) == (True, None)


def test_normalizes_before_validating():
    assert normalize_subdomain("  MyShop ") == "myshop"
    assert validate_subdomain("  MyShop ") == (True, None)


@pytest.mark.parametrize(
    "value, fragment",
    [
        ("", "required"),
        ("   ", "required"),
        (None, "required"),
        ("ab", "at least 3"),
        ("a" * 64, "no more than 63"),
        ("-shop", "cannot start or end"),
        ("shop-", "cannot start or end"),
        ("my_shop", "only contain"),
        ("my.shop", "only contain"),
        ("www", "reserved"),
        ("Admin", "reserved"),
        ("shop", "reserved"),
        ("my--shop", "consecutive hyphens"),
    ],
)
def test_invalid_subdomains(value, fragment):
    valid, error = validate_subdomain(value)
    assert valid is False
    assert fragment in error


def test_reserved_check_is_case_insensitive():
    assert is_reserved_subdomain("CHECKOUT")
    assert not is_reserved_subdomain("acme")
