from decimal import Decimal

from app.lib.slug import generate_slug, unique_slug
from app.lib.variant import effective_price, variant_name, variant_sku


def test_variant_name_sorted_by_attribute():
    assert variant_name([("Size", "Large"), ("Color", "Red")]) == "Red - Large"


def test_variant_name_default():
    assert variant_name([]) == "Default"


def test_variant_sku_format():
    sku = variant_sku("Blue Shirt", [("Size", "Large"), ("Color", "Red")], "acme")
    assert sku == "BLUE-RED-LAR-ACME"


def test_variant_sku_strips_symbols():
    assert variant_sku("T-Shirt!", [("Size", "X-L")], "my-shop") == "TSHI-XL-MYSH"


def test_effective_price_precedence():
    assert effective_price(Decimal("9"), Decimal("8"), Decimal("10")) == Decimal("9")
    assert effective_price(None, Decimal("8"), Decimal("10")) == Decimal("8")
    assert effective_price(None, None, Decimal("10")) == Decimal("10")


def test_generate_slug():
    assert generate_slug("  Blue Shirt  XL!") == "blue-shirt-xl"
    assert generate_slug("under_score--dash") == "under-score-dash"


def test_unique_slug_adds_counter():
    assert unique_slug("shirt", set()) == "shirt"
    assert unique_slug("shirt", {"shirt"}) == "shirt-1"
    assert unique_slug("shirt", {"shirt", "shirt-1"}) == "shirt-2"
