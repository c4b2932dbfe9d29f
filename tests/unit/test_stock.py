from types import SimpleNamespace

from app.lib.stock import calculate_stock_from_variants, has_variants, sum_variant_stock
from app.model.inventory import AdjustmentType
from app.services.inventory_service import compute_adjusted_quantity


def test_stock_is_sum_of_variants():
    product = {"stock_quantity": 99, "variants": [{"stock_quantity": 3}, {"stock_quantity": 4}]}
    assert calculate_stock_from_variants(product) == 7


def test_null_variant_stock_counts_as_zero():
    assert sum_variant_stock([{"stock_quantity": None}, {"stock_quantity": 2}]) == 2


def test_product_without_variants_uses_own_stock():
    assert calculate_stock_from_variants({"stock_quantity": 5, "variants": []}) == 5
    assert calculate_stock_from_variants({"stock_quantity": None}) == 0


def test_accepts_objects():
    product = SimpleNamespace(
        stock_quantity=0,
        variants=[SimpleNamespace(stock_quantity=1), SimpleNamespace(stock_quantity=6)],
    )
    assert has_variants(product)
    assert calculate_stock_from_variants(product) == 7


class TestComputeAdjustedQuantity:
    def test_increase(self):
        assert compute_adjusted_quantity(5, AdjustmentType.INCREASE, 3) == 8

    def test_decrease_is_floored_at_zero(self):
        assert compute_adjusted_quantity(5, AdjustmentType.DECREASE, 3) == 2
        assert compute_adjusted_quantity(2, AdjustmentType.DECREASE, 10) == 0

    def test_set_is_absolute(self):
        assert compute_adjusted_quantity(5, AdjustmentType.SET, 12) == 12

    def test_history_only_types_keep_quantity(self):
        for kind in (AdjustmentType.SALE, AdjustmentType.RETURN, AdjustmentType.DAMAGE, AdjustmentType.TRANSFER):
            assert compute_adjusted_quantity(5, kind, 3) == 5
