from app.lib.plan_limits import evaluate_limit, get_plan_limits, is_unlimited


def test_missing_features_are_unlimited():
    assert get_plan_limits(None) == {}
    assert evaluate_limit(None, "products", 10_000) == (True, None)


def test_legacy_keys_are_honoured():
    limits = get_plan_limits({"product_permission_feature": 50, "max_orders": 10})
    assert limits["max_products"] == 50
    assert limits["max_orders"] == 10
    assert limits["max_customers"] is None


def test_new_key_wins_over_legacy():
    assert get_plan_limits({"max_products": 5, "product_permission_feature": 50})["max_products"] == 5


def test_minus_one_is_unlimited():
    assert is_unlimited(-1)
    assert is_unlimited(None)
    assert not is_unlimited(0)
    assert evaluate_limit({"max_products": -1}, "products", 999) == (True, None)


def test_limit_reached_message():
    allowed, reason = evaluate_limit({"max_products": 100}, "products", 100)
    assert allowed is False
    assert reason == "Product limit reached (100/100). Please upgrade your plan to add more products."


def test_below_limit_is_allowed():
    assert evaluate_limit({"max_orders": 3}, "orders", 2) == (True, None)
