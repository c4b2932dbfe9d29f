import re
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.lib.order import (
    calculate_order_total,
    format_order_status,
    format_payment_status,
    generate_order_number,
    is_valid_status_transition,
)


def test_order_number_format():
    number = generate_order_number(datetime(2025, 3, 9, tzinfo=timezone.utc))
    assert re.fullmatch(r"ORD-20250309-\d{6}", number)


@pytest.mark.parametrize(
    "current, new",
    [
        ("pending", "processing"),
        ("pending", "cancelled"),
        ("processing", "shipped"),
        ("shipped", "delivered"),
        ("shipped", "cancelled"),
        ("cancelled", "refunded"),
    ],
)
def test_allowed_transitions(current, new):
    assert is_valid_status_transition(current, new)


@pytest.mark.parametrize(
    "current, new",
    [
        ("pending", "shipped"),
        ("pending", "delivered"),
        ("delivered", "cancelled"),
        ("refunded", "pending"),
        ("cancelled", "pending"),
        ("unknown", "pending"),
    ],
)
def test_rejected_transitions(current, new):
    assert not is_valid_status_transition(current, new)


def test_order_total_from_dicts_and_objects():
    items = [
        {"price": "10.50", "quantity": 2},
        SimpleNamespace(price=Decimal("3.25"), quantity=4),
    ]
    assert calculate_order_total(items) == Decimal("34.00")


def test_order_total_empty():
    assert calculate_order_total([]) == Decimal("0")


def test_status_labels():
    assert format_order_status("shipped") == "Shipped"
    assert format_payment_status("paid") == "Paid"
    assert format_order_status("weird") == "weird"
