from datetime import date

import pytest

from backoffice.services.inventory import apply_movement, page_range, total_pages
from backoffice.services.stock_status import (
    days_until_expiry,
    filter_ingredients,
    ingredient_statuses,
    is_expired,
    is_expiring_soon,
    is_low_stock,
    matches_status,
    parse_expiry,
    primary_status,
)

TODAY = date(2024, 5, 10)


def test_expiry_boundaries() -> None:
    assert not is_expired({"expiry_date": "2024-05-10"}, TODAY)
    assert is_expiring_soon({"expiry_date": "2024-05-10"}, TODAY)
    assert is_expiring_soon({"expiry_date": "2024-05-13"}, TODAY)
    assert not is_expiring_soon({"expiry_date": "2024-05-14"}, TODAY)
    assert is_expired({"expiry_date": "2024-05-09"}, TODAY)
    assert not is_expiring_soon({"expiry_date": "2024-05-09"}, TODAY)


def test_missing_or_malformed_expiry_is_neither_expired_nor_expiring() -> None:
    for value in (None, "", "not-a-date"):
        row = {"expiry_date": value}
        assert parse_expiry(value) is None
        assert days_until_expiry(value, TODAY) is None
        assert not is_expired(row, TODAY)
        assert not is_expiring_soon(row, TODAY)


def test_days_until_expiry_accepts_timestamps() -> None:
    assert days_until_expiry("2024-05-12T08:30:00+00:00", TODAY) == 2
    assert days_until_expiry(date(2024, 5, 1), TODAY) == -9


def test_low_stock_includes_the_threshold() -> None:
    assert is_low_stock({"quantity": 2, "min_stock": 2})
    assert not is_low_stock({"quantity": 2.5, "min_stock": 2})


def test_statuses_order_and_primary_status() -> None:
    row = {"quantity": 0, "min_stock": 1, "expiry_date": "2024-05-01"}
    statuses = [entry["status"] for entry in ingredient_statuses(row, TODAY)]
    assert statuses == ["expired", "low_stock"]
    assert primary_status(row, TODAY)["label"] == "Vencido"

    healthy = {"quantity": 10, "min_stock": 1, "expiry_date": None}
    assert primary_status(healthy, TODAY) == {"status": "ok", "label": "OK", "variant": "success"}


def test_filter_ingredients_by_status() -> None:
    rows = [
        {"name": "Leite", "quantity": 1, "min_stock": 2, "expiry_date": "2024-05-11"},
        {"name": "Arroz", "quantity": 10, "min_stock": 2, "expiry_date": None},
        {"name": "Iogurte", "quantity": 5, "min_stock": 1, "expiry_date": "2024-05-01"},
    ]
    assert [row["name"] for row in filter_ingredients(rows, "low_stock", TODAY)] == ["Leite"]
    assert [row["name"] for row in filter_ingredients(rows, "expiring_soon", TODAY)] == ["Leite"]
    assert [row["name"] for row in filter_ingredients(rows, "expired", TODAY)] == ["Iogurte"]
    assert len(filter_ingredients(rows, "all", TODAY)) == 3

    with pytest.raises(ValueError):
        matches_status(rows[0], "unknown", TODAY)


@pytest.mark.parametrize(
    ("movement_type", "quantity", "expected"),
    [
        ("purchase", 3, 8),
        ("sale", 2, 3),
        ("sale", 9, 0),
        ("waste", 5, 0),
        ("expired", 1, 4),
        ("adjustment", 12, 12),
    ],
)
def test_apply_movement(movement_type: str, quantity: float, expected: float) -> None:
    assert apply_movement(5, movement_type, quantity) == expected


def test_apply_movement_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        apply_movement(5, "gift", 1)


def test_pagination_helpers() -> None:
    assert page_range(1) == (0, 19)
    assert page_range(3) == (40, 59)
    assert total_pages(0) == 1
    assert total_pages(20) == 1
    assert total_pages(21) == 2
    with pytest.raises(ValueError):
        page_range(0)
