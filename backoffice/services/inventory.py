"""Inventory rules shared by the ingredient and stock movement endpoints."""

from __future__ import annotations

import math

PAGE_SIZE = 20
OUTGOING_MOVEMENTS = ("sale", "waste", "expired")


def apply_movement(previous_quantity: float, movement_type: str, quantity: float) -> float:
    """Return the stock quantity after a movement. Outgoing movements clamp at zero."""

    if movement_type == "purchase":
        return previous_quantity + quantity
    if movement_type in OUTGOING_MOVEMENTS:
        return max(0.0, previous_quantity - quantity)
    if movement_type == "adjustment":
        return quantity
    raise ValueError(f"Unknown movement type: {movement_type}")


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(count / page_size))


def page_range(page: int, page_size: int = PAGE_SIZE) -> tuple[int, int]:
    """Inclusive row offsets for PostgREST ``range``."""

    if page < 1:
        raise ValueError("page must be >= 1")
    start = (page - 1) * page_size
    return start, start + page_size - 1


__all__ = [
    "PAGE_SIZE",
    "apply_movement",
    "page_range",
    "total_pages",
]
