"""Consumption rates, depletion forecasts and rupture risk from sale movements."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel

DEFAULT_ANALYSIS_DAYS = 30
RUPTURE_HORIZON_DAYS = 7
INCREASING_FACTOR = 1.1
DECREASING_FACTOR = 0.9
RISK_ORDER = {"high": 0, "medium": 1, "low": 2}


class ConsumptionAnalysis(BaseModel):
    ingredient_id: str
    ingredient_name: str
    unit: Optional[str] = None
    average_daily_consumption: float
    average_weekly_consumption: float
    days_until_empty: Optional[int] = None
    predicted_empty_date: Optional[date] = None
    consumption_trend: str
    last_movement_date: Optional[str] = None


class RuptureRisk(ConsumptionAnalysis):
    risk_level: str


def analyze_ingredient_consumption(
    ingredient: Mapping[str, Any],
    sale_movements: Sequence[Mapping[str, Any]],
    days: int = DEFAULT_ANALYSIS_DAYS,
    *,
    today: Optional[date] = None,
) -> ConsumptionAnalysis:
    """Analyse one ingredient from its sale movements, oldest first."""

    if days <= 0:
        raise ValueError("days must be positive")

    reference_day = today or date.today()
    ingredient_id = str(ingredient.get("id"))
    ingredient_name = str(ingredient.get("name") or "")
    unit = ingredient.get("unit")

    if not sale_movements:
        return ConsumptionAnalysis(
            ingredient_id=ingredient_id,
            ingredient_name=ingredient_name,
            unit=unit,
            average_daily_consumption=0.0,
            average_weekly_consumption=0.0,
            consumption_trend="stable",
        )

    quantities = [_to_float(movement.get("quantity")) for movement in sale_movements]
    average_daily = sum(quantities) / days
    stock = _to_float(ingredient.get("quantity"))

    days_until_empty: Optional[int] = None
    predicted_empty_date: Optional[date] = None
    if average_daily > 0 and stock > 0:
        days_until_empty = math.floor(stock / average_daily)
        predicted_empty_date = reference_day + timedelta(days=days_until_empty)

    return ConsumptionAnalysis(
        ingredient_id=ingredient_id,
        ingredient_name=ingredient_name,
        unit=unit,
        average_daily_consumption=average_daily,
        average_weekly_consumption=average_daily * 7,
        days_until_empty=days_until_empty,
        predicted_empty_date=predicted_empty_date,
        consumption_trend=consumption_trend(quantities),
        last_movement_date=sale_movements[-1].get("created_at"),
    )


def consumption_trend(quantities: Sequence[float]) -> str:
    """Compare the second half of the movements with the first half."""

    half = len(quantities) // 2
    first = sum(quantities[:half])
    second = sum(quantities[half:])
    if second > first * INCREASING_FACTOR:
        return "increasing"
    if second < first * DECREASING_FACTOR:
        return "decreasing"
    return "stable"


def analyze_all_consumption(
    ingredients: Iterable[Mapping[str, Any]],
    sale_movements: Iterable[Mapping[str, Any]],
    days: int = DEFAULT_ANALYSIS_DAYS,
    *,
    today: Optional[date] = None,
) -> List[ConsumptionAnalysis]:
    grouped: Dict[str, List[Mapping[str, Any]]] = defaultdict(list)
    for movement in sale_movements:
        grouped[str(movement.get("ingredient_id"))].append(movement)
    for movements in grouped.values():
        movements.sort(key=lambda movement: str(movement.get("created_at") or ""))

    return [
        analyze_ingredient_consumption(ingredient, grouped.get(str(ingredient.get("id")), []), days, today=today)
        for ingredient in ingredients
    ]


def rupture_risk_level(days_until_empty: int) -> str:
    if days_until_empty <= 2:
        return "high"
    if days_until_empty <= 4:
        return "medium"
    return "low"


def get_rupture_risk_ingredients(analyses: Iterable[ConsumptionAnalysis]) -> List[RuptureRisk]:
    """Ingredients forecast to run out within a week, riskiest first."""

    at_risk = [
        RuptureRisk(**analysis.model_dump(), risk_level=rupture_risk_level(analysis.days_until_empty))
        for analysis in analyses
        if analysis.days_until_empty is not None and analysis.days_until_empty < RUPTURE_HORIZON_DAYS
    ]
    at_risk.sort(key=lambda entry: (RISK_ORDER[entry.risk_level], entry.days_until_empty))
    return at_risk


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


__all__ = [
    "ConsumptionAnalysis",
    "RuptureRisk",
    "analyze_all_consumption",
    "analyze_ingredient_consumption",
    "consumption_trend",
    "get_rupture_risk_ingredients",
    "rupture_risk_level",
]
