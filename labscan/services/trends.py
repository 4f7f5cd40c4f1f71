"""Synthetic month-by-month history for trend charts (demo data only)."""
from __future__ import annotations

import calendar
import random
from datetime import date
from typing import Dict, List, Optional

from labscan.schemas.labs import TrendPoint

HISTORY_MONTHS = 6
DEFAULT_BASELINE = 50.0
# +/- 20% around the baseline
JITTER = 0.4

_BASELINES: Dict[str, float] = {
    "Hemoglobin": 14.0,
    "White Blood Cell Count": 7500,
    "Red Blood Cell Count": 4.8,
    "Platelet Count": 300000,
    "Glucose": 85,
    "Cholesterol": 180,
    "HDL Cholesterol": 50,
    "LDL Cholesterol": 80,
    "Triglycerides": 120,
    "Creatinine": 0.9,
    "Blood Urea Nitrogen": 15,
    "ALT": 25,
    "AST": 30,
}


def baseline_for(parameter: str) -> float:
    return float(_BASELINES.get(parameter, DEFAULT_BASELINE))


def _months_back(day: date, months: int) -> date:
    year, month = divmod(day.year * 12 + (day.month - 1) - months, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def generate_historical_data(
    parameter: str,
    *,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> List[TrendPoint]:
    """Return one point per month for the last six months, oldest first."""
    today = today or date.today()
    rng = rng or random.Random()
    base = baseline_for(parameter)
    points: List[TrendPoint] = []
    for offset in range(HISTORY_MONTHS - 1, -1, -1):
        variation = 1 + (rng.random() - 0.5) * JITTER
        points.append(
            TrendPoint(
                date=_months_back(today, offset).isoformat(),
                value=round(base * variation, 2),
            )
        )
    return points


__all__ = ["generate_historical_data", "baseline_for", "DEFAULT_BASELINE", "HISTORY_MONTHS"]
