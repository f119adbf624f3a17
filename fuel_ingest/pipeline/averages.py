"""National per-grade price averages."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from fuel_ingest.common.constants import FUEL_GRADES
from fuel_ingest.common.models import CanonicalStation, NationalAverages
from fuel_ingest.common.time_utils import utc_today_iso


def mean_one_decimal(values: list[float]) -> float | None:
    if not values:
        return None
    mean = sum(values) / len(values)
    # Decimal(str(...)) keeps 141.05 from rounding down via its binary form.
    return float(Decimal(str(mean)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def grade_averages(stations: Iterable[CanonicalStation]) -> dict[str, float | None]:
    collected: dict[str, list[float]] = {grade: [] for grade in FUEL_GRADES}
    for station in stations:
        for grade in FUEL_GRADES:
            price = station.prices.get(grade)
            if price is not None and price > 0:
                collected[grade].append(price)
    return {grade: mean_one_decimal(values) for grade, values in collected.items()}


def compute_averages(stations: Mapping[str, CanonicalStation], today: str | None = None) -> NationalAverages:
    by_grade = grade_averages(stations.values())
    return NationalAverages(
        date=today or utc_today_iso(),
        unleaded_avg=by_grade["E5"],
        diesel_avg=by_grade["B7"],
        premium_avg=by_grade["SDV"],
    )
