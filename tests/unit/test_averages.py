from __future__ import annotations

from fuel_ingest.common.models import CanonicalStation, FuelPrices
from fuel_ingest.pipeline.averages import compute_averages, mean_one_decimal


def _stations(*prices: FuelPrices) -> dict[str, CanonicalStation]:
    out = {}
    for idx, price in enumerate(prices):
        site_id = f"s{idx}"
        out[site_id] = CanonicalStation(
            site_id=site_id,
            brand="SGN",
            address="",
            postcode="AB1 2CD",
            longitude=-1.0,
            latitude=52.0,
            prices=price,
            last_updated="2025-02-23 11:51:52",
            retailer="SGN",
        )
    return out


def test_unleaded_average_ignores_absent_prices():
    stations = _stations(FuelPrices(E5=140.0), FuelPrices(E5=142.0), FuelPrices(E5=None))

    averages = compute_averages(stations, today="2025-02-23")

    assert averages.unleaded_avg == 141.0
    assert averages.date == "2025-02-23"


def test_grade_without_reports_is_none():
    averages = compute_averages(_stations(FuelPrices(E5=140.0, B7=150.0)), today="2025-02-23")

    assert averages.premium_avg is None
    assert averages.diesel_avg == 150.0


def test_zero_and_negative_prices_do_not_contribute():
    averages = compute_averages(_stations(FuelPrices(SDV=0.0), FuelPrices(SDV=-1.0), FuelPrices(SDV=160.0)), today="2025-02-23")

    assert averages.premium_avg == 160.0


def test_rounding_is_half_away_from_zero():
    assert mean_one_decimal([140.0, 140.5]) == 140.3
    assert mean_one_decimal([140.25]) == 140.3
    assert mean_one_decimal([]) is None


def test_empty_station_set_yields_all_none():
    averages = compute_averages({}, today="2025-02-23")

    assert averages.to_dict() == {
        "date": "2025-02-23",
        "unleaded_avg": None,
        "diesel_avg": None,
        "premium_avg": None,
    }


def test_date_defaults_to_utc_today():
    assert len(compute_averages({}).date) == len("2025-02-23")


def test_averages_row_has_the_store_columns_only():
    averages = compute_averages(_stations(FuelPrices(E5=140.0, E10=139.0, B7=150.0, SDV=160.0)), today="2025-02-23")

    assert set(averages.to_dict()) == {"date", "unleaded_avg", "diesel_avg", "premium_avg"}
