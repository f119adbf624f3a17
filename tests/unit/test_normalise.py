from __future__ import annotations

import math

import pytest

from fuel_ingest.common.errors import StructuralAnomalyError
from fuel_ingest.pipeline.normalise import (
    locate_station_entries,
    normalise_entry,
    normalise_stations,
    resolve_coordinates,
)


def _entry(**overrides):
    entry = {
        "site_id": "gb-001",
        "brand": "ASDA",
        "address": "1 High Street",
        "postcode": "SW1A 1AA",
        "location": {"latitude": 51.5, "longitude": -0.12},
        "prices": {"E5": 145.9, "E10": 139.9, "B7": 149.9},
    }
    entry.update(overrides)
    return entry


def _normalise(entry, aliases, retailer="ASDA"):
    return normalise_entry(entry, retailer, aliases, "2025-02-23T11:51:52+00:00")


def test_valid_entry_maps_to_canonical_station(default_aliases):
    station = _normalise(_entry(), default_aliases)

    assert station.site_id == "gb-001"
    assert station.brand == "ASDA"
    assert station.postcode == "SW1A 1AA"
    assert station.coordinates == (-0.12, 51.5)
    assert station.prices.E5 == 145.9
    assert station.prices.SDV is None
    assert station.last_updated == "2025-02-23T11:51:52+00:00"


@pytest.mark.parametrize(
    "overrides",
    [
        {"site_id": None},
        {"site_id": ""},
        {"site_id": "   "},
        {"postcode": None},
        {"postcode": ""},
    ],
)
def test_entries_without_site_id_or_postcode_are_dropped(default_aliases, overrides):
    assert _normalise(_entry(**overrides), default_aliases) is None


def test_missing_site_id_key_is_dropped(default_aliases):
    entry = _entry()
    del entry["site_id"]
    assert _normalise(entry, default_aliases) is None


def test_id_alias_is_used_when_site_id_missing(default_aliases):
    entry = _entry(id=12345)
    del entry["site_id"]

    assert _normalise(entry, default_aliases).site_id == "12345"


def test_origin_coordinates_are_treated_as_missing(default_aliases):
    assert _normalise(_entry(location={"latitude": 0, "longitude": 0}), default_aliases) is None
    assert _normalise(_entry(location={"latitude": "abc", "longitude": None}), default_aliases) is None
    assert _normalise(_entry(location=None), default_aliases) is None


def test_near_origin_coordinates_are_kept(default_aliases):
    station = _normalise(_entry(location={"longitude": 0.0001, "latitude": 51.5}), default_aliases)

    assert station is not None
    assert station.coordinates == (0.0001, 51.5)


def test_string_coordinates_and_short_aliases(default_aliases):
    station = _normalise(_entry(location={"lng": "-1.5491", "lat": " 53.8008 "}), default_aliases)

    assert station.coordinates == (-1.5491, 53.8008)


def test_zero_longitude_falls_through_to_next_alias_only_when_absent(default_aliases):
    # A real 0 is present and must not be replaced by the lng alias.
    longitude, latitude = resolve_coordinates(
        {"location": {"longitude": 0, "lng": 5, "latitude": 51.47}},
        default_aliases,
    )
    assert (longitude, latitude) == (0.0, 51.47)


def test_coordinates_on_station_level_are_accepted(default_aliases):
    entry = _entry(latitude=52.2, longitude=0.12)
    del entry["location"]

    assert _normalise(entry, default_aliases).coordinates == (0.12, 52.2)


def test_price_aliases_and_string_coercion(default_aliases):
    station = _normalise(_entry(prices={"UNLEADED": "145.5", "diesel": 150, "PREMIUM": "162.9"}), default_aliases)

    assert station.prices.E5 == 145.5
    assert station.prices.B7 == 150.0
    assert station.prices.SDV == 162.9
    assert station.prices.E10 is None


def test_null_price_is_absent_not_zero(default_aliases):
    station = _normalise(_entry(prices={"E5": None}), default_aliases)

    assert station.prices.E5 is None
    assert station.prices.as_dict() == {}


def test_unparsable_and_non_finite_prices_are_absent(default_aliases):
    station = _normalise(_entry(prices={"E5": "n/a", "E10": "nan", "B7": True}), default_aliases)

    assert station.prices.E5 is None
    assert station.prices.E10 is None
    assert station.prices.B7 is None


def test_fuel_prices_container_alias(default_aliases):
    entry = _entry(fuel_prices={"e10": "139.9"})
    del entry["prices"]

    assert _normalise(entry, default_aliases).prices.E10 == 139.9


def test_brand_falls_back_to_retailer_name(default_aliases):
    entry = _entry()
    del entry["brand"]

    assert _normalise(entry, default_aliases, retailer="MORRISONS").brand == "MORRISONS"


def test_address_and_postcode_aliases(default_aliases):
    entry = _entry(street_address="Station Road", post_code="ls11ab")
    del entry["address"]
    del entry["postcode"]

    station = _normalise(entry, default_aliases)
    assert station.address == "Station Road"
    assert station.postcode == "ls11ab"


def test_non_object_entry_is_dropped(default_aliases):
    assert _normalise("not-a-station", default_aliases) is None
    assert _normalise(None, default_aliases) is None


def test_locate_station_entries_accepts_list_and_stations_object():
    assert locate_station_entries([{"a": 1}]) == [{"a": 1}]
    assert locate_station_entries({"stations": [{"a": 1}]}) == [{"a": 1}]


@pytest.mark.parametrize("payload", [{"data": []}, {"stations": {"a": 1}}, "text", None, 42])
def test_locate_station_entries_rejects_other_shapes(payload):
    with pytest.raises(StructuralAnomalyError):
        locate_station_entries(payload)


def test_normalise_stations_yields_nothing_for_structural_anomaly(default_aliases):
    assert list(normalise_stations({"sites": []}, "BP", default_aliases)) == []


def test_normalise_stations_isolates_bad_entries(default_aliases):
    payload = {
        "last_updated": "23/02/2025 11:51:52",
        "stations": [
            _entry(site_id="a"),
            "garbage",
            _entry(site_id="b", postcode=""),
            _entry(site_id="c", location={"latitude": "nan", "longitude": "nan"}),
            _entry(site_id="d", last_updated="2025-02-24 08:00:00"),
        ],
    }

    stations = list(normalise_stations(payload, "TESCO", default_aliases))

    assert [s.site_id for s in stations] == ["a", "c", "d"]
    assert stations[0].last_updated == "23/02/2025 11:51:52"
    assert math.isnan(stations[1].longitude)
    assert stations[2].last_updated == "2025-02-24 08:00:00"


def test_normalise_stations_uses_run_timestamp_without_payload_date(default_aliases):
    stations = list(normalise_stations([_entry()], "JET", default_aliases, now="2025-03-01T00:00:00+00:00"))

    assert stations[0].last_updated == "2025-03-01T00:00:00+00:00"
    assert stations[0].retailer == "JET"


def test_oversized_integer_price_is_absent(default_aliases):
    station = _normalise(_entry(prices={"E5": 10**400, "B7": 149.9}), default_aliases)

    assert station.prices.E5 is None
    assert station.prices.B7 == 149.9


def test_oversized_integer_coordinates_drop_only_that_entry(default_aliases):
    payload = [
        _entry(site_id="huge", location={"latitude": 10**400, "longitude": 10**400}),
        _entry(site_id="ok"),
    ]

    assert [s.site_id for s in normalise_stations(payload, "BP", default_aliases)] == ["ok"]


def test_postcode_is_stored_as_supplied(default_aliases, caplog):
    caplog.set_level("DEBUG", logger="fuel_ingest")

    assert _normalise(_entry(postcode=" sw1a 1aa "), default_aliases).postcode == "sw1a 1aa"
    assert _normalise(_entry(postcode="BT-UNKNOWN"), default_aliases).postcode == "BT-UNKNOWN"
    assert [r.event for r in caplog.records if getattr(r, "event", None) == "POSTCODE_UNRECOGNISED"] == ["POSTCODE_UNRECOGNISED"]
