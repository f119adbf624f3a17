"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from fuel_ingest.common.errors import PipelineError


@dataclass(frozen=True)
class FieldAliases:
    """Ordered candidate keys for every canonical field.

    The first key holding a usable value wins. ``location`` and ``prices`` name
    the nested containers that hold coordinates and per-grade prices.
    """

    site_id: tuple[str, ...]
    brand: tuple[str, ...]
    name: tuple[str, ...]
    address: tuple[str, ...]
    postcode: tuple[str, ...]
    last_updated: tuple[str, ...]
    location: tuple[str, ...]
    longitude: tuple[str, ...]
    latitude: tuple[str, ...]
    prices: tuple[str, ...]
    grades: Mapping[str, tuple[str, ...]]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FieldAliases":
        return cls(
            site_id=tuple(raw["site_id"]),
            brand=tuple(raw["brand"]),
            name=tuple(raw["name"]),
            address=tuple(raw["address"]),
            postcode=tuple(raw["postcode"]),
            last_updated=tuple(raw["last_updated"]),
            location=tuple(raw["location"]),
            longitude=tuple(raw["longitude"]),
            latitude=tuple(raw["latitude"]),
            prices=tuple(raw["prices"]),
            grades={grade: tuple(keys) for grade, keys in raw["grades"].items()},
        )


@dataclass(frozen=True)
class RetailerSource:
    name: str
    url: str
    aliases: FieldAliases


@dataclass(frozen=True)
class FuelPrices:
    E5: float | None = None
    E10: float | None = None
    B7: float | None = None
    SDV: float | None = None

    def get(self, grade: str) -> float | None:
        return getattr(self, grade)

    def as_dict(self) -> dict[str, float]:
        # Absent grades are left out rather than written as zero.
        return {grade: value for grade, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class CanonicalStation:
    site_id: str
    brand: str
    address: str
    postcode: str
    longitude: float
    latitude: float
    prices: FuelPrices
    last_updated: str
    retailer: str
    name: str | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        return self.longitude, self.latitude


@dataclass(frozen=True)
class FetchFailure:
    source: RetailerSource
    cause: PipelineError

    @property
    def error_code(self) -> str:
        return self.cause.error_code

    def to_dict(self) -> dict[str, str]:
        return {
            "retailer": self.source.name,
            "url": self.source.url,
            "error_code": self.error_code,
            "message": str(self.cause),
        }


@dataclass
class AggregateResult:
    stations: list[CanonicalStation] = field(default_factory=list)
    failures: list[FetchFailure] = field(default_factory=list)
    per_source: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class NationalAverages:
    date: str
    unleaded_avg: float | None
    diesel_avg: float | None
    premium_avg: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UpsertResult:
    attempted: int
    persisted: int
    failed_batches: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
