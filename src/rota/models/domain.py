"""Domain models for stops, addresses, legs and plans."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class StopStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


@dataclass(slots=True, frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and abs(self.latitude) <= 90
            and abs(self.longitude) <= 180
        )

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True, frozen=True)
class Address:
    """Resolved postal data. Coordinates stay empty until geocoding succeeds."""

    postal_code: str
    street: str
    district: str
    locality: str
    region: str
    coordinates: Optional[Coordinates] = None

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None and self.coordinates.is_valid

    def with_coordinates(self, coordinates: Coordinates | None) -> Address:
        return replace(self, coordinates=coordinates)

    def summary(self) -> str:
        parts = [part for part in (self.street, self.district) if part]
        return ", ".join(parts) or self.locality


@dataclass(slots=True, frozen=True)
class TimeWindow:
    """Wall-clock delivery window in ``HH:MM`` form."""

    start: str
    end: str

    def label(self) -> str:
        return f"{self.start} - {self.end}"


@dataclass(slots=True, frozen=True)
class ProofOfDelivery:
    receiver_name: str
    completed_at: datetime
    photo_ref: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RouteLeg:
    """Travel segment arriving at a stop from its predecessor."""

    distance_m: float
    duration_s: float
    geometry: tuple[tuple[float, float], ...] = ()


@dataclass(slots=True, frozen=True)
class Stop:
    """A single delivery point. Updated only through ``dataclasses.replace``."""

    stop_id: str
    postal_code: str
    address: Address
    status: StopStatus = StopStatus.PENDING
    insertion_index: int = 0
    notes: str = ""
    vehicle_label: Optional[str] = None
    time_window: Optional[TimeWindow] = None
    leg: Optional[RouteLeg] = None
    proof: Optional[ProofOfDelivery] = None

    @property
    def is_completed(self) -> bool:
        return self.status is StopStatus.COMPLETED

    @property
    def is_routable(self) -> bool:
        return self.address.has_coordinates

    @property
    def coordinates(self) -> Coordinates | None:
        return self.address.coordinates if self.address.has_coordinates else None

    @property
    def travel_distance_m(self) -> float | None:
        return self.leg.distance_m if self.leg else None

    @property
    def travel_duration_s(self) -> float | None:
        return self.leg.duration_s if self.leg else None


@dataclass(slots=True, frozen=True)
class VehicleAssignment:
    """Ordered stop ids for one vehicle. ``vehicle_label`` is None only for the trivial one-stop plan."""

    stop_ids: tuple[str, ...]
    vehicle_label: Optional[str] = None


@dataclass(slots=True, frozen=True)
class PlanResult:
    assignments: tuple[VehicleAssignment, ...] = ()
    rationale: str = ""
    used_fallback: bool = False

    @property
    def ordered_ids(self) -> list[str]:
        return [stop_id for assignment in self.assignments for stop_id in assignment.stop_ids]


@dataclass(slots=True)
class BatchReport:
    """Outcome of one batch intake."""

    created: list[Stop] = field(default_factory=list)
    invalid_codes: list[str] = field(default_factory=list)
    not_found_codes: list[str] = field(default_factory=list)
    discarded: bool = False

    @property
    def unresolved(self) -> list[Stop]:
        return [stop for stop in self.created if not stop.is_routable]
