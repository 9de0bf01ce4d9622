"""Stop collection request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from ..models.domain import (
    Address,
    BatchReport,
    Coordinates,
    ProofOfDelivery,
    RouteLeg,
    Stop,
    StopStatus,
    TimeWindow,
)
from ..services.routing.metrics import ItinerarySummary, format_distance, format_duration


class CoordinatesModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class AddressModel(BaseModel):
    postal_code: str
    street: str = ""
    district: str = ""
    locality: str = ""
    region: str = ""
    coordinates: Optional[CoordinatesModel] = None


class TimeWindowModel(BaseModel):
    start: str
    end: str


class ProofOfDeliveryModel(BaseModel):
    receiver_name: str
    completed_at: datetime
    photo_ref: Optional[str] = None


class RouteLegModel(BaseModel):
    distance_m: float = Field(..., ge=0)
    duration_s: float = Field(..., ge=0)
    geometry: List[Tuple[float, float]] = Field(default_factory=list)


class StopModel(BaseModel):
    stop_id: str
    postal_code: str
    address: AddressModel
    status: StopStatus = StopStatus.PENDING
    insertion_index: int = 0
    notes: str = ""
    vehicle_label: Optional[str] = None
    time_window: Optional[TimeWindowModel] = None
    leg: Optional[RouteLegModel] = None
    proof: Optional[ProofOfDeliveryModel] = None
    geocoded: bool = False


class SummaryModel(BaseModel):
    total_distance_m: float
    total_duration_s: float
    total_distance_label: str
    total_duration_label: str
    stop_count: int
    pending_count: int
    completed_count: int
    skipped_count: int
    unresolved_count: int


class CollectionResponse(BaseModel):
    stops: List[StopModel]
    summary: SummaryModel
    rationale: Optional[str] = None
    vehicle_count: int = 1
    busy: bool = False


class BatchRequest(BaseModel):
    codes: Optional[List[str]] = Field(default=None, description="Postal codes, one per entry.")
    text: Optional[str] = Field(default=None, description="Pasted codes separated by newlines, commas or semicolons.")
    vehicle_count: Optional[int] = Field(default=None, ge=1)


class BatchResponse(BaseModel):
    created: List[StopModel]
    invalid_codes: List[str]
    not_found_codes: List[str]
    unresolved_count: int
    discarded: bool = False


class NotesRequest(BaseModel):
    notes: str = ""


class TimeWindowRequest(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class CompleteRequest(BaseModel):
    receiver_name: str
    photo_ref: Optional[str] = None


def stop_to_model(stop: Stop) -> StopModel:
    address = stop.address
    return StopModel(
        stop_id=stop.stop_id,
        postal_code=stop.postal_code,
        address=AddressModel(
            postal_code=address.postal_code,
            street=address.street,
            district=address.district,
            locality=address.locality,
            region=address.region,
            coordinates=(
                CoordinatesModel(
                    latitude=address.coordinates.latitude,
                    longitude=address.coordinates.longitude,
                )
                if address.has_coordinates
                else None
            ),
        ),
        status=stop.status,
        insertion_index=stop.insertion_index,
        notes=stop.notes,
        vehicle_label=stop.vehicle_label,
        time_window=(
            TimeWindowModel(start=stop.time_window.start, end=stop.time_window.end) if stop.time_window else None
        ),
        leg=(
            RouteLegModel(
                distance_m=stop.leg.distance_m,
                duration_s=stop.leg.duration_s,
                geometry=list(stop.leg.geometry),
            )
            if stop.leg
            else None
        ),
        proof=(
            ProofOfDeliveryModel(
                receiver_name=stop.proof.receiver_name,
                completed_at=stop.proof.completed_at,
                photo_ref=stop.proof.photo_ref,
            )
            if stop.proof
            else None
        ),
        geocoded=stop.is_routable,
    )


def model_to_stop(model: StopModel) -> Stop:
    address = model.address
    return Stop(
        stop_id=model.stop_id,
        postal_code=model.postal_code,
        address=Address(
            postal_code=address.postal_code,
            street=address.street,
            district=address.district,
            locality=address.locality,
            region=address.region,
            coordinates=(
                Coordinates(latitude=address.coordinates.latitude, longitude=address.coordinates.longitude)
                if address.coordinates
                else None
            ),
        ),
        status=model.status,
        insertion_index=model.insertion_index,
        notes=model.notes,
        vehicle_label=model.vehicle_label,
        time_window=TimeWindow(start=model.time_window.start, end=model.time_window.end) if model.time_window else None,
        leg=(
            RouteLeg(
                distance_m=model.leg.distance_m,
                duration_s=model.leg.duration_s,
                geometry=tuple((lat, lon) for lat, lon in model.leg.geometry),
            )
            if model.leg
            else None
        ),
        proof=(
            ProofOfDelivery(
                receiver_name=model.proof.receiver_name,
                completed_at=model.proof.completed_at,
                photo_ref=model.proof.photo_ref,
            )
            if model.proof
            else None
        ),
    )


def summary_to_model(summary: ItinerarySummary) -> SummaryModel:
    return SummaryModel(
        total_distance_m=summary.total_distance_m,
        total_duration_s=summary.total_duration_s,
        total_distance_label=format_distance(summary.total_distance_m),
        total_duration_label=format_duration(summary.total_duration_s),
        stop_count=summary.stop_count,
        pending_count=summary.pending_count,
        completed_count=summary.completed_count,
        skipped_count=summary.skipped_count,
        unresolved_count=summary.unresolved_count,
    )


def batch_to_response(report: BatchReport) -> BatchResponse:
    return BatchResponse(
        created=[stop_to_model(stop) for stop in report.created],
        invalid_codes=report.invalid_codes,
        not_found_codes=report.not_found_codes,
        unresolved_count=len(report.unresolved),
        discarded=report.discarded,
    )
