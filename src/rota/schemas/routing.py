"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import PlanResult
from .stops import CollectionResponse, CoordinatesModel


class OptimizeRequest(BaseModel):
    vehicle_count: Optional[int] = Field(default=None, ge=1, description="Defaults to the session's vehicle count.")
    current_location: Optional[CoordinatesModel] = Field(
        default=None,
        description="Origin for the first leg. Keeps the previously reported location when omitted.",
    )


class VehicleAssignmentModel(BaseModel):
    vehicle_label: Optional[str] = None
    stop_ids: List[str]


class PlanModel(BaseModel):
    assignments: List[VehicleAssignmentModel]
    rationale: str
    used_fallback: bool


class OptimizeResponse(BaseModel):
    plan: PlanModel
    collection: CollectionResponse


class LocationRequest(BaseModel):
    current_location: Optional[CoordinatesModel] = None


def plan_to_model(plan: PlanResult) -> PlanModel:
    return PlanModel(
        assignments=[
            VehicleAssignmentModel(vehicle_label=assignment.vehicle_label, stop_ids=list(assignment.stop_ids))
            for assignment in plan.assignments
        ],
        rationale=plan.rationale,
        used_fallback=plan.used_fallback,
    )
