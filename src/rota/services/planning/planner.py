"""Visiting order and vehicle assignment via an external reasoning service.

The reasoning service is treated as an untrusted oracle: its payload is
validated against a strict shape, and any failure falls back to the current
relative order under a single vehicle label.
"""

from __future__ import annotations

import logging
from typing import Any, List, Protocol, Sequence

import pydantic
from pydantic import BaseModel, Field

from ...config import settings
from ...errors import PlanningFailed, ProviderUnavailable
from ...models.domain import Coordinates, PlanResult, Stop, VehicleAssignment
from .prompt import build_prompt, output_schema

logger = logging.getLogger(__name__)


class ReasoningClient(Protocol):
    def complete(self, prompt: str, schema: dict[str, Any]) -> str: ...


class SimplePlanPayload(BaseModel):
    order: List[str]
    rationale: str = ""


class FleetAssignmentPayload(BaseModel):
    vehicle_label: str = ""
    stop_ids: List[str] = Field(default_factory=list)


class FleetPlanPayload(BaseModel):
    assignments: List[FleetAssignmentPayload]
    rationale: str = ""


class RoutePlanner:
    def __init__(self, client: ReasoningClient | None) -> None:
        self.client = client

    def plan(self, origin: Coordinates | None, pending: Sequence[Stop], vehicle_count: int = 1) -> PlanResult:
        if vehicle_count < 1:
            raise ValueError("vehicle_count must be at least 1.")
        if not pending:
            return PlanResult()
        if len(pending) == 1:
            return PlanResult(
                assignments=(VehicleAssignment(stop_ids=(pending[0].stop_id,)),),
                rationale="Single stop, nothing to optimize.",
            )
        if self.client is None:
            return fallback_plan(pending, "Planner is not configured.")

        prompt = build_prompt(origin, pending, vehicle_count)
        try:
            raw = self.client.complete(prompt, output_schema(vehicle_count))
            result = parse_plan(raw, vehicle_count)
        except (PlanningFailed, ProviderUnavailable) as exc:
            logger.warning(f"Planning failed, using fallback order: {exc}")
            return fallback_plan(pending, str(exc))
        logger.info(
            f"Planner placed {len(result.ordered_ids)} of {len(pending)} stops "
            f"across {len(result.assignments)} assignment(s)"
        )
        return result


def parse_plan(raw: str, vehicle_count: int) -> PlanResult:
    """Validate the reasoning service payload; raises ``PlanningFailed``."""
    try:
        if vehicle_count == 1:
            simple = SimplePlanPayload.model_validate_json(raw)
            return PlanResult(
                assignments=(
                    VehicleAssignment(stop_ids=tuple(simple.order), vehicle_label=settings.default_vehicle_label),
                ),
                rationale=simple.rationale,
            )
        fleet = FleetPlanPayload.model_validate_json(raw)
    except pydantic.ValidationError as exc:
        raise PlanningFailed(f"Unparsable planner payload: {exc.error_count()} error(s)") from exc

    assignments = tuple(
        VehicleAssignment(
            stop_ids=tuple(item.stop_ids),
            vehicle_label=item.vehicle_label.strip() or f"Vehicle {index}",
        )
        for index, item in enumerate(fleet.assignments, start=1)
    )
    return PlanResult(assignments=assignments, rationale=fleet.rationale)


def fallback_plan(pending: Sequence[Stop], reason: str) -> PlanResult:
    return PlanResult(
        assignments=(
            VehicleAssignment(
                stop_ids=tuple(stop.stop_id for stop in pending),
                vehicle_label=settings.default_vehicle_label,
            ),
        ),
        rationale=f"Planner unavailable ({reason}). Default sequential route generated.",
        used_fallback=True,
    )
