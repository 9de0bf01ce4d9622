"""Itinerary totals and human-readable formatting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ...models.domain import Stop, StopStatus


@dataclass(slots=True)
class ItinerarySummary:
    total_distance_m: float
    total_duration_s: float
    stop_count: int
    pending_count: int
    completed_count: int
    skipped_count: int
    unresolved_count: int


def summarize(stops: Sequence[Stop]) -> ItinerarySummary:
    return ItinerarySummary(
        total_distance_m=sum(stop.leg.distance_m for stop in stops if stop.leg),
        total_duration_s=sum(stop.leg.duration_s for stop in stops if stop.leg),
        stop_count=len(stops),
        pending_count=sum(1 for stop in stops if stop.status is StopStatus.PENDING),
        completed_count=sum(1 for stop in stops if stop.status is StopStatus.COMPLETED),
        skipped_count=sum(1 for stop in stops if stop.status is StopStatus.SKIPPED),
        unresolved_count=sum(1 for stop in stops if not stop.is_routable),
    )


def format_distance(meters: float | None) -> str:
    if meters is None:
        return "--"
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float | None) -> str:
    if seconds is None:
        return "--"
    minutes = round(seconds / 60)
    if minutes < 60:
        return f"{minutes} min"
    hours, remaining = divmod(minutes, 60)
    return f"{hours}h {remaining:02d}min"
