"""Per-leg route metrics and geometry for an ordered stop sequence."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Protocol, Sequence

from ...errors import ProviderUnavailable
from ...models.domain import Coordinates, RouteLeg, Stop

logger = logging.getLogger(__name__)


class LegProvider(Protocol):
    def route(self, origin: Coordinates, destination: Coordinates) -> RouteLeg | None: ...


class RouteSegmentService:
    """Fetches legs pairwise (origin -> s1, s1 -> s2, ...) instead of one combined route.

    Each leg is independently addressable, so reordering or removing a stop
    only needs the affected legs re-fetched.
    """

    def __init__(self, provider: LegProvider) -> None:
        self.provider = provider

    def segments(self, origin: Coordinates, stops: Sequence[Stop]) -> list[Stop]:
        result: list[Stop] = []
        current_origin = origin
        fetched = 0
        failed = 0
        for stop in stops:
            destination = stop.coordinates
            if destination is None or stop.is_completed:
                result.append(stop)
                continue
            leg = self._fetch(current_origin, destination, stop.stop_id)
            if leg is None:
                failed += 1
                result.append(stop)
            else:
                fetched += 1
                result.append(replace(stop, leg=leg))
            # The chain advances past every routable stop, even when its leg failed.
            current_origin = destination
        logger.info(f"Segmented {len(stops)} stops: {fetched} legs fetched, {failed} kept unchanged")
        return result

    def _fetch(self, origin: Coordinates, destination: Coordinates, stop_id: str) -> RouteLeg | None:
        try:
            return self.provider.route(origin, destination)
        except ProviderUnavailable as exc:
            logger.warning(f"Leg fetch failed for stop {stop_id}: {exc}")
            return None


def routed_predecessors(stops: Sequence[Stop]) -> dict[str, str | None]:
    """Map each routable pending stop to the routable pending stop before it (None = origin)."""
    predecessors: dict[str, str | None] = {}
    previous: str | None = None
    for stop in stops:
        if stop.is_completed or not stop.is_routable:
            continue
        predecessors[stop.stop_id] = previous
        previous = stop.stop_id
    return predecessors


def invalidate_stale_legs(before: Sequence[Stop], after: Sequence[Stop]) -> list[Stop]:
    """Clear the leg of every pending stop whose routed predecessor changed."""
    previous = routed_predecessors(before)
    current = routed_predecessors(after)
    result: list[Stop] = []
    for stop in after:
        stop_id = stop.stop_id
        if (
            stop.leg is not None
            and stop_id in current
            and (stop_id not in previous or previous[stop_id] != current[stop_id])
        ):
            result.append(replace(stop, leg=None))
        else:
            result.append(stop)
    return result
