"""Merge an advisory plan back into the authoritative stop collection."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from ..models.domain import PlanResult, Stop

logger = logging.getLogger(__name__)


def split_completed(stops: Sequence[Stop]) -> tuple[list[Stop], list[Stop]]:
    """Partition into (completed, pending) keeping relative order."""
    completed = [stop for stop in stops if stop.is_completed]
    pending = [stop for stop in stops if not stop.is_completed]
    return completed, pending


def reconcile(current: Sequence[Stop], plan: PlanResult) -> list[Stop]:
    """Return completed stops (untouched) followed by the reconciled pending sequence.

    Ids unknown to the pending subset, or repeated, are dropped. Pending
    stops the plan never mentions are appended in their prior order and keep
    their vehicle label.
    """
    completed, pending = split_completed(current)
    by_id = {stop.stop_id: stop for stop in pending}

    placed: list[Stop] = []
    seen: set[str] = set()
    dropped = 0
    for assignment in plan.assignments:
        for stop_id in assignment.stop_ids:
            stop = by_id.get(stop_id)
            if stop is None or stop_id in seen:
                dropped += 1
                continue
            seen.add(stop_id)
            if assignment.vehicle_label is not None:
                stop = replace(stop, vehicle_label=assignment.vehicle_label)
            placed.append(stop)

    leftovers = [stop for stop in pending if stop.stop_id not in seen]
    if dropped or leftovers:
        logger.info(
            f"Reconciled plan: {len(placed)} placed, {len(leftovers)} appended unplaced, "
            f"{dropped} unknown or repeated id(s) ignored"
        )
    return [*completed, *placed, *leftovers]
