"""Problem description and strict output schemas for the reasoning service."""

from __future__ import annotations

import json
from typing import Sequence

from ...models.domain import Coordinates, Stop

UNKNOWN_ORIGIN = "unknown, assume a central position in the city"
UNKNOWN_COORDINATES = "unknown"
ANY_TIME = "any time"

SIMPLE_PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "order": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Every stop id exactly once, in visiting order.",
        },
        "rationale": {"type": "STRING", "description": "Short explanation of the routing strategy."},
    },
    "required": ["order", "rationale"],
}

FLEET_PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "assignments": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "vehicle_label": {"type": "STRING", "description": "Vehicle name, e.g. 'Vehicle 1'."},
                    "stop_ids": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "Stop ids for this vehicle in visiting order.",
                    },
                },
                "required": ["vehicle_label", "stop_ids"],
            },
        },
        "rationale": {"type": "STRING", "description": "Short explanation of the routing strategy."},
    },
    "required": ["assignments", "rationale"],
}


def describe_stop(stop: Stop) -> dict[str, str]:
    coordinates = stop.coordinates
    return {
        "id": stop.stop_id,
        "address": stop.address.summary(),
        "coords": f"{coordinates.latitude},{coordinates.longitude}" if coordinates else UNKNOWN_COORDINATES,
        "time_window": stop.time_window.label() if stop.time_window else ANY_TIME,
    }


def build_prompt(origin: Coordinates | None, stops: Sequence[Stop], vehicle_count: int) -> str:
    start_point = f"lat {origin.latitude}, lng {origin.longitude}" if origin else UNKNOWN_ORIGIN
    locations = json.dumps([describe_stop(stop) for stop in stops], indent=2, ensure_ascii=False)
    if vehicle_count == 1:
        objective = (
            "Order the deliveries for a single vehicle so that total travel distance is minimal.\n"
            "Return 'order' with every stop id exactly once and a short 'rationale'."
        )
    else:
        objective = (
            f"Distribute the deliveries across {vehicle_count} vehicles in a balanced way,\n"
            "minimize total travel distance and order the stops of each vehicle.\n"
            "Return 'assignments' (vehicle_label plus ordered stop_ids) covering every stop id\n"
            "exactly once, and a short 'rationale'."
        )
    return (
        "Act as a transportation management system solving a vehicle routing problem.\n\n"
        "PROBLEM DATA:\n"
        f"- Starting point (depot): {start_point}\n"
        f"- Vehicles available: {vehicle_count}\n"
        f"- Deliveries:\n{locations}\n\n"
        "OBJECTIVE:\n"
        f"{objective}\n"
        "Respect time windows when they are given. Use only the ids listed above."
    )


def output_schema(vehicle_count: int) -> dict:
    return SIMPLE_PLAN_SCHEMA if vehicle_count == 1 else FLEET_PLAN_SCHEMA
