"""Serializers for the stop collection (CSV and share message)."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ...models.domain import Stop
from ..routing.metrics import format_distance, format_duration, summarize

CSV_FIELDS = [
    "order",
    "vehicle",
    "status",
    "street",
    "district",
    "city",
    "postal_code",
    "window_start",
    "window_end",
    "receiver",
    "delivered_at",
    "distance_m",
    "duration_s",
    "notes",
]


def stops_to_csv(stops: Sequence[Stop]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for position, stop in enumerate(stops, start=1):
        writer.writerow(
            {
                "order": position,
                "vehicle": stop.vehicle_label or "-",
                "status": stop.status.value,
                "street": stop.address.street,
                "district": stop.address.district,
                "city": stop.address.locality,
                "postal_code": stop.address.postal_code,
                "window_start": stop.time_window.start if stop.time_window else "",
                "window_end": stop.time_window.end if stop.time_window else "",
                "receiver": stop.proof.receiver_name if stop.proof else "",
                "delivered_at": stop.proof.completed_at.isoformat() if stop.proof else "",
                "distance_m": "" if stop.leg is None else round(stop.leg.distance_m),
                "duration_s": "" if stop.leg is None else round(stop.leg.duration_s),
                "notes": stop.notes,
            }
        )
    return buffer.getvalue()


def stops_to_share_text(stops: Sequence[Stop]) -> str:
    summary = summarize(stops)
    lines = [
        f"Route with {summary.stop_count} stop(s) - "
        f"{format_distance(summary.total_distance_m)}, {format_duration(summary.total_duration_s)}",
    ]
    for position, stop in enumerate(stops, start=1):
        address = stop.address
        line = f"{position}. {address.street or address.district}, {address.locality} ({address.postal_code})"
        if stop.vehicle_label:
            line += f" [{stop.vehicle_label}]"
        if stop.is_completed:
            line += " - delivered"
        lines.append(line)
    return "\n".join(lines)
