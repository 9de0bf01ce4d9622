"""Routing services."""

from .metrics import ItinerarySummary, format_distance, format_duration, summarize
from .osrm_client import OSRMClient, check_health, decode_polyline
from .segments import RouteSegmentService, invalidate_stale_legs

__all__ = [
    "ItinerarySummary",
    "OSRMClient",
    "RouteSegmentService",
    "check_health",
    "decode_polyline",
    "format_distance",
    "format_duration",
    "invalidate_stale_legs",
    "summarize",
]
