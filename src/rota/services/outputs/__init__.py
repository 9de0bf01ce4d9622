"""Export services."""

from .formatter import stops_to_csv, stops_to_share_text

__all__ = ["stops_to_csv", "stops_to_share_text"]
