"""Planning services."""

from .gemini_client import GeminiClient
from .planner import RoutePlanner, fallback_plan, parse_plan

__all__ = ["GeminiClient", "RoutePlanner", "fallback_plan", "parse_plan"]
