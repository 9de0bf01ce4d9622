"""Error taxonomy shared by the planning pipeline."""

from __future__ import annotations


class RotaError(Exception):
    """Base class for all pipeline errors."""


class InvalidFormat(RotaError, ValueError):
    """Input does not reduce to an 8-digit postal code."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"'{raw}' is not a valid 8-digit postal code.")
        self.raw = raw


class NotFound(RotaError):
    """A provider answered but had no result."""


class ProviderUnavailable(RotaError):
    """Network, HTTP or payload failure talking to a provider."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class PlanningFailed(RotaError):
    """The reasoning service did not produce a usable plan."""


class ValidationError(RotaError, ValueError):
    """A direct edit was rejected; the previous value is retained."""


class StopNotFound(RotaError, LookupError):
    def __init__(self, stop_id: str) -> None:
        super().__init__(f"Stop '{stop_id}' not found.")
        self.stop_id = stop_id


class BatchInProgress(RotaError):
    """Another batch operation is already running on this collection."""
