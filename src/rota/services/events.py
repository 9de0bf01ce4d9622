"""Events published by the orchestrator to the presentation and persistence layers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ..models.domain import Stop

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StopCreated:
    stop: Stop


@dataclass(slots=True, frozen=True)
class CollectionChanged:
    stops: tuple[Stop, ...]
    rationale: Optional[str] = None


@dataclass(slots=True, frozen=True)
class ProgressUpdated:
    message: str
    current: int = 0
    total: int = 0


Event = Union[StopCreated, CollectionChanged, ProgressUpdated]
Listener = Callable[[Event], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # A failing subscriber must not abort the pipeline.
                logger.exception(f"Listener {listener!r} failed on {type(event).__name__}")

    def clear(self) -> None:
        self._listeners.clear()
