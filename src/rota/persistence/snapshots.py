"""Snapshot the stop collection on every change, keyed by user id."""

from __future__ import annotations

import logging
from typing import Sequence

import pydantic

from ..db.supabase import get_supabase_client
from ..models.domain import Stop
from ..schemas.stops import StopModel, model_to_stop, stop_to_model
from ..services.events import CollectionChanged, Event, Listener
from .database import load_snapshot_from_database, save_snapshot_to_database
from .filesystem import FileStorage

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Writes to Supabase when configured, otherwise to JSON files under the data root."""

    def __init__(self, storage: FileStorage | None = None, use_database: bool | None = None) -> None:
        self._storage = storage
        self.use_database = use_database if use_database is not None else get_supabase_client() is not None

    @property
    def storage(self) -> FileStorage:
        if self._storage is None:
            self._storage = FileStorage()
        return self._storage

    def save(self, user_id: str, stops: Sequence[Stop]) -> None:
        payload = [stop_to_model(stop).model_dump(mode="json") for stop in stops]
        if self.use_database and save_snapshot_to_database(user_id, payload):
            return
        self.storage.write_json(self.storage.snapshot_path(user_id), payload)

    def load(self, user_id: str) -> list[Stop]:
        payload = load_snapshot_from_database(user_id) if self.use_database else None
        if payload is None:
            payload = self.storage.read_json(self.storage.snapshot_path(user_id))
        if not payload:
            return []
        try:
            return [model_to_stop(StopModel.model_validate(item)) for item in payload]
        except pydantic.ValidationError as e:
            logger.error(f"Discarding unreadable snapshot for user '{user_id}': {e}")
            return []

    def listener(self, user_id: str) -> Listener:
        def _on_event(event: Event) -> None:
            if isinstance(event, CollectionChanged):
                self.save(user_id, event.stops)

        return _on_event
