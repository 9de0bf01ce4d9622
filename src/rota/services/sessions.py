"""Per-user orchestrator sessions."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Sequence

from ..models.domain import Stop
from ..persistence.snapshots import SnapshotStore
from .orchestrator import Orchestrator
from .transport import RequestGate

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[str, Sequence[Stop], RequestGate], Orchestrator]


def _default_factory(user_id: str, stops: Sequence[Stop], gate: RequestGate) -> Orchestrator:
    return Orchestrator.from_settings(gate, user_id=user_id, stops=stops)


class SessionRegistry:
    """One orchestrator per user; all of them share a single request gate.

    Provider quotas apply to this process as a whole, so the gate is not
    per user.
    """

    def __init__(
        self,
        factory: OrchestratorFactory | None = None,
        store: SnapshotStore | None = None,
        gate: RequestGate | None = None,
    ) -> None:
        self._factory = factory or _default_factory
        self._store = store
        self._gate = gate
        self._sessions: dict[str, Orchestrator] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> SnapshotStore:
        if self._store is None:
            self._store = SnapshotStore()
        return self._store

    @property
    def gate(self) -> RequestGate:
        if self._gate is None:
            self._gate = RequestGate()
        return self._gate

    def get(self, user_id: str) -> Orchestrator:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                stops = self.store.load(user_id)
                session = self._factory(user_id, stops, self.gate)
                session.subscribe(self.store.listener(user_id))
                self._sessions[user_id] = session
                logger.info(f"Opened session for user '{user_id}' with {len(stops)} stored stop(s)")
            return session

    def logout(self, user_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.close()
        logger.info(f"Closed session for user '{user_id}'")
        return True


registry = SessionRegistry()
