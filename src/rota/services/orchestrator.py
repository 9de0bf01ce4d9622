"""Route planning orchestration.

Drives batch intake (resolve -> geocode -> append), user-triggered
optimization (plan -> reconcile -> segment -> publish) and the direct
mutations that bypass planning. The stop collection is the only shared
state; it is replaced wholesale or patched one stop at a time under a lock.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Sequence

from ..config import settings
from ..errors import BatchInProgress, InvalidFormat, NotFound, StopNotFound, ValidationError
from ..models.domain import (
    Address,
    BatchReport,
    Coordinates,
    PlanResult,
    ProofOfDelivery,
    Stop,
    StopStatus,
    TimeWindow,
)
from .events import CollectionChanged, EventBus, Listener, ProgressUpdated, StopCreated
from .geocoding import AddressLookupClient, CoordinateSearchClient, GeocodingResolver, split_codes
from .geocoding.resolver import normalize_postal_code
from .planning import GeminiClient, RoutePlanner
from .reconcile import reconcile, split_completed
from .routing import OSRMClient, RouteSegmentService, invalidate_stale_legs
from .routing.metrics import ItinerarySummary, summarize
from .transport import RequestGate

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"


def parse_clock(value: str) -> datetime:
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT)
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f"'{value}' is not a valid HH:MM time.") from exc


class Orchestrator:
    def __init__(
        self,
        resolver: GeocodingResolver,
        planner: RoutePlanner,
        segmenter: RouteSegmentService,
        *,
        user_id: str | None = None,
        stops: Sequence[Stop] = (),
        vehicle_count: int = 1,
        current_location: Coordinates | None = None,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.resolver = resolver
        self.planner = planner
        self.segmenter = segmenter
        self.user_id = user_id
        self.current_location = current_location
        self.rationale: str | None = None
        self.events = EventBus()
        self._id_factory = id_factory
        self._stops: list[Stop] = list(stops)
        self._vehicle_count = 1
        self.set_vehicle_count(vehicle_count)
        self._state_lock = threading.RLock()
        self._batch_lock = threading.Lock()
        self._epoch = 0

    @classmethod
    def from_settings(
        cls,
        gate: RequestGate | None = None,
        *,
        user_id: str | None = None,
        stops: Sequence[Stop] = (),
    ) -> Orchestrator:
        gate = gate or RequestGate()
        resolver = GeocodingResolver(AddressLookupClient(gate), CoordinateSearchClient(gate))
        try:
            reasoning_client = GeminiClient(gate)
        except ValueError as e:
            logger.warning(f"Planner client unavailable, plans will use the default order: {e}")
            reasoning_client = None
        return cls(
            resolver,
            RoutePlanner(reasoning_client),
            RouteSegmentService(OSRMClient(gate)),
            user_id=user_id,
            stops=stops,
        )

    # -- read side -----------------------------------------------------------

    @property
    def stops(self) -> tuple[Stop, ...]:
        with self._state_lock:
            return tuple(self._stops)

    @property
    def vehicle_count(self) -> int:
        return self._vehicle_count

    @property
    def busy(self) -> bool:
        return self._batch_lock.locked()

    def summary(self) -> ItinerarySummary:
        return summarize(self.stops)

    def get(self, stop_id: str) -> Stop:
        with self._state_lock:
            return self._stops[self._index_of(stop_id)]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    # -- settings ------------------------------------------------------------

    def set_vehicle_count(self, vehicle_count: int) -> None:
        if vehicle_count < 1:
            raise ValidationError("Vehicle count must be at least 1.")
        self._vehicle_count = vehicle_count

    def set_current_location(self, location: Coordinates | None) -> None:
        if location is not None and not location.is_valid:
            raise ValidationError("Current location must have finite coordinates.")
        self.current_location = location

    # -- batch operations ----------------------------------------------------

    def add_codes(self, codes: Sequence[str] | str, vehicle_count: int | None = None) -> BatchReport:
        """Resolve codes one at a time, appending each new stop as soon as it exists."""
        raw_codes = split_codes(codes) if isinstance(codes, str) else [str(code) for code in codes]
        report = BatchReport()
        with self._exclusive_batch("add codes"):
            if vehicle_count is not None:
                self.set_vehicle_count(vehicle_count)
            epoch = self._epoch
            total = len(raw_codes)
            for position, raw in enumerate(raw_codes, start=1):
                if epoch != self._epoch:
                    report.discarded = True
                    break
                self._progress(f"Looking up postal code {raw} ({position}/{total})", position, total)
                try:
                    address = self.resolver.resolve(raw)
                except InvalidFormat:
                    logger.info(f"Skipping invalid postal code '{raw}'")
                    report.invalid_codes.append(raw)
                    continue
                except NotFound:
                    report.not_found_codes.append(raw)
                    continue

                self._progress(f"Geocoding {address.street or address.postal_code}", position, total)
                try:
                    address = address.with_coordinates(self.resolver.geocode(address))
                except NotFound:
                    logger.warning(f"No coordinates for {address.postal_code}, stop kept without map position")

                stop = self._append_resolved(normalize_postal_code(raw), address, epoch)
                if stop is None:
                    report.discarded = True
                    break
                report.created.append(stop)

        if report.discarded:
            logger.info("Batch results discarded after a clear/logout boundary")
        logger.info(
            f"Batch finished: {len(report.created)} created, {len(report.invalid_codes)} invalid, "
            f"{len(report.not_found_codes)} not found, {len(report.unresolved)} without coordinates"
        )
        self._progress("", total, total)
        return report

    def optimize(self, vehicle_count: int | None = None) -> PlanResult:
        """Plan pending stops, reconcile the plan and refresh their legs."""
        with self._exclusive_batch("optimize"):
            if vehicle_count is not None:
                self.set_vehicle_count(vehicle_count)
            epoch = self._epoch
            snapshot = self.stops
            completed, pending = split_completed(snapshot)
            self._progress(f"Planning {len(pending)} stop(s) for {self._vehicle_count} vehicle(s)")
            plan = self.planner.plan(self.current_location, pending, self._vehicle_count)

            reconciled = reconcile(snapshot, plan)
            reconciled = self._segment(reconciled, snapshot)

            with self._state_lock:
                if epoch != self._epoch:
                    logger.info("Optimization result discarded after a clear/logout boundary")
                    return plan
                self._stops = _merge_concurrent_edits(reconciled, self._stops)
                self.rationale = plan.rationale
                self._publish()
        return plan

    def refresh_legs(self) -> tuple[Stop, ...]:
        """Re-fetch every pending leg for the current order."""
        if self.current_location is None:
            raise ValidationError("Current location is unknown; legs cannot be computed.")
        with self._exclusive_batch("refresh legs"):
            epoch = self._epoch
            snapshot = self.stops
            refreshed = self._segment(list(snapshot), snapshot)
            with self._state_lock:
                if epoch == self._epoch:
                    self._stops = _merge_concurrent_edits(refreshed, self._stops)
                    self._publish()
        return self.stops

    # -- direct mutations ----------------------------------------------------

    def update_notes(self, stop_id: str, notes: str) -> Stop:
        return self._patch(stop_id, lambda stop: replace(stop, notes=notes or ""))

    def update_time_window(self, stop_id: str, start: str | None, end: str | None) -> Stop:
        if not start and not end:
            return self._patch(stop_id, lambda stop: replace(stop, time_window=None))
        if not start or not end:
            raise ValidationError("Both start and end are required for a time window.")
        if parse_clock(start) >= parse_clock(end):
            raise ValidationError(f"Time window end {end} must be after start {start}.")
        window = TimeWindow(start=start.strip(), end=end.strip())
        return self._patch(stop_id, lambda stop: replace(stop, time_window=window))

    def complete(
        self,
        stop_id: str,
        receiver_name: str,
        photo_ref: str | None = None,
        completed_at: datetime | None = None,
    ) -> Stop:
        if not receiver_name or not receiver_name.strip():
            raise ValidationError("Receiver name is required to complete a stop.")
        proof = ProofOfDelivery(
            receiver_name=receiver_name.strip(),
            completed_at=completed_at or datetime.now(timezone.utc),
            photo_ref=photo_ref,
        )

        def _complete(stop: Stop) -> Stop:
            if stop.is_completed:
                raise ValidationError(f"Stop {stop.stop_id} is already completed.")
            return replace(stop, status=StopStatus.COMPLETED, proof=proof)

        return self._patch(stop_id, _complete)

    def skip(self, stop_id: str) -> Stop:
        def _skip(stop: Stop) -> Stop:
            if stop.is_completed:
                raise ValidationError(f"Stop {stop.stop_id} is already completed.")
            return replace(stop, status=StopStatus.SKIPPED)

        return self._patch(stop_id, _skip)

    def duplicate(self, stop_id: str) -> Stop:
        with self._state_lock:
            source = self._stops[self._index_of(stop_id)]
            copy = replace(
                source,
                stop_id=self._id_factory(),
                status=StopStatus.PENDING,
                proof=None,
                leg=None,
                insertion_index=len(self._stops),
                notes=f"{source.notes} (copy)" if source.notes else "",
            )
            self._replace_all([*self._stops, copy])
            return copy

    def remove(self, stop_id: str) -> None:
        with self._state_lock:
            index = self._index_of(stop_id)
            self._replace_all([*self._stops[:index], *self._stops[index + 1:]])

    def reverse(self) -> tuple[Stop, ...]:
        """Reverse the pending sequence; completed stops keep their place in front."""
        with self._state_lock:
            completed, pending = split_completed(self._stops)
            self._replace_all([*completed, *reversed(pending)])
            return tuple(self._stops)

    def clear_all(self) -> None:
        with self._state_lock:
            self._epoch += 1
            self._stops = []
            self.rationale = None
            self._publish()

    def close(self) -> None:
        """Logout boundary: in-flight batches discard their results."""
        with self._state_lock:
            self._epoch += 1
        self.events.clear()

    # -- internals -----------------------------------------------------------

    def _exclusive_batch(self, name: str) -> _BatchGuard:
        return _BatchGuard(self._batch_lock, name)

    def _append_resolved(self, code: str, address: Address, epoch: int) -> Stop | None:
        with self._state_lock:
            if epoch != self._epoch:
                return None
            stop = Stop(
                stop_id=self._id_factory(),
                postal_code=code,
                address=address,
                insertion_index=len(self._stops),
                vehicle_label=(
                    settings.default_vehicle_label if self._vehicle_count == 1 else settings.pending_vehicle_label
                ),
            )
            self._stops = [*self._stops, stop]
            self.events.publish(StopCreated(stop))
            self._publish()
            return stop

    def _segment(self, ordered: list[Stop], previous: Sequence[Stop]) -> list[Stop]:
        completed, pending = split_completed(ordered)
        if self.current_location is None:
            logger.info("Current location unknown, skipping leg computation")
            return invalidate_stale_legs(previous, ordered)
        if not pending:
            return ordered
        self._progress(f"Computing {len(pending)} leg(s)")
        return [*completed, *self.segmenter.segments(self.current_location, pending)]

    def _index_of(self, stop_id: str) -> int:
        for index, stop in enumerate(self._stops):
            if stop.stop_id == stop_id:
                return index
        raise StopNotFound(stop_id)

    def _patch(self, stop_id: str, update: Callable[[Stop], Stop]) -> Stop:
        with self._state_lock:
            index = self._index_of(stop_id)
            updated = update(self._stops[index])
            stops = list(self._stops)
            stops[index] = updated
            self._stops = stops
            self._publish()
            return updated

    def _replace_all(self, stops: list[Stop]) -> None:
        self._stops = invalidate_stale_legs(self._stops, stops)
        self._publish()

    def _publish(self) -> None:
        self.events.publish(CollectionChanged(tuple(self._stops), self.rationale))

    def _progress(self, message: str, current: int = 0, total: int = 0) -> None:
        self.events.publish(ProgressUpdated(message, current, total))


class _BatchGuard:
    """Rejects a second batch operation instead of queueing it."""

    def __init__(self, lock: threading.Lock, name: str) -> None:
        self.lock = lock
        self.name = name

    def __enter__(self) -> None:
        if not self.lock.acquire(blocking=False):
            raise BatchInProgress(f"Cannot {self.name}: another batch operation is running.")

    def __exit__(self, *exc_info: object) -> None:
        self.lock.release()


def _merge_concurrent_edits(result: Sequence[Stop], current: Sequence[Stop]) -> list[Stop]:
    """Apply a pipeline result without losing direct edits made while it ran.

    Stops removed meanwhile stay removed, stops added meanwhile are appended,
    and user-owned fields come from the current collection.
    """
    current_by_id = {stop.stop_id: stop for stop in current}
    merged: list[Stop] = []
    for stop in result:
        latest = current_by_id.pop(stop.stop_id, None)
        if latest is None:
            continue
        if latest != stop:
            stop = replace(
                stop,
                notes=latest.notes,
                time_window=latest.time_window,
                status=latest.status,
                proof=latest.proof,
            )
        merged.append(stop)
    merged.extend(stop for stop in current if stop.stop_id in current_by_id)
    completed, pending = split_completed(merged)
    return [*completed, *pending]
