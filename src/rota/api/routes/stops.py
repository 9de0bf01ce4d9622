"""Stop collection endpoints: intake, listing, direct mutations and exports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse

from ...schemas.stops import (
    BatchRequest,
    BatchResponse,
    CollectionResponse,
    CompleteRequest,
    NotesRequest,
    StopModel,
    TimeWindowRequest,
    batch_to_response,
    stop_to_model,
    summary_to_model,
)
from ...services.orchestrator import Orchestrator
from ...services.outputs import stops_to_csv, stops_to_share_text
from ...services.sessions import SessionRegistry
from ..deps import get_registry
from ..errors import run_action

router = APIRouter(prefix="/users/{user_id}/stops", tags=["stops"])


def collection_response(session: Orchestrator) -> CollectionResponse:
    stops = session.stops
    return CollectionResponse(
        stops=[stop_to_model(stop) for stop in stops],
        summary=summary_to_model(session.summary()),
        rationale=session.rationale,
        vehicle_count=session.vehicle_count,
        busy=session.busy,
    )


@router.get("", response_model=CollectionResponse)
def list_stops(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> CollectionResponse:
    return collection_response(sessions.get(user_id))


@router.post("/batch", response_model=BatchResponse, status_code=status.HTTP_200_OK)
def add_batch(
    user_id: str,
    payload: BatchRequest,
    sessions: SessionRegistry = Depends(get_registry),
) -> BatchResponse:
    if not payload.codes and not (payload.text and payload.text.strip()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No postal codes provided.")
    session = sessions.get(user_id)

    report = run_action(
        "add postal codes",
        lambda: session.add_codes(payload.codes if payload.codes else payload.text, payload.vehicle_count),
    )
    return batch_to_response(report)


@router.patch("/{stop_id}/notes", response_model=StopModel)
def update_notes(
    user_id: str,
    stop_id: str,
    payload: NotesRequest,
    sessions: SessionRegistry = Depends(get_registry),
) -> StopModel:
    session = sessions.get(user_id)
    return stop_to_model(run_action("update notes", lambda: session.update_notes(stop_id, payload.notes)))


@router.patch("/{stop_id}/time-window", response_model=StopModel)
def update_time_window(
    user_id: str,
    stop_id: str,
    payload: TimeWindowRequest,
    sessions: SessionRegistry = Depends(get_registry),
) -> StopModel:
    session = sessions.get(user_id)
    stop = run_action(
        "update time window",
        lambda: session.update_time_window(stop_id, payload.start, payload.end),
    )
    return stop_to_model(stop)


@router.post("/{stop_id}/complete", response_model=StopModel)
def complete_stop(
    user_id: str,
    stop_id: str,
    payload: CompleteRequest,
    sessions: SessionRegistry = Depends(get_registry),
) -> StopModel:
    session = sessions.get(user_id)
    stop = run_action(
        "complete stop",
        lambda: session.complete(stop_id, payload.receiver_name, payload.photo_ref),
    )
    return stop_to_model(stop)


@router.post("/{stop_id}/skip", response_model=StopModel)
def skip_stop(user_id: str, stop_id: str, sessions: SessionRegistry = Depends(get_registry)) -> StopModel:
    session = sessions.get(user_id)
    return stop_to_model(run_action("skip stop", lambda: session.skip(stop_id)))


@router.post("/{stop_id}/duplicate", response_model=StopModel, status_code=status.HTTP_201_CREATED)
def duplicate_stop(user_id: str, stop_id: str, sessions: SessionRegistry = Depends(get_registry)) -> StopModel:
    session = sessions.get(user_id)
    return stop_to_model(run_action("duplicate stop", lambda: session.duplicate(stop_id)))


@router.delete("/{stop_id}", response_model=CollectionResponse)
def remove_stop(user_id: str, stop_id: str, sessions: SessionRegistry = Depends(get_registry)) -> CollectionResponse:
    session = sessions.get(user_id)
    run_action("remove stop", lambda: session.remove(stop_id))
    return collection_response(session)


@router.post("/reverse", response_model=CollectionResponse)
def reverse_stops(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> CollectionResponse:
    session = sessions.get(user_id)
    run_action("reverse stops", session.reverse)
    return collection_response(session)


@router.delete("", response_model=CollectionResponse)
def clear_stops(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> CollectionResponse:
    session = sessions.get(user_id)
    run_action("clear stops", session.clear_all)
    return collection_response(session)


@router.get("/export.csv", response_class=PlainTextResponse)
def export_csv(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> PlainTextResponse:
    content = stops_to_csv(sessions.get(user_id).stops)
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="route_export.csv"'},
    )


@router.get("/share", response_class=PlainTextResponse)
def share_text(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> PlainTextResponse:
    return PlainTextResponse(stops_to_share_text(sessions.get(user_id).stops))
