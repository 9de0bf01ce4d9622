"""Routing endpoints: optimize, leg refresh, current location and logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.domain import Coordinates
from ...schemas.routing import LocationRequest, OptimizeRequest, OptimizeResponse, plan_to_model
from ...schemas.stops import CollectionResponse, CoordinatesModel
from ...services.sessions import SessionRegistry
from ..deps import get_registry
from ..errors import run_action
from .stops import collection_response

router = APIRouter(prefix="/users/{user_id}", tags=["routes"])


def _to_coordinates(model: CoordinatesModel | None) -> Coordinates | None:
    if model is None:
        return None
    return Coordinates(latitude=model.latitude, longitude=model.longitude)


@router.post("/routes/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(
    user_id: str,
    payload: OptimizeRequest,
    sessions: SessionRegistry = Depends(get_registry),
) -> OptimizeResponse:
    session = sessions.get(user_id)

    def _optimize():
        if payload.current_location is not None:
            session.set_current_location(_to_coordinates(payload.current_location))
        return session.optimize(payload.vehicle_count)

    plan = run_action("optimize route", _optimize)
    return OptimizeResponse(plan=plan_to_model(plan), collection=collection_response(session))


@router.post("/routes/refresh", response_model=CollectionResponse)
def refresh_legs(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> CollectionResponse:
    session = sessions.get(user_id)
    run_action("refresh legs", session.refresh_legs)
    return collection_response(session)


@router.put("/location", response_model=CollectionResponse)
def set_location(
    user_id: str,
    payload: LocationRequest,
    sessions: SessionRegistry = Depends(get_registry),
) -> CollectionResponse:
    session = sessions.get(user_id)
    run_action(
        "set current location",
        lambda: session.set_current_location(_to_coordinates(payload.current_location)),
    )
    return collection_response(session)


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(user_id: str, sessions: SessionRegistry = Depends(get_registry)) -> dict:
    closed = sessions.logout(user_id)
    return {"success": True, "closed": closed}
