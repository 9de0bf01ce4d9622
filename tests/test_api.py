from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.rota.api.deps import get_registry
from src.rota.config import settings
from src.rota.errors import NotFound
from src.rota.main import create_app
from src.rota.models.domain import Address, Coordinates, RouteLeg
from src.rota.persistence.filesystem import FileStorage
from src.rota.persistence.snapshots import SnapshotStore
from src.rota.services.geocoding.resolver import normalize_postal_code
from src.rota.services.orchestrator import Orchestrator
from src.rota.services.planning.planner import RoutePlanner
from src.rota.services.routing.segments import RouteSegmentService
from src.rota.services.sessions import SessionRegistry
from src.rota.services.transport import RequestGate

PREFIX = settings.api_prefix


class DummyResolver:
    def resolve(self, code):
        normalized = normalize_postal_code(code)
        if normalized.startswith("9"):
            raise NotFound(normalized)
        return Address(f"{normalized[:5]}-{normalized[5:]}", f"Rua {normalized}", "Centro", "São Paulo", "SP")

    def geocode(self, address):
        return Coordinates(-23.5 - int(address.postal_code[:2]) / 100, -46.6)


class DummyLegs:
    def route(self, origin, destination):
        return RouteLeg(distance_m=2000.0, duration_s=240.0)


def _factory(user_id, stops, gate):
    return Orchestrator(
        DummyResolver(),
        RoutePlanner(None),
        RouteSegmentService(DummyLegs()),
        user_id=user_id,
        stops=stops,
    )


@pytest.fixture
def sessions(tmp_path: Path) -> SessionRegistry:
    store = SnapshotStore(storage=FileStorage(root=tmp_path), use_database=False)
    return SessionRegistry(factory=_factory, store=store, gate=RequestGate({}, 0.0))


@pytest.fixture
def api_client(sessions: SessionRegistry) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_registry] = lambda: sessions
    return TestClient(app)


def _add(client: TestClient, codes, user="driver-1"):
    return client.post(f"{PREFIX}/users/{user}/stops/batch", json={"codes": codes})


def test_health(api_client: TestClient):
    response = api_client.get(f"{PREFIX}/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_batch_then_list(api_client: TestClient):
    response = _add(api_client, ["01310-100", "bad-code", "99999-999", "04538-132"])

    assert response.status_code == 200
    body = response.json()
    assert len(body["created"]) == 2
    assert body["invalid_codes"] == ["bad-code"]
    assert body["not_found_codes"] == ["99999-999"]
    assert all(stop["geocoded"] for stop in body["created"])

    listing = api_client.get(f"{PREFIX}/users/driver-1/stops").json()
    assert [stop["postal_code"] for stop in listing["stops"]] == ["01310100", "04538132"]
    assert listing["summary"]["pending_count"] == 2


def test_batch_accepts_text_and_rejects_empty(api_client: TestClient):
    ok = api_client.post(f"{PREFIX}/users/driver-1/stops/batch", json={"text": "01310-100, 04538-132"})
    empty = api_client.post(f"{PREFIX}/users/driver-1/stops/batch", json={"text": "   "})

    assert len(ok.json()["created"]) == 2
    assert empty.status_code == 400


def test_invalid_time_window_is_bad_request(api_client: TestClient):
    stop_id = _add(api_client, ["01310-100"]).json()["created"][0]["stop_id"]

    response = api_client.patch(
        f"{PREFIX}/users/driver-1/stops/{stop_id}/time-window",
        json={"start": "18:00", "end": "09:00"},
    )

    assert response.status_code == 400
    stop = api_client.get(f"{PREFIX}/users/driver-1/stops").json()["stops"][0]
    assert stop["time_window"] is None


def test_unknown_stop_is_not_found(api_client: TestClient):
    response = api_client.patch(f"{PREFIX}/users/driver-1/stops/missing/notes", json={"notes": "x"})

    assert response.status_code == 404


def test_complete_and_duplicate(api_client: TestClient):
    stop_id = _add(api_client, ["01310-100"]).json()["created"][0]["stop_id"]

    missing_receiver = api_client.post(f"{PREFIX}/users/driver-1/stops/{stop_id}/complete", json={"receiver_name": ""})
    completed = api_client.post(f"{PREFIX}/users/driver-1/stops/{stop_id}/complete", json={"receiver_name": "Maria"})
    duplicate = api_client.post(f"{PREFIX}/users/driver-1/stops/{stop_id}/duplicate")

    assert missing_receiver.status_code == 400
    assert completed.json()["status"] == "COMPLETED"
    assert duplicate.status_code == 201
    assert duplicate.json()["status"] == "PENDING"


def test_optimize_with_location_returns_plan_and_legs(api_client: TestClient):
    _add(api_client, ["01310-100", "04538-132"])

    response = api_client.post(
        f"{PREFIX}/users/driver-1/routes/optimize",
        json={"vehicle_count": 1, "current_location": {"latitude": -23.55, "longitude": -46.63}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["plan"]["used_fallback"] is True
    assert body["collection"]["summary"]["total_distance_m"] == 4000.0
    assert all(stop["leg"] for stop in body["collection"]["stops"])


def test_refresh_without_location_is_bad_request(api_client: TestClient):
    _add(api_client, ["01310-100"])

    assert api_client.post(f"{PREFIX}/users/driver-1/routes/refresh").status_code == 400


def test_exports(api_client: TestClient):
    _add(api_client, ["01310-100"])

    csv_response = api_client.get(f"{PREFIX}/users/driver-1/stops/export.csv")
    share_response = api_client.get(f"{PREFIX}/users/driver-1/stops/share")

    assert csv_response.headers["content-type"].startswith("text/csv")
    assert csv_response.text.splitlines()[0].startswith("order,vehicle,status")
    assert share_response.text.startswith("Route with 1 stop(s)")


def test_clear_and_logout_keep_users_apart(api_client: TestClient, sessions: SessionRegistry):
    _add(api_client, ["01310-100"], user="driver-1")
    _add(api_client, ["04538-132"], user="driver-2")

    cleared = api_client.delete(f"{PREFIX}/users/driver-1/stops").json()
    logout = api_client.post(f"{PREFIX}/users/driver-2/logout").json()

    assert cleared["stops"] == []
    assert logout == {"success": True, "closed": True}
    # The snapshot written before logout is reloaded into a fresh session.
    restored = api_client.get(f"{PREFIX}/users/driver-2/stops").json()
    assert [stop["postal_code"] for stop in restored["stops"]] == ["04538132"]
