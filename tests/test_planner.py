import json

import pytest

from src.rota.errors import PlanningFailed, ProviderUnavailable
from src.rota.models.domain import Address, Coordinates, Stop, TimeWindow
from src.rota.services.planning.gemini_client import GeminiClient
from src.rota.services.planning.planner import RoutePlanner, parse_plan
from src.rota.services.planning.prompt import build_prompt
from src.rota.services.transport import RequestGate


def _stop(stop_id: str, coordinates: Coordinates | None = None, window: TimeWindow | None = None) -> Stop:
    return Stop(
        stop_id=stop_id,
        postal_code="01310100",
        address=Address("01310-100", f"Rua {stop_id}", "Centro", "São Paulo", "SP", coordinates),
        time_window=window,
    )


class RecordingClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def complete(self, prompt, schema):
        self.prompts.append((prompt, schema))
        if self.error:
            raise self.error
        return self.response


def test_zero_pending_stops_skip_the_external_call():
    client = RecordingClient()

    result = RoutePlanner(client).plan(None, [], vehicle_count=3)

    assert result.assignments == ()
    assert client.prompts == []


def test_single_pending_stop_is_trivial_identity():
    client = RecordingClient()

    result = RoutePlanner(client).plan(None, [_stop("a")], vehicle_count=2)

    assert result.ordered_ids == ["a"]
    assert result.assignments[0].vehicle_label is None
    assert not result.used_fallback
    assert client.prompts == []


def test_simple_mode_uses_order_payload():
    client = RecordingClient(json.dumps({"order": ["b", "a"], "rationale": "closest first"}))

    result = RoutePlanner(client).plan(Coordinates(-23.5, -46.6), [_stop("a"), _stop("b")])

    assert result.ordered_ids == ["b", "a"]
    assert result.rationale == "closest first"
    assert result.assignments[0].vehicle_label == "Vehicle 1"
    assert "order" in client.prompts[0][1]["properties"]


def test_fleet_mode_uses_assignment_payload():
    payload = {
        "assignments": [
            {"vehicle_label": "Moto A", "stop_ids": ["c", "a"]},
            {"vehicle_label": "", "stop_ids": ["b"]},
        ],
        "rationale": "split by district",
    }
    client = RecordingClient(json.dumps(payload))

    result = RoutePlanner(client).plan(None, [_stop("a"), _stop("b"), _stop("c")], vehicle_count=2)

    assert [assignment.vehicle_label for assignment in result.assignments] == ["Moto A", "Vehicle 2"]
    assert result.ordered_ids == ["c", "a", "b"]


@pytest.mark.parametrize(
    "raw",
    ["not json", json.dumps({"assignments": "nope"}), json.dumps([1, 2, 3])],
)
def test_unparsable_payload_falls_back_to_identity(raw):
    result = RoutePlanner(RecordingClient(raw)).plan(None, [_stop("a"), _stop("b")], vehicle_count=2)

    assert result.used_fallback
    assert result.ordered_ids == ["a", "b"]
    assert result.assignments[0].vehicle_label == "Vehicle 1"


@pytest.mark.parametrize("error", [PlanningFailed("empty"), ProviderUnavailable("planner", "HTTP 500")])
def test_client_failure_falls_back_to_identity(error):
    result = RoutePlanner(RecordingClient(error=error)).plan(None, [_stop("a"), _stop("b")])

    assert result.used_fallback
    assert result.ordered_ids == ["a", "b"]
    assert "Default sequential route" in result.rationale


def test_missing_client_falls_back():
    result = RoutePlanner(None).plan(None, [_stop("a"), _stop("b")])

    assert result.used_fallback


def test_parse_plan_rejects_missing_fields():
    with pytest.raises(PlanningFailed):
        parse_plan(json.dumps({"rationale": "x"}), 1)


def test_prompt_describes_unknown_values():
    prompt = build_prompt(
        None,
        [_stop("a"), _stop("b", Coordinates(-23.5, -46.6), TimeWindow("09:00", "12:00"))],
        vehicle_count=2,
    )

    assert "assume a central position" in prompt
    assert '"coords": "unknown"' in prompt
    assert '"time_window": "any time"' in prompt
    assert "09:00 - 12:00" in prompt
    assert "2 vehicles" in prompt


class DummyTransport:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.posts = []

    def post_json(self, url, payload, params=None):
        self.posts.append((url, payload))
        if self.error:
            raise self.error
        return self.payload


def test_gemini_client_extracts_candidate_text():
    transport = DummyTransport({"candidates": [{"content": {"parts": [{"text": '{"order": []}'}]}}]})
    client = GeminiClient(RequestGate({}, 0.0), api_key="key", model="m", base_url="https://ai.test", transport=transport)

    text = client.complete("prompt", {"type": "OBJECT"})

    url, payload = transport.posts[0]
    assert url == "https://ai.test/models/m:generateContent"
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert text == '{"order": []}'


@pytest.mark.parametrize(
    "transport",
    [
        DummyTransport({"candidates": []}),
        DummyTransport({"candidates": [{"content": {"parts": [{"text": "  "}]}}]}),
        DummyTransport(error=ProviderUnavailable("planner", "HTTP 503")),
    ],
)
def test_gemini_client_failures_raise_planning_failed(transport):
    client = GeminiClient(RequestGate({}, 0.0), api_key="key", transport=transport)

    with pytest.raises(PlanningFailed):
        client.complete("prompt", {})


def test_gemini_client_requires_api_key(monkeypatch):
    from src.rota.config import settings

    monkeypatch.setattr(settings, "planner_api_key", None)

    with pytest.raises(ValueError):
        GeminiClient(RequestGate({}, 0.0))
