import threading

import httpx
import pytest

from src.rota.errors import ProviderUnavailable
from src.rota.services.transport import ProviderTransport, RequestGate


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(round(seconds, 6))
        self.now += seconds


def _gate(clock, intervals=None, global_interval=0.0):
    return RequestGate(intervals or {"geocoder": 1.0, "routing": 0.15}, global_interval, clock=clock, sleep=clock.sleep)


def test_gate_spaces_calls_on_the_same_channel():
    clock = FakeClock()
    gate = _gate(clock)

    assert gate.acquire("geocoder") == 0
    clock.now += 0.25
    waited = gate.acquire("geocoder")

    assert waited == pytest.approx(0.75)
    assert clock.sleeps == [0.75]


def test_gate_channels_are_independent_without_global_spacing():
    clock = FakeClock()
    gate = _gate(clock)

    gate.acquire("geocoder")
    assert gate.acquire("routing") == 0


def test_gate_global_spacing_applies_across_channels():
    clock = FakeClock()
    gate = _gate(clock, global_interval=0.5)

    gate.acquire("geocoder")
    waited = gate.acquire("address")

    assert waited == pytest.approx(0.5)


def _transport(handler, gate=None, max_retries=2, sleeps=None):
    recorded = sleeps if sleeps is not None else []
    return ProviderTransport(
        "test-provider",
        "geocoder",
        gate or RequestGate({}, 0.0),
        max_retries=max_retries,
        backoff_seconds=0.5,
        client_factory=lambda: httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=recorded.append,
    )


def test_transport_retries_server_errors_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request.url.path)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[{"lat": "1", "lon": "2"}])

    sleeps = []
    transport = _transport(handler, sleeps=sleeps)

    assert transport.get_json("https://geo.test/search") == [{"lat": "1", "lon": "2"}]
    assert len(attempts) == 3
    assert sleeps == [0.5, 1.0]


def test_transport_does_not_retry_client_errors():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(404)

    with pytest.raises(ProviderUnavailable):
        _transport(handler).get_json("https://geo.test/missing")
    assert len(attempts) == 1


def test_transport_gives_up_after_max_retries():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderUnavailable):
        _transport(handler, max_retries=1).get_json("https://geo.test/search")


def test_transport_rejects_non_json_body():
    def handler(request):
        return httpx.Response(200, text="<html>rate limited</html>")

    with pytest.raises(ProviderUnavailable):
        _transport(handler).get_json("https://geo.test/search")


def test_transport_acquires_gate_for_every_attempt():
    clock = FakeClock()
    gate = _gate(clock, intervals={"geocoder": 1.0})
    calls = []

    def handler(request):
        calls.append(clock.now)
        if len(calls) == 1:
            return httpx.Response(429)
        return httpx.Response(200, json=[])

    transport = ProviderTransport(
        "test-provider",
        "geocoder",
        gate,
        max_retries=1,
        backoff_seconds=0.0,
        client_factory=lambda: httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=clock.sleep,
    )

    transport.get_json("https://geo.test/search")

    assert calls[1] - calls[0] >= 1.0


def test_gate_wait_on_one_channel_does_not_block_another():
    clock = FakeClock()
    sleeping = threading.Event()
    release = threading.Event()

    def blocking_sleep(seconds):
        sleeping.set()
        release.wait(timeout=5)
        clock.now += seconds

    gate = RequestGate({"geocoder": 1.0, "routing": 0.0}, 0.0, clock=clock, sleep=blocking_sleep)
    gate.acquire("geocoder")
    geocoder_waiter = threading.Thread(target=gate.acquire, args=("geocoder",))
    geocoder_waiter.start()
    assert sleeping.wait(timeout=5)

    routing_waits = []
    routing_caller = threading.Thread(target=lambda: routing_waits.append(gate.acquire("routing")))
    routing_caller.start()
    routing_caller.join(timeout=1)
    routing_done = not routing_caller.is_alive()

    release.set()
    geocoder_waiter.join(timeout=5)
    routing_caller.join(timeout=5)

    assert routing_done
    assert routing_waits == [0]


def test_gate_reserves_slots_for_queued_callers():
    clock = FakeClock()
    gate = _gate(clock, intervals={"geocoder": 1.0})

    gate.acquire("geocoder")
    gate.acquire("geocoder")
    third = gate.acquire("geocoder")

    assert third == pytest.approx(1.0)
    assert clock.sleeps == [1.0, 1.0]
