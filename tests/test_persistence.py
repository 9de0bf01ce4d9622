from datetime import datetime, timezone
from pathlib import Path

from src.rota.models.domain import (
    Address,
    Coordinates,
    ProofOfDelivery,
    RouteLeg,
    Stop,
    StopStatus,
    TimeWindow,
)
from src.rota.persistence.filesystem import FileStorage
from src.rota.persistence.snapshots import SnapshotStore
from src.rota.services.events import CollectionChanged, ProgressUpdated


def _stops() -> list[Stop]:
    return [
        Stop(
            stop_id="s1",
            postal_code="01310100",
            address=Address("01310-100", "Avenida Paulista", "Bela Vista", "São Paulo", "SP", Coordinates(-23.56, -46.65)),
            status=StopStatus.COMPLETED,
            vehicle_label="Vehicle 1",
            time_window=TimeWindow("09:00", "12:00"),
            leg=RouteLeg(1500.0, 300.0, ((-23.55, -46.63), (-23.56, -46.65))),
            proof=ProofOfDelivery("Maria", datetime(2024, 5, 1, 14, 30, tzinfo=timezone.utc), "photo-1"),
        ),
        Stop(
            stop_id="s2",
            postal_code="20040002",
            address=Address("20040-002", "Avenida Rio Branco", "Centro", "Rio de Janeiro", "RJ"),
            insertion_index=1,
            notes="portaria",
        ),
    ]


def _store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(storage=FileStorage(root=tmp_path), use_database=False)


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    summary_path = storage.snapshot_root / "summary.json"
    export_path = tmp_path / "exports" / "route.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(export_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert export_path.read_text(encoding="utf-8") == "a,b\n1,2\n"
    assert not summary_path.with_suffix(".json.tmp").exists()


def test_snapshot_path_is_sanitized(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    path = storage.snapshot_path("../driver@example.com")

    assert path.parent == tmp_path.resolve() / "snapshots"
    assert path.name == ".._driver_example.com.json"


def test_snapshot_roundtrip(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.save("driver-1", _stops())

    assert store.load("driver-1") == _stops()


def test_missing_snapshot_loads_empty(tmp_path: Path) -> None:
    assert _store(tmp_path).load("nobody") == []


def test_unreadable_snapshot_loads_empty(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.storage.write_json(store.storage.snapshot_path("driver-1"), [{"stop_id": "s1"}])

    assert store.load("driver-1") == []


def test_listener_saves_on_collection_change_only(tmp_path: Path) -> None:
    store = _store(tmp_path)
    listener = store.listener("driver-1")

    listener(ProgressUpdated("working"))
    assert not store.storage.snapshot_path("driver-1").exists()

    listener(CollectionChanged(tuple(_stops())))
    assert [stop.stop_id for stop in store.load("driver-1")] == ["s1", "s2"]
