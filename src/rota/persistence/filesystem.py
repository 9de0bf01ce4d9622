"""File-based persistence helpers for collection snapshots and exports."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from ..config import settings

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileStorage:
    """Thin wrapper around the data root for storing JSON and CSV outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.snapshot_root = self.root / "snapshots"
        self.snapshot_root.mkdir(parents=True, exist_ok=True)

    def snapshot_path(self, user_id: str) -> Path:
        safe_id = _UNSAFE_CHARS.sub("_", user_id) or "anonymous"
        return self.snapshot_root / f"{safe_id}.json"

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write then rename so a crash never leaves a truncated snapshot.
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        tmp_path.replace(path)

    def read_json(self, path: Path) -> Any | None:
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            handle.write(content)
