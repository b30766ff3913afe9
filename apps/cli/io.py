"""CLI I/O helpers: JSON rendering and atomic output writing."""

from __future__ import annotations

import dataclasses
import json
import os
import tempfile
from pathlib import Path
from typing import Any


def record_to_payload(record: Any) -> Any:
    """Convert a parsed record (possibly nested) into JSON-ready data."""

    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return {
            item.name: record_to_payload(getattr(record, item.name))
            for item in dataclasses.fields(record)
        }
    model_dump = getattr(record, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json")
    return record


def dump_json_line(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def write_source_atomic(path: Path, source: str) -> None:
    """Write generated Python source atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)

    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_text(source, encoding="utf-8")
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise


def write_report_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write a parse summary report atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(path, payload)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)
