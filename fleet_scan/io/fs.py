"""fleet_scan.io.fs

Atomic, stable filesystem writers.

Every artifact in the working area (policy copies, merged thresholds, per-target
results, verdicts) goes through these helpers so a scan interrupted mid-write
never leaves a half-written file for the artifact upload or the fleet summary
to pick up.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


def sanitize_target_name(target: str) -> str:
    """Turn a target address into a file-name fragment.

    Every character outside ``[A-Za-z0-9_.-]`` becomes ``_``.

    Examples
    --------
    "v1:22"              -> "v1_22"
    "prod-ctx/payments"  -> "prod-ctx_payments"
    """
    v = _UNSAFE_NAME.sub("_", (target or "").strip())
    v = v.strip(".")
    return v or "target"


def _atomic_write(path: Path, write_fn, *, mode: str = "w", encoding: Optional[str] = "utf-8") -> None:
    """Write a file atomically by writing to a temp file and os.replace()."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f"{p.name}.", suffix=".tmp", dir=str(p.parent))
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, mode, encoding=encoding) as f:
            write_fn(f)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, p)
    finally:
        # If os.replace fails, best-effort cleanup of the temp file.
        try:
            if tmp_path.exists():
                tmp_path.unlink()
        except OSError:
            pass


def write_bytes_atomic(path: Path, data: bytes) -> None:
    _atomic_write(Path(path), lambda f: f.write(data), mode="wb", encoding=None)


def write_text_atomic(path: Path, text: str) -> None:
    _atomic_write(Path(path), lambda f: f.write(text))


def write_json_atomic(path: Path, data: Any, *, indent: int = 2) -> None:
    """Write JSON atomically with stable formatting."""

    def _write(f) -> None:
        json.dump(data, f, indent=indent, sort_keys=True, ensure_ascii=False)
        f.write("\n")

    _atomic_write(Path(path), _write)


def write_yaml_atomic(path: Path, data: Any) -> None:
    text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False, width=120)
    write_text_atomic(Path(path), text)


def read_json(path: Path) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def read_json_if_exists(path: Path) -> Optional[Any]:
    """Read JSON, returning None if the file is missing or not valid JSON."""
    p = Path(path)
    if not p.is_file():
        return None
    try:
        return read_json(p)
    except (OSError, ValueError):
        return None
