"""fleet_scan.io

Filesystem contracts and IO helpers.

The working-area layout is a contract between the per-tool run, the artifact
upload, and the trailing fleet summary step. Keeping it in one place stops
each of them from growing its own "where do files go" logic.
"""

from __future__ import annotations

from .fs import (
    read_json,
    read_json_if_exists,
    sanitize_target_name,
    write_bytes_atomic,
    write_json_atomic,
    write_text_atomic,
    write_yaml_atomic,
)
from .layout import (
    ARTIFACT_SEPARATOR,
    ToolWorkPaths,
    artifact_glob,
    discover_verdict_files,
    get_tool_work_paths,
    prepare_tool_work_area,
    verdict_glob,
)

__all__ = [
    "ARTIFACT_SEPARATOR",
    "ToolWorkPaths",
    "artifact_glob",
    "discover_verdict_files",
    "get_tool_work_paths",
    "prepare_tool_work_area",
    "read_json",
    "read_json_if_exists",
    "sanitize_target_name",
    "verdict_glob",
    "write_bytes_atomic",
    "write_json_atomic",
    "write_text_atomic",
    "write_yaml_atomic",
]
