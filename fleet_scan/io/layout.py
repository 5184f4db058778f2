"""fleet_scan.io.layout

Run-scoped working area layout.

Every tool gets its own directory under the work root, so concurrent runs for
different tools never share a path:

  <work_root>/
    <tool>/
      policies/                    # policy bundle fetched for this run
      thresholds.yml               # merged (base + environment) thresholds
      results/<target>.json        # one structured engine result per target
      verdict.json                 # aggregate verdict for the fleet summary

Nothing here is a long-term store; the area is cleared at the start of each
tool run.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from .fs import sanitize_target_name

POLICIES_DIRNAME = "policies"
RESULTS_DIRNAME = "results"
THRESHOLDS_FILENAME = "thresholds.yml"
VERDICT_FILENAME = "verdict.json"

# buildkite-agent artifact upload takes several patterns joined by ";".
ARTIFACT_SEPARATOR = ";"


@dataclass(frozen=True)
class ToolWorkPaths:
    tool_dir: Path
    policies_dir: Path
    thresholds_file: Path
    results_dir: Path
    verdict_file: Path

    def result_file(self, target: str) -> Path:
        return self.results_dir / f"{sanitize_target_name(target)}.json"

    @property
    def results_glob(self) -> str:
        return str(self.results_dir / "*.json")

    @property
    def artifacts_glob(self) -> str:
        """Everything a scan step publishes: per-target results plus the verdict."""
        return f"{self.results_glob}{ARTIFACT_SEPARATOR}{self.verdict_file}"


def get_tool_work_paths(work_root: Union[str, Path], tool: str) -> ToolWorkPaths:
    # Tool names are namespaced the same way as targets so "a/b" can't escape the root.
    tool_dir = Path(work_root) / sanitize_target_name(tool)
    return ToolWorkPaths(
        tool_dir=tool_dir,
        policies_dir=tool_dir / POLICIES_DIRNAME,
        thresholds_file=tool_dir / THRESHOLDS_FILENAME,
        results_dir=tool_dir / RESULTS_DIRNAME,
        verdict_file=tool_dir / VERDICT_FILENAME,
    )


def prepare_tool_work_area(paths: ToolWorkPaths) -> ToolWorkPaths:
    """Reset the tool's working area so nothing from a previous run leaks in."""
    if paths.tool_dir.exists():
        shutil.rmtree(paths.tool_dir)
    paths.policies_dir.mkdir(parents=True, exist_ok=True)
    paths.results_dir.mkdir(parents=True, exist_ok=True)
    return paths


def discover_verdict_files(work_root: Union[str, Path]) -> List[Path]:
    """Return every <tool>/verdict.json under work_root, sorted by tool name."""
    root = Path(work_root)
    if not root.is_dir():
        return []
    return sorted(p for p in root.glob(f"*/{VERDICT_FILENAME}") if p.is_file())


def artifact_glob(work_root: str, tool: str) -> str:
    """Artifact-path patterns used in execution-plan entries (relative, forward slashes)."""
    root = str(work_root).rstrip("/") or "."
    tool_dir = f"{root}/{sanitize_target_name(tool)}"
    return f"{tool_dir}/{RESULTS_DIRNAME}/*.json{ARTIFACT_SEPARATOR}{tool_dir}/{VERDICT_FILENAME}"


def verdict_glob(work_root: str) -> str:
    """Pattern matching every tool's published verdict, for the summary step's download."""
    root = str(work_root).rstrip("/") or "."
    return f"{root}/*/{VERDICT_FILENAME}"
