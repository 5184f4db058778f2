"""fleet_scan.domain.models

Immutable records passed between the stages of one scan run.

Lifetimes
---------
* :class:`ScanConfig` / :class:`EnvironmentConfig` are parsed once per run and
  never mutated.
* :class:`PolicyBundle` is fetched fresh per run into the tool's working area.
* :class:`ScanResult` is produced once per target.
* :class:`RunVerdict` is derived from results and discarded after reporting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .modality import ScanModality, TargetSpec

DEFAULT_SCORE_THRESHOLD = 80
DEFAULT_QUEUE = "mondoo-scanners"
DEFAULT_REPO_PREFIX = "mondoo-"


def now_iso() -> str:
    """Return current UTC time as ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ToolDescriptor:
    """A scanned product and the remote repository holding its scan config."""

    name: str
    repo_name: str

    @staticmethod
    def for_tool(name: str, repo_prefix: str = DEFAULT_REPO_PREFIX) -> "ToolDescriptor":
        n = (name or "").strip()
        if not n:
            raise ValueError("Tool name must be non-empty.")
        return ToolDescriptor(name=n, repo_name=f"{repo_prefix}{n}")

    @property
    def context_key(self) -> str:
        """Stable identifier used for plan keys and notifications."""
        return f"scan-{self.name}"


@dataclass(frozen=True)
class EnvironmentConfig:
    """One environment entry from a tool's scan descriptor."""

    name: str
    score_threshold: float = DEFAULT_SCORE_THRESHOLD
    # False when score_threshold came from the default rather than the descriptor.
    score_threshold_explicit: bool = False
    queue: str = DEFAULT_QUEUE
    targets: Tuple[Mapping[str, Any], ...] = ()
    namespace: Optional[str] = None
    context: Optional[str] = None
    org: Optional[str] = None
    timeout_minutes: Optional[int] = None


@dataclass(frozen=True)
class ScanConfig:
    tool: str
    scan_modality: ScanModality
    environments: Mapping[str, EnvironmentConfig] = field(default_factory=dict)

    def environment(self, name: str) -> Optional[EnvironmentConfig]:
        return self.environments.get(name)


@dataclass(frozen=True)
class EffectiveThresholds:
    """Merged threshold document (base + environment override)."""

    values: Mapping[str, Any]
    score_threshold: float
    artifact_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)


@dataclass(frozen=True)
class PolicyBundle:
    """Policy files materialized for one run, ordered and unique by file name."""

    tool: str
    ref: str
    files: Tuple[Path, ...]
    source_dir: str

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.files]


@dataclass(frozen=True)
class PlannedTarget:
    """A concrete target address plus the descriptor the engine needs."""

    address: str
    spec: TargetSpec


class ScanStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass(frozen=True)
class ScanResult:
    target: str
    status: ScanStatus
    exit_code: int
    output: Optional[Any] = None
    timestamp: str = field(default_factory=now_iso)
    output_path: Optional[Path] = None
    command: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ScanStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "status": self.status.value,
            "exit_code": int(self.exit_code),
            "timestamp": self.timestamp,
            "output_path": str(self.output_path) if self.output_path else None,
            "command": self.command,
            "error": self.error,
        }


@dataclass(frozen=True)
class RunVerdict:
    tool: str
    environment: str
    passed: bool
    total: int
    succeeded: int
    failed: int
    errored: int
    score_threshold: float
    results: Tuple[ScanResult, ...] = ()

    @property
    def label(self) -> str:
        return "PASS" if self.passed else "FAIL"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "environment": self.environment,
            "verdict": self.label,
            "passed": self.passed,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errored": self.errored,
            "score_threshold": self.score_threshold,
            "targets": [r.to_dict() for r in self.results],
        }
