"""pipeline.fleet

Fleet fan-out: build the execution plan for every tool in the roster, and
optionally run it locally.

Planning
--------
:class:`FleetMatrixGenerator` only resolves scan descriptors; it never loads
policies or scans anything. Each tool moves ``unchecked -> skipped | planned``:

* skipped: descriptor missing, unparsable, lacking the environment, or not
  fetchable. Logged; the rest of the roster is still processed.
* planned: one plan entry (one scheduler step) is emitted.

The plan ends with a summary step that depends on every scan step and runs
even when some of them failed. Each scan step publishes its results and
verdict.json as artifacts; the summary step downloads the verdicts before
folding them, since it usually runs on a different agent.

Retry settings are plan data for the scheduler; nothing in this module retries.

Local execution
---------------
:func:`run_fleet` runs planned tools on a thread pool. Setting the cancel
event stops new tool runs from starting; runs already started finish
normally because a scan handed to the engine cannot be preempted.
"""

from __future__ import annotations

import logging
import shlex
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from fleet_scan.domain import (
    ConfigNotFound,
    ConfigParseError,
    EnvironmentUndefined,
    FetchError,
    FleetScanError,
    ScanModality,
    ToolDescriptor,
)
from fleet_scan.domain.modality import unhandled_modality
from fleet_scan.io import artifact_glob, verdict_glob

from .core import ENTRYPOINT
from .run_tool import ToolRunOutcome, ToolRunRequest
from .scan_config import ScanConfigResolver
from .settings import RetryPolicy, Settings

logger = logging.getLogger(__name__)

SUMMARY_STEP_KEY = "scan-summary"


def modality_emoji(modality: ScanModality) -> str:
    if modality is ScanModality.SSH:
        return ":linux:"
    if modality is ScanModality.WINRM:
        return ":windows:"
    if modality is ScanModality.DOCKER:
        return ":docker:"
    if modality is ScanModality.K8S:
        return ":kubernetes:"
    if modality is ScanModality.GITHUB:
        return ":github:"
    if modality is ScanModality.API:
        return ":gear:"
    unhandled_modality(modality)


class ToolPlanState(str, Enum):
    UNCHECKED = "unchecked"
    SKIPPED = "skipped"
    PLANNED = "planned"


@dataclass(frozen=True)
class ToolPlanStatus:
    tool: str
    state: ToolPlanState
    reason: Optional[str] = None
    modality: Optional[ScanModality] = None


@dataclass(frozen=True)
class PlanEntry:
    tool: str
    environment: str
    label: str
    key: str
    command: str
    queue: str
    timeout_in_minutes: int
    retry: RetryPolicy
    artifact_paths: str

    @property
    def env(self) -> Dict[str, str]:
        return {"TOOL": self.tool, "ENVIRONMENT": self.environment}

    def to_step(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "key": self.key,
            "command": self.command,
            "env": self.env,
            "agents": {"queue": self.queue},
            "timeout_in_minutes": int(self.timeout_in_minutes),
            "retry": self.retry.to_plan(),
            "artifact_paths": self.artifact_paths,
        }


@dataclass(frozen=True)
class FleetPlan:
    environment: str
    entries: Tuple[PlanEntry, ...] = ()
    statuses: Tuple[ToolPlanStatus, ...] = ()
    summary_command: str = ""
    summary_queue: str = ""

    @property
    def planned_tools(self) -> List[str]:
        return [e.tool for e in self.entries]

    @property
    def skipped(self) -> List[ToolPlanStatus]:
        return [s for s in self.statuses if s.state is ToolPlanState.SKIPPED]

    def summary_step(self) -> Dict[str, Any]:
        step: Dict[str, Any] = {
            "label": ":bar_chart: Fleet summary",
            "key": SUMMARY_STEP_KEY,
            "command": self.summary_command,
            "depends_on": [e.key for e in self.entries],
            "allow_dependency_failure": True,
        }
        if self.summary_queue:
            step["agents"] = {"queue": self.summary_queue}
        return step

    def to_pipeline(self) -> Dict[str, Any]:
        return {"steps": [e.to_step() for e in self.entries] + [self.summary_step()]}


def build_scan_command(tool: str, environment: str, *, python: str = "python") -> str:
    return " ".join(
        shlex.quote(x)
        for x in [python, ENTRYPOINT, "--mode", "scan", "--tool", tool, "--environment", environment]
    )


def build_summary_command(environment: str, work_root: str, *, python: str = "python") -> str:
    """Fetch every published verdict onto this agent, then fold them."""
    download = " ".join(
        shlex.quote(x) for x in ["buildkite-agent", "artifact", "download", verdict_glob(work_root), "."]
    )
    summary = " ".join(
        shlex.quote(x) for x in [python, ENTRYPOINT, "--mode", "summary", "--environment", environment]
    )
    return f"{download} && {summary}"


class FleetMatrixGenerator:
    def __init__(self, resolver: ScanConfigResolver, settings: Settings) -> None:
        self.resolver = resolver
        self.settings = settings

    def check_tool(self, tool_name: str, environment: str) -> Tuple[ToolPlanStatus, Optional[PlanEntry]]:
        tool = ToolDescriptor.for_tool(tool_name, self.settings.repo_prefix)
        try:
            resolved = self.resolver.resolve(tool, environment)
        except (ConfigNotFound, ConfigParseError, EnvironmentUndefined, FetchError) as e:
            logger.info("Skipping %s (%s): %s", tool.name, type(e).__name__, e)
            return ToolPlanStatus(tool=tool.name, state=ToolPlanState.SKIPPED, reason=str(e)), None

        env = resolved.environment
        timeout = self.settings.step_timeout_minutes
        if env.timeout_minutes:
            timeout = max(1, min(timeout, env.timeout_minutes))

        entry = PlanEntry(
            tool=tool.name,
            environment=environment,
            label=f"{modality_emoji(resolved.modality)} {tool.name} ({environment})",
            key=tool.context_key,
            command=build_scan_command(tool.name, environment),
            queue=env.queue,
            timeout_in_minutes=timeout,
            retry=self.settings.retry,
            artifact_paths=artifact_glob(str(self.settings.work_root), tool.name),
        )
        status = ToolPlanStatus(tool=tool.name, state=ToolPlanState.PLANNED, modality=resolved.modality)
        return status, entry

    def generate(self, roster: Sequence[str], environment: str) -> FleetPlan:
        statuses: List[ToolPlanStatus] = []
        entries: List[PlanEntry] = []
        for name in roster:
            status, entry = self.check_tool(name, environment)
            statuses.append(status)
            if entry is not None:
                entries.append(entry)

        return FleetPlan(
            environment=environment,
            entries=tuple(entries),
            statuses=tuple(statuses),
            summary_command=build_summary_command(environment, str(self.settings.work_root)),
            summary_queue=entries[0].queue if entries else "",
        )


# ---------------------------------------------------------------------------
# Local execution
# ---------------------------------------------------------------------------


@dataclass
class FleetRunReport:
    outcomes: Dict[str, ToolRunOutcome] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    cancelled: List[str] = field(default_factory=list)
    # Tools left out of the plan, with the reason.
    skipped: Dict[str, str] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        """True unless a tool failed, errored or was cancelled.

        Skipped tools never fail the fleet, so a run where every tool was
        skipped (nothing ran) passes.
        """
        return (
            not self.errors
            and not self.cancelled
            and all(o.verdict.passed for o in self.outcomes.values())
        )


def run_fleet(
    plan: FleetPlan,
    run_one: Callable[[ToolRunRequest], ToolRunOutcome],
    *,
    max_workers: int = 4,
    cancel_event: Optional[threading.Event] = None,
) -> FleetRunReport:
    """Run every planned tool; one tool's failure never stops the others."""
    cancel = cancel_event or threading.Event()
    report = FleetRunReport(skipped={s.tool: s.reason or "" for s in plan.skipped})
    pending = list(plan.entries)
    workers = max(1, int(max_workers))

    with ThreadPoolExecutor(max_workers=workers) as ex:
        running: Dict[Any, PlanEntry] = {}

        def submit_next() -> bool:
            if cancel.is_set() or not pending:
                return False
            entry = pending.pop(0)
            fut = ex.submit(run_one, ToolRunRequest(tool=entry.tool, environment=entry.environment))
            running[fut] = entry
            return True

        while len(running) < workers and submit_next():
            continue

        while running:
            try:
                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
            except KeyboardInterrupt:
                print("\n🛑 Cancelling: no new tool runs will start; waiting for running scans.")
                cancel.set()
                continue

            for fut in done:
                entry = running.pop(fut)
                try:
                    report.outcomes[entry.tool] = fut.result()
                except FleetScanError as e:
                    report.errors[entry.tool] = f"{type(e).__name__}: {e}"
                except Exception as e:
                    report.errors[entry.tool] = repr(e)

            while len(running) < workers and submit_next():
                continue

    report.cancelled = [e.tool for e in pending]
    return report
