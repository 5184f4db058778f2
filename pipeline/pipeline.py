"""pipeline.pipeline

This module defines a *single, high-level* object that represents this repo's
primary capabilities.

Why this exists
---------------
The behavior is implemented across several modules:

- :mod:`pipeline.run_tool` runs one tool against one environment.
- :mod:`pipeline.fleet` builds the fleet execution plan and runs it locally.
- :mod:`pipeline.aggregate` folds verdicts into summaries.

Callers (CLI, CI steps, notebooks) should not have to wire those together
themselves. The :class:`FleetScanPipeline` facade gives the repo one obvious
entrypoint with a small API:

- ``scan(...)``: one tool, one environment
- ``plan(...)``: the declarative fleet plan
- ``run_fleet(...)``: execute the plan locally
- ``summarize(...)``: fold the verdicts written by earlier scans
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence

from fleet_scan.io import discover_verdict_files

from .aggregate import load_verdicts, render_fleet_summary
from .fleet import FleetMatrixGenerator, FleetPlan, FleetRunReport, run_fleet
from .run_tool import ToolRunOutcome, ToolRunRequest, ToolScanRunner
from .settings import Settings


class FleetScanPipeline:
    """High-level facade over the pipeline.

    Callers should prefer using this object (built via :func:`pipeline.wiring.build_pipeline`)
    rather than importing low-level modules directly.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        runner: ToolScanRunner,
        matrix: FleetMatrixGenerator,
    ) -> None:
        self.settings = settings
        self._runner = runner
        self._matrix = matrix

    def scan(self, req: ToolRunRequest) -> ToolRunOutcome:
        return self._runner.run(req)

    def plan(self, roster: Sequence[str], environment: str) -> FleetPlan:
        return self._matrix.generate(roster, environment)

    def run_fleet(
        self,
        roster: Sequence[str],
        environment: str,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> FleetRunReport:
        plan = self.plan(roster, environment)
        return run_fleet(
            plan,
            self.scan,
            max_workers=self.settings.max_parallel_tools,
            cancel_event=cancel_event,
        )

    def verdicts(self, environment: Optional[str] = None) -> List[Dict[str, Any]]:
        found = load_verdicts(discover_verdict_files(self.settings.work_root))
        if environment:
            found = [v for v in found if v.get("environment") == environment]
        return found

    def summarize(self, environment: Optional[str] = None) -> str:
        return render_fleet_summary(self.verdicts(environment))
