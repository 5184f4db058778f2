"""pipeline.run_tool

One tool, one environment: resolve -> load policies + thresholds -> plan
targets -> dispatch -> aggregate -> report.

Ordering
--------
The stages are sequential because each consumes the previous stage's output,
with one exception: the policy bundle and the thresholds are independent and
are fetched concurrently.

Failure model
-------------
* Any configuration error (descriptor, environment, policies, thresholds,
  targets) propagates before a single target is scanned.
* Target-level failures never propagate; they are folded into the verdict.
* Reporting is best-effort and never changes the verdict.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from fleet_scan.domain import RunVerdict, ToolDescriptor
from fleet_scan.io import ToolWorkPaths, get_tool_work_paths, prepare_tool_work_area, write_json_atomic
from tools.config_fetcher import ConfigFetcher
from tools.engine import ScanEngine, format_threshold
from tools.reporting import ReportSink

from .aggregate import aggregate_results, render_summary, report_verdict
from .dispatch import ScanDispatcher
from .policies import PolicyBundleLoader
from .scan_config import ScanConfigResolver
from .settings import Settings
from .targets import plan_targets
from .thresholds import ThresholdMerger


@dataclass(frozen=True)
class ToolRunRequest:
    tool: str
    environment: str
    # When set, the only target scanned; declared targets are ignored.
    manual_target: Optional[str] = None


@dataclass(frozen=True)
class ToolRunOutcome:
    verdict: RunVerdict
    summary: str
    paths: ToolWorkPaths


class ToolScanRunner:
    def __init__(
        self,
        *,
        settings: Settings,
        fetcher: ConfigFetcher,
        engine: ScanEngine,
        sink: ReportSink,
    ) -> None:
        self.settings = settings
        self.resolver = ScanConfigResolver(fetcher, org=settings.org, ref=settings.ref)
        self.policies = PolicyBundleLoader(fetcher, org=settings.org, ref=settings.ref)
        self.thresholds = ThresholdMerger(fetcher, org=settings.org, ref=settings.ref)
        self.dispatcher = ScanDispatcher(engine, max_parallel=settings.max_parallel_targets)
        self.sink = sink

    def run(self, req: ToolRunRequest) -> ToolRunOutcome:
        tool = ToolDescriptor.for_tool(req.tool, self.settings.repo_prefix)

        print(f"\n🚀 {tool.name} ({req.environment})")
        print(f"  Repo    : {self.settings.org}/{tool.repo_name}@{self.settings.ref}")

        resolved = self.resolver.resolve(tool, req.environment)
        print(f"  Modality: {resolved.modality.value}")

        paths = prepare_tool_work_area(get_tool_work_paths(self.settings.work_root, tool.name))

        with ThreadPoolExecutor(max_workers=2) as ex:
            policy_future = ex.submit(self.policies.load, tool, paths.policies_dir)
            threshold_future = ex.submit(
                self.thresholds.load, tool, resolved.environment, paths.thresholds_file
            )
            bundle = policy_future.result()
            thresholds = threshold_future.result()

        print(f"  Threshold: {format_threshold(thresholds.score_threshold)}")

        targets = plan_targets(resolved.environment, resolved.modality, req.manual_target)
        print(f"  Targets : {', '.join(t.address for t in targets)}")

        results = self.dispatcher.dispatch(
            modality=resolved.modality,
            targets=targets,
            bundle=bundle,
            thresholds=thresholds,
            paths=paths,
        )

        verdict = aggregate_results(
            tool=tool.name,
            environment=req.environment,
            results=results,
            score_threshold=thresholds.score_threshold,
        )
        write_json_atomic(paths.verdict_file, verdict.to_dict())

        summary = render_summary(verdict)
        report_verdict(verdict, self.sink, context=tool.context_key, artifacts_glob=paths.artifacts_glob)
        return ToolRunOutcome(verdict=verdict, summary=summary, paths=paths)
