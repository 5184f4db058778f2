import threading
import unittest

from fleet_scan.domain import NoTargetsResolved, RunVerdict
from pipeline.fleet import FleetPlan, PlanEntry, ToolPlanState, ToolPlanStatus, run_fleet
from pipeline.run_tool import ToolRunOutcome
from pipeline.settings import RetryPolicy


def _entry(tool: str) -> PlanEntry:
    return PlanEntry(
        tool=tool,
        environment="production",
        label=tool,
        key=f"scan-{tool}",
        command="true",
        queue="mondoo-scanners",
        timeout_in_minutes=60,
        retry=RetryPolicy(),
        artifact_paths=f"runs/scans/{tool}/results/*.json",
    )


def _outcome(tool: str, passed: bool = True) -> ToolRunOutcome:
    verdict = RunVerdict(
        tool=tool,
        environment="production",
        passed=passed,
        total=1,
        succeeded=1 if passed else 0,
        failed=0 if passed else 1,
        errored=0,
        score_threshold=80,
    )
    return ToolRunOutcome(verdict=verdict, summary="", paths=None)  # type: ignore[arg-type]


class TestRunFleet(unittest.TestCase):
    def test_one_tool_error_does_not_stop_the_others(self) -> None:
        plan = FleetPlan(
            environment="production",
            entries=(_entry("vault"), _entry("consul"), _entry("nomad")),
            statuses=(ToolPlanStatus(tool="ghost", state=ToolPlanState.SKIPPED, reason="not found"),),
        )

        def run_one(req):
            if req.tool == "consul":
                raise NoTargetsResolved("nothing declared")
            return _outcome(req.tool)

        report = run_fleet(plan, run_one, max_workers=2)
        self.assertEqual({"vault", "nomad"}, set(report.outcomes))
        self.assertIn("NoTargetsResolved", report.errors["consul"])
        self.assertEqual({"ghost": "not found"}, report.skipped)
        self.assertFalse(report.passed)

    def test_all_passing_tools_pass(self) -> None:
        plan = FleetPlan(environment="production", entries=(_entry("vault"), _entry("consul")))
        report = run_fleet(plan, lambda req: _outcome(req.tool), max_workers=4)
        self.assertTrue(report.passed)

    def test_fleet_with_only_skipped_tools_passes(self) -> None:
        plan = FleetPlan(
            environment="production",
            statuses=(ToolPlanStatus(tool="consul", state=ToolPlanState.SKIPPED, reason="no production"),),
        )
        report = run_fleet(plan, lambda req: _outcome(req.tool))
        self.assertEqual({}, report.outcomes)
        self.assertEqual({"consul": "no production"}, report.skipped)
        self.assertTrue(report.passed)

    def test_one_failing_verdict_fails_the_fleet(self) -> None:
        plan = FleetPlan(environment="production", entries=(_entry("vault"), _entry("consul")))
        report = run_fleet(plan, lambda req: _outcome(req.tool, passed=req.tool != "consul"))
        self.assertFalse(report.passed)

    def test_cancel_stops_unstarted_tools(self) -> None:
        plan = FleetPlan(
            environment="production",
            entries=(_entry("vault"), _entry("consul"), _entry("nomad")),
        )
        cancel = threading.Event()
        started = []

        def run_one(req):
            started.append(req.tool)
            cancel.set()
            return _outcome(req.tool)

        report = run_fleet(plan, run_one, max_workers=1, cancel_event=cancel)
        # The started run finishes normally; nothing new starts after cancel.
        self.assertEqual(["vault"], started)
        self.assertEqual({"vault"}, set(report.outcomes))
        self.assertEqual(["consul", "nomad"], report.cancelled)
        self.assertFalse(report.passed)


if __name__ == "__main__":
    unittest.main()
