import json
import tempfile
import unittest
from pathlib import Path

from fleet_scan.domain import (
    EffectiveThresholds,
    HostTarget,
    PlannedTarget,
    PolicyBundle,
    ScanModality,
    ScanStatus,
)
from fleet_scan.io import get_tool_work_paths, prepare_tool_work_area
from pipeline.aggregate import aggregate_results, render_summary, report_verdict
from pipeline.dispatch import ScanDispatcher
from tools.core_cmd import CmdResult
from tools.engine import ScanEngine
from tools.reporting import ReportSink


class FakeEngineRunner:
    """Stands in for the engine binary: exit code per host, writes a JSON result."""

    def __init__(self, exit_codes, *, raise_for=()):
        self.exit_codes = exit_codes
        self.raise_for = set(raise_for)
        self.commands = []

    def __call__(self, cmd, timeout_seconds=0):
        self.commands.append(list(cmd))
        host = cmd[3]
        if host in self.raise_for:
            raise PermissionError("engine not executable")
        out = Path(cmd[cmd.index("--output-target") + 1])
        out.write_text(json.dumps({"host": host, "score": 95}), encoding="utf-8")
        return CmdResult(self.exit_codes.get(host, 0), 0.1, " ".join(cmd), "", "")


def _targets(*hosts):
    return [PlannedTarget(address=f"{h}:22", spec=HostTarget(host=h, port=22)) for h in hosts]


def run_dispatch(root: Path, runner, hosts, *, max_parallel=1):
    paths = prepare_tool_work_area(get_tool_work_paths(root / "work", "vault"))
    engine = ScanEngine("cnspec", runner=runner, resolve_binary=False)
    return paths, ScanDispatcher(engine, max_parallel=max_parallel).dispatch(
        modality=ScanModality.SSH,
        targets=_targets(*hosts),
        bundle=PolicyBundle(tool="vault", ref="main", files=(paths.policies_dir / "a.mql.yaml",), source_dir="policies"),
        thresholds=EffectiveThresholds(values={"score_threshold": 90}, score_threshold=90, artifact_path=paths.thresholds_file),
        paths=paths,
    )


class TestScanDispatcher(unittest.TestCase):
    def test_failing_target_does_not_stop_the_rest(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            runner = FakeEngineRunner({"h2": 1}, raise_for={"h3"})
            paths, results = run_dispatch(Path(td), runner, ["h1", "h2", "h3", "h4"])

            self.assertEqual(["h1:22", "h2:22", "h3:22", "h4:22"], [r.target for r in results])
            self.assertEqual(
                [ScanStatus.SUCCESS, ScanStatus.FAILURE, ScanStatus.ERROR, ScanStatus.SUCCESS],
                [r.status for r in results],
            )
            self.assertEqual(126, results[2].exit_code)
            self.assertEqual({"host": "h1", "score": 95}, results[0].output)

            # One artifact per target, named after the sanitized address.
            names = sorted(p.name for p in paths.results_dir.glob("*.json"))
            self.assertEqual(["h1_22.json", "h2_22.json", "h3_22.json", "h4_22.json"], names)
            stub = json.loads((paths.results_dir / "h3_22.json").read_text(encoding="utf-8"))
            self.assertEqual("error", stub["status"])

    def test_parallel_dispatch_keeps_target_order(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            runner = FakeEngineRunner({})
            _, results = run_dispatch(Path(td), runner, ["a", "b", "c", "d"], max_parallel=3)
            self.assertEqual(["a:22", "b:22", "c:22", "d:22"], [r.target for r in results])
            self.assertTrue(all(r.ok for r in results))

    def test_command_carries_threshold_and_policies(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            runner = FakeEngineRunner({})
            run_dispatch(Path(td), runner, ["v1"])
            cmd = runner.commands[0]
            self.assertEqual("90", cmd[cmd.index("--score-threshold") + 1])
            self.assertIn("--policy-bundle", cmd)


class _BrokenSink(ReportSink):
    def __init__(self):
        self.notified = []

    def notify(self, context, style, message):
        self.notified.append((context, style))
        raise RuntimeError("annotation service down")

    def upload_artifacts(self, pattern):
        raise RuntimeError("upload failed")


class TestAggregate(unittest.TestCase):
    def test_pass_only_when_every_target_succeeds(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            _, ok = run_dispatch(Path(td) / "a", FakeEngineRunner({}), ["h1", "h2"])
            _, mixed = run_dispatch(Path(td) / "b", FakeEngineRunner({"h2": 1}), ["h1", "h2"])

        passed = aggregate_results(tool="vault", environment="production", results=ok, score_threshold=90)
        self.assertTrue(passed.passed)
        self.assertEqual("PASS", passed.label)

        failed = aggregate_results(tool="vault", environment="production", results=mixed, score_threshold=90)
        self.assertFalse(failed.passed)
        self.assertEqual((2, 1, 1, 0), (failed.total, failed.succeeded, failed.failed, failed.errored))
        summary = render_summary(failed)
        self.assertIn("h1:22", summary)
        self.assertIn("h2:22", summary)
        self.assertIn("FAIL", summary)

    def test_empty_results_never_pass(self) -> None:
        verdict = aggregate_results(tool="vault", environment="production", results=[], score_threshold=80)
        self.assertFalse(verdict.passed)

    def test_reporting_failures_do_not_raise(self) -> None:
        verdict = aggregate_results(tool="vault", environment="production", results=[], score_threshold=80)
        sink = _BrokenSink()
        with self.assertLogs("pipeline.aggregate", level="WARNING"):
            report_verdict(verdict, sink, context="scan-vault", artifacts_glob="x/*.json")
        self.assertEqual([("scan-vault", "error")], sink.notified)


if __name__ == "__main__":
    unittest.main()
