import json
import tempfile
import unittest
from pathlib import Path

from fleet_scan.domain import ConfigNotFound
from fleet_scan.io import read_json
from pipeline.run_tool import ToolRunRequest
from pipeline.settings import Settings
from pipeline.wiring import build_pipeline
from tools.core_cmd import CmdResult
from tools.engine import ScanEngine
from tools.reporting import ReportSink


def write_vault_repo(root: Path) -> Path:
    repo = root / "acme" / "mondoo-vault"
    (repo / "policies").mkdir(parents=True)
    (repo / "thresholds").mkdir()
    (repo / "scan-config.yml").write_text(
        "scanModality: ssh\n"
        "environments:\n"
        "  production:\n"
        "    targets:\n"
        "      - host: v1\n"
        "        port: 22\n",
        encoding="utf-8",
    )
    (repo / "policies" / "vault-hardening.mql.yaml").write_text("policies: []\n", encoding="utf-8")
    (repo / "thresholds" / "base.yml").write_text("score_threshold: 70\nchecks:\n  tls: 1\n", encoding="utf-8")
    (repo / "thresholds" / "production.yml").write_text("score_threshold: 90\n", encoding="utf-8")
    return repo


class RecordingSink(ReportSink):
    def __init__(self):
        self.notifications = []
        self.uploads = []

    def notify(self, context, style, message):
        self.notifications.append((context, style, message))

    def upload_artifacts(self, pattern):
        self.uploads.append(pattern)


class FakeEngine:
    def __init__(self, exit_code=0):
        self.exit_code = exit_code
        self.commands = []

    def __call__(self, cmd, timeout_seconds=0):
        self.commands.append(list(cmd))
        out = Path(cmd[cmd.index("--output-target") + 1])
        out.write_text(json.dumps({"score": 93}), encoding="utf-8")
        return CmdResult(self.exit_code, 0.5, " ".join(cmd), "", "")


class TestVaultEndToEnd(unittest.TestCase):
    def _pipeline(self, root: Path, runner: FakeEngine, sink: RecordingSink):
        settings = Settings(org="acme", ref="main", config_dir=root / "repos", work_root=root / "work")
        return build_pipeline(
            settings,
            load_dotenv=False,
            engine=ScanEngine("cnspec", runner=runner, resolve_binary=False),
            sink=sink,
        )

    def test_production_scan_passes_on_exit_zero(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            write_vault_repo(root / "repos")
            runner, sink = FakeEngine(0), RecordingSink()

            outcome = self._pipeline(root, runner, sink).scan(ToolRunRequest(tool="vault", environment="production"))

            self.assertEqual(1, len(runner.commands))
            cmd = runner.commands[0]
            self.assertEqual(["cnspec", "scan", "ssh", "v1", "--port", "22"], cmd[:6])
            self.assertEqual("90", cmd[cmd.index("--score-threshold") + 1])

            self.assertTrue(outcome.verdict.passed)
            self.assertEqual(["v1:22"], [r.target for r in outcome.verdict.results])
            self.assertEqual(90.0, outcome.verdict.score_threshold)

            verdict = read_json(outcome.paths.verdict_file)
            self.assertEqual("PASS", verdict["verdict"])
            self.assertTrue((outcome.paths.results_dir / "v1_22.json").is_file())
            self.assertTrue((outcome.paths.policies_dir / "vault-hardening.mql.yaml").is_file())

            self.assertEqual("scan-vault", sink.notifications[0][0])
            self.assertEqual("success", sink.notifications[0][1])
            self.assertIn("score threshold: 90", sink.notifications[0][2])
            self.assertEqual([outcome.paths.artifacts_glob], sink.uploads)

    def test_production_scan_fails_on_nonzero_exit(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            write_vault_repo(root / "repos")
            sink = RecordingSink()
            outcome = self._pipeline(root, FakeEngine(1), sink).scan(
                ToolRunRequest(tool="vault", environment="production")
            )
            self.assertFalse(outcome.verdict.passed)
            self.assertEqual("error", sink.notifications[0][1])

    def test_manual_target_is_the_only_scan(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            write_vault_repo(root / "repos")
            runner = FakeEngine(0)
            outcome = self._pipeline(root, runner, RecordingSink()).scan(
                ToolRunRequest(tool="vault", environment="production", manual_target="v7:2222")
            )
            self.assertEqual(["v7:2222"], [r.target for r in outcome.verdict.results])
            self.assertEqual(["cnspec", "scan", "ssh", "v7", "--port", "2222"], runner.commands[0][:6])

    def test_missing_descriptor_aborts_before_scanning(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "repos").mkdir()
            runner = FakeEngine(0)
            with self.assertRaises(ConfigNotFound):
                self._pipeline(root, runner, RecordingSink()).scan(
                    ToolRunRequest(tool="ghost", environment="production")
                )
            self.assertEqual([], runner.commands)


if __name__ == "__main__":
    unittest.main()
