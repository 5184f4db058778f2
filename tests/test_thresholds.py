import tempfile
import unittest
from pathlib import Path

import yaml

from fleet_scan.domain import (
    BaseThresholdMissing,
    EnvironmentConfig,
    ThresholdParseError,
    ToolDescriptor,
)
from pipeline.thresholds import (
    ThresholdMerger,
    effective_thresholds,
    merge_thresholds,
    parse_threshold_document,
)
from tools.config_fetcher import LocalConfigFetcher


class TestThresholdMerge(unittest.TestCase):
    def test_override_wins_field_by_field(self) -> None:
        self.assertEqual({"a": 1, "b": 3}, merge_thresholds({"a": 1, "b": 2}, {"b": 3}))

    def test_nested_mappings_merge_recursively(self) -> None:
        merged = merge_thresholds(
            {"checks": {"ssh": 1, "tls": 2}, "keep": True},
            {"checks": {"tls": 5}},
        )
        self.assertEqual({"checks": {"ssh": 1, "tls": 5}, "keep": True}, merged)

    def test_inputs_are_not_mutated(self) -> None:
        base = {"checks": {"ssh": 1}}
        merge_thresholds(base, {"checks": {"ssh": 9}})
        self.assertEqual({"checks": {"ssh": 1}}, base)

    def test_default_score_threshold_is_80(self) -> None:
        eff = effective_thresholds({}, {}, EnvironmentConfig(name="production"))
        self.assertEqual(80.0, eff.score_threshold)

    def test_no_threshold_at_any_layer_is_exactly_80(self) -> None:
        eff = effective_thresholds({"checks": {"tls": 1}}, {"checks": {"tls": 2}}, EnvironmentConfig(name="production"))
        self.assertEqual(80.0, eff.score_threshold)
        self.assertEqual({"tls": 2}, eff.values["checks"])

    def test_override_document_wins_over_everything(self) -> None:
        env = EnvironmentConfig(name="production", score_threshold=70, score_threshold_explicit=True)
        eff = effective_thresholds({"score_threshold": 60}, {"score_threshold": 90}, env)
        self.assertEqual(90.0, eff.score_threshold)

    def test_explicit_environment_threshold_beats_base(self) -> None:
        env = EnvironmentConfig(name="production", score_threshold=70, score_threshold_explicit=True)
        eff = effective_thresholds({"score_threshold": 60}, {}, env)
        self.assertEqual(70.0, eff.score_threshold)

    def test_implicit_environment_default_does_not_beat_base(self) -> None:
        eff = effective_thresholds({"score_threshold": 60}, {}, EnvironmentConfig(name="production"))
        self.assertEqual(60.0, eff.score_threshold)

    def test_document_parsing(self) -> None:
        self.assertEqual({}, parse_threshold_document(None, source="x"))
        self.assertEqual({}, parse_threshold_document(b"", source="x"))
        with self.assertRaises(ThresholdParseError):
            parse_threshold_document(b"- 1\n- 2\n", source="x")
        with self.assertRaises(ThresholdParseError):
            parse_threshold_document(b"a: [1", source="x")


class TestThresholdMerger(unittest.TestCase):
    def _repo(self, root: Path) -> Path:
        repo = root / "acme" / "mondoo-vault"
        (repo / "thresholds").mkdir(parents=True)
        return repo

    def test_writes_merged_artifact(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            repo = self._repo(root)
            (repo / "thresholds" / "base.yml").write_text("a: 1\nb: 2\n", encoding="utf-8")
            (repo / "thresholds" / "production.yml").write_text("b: 3\nscore_threshold: 90\n", encoding="utf-8")

            merger = ThresholdMerger(LocalConfigFetcher(root), org="acme", ref="main")
            artifact = root / "work" / "thresholds.yml"
            eff = merger.load(ToolDescriptor.for_tool("vault"), EnvironmentConfig(name="production"), artifact)

            self.assertEqual(90.0, eff.score_threshold)
            self.assertEqual(artifact, eff.artifact_path)
            on_disk = yaml.safe_load(artifact.read_text(encoding="utf-8"))
            self.assertEqual(1, on_disk["a"])
            self.assertEqual(3, on_disk["b"])
            self.assertEqual(90, on_disk["score_threshold"])

    def test_missing_override_uses_base(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            repo = self._repo(root)
            (repo / "thresholds" / "base.yml").write_text("a: 1\n", encoding="utf-8")

            merger = ThresholdMerger(LocalConfigFetcher(root), org="acme", ref="main")
            eff = merger.load(
                ToolDescriptor.for_tool("vault"), EnvironmentConfig(name="staging"), root / "t.yml"
            )
            self.assertEqual({"score_threshold": 80, "a": 1}, dict(eff.values))

    def test_missing_base_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            self._repo(root)
            merger = ThresholdMerger(LocalConfigFetcher(root), org="acme", ref="main")
            with self.assertRaises(BaseThresholdMissing):
                merger.load(ToolDescriptor.for_tool("vault"), EnvironmentConfig(name="production"), root / "t.yml")


if __name__ == "__main__":
    unittest.main()
