import tempfile
import unittest
from pathlib import Path

from fleet_scan.domain import NoPoliciesFound, ToolDescriptor
from pipeline.policies import PolicyBundleLoader, select_policy_files
from tools.config_fetcher import LocalConfigFetcher


class _RecordingFetcher(LocalConfigFetcher):
    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.listed = []

    def list_dir(self, org, repo, path, ref):
        self.listed.append(path)
        return super().list_dir(org, repo, path, ref)


class TestPolicyBundleLoader(unittest.TestCase):
    def test_select_is_sorted_and_filtered(self) -> None:
        names = ["b.yml", "a.mql.yaml", "notes.md", "c.yaml", "a.mql.yaml"]
        self.assertEqual(
            ["a.mql.yaml", "b.yml", "c.yaml"],
            select_policy_files(names, (".mql.yaml", ".yaml", ".yml")),
        )

    def test_policies_dir_is_preferred(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            repo = root / "acme" / "mondoo-vault"
            (repo / "policies").mkdir(parents=True)
            (repo / "policies" / "hardening.mql.yaml").write_text("policies: []\n", encoding="utf-8")
            (repo / "policies" / "extra.yml").write_text("policies: []\n", encoding="utf-8")
            (repo / "policies" / "README.md").write_text("docs\n", encoding="utf-8")
            (repo / "root.mql.yaml").write_text("policies: []\n", encoding="utf-8")

            loader = PolicyBundleLoader(LocalConfigFetcher(root), org="acme", ref="main")
            dest = root / "work" / "policies"
            bundle = loader.load(ToolDescriptor.for_tool("vault"), dest)

            self.assertEqual("policies", bundle.source_dir)
            self.assertEqual(["extra.yml", "hardening.mql.yaml"], bundle.names)
            self.assertTrue((dest / "hardening.mql.yaml").is_file())

    def test_falls_back_to_root_mql_files(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            repo = root / "acme" / "mondoo-vault"
            repo.mkdir(parents=True)
            (repo / "scan-config.yml").write_text("scanModality: ssh\n", encoding="utf-8")
            (repo / "vault.mql.yaml").write_text("policies: []\n", encoding="utf-8")

            fetcher = _RecordingFetcher(root)
            loader = PolicyBundleLoader(fetcher, org="acme", ref="main")
            bundle = loader.load(ToolDescriptor.for_tool("vault"), root / "work")

            self.assertEqual(["policies", ""], fetcher.listed)
            self.assertEqual("", bundle.source_dir)
            # Only *.mql.yaml counts at the root; the descriptor is not a policy.
            self.assertEqual(["vault.mql.yaml"], bundle.names)

    def test_no_policies_anywhere(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            repo = root / "acme" / "mondoo-vault"
            (repo / "policies").mkdir(parents=True)
            (repo / "scan-config.yml").write_text("scanModality: ssh\n", encoding="utf-8")

            fetcher = _RecordingFetcher(root)
            loader = PolicyBundleLoader(fetcher, org="acme", ref="main")
            with self.assertRaises(NoPoliciesFound):
                loader.load(ToolDescriptor.for_tool("vault"), root / "work")
            # The root fallback was attempted before giving up.
            self.assertEqual(["policies", ""], fetcher.listed)


if __name__ == "__main__":
    unittest.main()
