import unittest
from pathlib import Path

from pipeline.settings import EXIT_INFRA_ERROR, RetryPolicy, Settings


class TestSettings(unittest.TestCase):
    def test_defaults_from_empty_environment(self) -> None:
        s = Settings.from_env({})
        self.assertEqual("main", s.ref)
        self.assertEqual("mondoo-", s.repo_prefix)
        self.assertEqual("cnspec", s.engine)
        self.assertEqual(Path("runs/scans"), s.work_root)
        self.assertIsNone(s.token)
        self.assertIsNone(s.config_dir)
        self.assertEqual((-1, EXIT_INFRA_ERROR), s.retry.exit_codes)
        self.assertEqual(2, s.retry.limit)

    def test_values_are_read_from_environment(self) -> None:
        s = Settings.from_env(
            {
                "SCAN_ORG": "acme",
                "SCAN_REF": "release",
                "GITHUB_TOKEN": " t0ken ",
                "SCAN_CONFIG_DIR": "/tmp/repos",
                "SCAN_MAX_PARALLEL_TARGETS": "3",
                "SCAN_RETRY_EXIT_CODES": "75",
                "SCAN_RETRY_LIMIT": "1",
            }
        )
        self.assertEqual("acme", s.org)
        self.assertEqual("release", s.ref)
        self.assertEqual("t0ken", s.token)
        self.assertEqual(Path("/tmp/repos"), s.config_dir)
        self.assertEqual(3, s.max_parallel_targets)
        self.assertEqual((75,), s.retry.exit_codes)
        self.assertEqual(1, s.retry.limit)

    def test_token_is_not_in_repr(self) -> None:
        s = Settings.from_env({"GITHUB_TOKEN": "secret-value"})
        self.assertNotIn("secret-value", repr(s))

    def test_invalid_integer_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Settings.from_env({"SCAN_TIMEOUT_SECONDS": "soon"})

    def test_overrides_ignore_none(self) -> None:
        s = Settings.from_env({"SCAN_ORG": "acme"}).with_overrides(org=None, ref="v2")
        self.assertEqual("acme", s.org)
        self.assertEqual("v2", s.ref)

    def test_retry_policy_plan_data(self) -> None:
        self.assertEqual(
            {"automatic": [{"exit_status": -1, "limit": 2}, {"exit_status": 75, "limit": 2}]},
            RetryPolicy().to_plan(),
        )


if __name__ == "__main__":
    unittest.main()
