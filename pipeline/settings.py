"""pipeline.settings

Runtime configuration for scan runs.

Settings are read once (environment variables, after the optional ``.env``
loader in :mod:`pipeline.wiring`) into a frozen :class:`Settings` value that is
threaded explicitly through the run. Nothing downstream reads ``os.environ``
directly; in particular the fetch credential is a field here and is handed to
the ConfigFetcher constructor, not rediscovered at each call site.

Environment variables
---------------------
SCAN_ORG                  organization owning the per-tool scan repos
SCAN_REF                  git ref to read configuration from (default: main)
GITHUB_TOKEN              credential for the GitHub contents API
SCAN_REPO_PREFIX          repo name prefix (default: mondoo-)
SCAN_CONFIG_DIR           read configuration from a local directory instead of GitHub
SCAN_ENGINE               scanning engine binary (default: cnspec)
SCAN_TIMEOUT_SECONDS      per-target engine timeout (default: 1800)
FETCH_TIMEOUT_SECONDS     per-request fetch timeout (default: 30)
SCAN_WORK_ROOT            run-scoped working area (default: runs/scans)
SCAN_MAX_PARALLEL_TARGETS targets scanned concurrently per tool (default: 1)
SCAN_MAX_PARALLEL_TOOLS   tools run concurrently in fleet mode (default: 4)
SCAN_STEP_TIMEOUT_MINUTES upper bound for one plan entry (default: 60)
SCAN_RETRY_EXIT_CODES     comma-separated infra exit codes to retry (default: -1,75)
SCAN_RETRY_LIMIT          automatic retries per infra exit code (default: 2)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional, Tuple

from fleet_scan.domain import DEFAULT_REPO_PREFIX

# Exit codes of the scan entrypoint. The plan retries only the infra code.
EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_CONFIG_ERROR = 2
EXIT_INFRA_ERROR = 75

# -1 is what the scheduler reports when the agent itself is lost.
DEFAULT_RETRY_EXIT_CODES: Tuple[int, ...] = (-1, EXIT_INFRA_ERROR)


@dataclass(frozen=True)
class RetryPolicy:
    """Automatic retry attached to each plan entry (scheduler-side)."""

    exit_codes: Tuple[int, ...] = DEFAULT_RETRY_EXIT_CODES
    limit: int = 2

    def to_plan(self) -> dict:
        return {"automatic": [{"exit_status": code, "limit": int(self.limit)} for code in self.exit_codes]}


@dataclass(frozen=True)
class Settings:
    org: str = ""
    ref: str = "main"
    token: Optional[str] = field(default=None, repr=False)
    repo_prefix: str = DEFAULT_REPO_PREFIX
    config_dir: Optional[Path] = None
    github_api_root: str = "https://api.github.com"

    engine: str = "cnspec"
    scan_timeout_seconds: float = 1800
    fetch_timeout_seconds: float = 30

    work_root: Path = Path("runs/scans")
    max_parallel_targets: int = 1
    max_parallel_tools: int = 4

    step_timeout_minutes: int = 60
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        base = Settings()

        def _str(key: str, default: str) -> str:
            v = (env.get(key) or "").strip()
            return v or default

        def _int(key: str, default: int) -> int:
            raw = (env.get(key) or "").strip()
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError:
                raise ValueError(f"{key} must be an integer, got {raw!r}") from None

        def _codes(key: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
            raw = (env.get(key) or "").strip()
            if not raw:
                return default
            try:
                return tuple(int(x.strip()) for x in raw.split(",") if x.strip())
            except ValueError:
                raise ValueError(f"{key} must be a comma-separated list of integers, got {raw!r}") from None

        config_dir = (env.get("SCAN_CONFIG_DIR") or "").strip()

        return Settings(
            org=_str("SCAN_ORG", base.org),
            ref=_str("SCAN_REF", base.ref),
            token=(env.get("GITHUB_TOKEN") or "").strip() or None,
            repo_prefix=env.get("SCAN_REPO_PREFIX", base.repo_prefix),
            config_dir=Path(config_dir) if config_dir else None,
            github_api_root=_str("GITHUB_API_URL", base.github_api_root),
            engine=_str("SCAN_ENGINE", base.engine),
            scan_timeout_seconds=_int("SCAN_TIMEOUT_SECONDS", int(base.scan_timeout_seconds)),
            fetch_timeout_seconds=_int("FETCH_TIMEOUT_SECONDS", int(base.fetch_timeout_seconds)),
            work_root=Path(_str("SCAN_WORK_ROOT", str(base.work_root))),
            max_parallel_targets=max(1, _int("SCAN_MAX_PARALLEL_TARGETS", base.max_parallel_targets)),
            max_parallel_tools=max(1, _int("SCAN_MAX_PARALLEL_TOOLS", base.max_parallel_tools)),
            step_timeout_minutes=max(1, _int("SCAN_STEP_TIMEOUT_MINUTES", base.step_timeout_minutes)),
            retry=RetryPolicy(
                exit_codes=_codes("SCAN_RETRY_EXIT_CODES", base.retry.exit_codes),
                limit=max(0, _int("SCAN_RETRY_LIMIT", base.retry.limit)),
            ),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with non-None overrides applied (CLI flags win)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
