"""pipeline.wiring

This module is the **composition root** for the Python runtime.

"Composition root" means: the single place where we *assemble* the running
application from its building blocks:

- load configuration / environment variables
- choose real vs local implementations (GitHub vs directory fetcher,
  Buildkite vs console sink)
- build the high-level pipeline facade object

Keeping this wiring in one place prevents configuration and dependency setup
from being duplicated across entrypoints (CLI, scripts, CI).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

from tools.config_fetcher import ConfigFetcher, GitHubConfigFetcher, LocalConfigFetcher
from tools.engine import ScanEngine
from tools.reporting import ReportSink, default_sink

from .core import ROOT_DIR
from .fleet import FleetMatrixGenerator
from .pipeline import FleetScanPipeline
from .run_tool import ToolScanRunner
from .scan_config import ScanConfigResolver
from .settings import Settings

ENV_PATH: Path = ROOT_DIR / ".env"


def load_dotenv_if_present(dotenv_path: Path = ENV_PATH) -> None:
    """Minimal .env loader.

    Loads KEY=VALUE lines into ``os.environ`` if the key is not already set.
    Supports simple quoting and inline comments preceded by whitespace.
    """

    if not dotenv_path.exists():
        return

    for raw in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        raw_val = val.strip()

        # Quoted value
        if (raw_val.startswith('"') and raw_val.endswith('"')) or (
            raw_val.startswith("'") and raw_val.endswith("'")
        ):
            parsed_val = raw_val[1:-1]
        else:
            # Strip inline comments only when preceded by whitespace: "VALUE   # comment"
            parsed_val = re.split(r"\s+#", raw_val, maxsplit=1)[0].strip()

        parsed_val = parsed_val.replace("\r", "")
        if key and key not in os.environ:
            os.environ[key] = parsed_val


def build_fetcher(settings: Settings) -> ConfigFetcher:
    if settings.config_dir is not None:
        return LocalConfigFetcher(settings.config_dir)
    return GitHubConfigFetcher(
        settings.token,
        api_root=settings.github_api_root,
        timeout_seconds=settings.fetch_timeout_seconds,
    )


def build_pipeline(
    settings: Optional[Settings] = None,
    *,
    load_dotenv: bool = True,
    fetcher: Optional[ConfigFetcher] = None,
    engine: Optional[ScanEngine] = None,
    sink: Optional[ReportSink] = None,
) -> FleetScanPipeline:
    """Build the high-level pipeline facade.

    Any collaborator can be passed in to swap the real implementation (tests
    pass a local fetcher and a fake engine runner).
    """

    if load_dotenv:
        load_dotenv_if_present(ENV_PATH)

    settings = settings or Settings.from_env()
    fetcher = fetcher or build_fetcher(settings)
    engine = engine or ScanEngine(settings.engine, timeout_seconds=settings.scan_timeout_seconds)
    sink = sink or default_sink()

    runner = ToolScanRunner(settings=settings, fetcher=fetcher, engine=engine, sink=sink)
    matrix = FleetMatrixGenerator(ScanConfigResolver(fetcher, org=settings.org, ref=settings.ref), settings)
    return FleetScanPipeline(settings=settings, runner=runner, matrix=matrix)
