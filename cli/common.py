"""cli.common

Small shared helpers for CLI command modules.

The CLI is split by "mode" (scan/matrix/fleet/summary). Roster resolution and
the error -> exit code mapping are needed by more than one mode; keeping them
here avoids drift between modes.
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from cli.ui import prompt_text
from fleet_scan.domain import FetchError, FleetScanError, InfrastructureError
from pipeline.roster import DEFAULT_ROSTER, load_roster, normalize_roster
from pipeline.settings import EXIT_CONFIG_ERROR, EXIT_INFRA_ERROR


def parse_csv(raw: Optional[str]) -> List[str]:
    """Parse a comma-separated list value into a list of non-empty strings."""
    if not raw:
        return []
    return [x.strip() for x in raw.split(",") if x.strip()]


def resolve_roster(args: argparse.Namespace) -> List[str]:
    """--tools wins over --roster; both fall back to the built-in roster."""
    tools = parse_csv(getattr(args, "tools", None))
    if tools:
        return normalize_roster(tools)
    roster_path = getattr(args, "roster", None)
    if roster_path:
        try:
            return load_roster(roster_path)
        except (OSError, ValueError) as e:
            print(f"❌ {e}")
            raise SystemExit(EXIT_CONFIG_ERROR)
    return list(DEFAULT_ROSTER)


def exit_code_for_error(e: FleetScanError) -> int:
    """Map an orchestrator error to the scan entrypoint's exit code.

    Only infrastructure failures get the code the scheduler retries; a
    configuration error would fail the same way on every attempt.
    """
    if isinstance(e, InfrastructureError):
        return EXIT_INFRA_ERROR
    if isinstance(e, FetchError):
        return EXIT_INFRA_ERROR if e.retryable else EXIT_CONFIG_ERROR
    return EXIT_CONFIG_ERROR


def require_environment(args: argparse.Namespace) -> str:
    env = (args.environment or "").strip()
    if not env:
        env = prompt_text("Environment (e.g. production)").strip()
    if not env:
        print("❌ No environment given (use --environment or set ENVIRONMENT).")
        raise SystemExit(EXIT_CONFIG_ERROR)
    return env
