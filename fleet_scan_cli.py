#!/usr/bin/env python3
"""
CLI for the fleet compliance scan orchestrator.

Modes:
  1) scan    - scan one tool's targets for one environment
  2) matrix  - emit the fleet plan (one step per tool) as YAML
  3) fleet   - run the fleet plan locally
  4) summary - fold verdicts written by earlier scans

Usage:
  python fleet_scan_cli.py
  python fleet_scan_cli.py --mode scan --tool vault --environment production
  python fleet_scan_cli.py --mode scan --tool vault --environment production --target v1:22
  python fleet_scan_cli.py --mode matrix --environment production | buildkite-agent pipeline upload
  python fleet_scan_cli.py --mode fleet --environment staging --tools vault,consul

Exit codes (scan mode): 0 PASS, 1 FAIL, 2 configuration error, 75 infrastructure error.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from cli.args.base import add_base_args
from cli.args.fleet import add_fleet_args
from cli.args.settings_overrides import add_settings_override_args
from cli.dispatch import dispatch
from pipeline.settings import EXIT_CONFIG_ERROR, Settings
from pipeline.wiring import ENV_PATH, build_pipeline, load_dotenv_if_present


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fleet compliance scan orchestrator (cnspec-style engines).")
    add_base_args(parser)
    add_fleet_args(parser)
    add_settings_override_args(parser)
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args()


def build_settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        raise SystemExit(EXIT_CONFIG_ERROR)

    settings = settings.with_overrides(
        org=args.org,
        ref=args.ref,
        config_dir=Path(args.config_dir).expanduser() if args.config_dir else None,
        engine=args.engine,
        work_root=Path(args.work_root).expanduser() if args.work_root else None,
        max_parallel_targets=max(1, args.max_parallel_targets) if args.max_parallel_targets else None,
        max_parallel_tools=max(1, args.max_parallel_tools) if args.max_parallel_tools else None,
    )

    if not settings.org:
        print("❌ Missing SCAN_ORG. Put it in .env (or export it in your shell), or pass --org.", file=sys.stderr)
        raise SystemExit(EXIT_CONFIG_ERROR)
    if settings.config_dir is None and not settings.token:
        print(f"⚠️ GITHUB_TOKEN is not set; private scan repos will not be readable. ({ENV_PATH})", file=sys.stderr)
    return settings


def main() -> None:
    # Always load .env from repo root so terminal runs behave like CI runs
    load_dotenv_if_present(ENV_PATH)

    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else (os.environ.get("LOG_LEVEL") or "INFO").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    pipeline = build_pipeline(build_settings(args), load_dotenv=False)
    raise SystemExit(dispatch(args, pipeline))


if __name__ == "__main__":
    main()
