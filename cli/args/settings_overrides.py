from __future__ import annotations

import argparse


def add_settings_override_args(parser: argparse.ArgumentParser) -> None:
    """Register flags that override values read from the environment / .env."""

    parser.add_argument("--org", help="Organization owning the scan repos (default: $SCAN_ORG)")
    parser.add_argument("--ref", help="Git ref to read configuration from (default: $SCAN_REF or main)")
    parser.add_argument(
        "--config-dir",
        help=(
            "Read scan repos from a local directory (<dir>/<org>/<repo>) instead of GitHub "
            "(default: $SCAN_CONFIG_DIR)"
        ),
    )
    parser.add_argument("--engine", help="Scanning engine binary (default: $SCAN_ENGINE or cnspec)")
    parser.add_argument("--work-root", help="Working area for policies/results (default: runs/scans)")
    parser.add_argument(
        "--max-parallel-targets",
        type=int,
        help="Targets scanned concurrently per tool (default: 1)",
    )
    parser.add_argument(
        "--max-parallel-tools",
        type=int,
        help="(fleet mode) Tools run concurrently (default: 4)",
    )
