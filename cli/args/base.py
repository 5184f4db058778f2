from __future__ import annotations

import argparse
import os

MODES = ["scan", "matrix", "fleet", "summary"]


def add_base_args(parser: argparse.ArgumentParser) -> None:
    """Register CLI flags that are shared across multiple modes.

    This includes:
    - mode selection
    - tool / environment selection
    - the manual target override
    """

    parser.add_argument(
        "--mode",
        choices=MODES,
        help=(
            "scan = one tool against one environment, matrix = emit the fleet plan, "
            "fleet = run the fleet plan locally, summary = fold existing verdicts"
        ),
    )
    parser.add_argument(
        "--tool",
        default=os.environ.get("TOOL") or None,
        help="(scan mode) Tool to scan, e.g. vault (default: $TOOL)",
    )
    parser.add_argument(
        "--environment",
        "--env",
        dest="environment",
        default=os.environ.get("ENVIRONMENT") or None,
        help="Environment name, e.g. production (default: $ENVIRONMENT)",
    )
    parser.add_argument(
        "--target",
        default=os.environ.get("TARGET") or None,
        help=(
            "(scan mode) Scan only this target, e.g. host:port for ssh. "
            "Declared targets are ignored when set (default: $TARGET)"
        ),
    )
