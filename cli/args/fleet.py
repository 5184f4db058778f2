from __future__ import annotations

import argparse


def add_fleet_args(parser: argparse.ArgumentParser) -> None:
    """Register flags for the fleet-level modes (matrix, fleet)."""

    parser.add_argument(
        "--roster",
        help="YAML file with the tool roster (a list, or a mapping with 'tools'). Default: built-in roster.",
    )
    parser.add_argument(
        "--tools",
        help="Comma-separated tool names. Overrides --roster.",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="(matrix mode) Write the plan YAML here instead of stdout.",
    )
