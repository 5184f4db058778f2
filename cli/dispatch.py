from __future__ import annotations

import argparse

from cli.common import exit_code_for_error
from cli.commands.fleet import run_fleet_mode
from cli.commands.matrix import run_matrix
from cli.commands.scan import run_scan
from cli.commands.summary import run_summary
from cli.ui import choose_from_menu
from fleet_scan.domain import FleetScanError
from pipeline.pipeline import FleetScanPipeline


def dispatch(args: argparse.Namespace, pipeline: FleetScanPipeline) -> int:
    # mode selection
    mode = args.mode
    if mode is None:
        if args.tool or args.target:
            mode = "scan"
        else:
            mode = choose_from_menu(
                "Choose an action:",
                {
                    "scan": "Scan one tool against one environment",
                    "matrix": "Emit the fleet plan (YAML)",
                    "fleet": "Run the fleet plan locally",
                    "summary": "Summarize verdicts from earlier scans",
                },
            )

    try:
        if mode == "scan":
            return int(run_scan(args, pipeline))
        if mode == "matrix":
            return int(run_matrix(args, pipeline))
        if mode == "fleet":
            return int(run_fleet_mode(args, pipeline))
        return int(run_summary(args, pipeline))
    except FleetScanError as e:
        code = exit_code_for_error(e)
        print(f"\n❌ {type(e).__name__}: {e}")
        print(f"  Exit code: {code}")
        return code
