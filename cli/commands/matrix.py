from __future__ import annotations

import sys
from pathlib import Path

import yaml

from cli.common import require_environment, resolve_roster
from fleet_scan.io import write_text_atomic
from pipeline.pipeline import FleetScanPipeline
from pipeline.settings import EXIT_PASS


def run_matrix(args, pipeline: FleetScanPipeline) -> int:
    """Emit the fleet plan as YAML.

    Progress goes to stderr so stdout can be piped straight into the
    scheduler's pipeline upload.
    """
    environment = require_environment(args)
    roster = resolve_roster(args)

    print(f"🚀 Planning {len(roster)} tool(s) for {environment}", file=sys.stderr)
    plan = pipeline.plan(roster, environment)

    for status in plan.skipped:
        print(f"  ⚠️ skipped {status.tool}: {status.reason}", file=sys.stderr)
    print(
        f"  ✅ planned {len(plan.entries)}: {', '.join(plan.planned_tools) or '(none)'}",
        file=sys.stderr,
    )

    text = yaml.safe_dump(plan.to_pipeline(), sort_keys=False)
    if args.output:
        out = Path(args.output).expanduser()
        write_text_atomic(out, text)
        print(f"  Plan    : {out}", file=sys.stderr)
    else:
        sys.stdout.write(text)
    return EXIT_PASS
