from __future__ import annotations

from cli.common import require_environment
from cli.ui import choose_from_menu
from pipeline.pipeline import FleetScanPipeline
from pipeline.roster import DEFAULT_ROSTER
from pipeline.run_tool import ToolRunRequest
from pipeline.settings import EXIT_FAIL, EXIT_PASS


def run_scan(args, pipeline: FleetScanPipeline) -> int:
    tool = (args.tool or "").strip()
    if not tool:
        tool = choose_from_menu("Choose a tool:", {k: k for k in DEFAULT_ROSTER})
    environment = require_environment(args)

    outcome = pipeline.scan(
        ToolRunRequest(
            tool=tool,
            environment=environment,
            manual_target=args.target or None,
        )
    )

    print("\n" + outcome.summary)
    print(f"  Verdict : {outcome.paths.verdict_file}")
    if outcome.verdict.passed:
        print("\n✅ Scan passed.")
        return EXIT_PASS
    print(f"\n⚠️ Scan failed ({outcome.verdict.failed} failed, {outcome.verdict.errored} errored).")
    return EXIT_FAIL
