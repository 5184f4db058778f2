from __future__ import annotations

from cli.common import require_environment, resolve_roster
from pipeline.pipeline import FleetScanPipeline
from pipeline.settings import EXIT_FAIL, EXIT_PASS


def run_fleet_mode(args, pipeline: FleetScanPipeline) -> int:
    environment = require_environment(args)
    roster = resolve_roster(args)

    print(f"\n🚀 Fleet run: {len(roster)} tool(s) for {environment}")
    print(f"  Parallel: {pipeline.settings.max_parallel_tools} tool(s)")

    report = pipeline.run_fleet(roster, environment)

    print("\n----------------------------------------")
    for tool, outcome in sorted(report.outcomes.items()):
        icon = "✅" if outcome.verdict.passed else "❌"
        print(f"{icon} {tool}: {outcome.verdict.label}")
    for tool, err in sorted(report.errors.items()):
        print(f"⚠️ {tool}: {err}")
    for tool, reason in sorted(report.skipped.items()):
        print(f"ℹ️  {tool}: skipped ({reason})")
    for tool in report.cancelled:
        print(f"🛑 {tool}: cancelled (not started)")

    print("\n" + pipeline.summarize(environment))
    if report.passed:
        print("\n✅ Fleet passed.")
        return EXIT_PASS
    print("\n⚠️ Fleet finished with failures.")
    return EXIT_FAIL
