"""pipeline.aggregate

Fold per-target results into one verdict per (tool, environment) and render
the summaries operators read.

The verdict is PASS only when every target succeeded. Counts are always
reported in full so partial failure is visible, not just the boolean.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from fleet_scan.domain import RunVerdict, ScanResult, ScanStatus
from fleet_scan.io import read_json_if_exists
from tools.engine import format_threshold
from tools.reporting import STYLE_ERROR, STYLE_SUCCESS, ReportSink

logger = logging.getLogger(__name__)

_STATUS_ICON = {
    ScanStatus.SUCCESS: "✅",
    ScanStatus.FAILURE: "❌",
    ScanStatus.ERROR: "⚠️",
}


def aggregate_results(
    *,
    tool: str,
    environment: str,
    results: Sequence[ScanResult],
    score_threshold: float,
) -> RunVerdict:
    succeeded = sum(1 for r in results if r.status is ScanStatus.SUCCESS)
    failed = sum(1 for r in results if r.status is ScanStatus.FAILURE)
    errored = sum(1 for r in results if r.status is ScanStatus.ERROR)
    return RunVerdict(
        tool=tool,
        environment=environment,
        # An empty result set is never a pass.
        passed=bool(results) and succeeded == len(results),
        total=len(results),
        succeeded=succeeded,
        failed=failed,
        errored=errored,
        score_threshold=score_threshold,
        results=tuple(results),
    )


def render_summary(verdict: RunVerdict) -> str:
    lines = [
        f"{verdict.label}: {verdict.tool} ({verdict.environment})",
        f"score threshold: {format_threshold(verdict.score_threshold)}",
        (
            f"targets: {verdict.total} total, {verdict.succeeded} passed, "
            f"{verdict.failed} failed, {verdict.errored} errored"
        ),
    ]
    for r in verdict.results:
        detail = f" ({r.error})" if r.status is ScanStatus.ERROR and r.error else ""
        lines.append(f"  {_STATUS_ICON[r.status]} {r.target}: {r.status.value} (exit {r.exit_code}){detail}")
    return "\n".join(lines)


def report_verdict(verdict: RunVerdict, sink: ReportSink, *, context: str, artifacts_glob: str) -> None:
    """Send the notification and upload artifacts; failures here never change the verdict."""
    style = STYLE_SUCCESS if verdict.passed else STYLE_ERROR
    try:
        sink.notify(context, style, render_summary(verdict))
    except Exception as e:
        logger.warning("Notification for %s failed: %s", context, e)
    try:
        sink.upload_artifacts(artifacts_glob)
    except Exception as e:
        logger.warning("Artifact upload for %s failed: %s", context, e)


def load_verdicts(paths: Iterable[Path]) -> List[Dict[str, Any]]:
    """Read verdict.json files written by tool runs; unreadable files are skipped."""
    out: List[Dict[str, Any]] = []
    for p in paths:
        data = read_json_if_exists(p)
        if not isinstance(data, dict):
            logger.warning("Skipping unreadable verdict file: %s", p)
            continue
        out.append(data)
    return out


def render_fleet_summary(verdicts: Sequence[Dict[str, Any]]) -> str:
    if not verdicts:
        return "No tool verdicts found."
    passed = sum(1 for v in verdicts if v.get("passed"))
    lines = [f"Fleet: {len(verdicts)} tool(s), {passed} passed, {len(verdicts) - passed} failed"]
    for v in sorted(verdicts, key=lambda x: str(x.get("tool"))):
        icon = "✅" if v.get("passed") else "❌"
        lines.append(
            f"  {icon} {v.get('tool')} ({v.get('environment')}): "
            f"{v.get('succeeded', 0)}/{v.get('total', 0)} targets passed"
        )
    return "\n".join(lines)
