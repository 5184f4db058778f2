"""pipeline.dispatch

Run the scanning engine once per planned target.

Continue-on-failure: a failing or erroring target is recorded in its own
ScanResult and the remaining targets still run. Every target ends up with
exactly one JSON artifact under the tool's ``results/`` directory; when the
engine did not write a parseable file, a small stub describing the outcome is
written in its place.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from fleet_scan.domain import (
    EffectiveThresholds,
    PlannedTarget,
    PolicyBundle,
    ScanModality,
    ScanResult,
    ScanStatus,
    TargetScanFailure,
)
from fleet_scan.domain.models import now_iso
from fleet_scan.io import ToolWorkPaths, write_json_atomic
from tools.engine import EngineRequest, ScanEngine


class ScanDispatcher:
    def __init__(self, engine: ScanEngine, *, max_parallel: int = 1) -> None:
        self.engine = engine
        self.max_parallel = max(1, int(max_parallel))

    def dispatch(
        self,
        *,
        modality: ScanModality,
        targets: Sequence[PlannedTarget],
        bundle: PolicyBundle,
        thresholds: EffectiveThresholds,
        paths: ToolWorkPaths,
    ) -> List[ScanResult]:
        """Scan every target; results come back in target order."""

        def _one(target: PlannedTarget) -> ScanResult:
            return self.scan_target(
                modality=modality,
                target=target,
                bundle=bundle,
                thresholds=thresholds,
                paths=paths,
            )

        if self.max_parallel > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_parallel, len(targets))) as ex:
                return list(ex.map(_one, targets))
        return [_one(t) for t in targets]

    def scan_target(
        self,
        *,
        modality: ScanModality,
        target: PlannedTarget,
        bundle: PolicyBundle,
        thresholds: EffectiveThresholds,
        paths: ToolWorkPaths,
    ) -> ScanResult:
        output_path = paths.result_file(target.address)
        req = EngineRequest(
            modality=modality,
            target=target.spec,
            policy_files=list(bundle.files),
            thresholds_file=thresholds.artifact_path or paths.thresholds_file,
            score_threshold=thresholds.score_threshold,
            output_path=output_path,
        )

        print(f"▶ {target.address}")
        started = now_iso()
        try:
            outcome = self.engine.scan(req)
        except TargetScanFailure as e:
            print(f"  ⚠️ {target.address}: {e.reason}")
            result = ScanResult(
                target=target.address,
                status=ScanStatus.ERROR,
                exit_code=e.exit_code,
                timestamp=started,
                output_path=output_path,
                error=e.reason,
            )
        except Exception as e:
            # Anything else is still a per-target error; the batch keeps going.
            print(f"  ⚠️ {target.address}: unexpected error: {e!r}")
            result = ScanResult(
                target=target.address,
                status=ScanStatus.ERROR,
                exit_code=-1,
                timestamp=started,
                output_path=output_path,
                error=repr(e),
            )
        else:
            print(f"  Command : {outcome.command_str}")
            status = ScanStatus.SUCCESS if outcome.exit_code == 0 else ScanStatus.FAILURE
            result = ScanResult(
                target=target.address,
                status=status,
                exit_code=outcome.exit_code,
                output=outcome.output,
                timestamp=started,
                output_path=output_path,
                command=outcome.command_str,
                error=None if status is ScanStatus.SUCCESS else (outcome.stderr.strip()[-500:] or None),
            )
            icon = "✅" if status is ScanStatus.SUCCESS else "❌"
            print(f"  {icon} {target.address}: exit {outcome.exit_code}")

        if result.output is None:
            write_json_atomic(output_path, result.to_dict())
        return result
