"""tools/engine.py

Adapter for the external scanning engine (``cnspec`` by default).

The engine is opaque: we hand it a target descriptor, the policy bundle, the
merged threshold artifact and a score threshold, and it writes a structured
JSON result and exits 0 (passed) or non-zero (failed).

Command shape per modality::

  ssh     cnspec scan ssh <host> --port <port>
  winrm   cnspec scan winrm Administrator@<host>
  docker  cnspec scan docker container <name>
  k8s     cnspec scan k8s --context <ctx> --namespace <ns>
  github  cnspec scan github org <org>
  api     cnspec scan local

followed by the flags every modality shares::

  --policy-bundle <file> (one per policy file)
  --config <thresholds.yml>
  --score-threshold <n>
  --output json --output-target <result.json>
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from fleet_scan.domain import (
    ContainerTarget,
    GithubOrgTarget,
    HostTarget,
    KubernetesTarget,
    LocalTarget,
    ScanModality,
    TargetScanFailure,
    TargetSpec,
)
from fleet_scan.domain.modality import unhandled_modality

from .core_cmd import TIMEOUT_EXIT_CODE, CmdResult, run_cmd, which_or_raise

DEFAULT_ENGINE = "cnspec"
ENGINE_FALLBACKS = ["/usr/local/bin/cnspec", "/opt/homebrew/bin/cnspec"]

# WinRM scans always log in with the built-in administrative account.
WINRM_ADMIN_ACCOUNT = "Administrator"


@dataclass(frozen=True)
class EngineRequest:
    modality: ScanModality
    target: TargetSpec
    policy_files: Sequence[Path]
    thresholds_file: Path
    score_threshold: float
    output_path: Path


@dataclass(frozen=True)
class EngineOutcome:
    exit_code: int
    command_str: str
    output: Optional[Any]
    elapsed_seconds: float
    stderr: str = ""


def _expect(target: TargetSpec, kind: type, modality: ScanModality):
    if not isinstance(target, kind):
        raise TypeError(f"{modality.value} scans need a {kind.__name__}, got {type(target).__name__}")
    return target


def target_args(modality: ScanModality, target: TargetSpec) -> List[str]:
    """Return the modality sub-command and addressing arguments."""
    if modality is ScanModality.SSH:
        t = _expect(target, HostTarget, modality)
        return ["ssh", t.host, "--port", str(t.port)]
    if modality is ScanModality.WINRM:
        t = _expect(target, HostTarget, modality)
        return ["winrm", f"{WINRM_ADMIN_ACCOUNT}@{t.host}"]
    if modality is ScanModality.DOCKER:
        t = _expect(target, ContainerTarget, modality)
        return ["docker", "container", t.container]
    if modality is ScanModality.K8S:
        t = _expect(target, KubernetesTarget, modality)
        # Without a context the engine uses the current kubeconfig context.
        args = ["k8s"]
        if t.context:
            args += ["--context", t.context]
        return args + ["--namespace", t.namespace]
    if modality is ScanModality.GITHUB:
        t = _expect(target, GithubOrgTarget, modality)
        return ["github", "org", t.org]
    if modality is ScanModality.API:
        _expect(target, LocalTarget, modality)
        return ["local"]
    unhandled_modality(modality)


def format_threshold(value: float) -> str:
    f = float(value)
    return str(int(f)) if f.is_integer() else str(f)


def build_engine_command(engine_bin: str, req: EngineRequest) -> List[str]:
    cmd: List[str] = [engine_bin, "scan"]
    cmd += target_args(req.modality, req.target)
    for policy in req.policy_files:
        cmd += ["--policy-bundle", str(policy)]
    cmd += ["--config", str(req.thresholds_file)]
    cmd += ["--score-threshold", format_threshold(req.score_threshold)]
    cmd += ["--output", "json", "--output-target", str(req.output_path)]
    return cmd


def read_engine_output(path: Path) -> Optional[Any]:
    """Best-effort parse of the engine's JSON result file."""
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


class ScanEngine:
    """Runs the engine for one target at a time.

    ``runner`` is injectable so tests can stand in for the real binary.
    """

    def __init__(
        self,
        binary: str = DEFAULT_ENGINE,
        *,
        timeout_seconds: float = 1800,
        runner: Callable[..., CmdResult] = run_cmd,
        resolve_binary: bool = True,
    ) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self._runner = runner
        self._resolve_binary = resolve_binary

    def _engine_bin(self, target: str) -> str:
        if not self._resolve_binary:
            return self.binary
        try:
            return which_or_raise(self.binary, ENGINE_FALLBACKS)
        except FileNotFoundError as e:
            raise TargetScanFailure(target, str(e).splitlines()[0], exit_code=127) from e

    def scan(self, req: EngineRequest) -> EngineOutcome:
        """Run one scan. Raises TargetScanFailure when no verdict could be produced."""
        address = req.target.address
        cmd = build_engine_command(self._engine_bin(address), req)
        req.output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            res = self._runner(cmd, timeout_seconds=self.timeout_seconds)
        except OSError as e:
            raise TargetScanFailure(address, f"engine could not be executed: {e}", exit_code=126) from e

        if res.timed_out:
            raise TargetScanFailure(
                address, f"engine timed out after {self.timeout_seconds}s", exit_code=TIMEOUT_EXIT_CODE
            )

        return EngineOutcome(
            exit_code=int(res.exit_code),
            command_str=res.command_str,
            output=read_engine_output(req.output_path),
            elapsed_seconds=res.elapsed_seconds,
            stderr=res.stderr,
        )
