"""fleet_scan.domain.errors

Error taxonomy for a scan run.

Propagation rules
-----------------
* Configuration resolution errors (descriptor, policies, thresholds, targets)
  are fatal to one tool's run. They are raised before any target is scanned.
* :class:`TargetScanFailure` is per-target. The dispatcher records it in that
  target's result and keeps going; it is never raised out of a dispatch.
* :class:`InfrastructureError` (and retryable :class:`FetchError`) map to an
  exit code the scheduler is allowed to retry.
"""

from __future__ import annotations

from typing import Optional


class FleetScanError(Exception):
    """Base class for every error raised by the orchestrator."""


class ConfigNotFound(FleetScanError):
    """The scan descriptor does not exist at the requested ref."""

    def __init__(self, tool: str, path: str, ref: str) -> None:
        super().__init__(f"Scan descriptor '{path}' not found for tool '{tool}' at ref '{ref}'.")
        self.tool = tool
        self.path = path
        self.ref = ref


class ConfigParseError(FleetScanError):
    """The scan descriptor is malformed or misses required fields."""


class EnvironmentUndefined(FleetScanError):
    """The scan descriptor has no entry for the requested environment."""

    def __init__(self, tool: str, environment: str, available: Optional[list] = None) -> None:
        avail = ", ".join(sorted(available or [])) or "none"
        super().__init__(
            f"Environment '{environment}' is not defined for tool '{tool}' (available: {avail})."
        )
        self.tool = tool
        self.environment = environment


class NoPoliciesFound(FleetScanError):
    """Neither the policy directory nor the repository root yielded policy files."""


class FetchError(FleetScanError):
    """A remote fetch failed for reasons other than "file not found".

    ``retryable`` is True for transient failures (network errors, 5xx, rate
    limiting) and False for auth failures.
    """

    def __init__(self, message: str, *, retryable: bool = True, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class ThresholdParseError(FleetScanError):
    """A threshold document is not valid YAML or not a mapping."""


class BaseThresholdMissing(FleetScanError):
    """The base threshold document is absent."""


class NoTargetsResolved(FleetScanError):
    """Target expansion produced nothing to scan."""


class TargetScanFailure(FleetScanError):
    """The engine could not produce a result for one target (timeout, missing binary, OS error)."""

    def __init__(self, target: str, reason: str, *, exit_code: int = -1) -> None:
        super().__init__(f"{target}: {reason}")
        self.target = target
        self.reason = reason
        self.exit_code = exit_code


class InfrastructureError(FleetScanError):
    """Transient infrastructure failure; retryable at the scheduler layer."""
