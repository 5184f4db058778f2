"""fleet_scan.domain

Domain objects that form the *contract* between pipeline stages.
"""

from __future__ import annotations

from .errors import (
    BaseThresholdMissing,
    ConfigNotFound,
    ConfigParseError,
    EnvironmentUndefined,
    FetchError,
    FleetScanError,
    InfrastructureError,
    NoPoliciesFound,
    NoTargetsResolved,
    TargetScanFailure,
    ThresholdParseError,
)
from .modality import (
    ContainerTarget,
    GithubOrgTarget,
    HostTarget,
    KubernetesTarget,
    LocalTarget,
    ScanModality,
    TargetSpec,
)
from .models import (
    DEFAULT_QUEUE,
    DEFAULT_REPO_PREFIX,
    DEFAULT_SCORE_THRESHOLD,
    EffectiveThresholds,
    EnvironmentConfig,
    PlannedTarget,
    PolicyBundle,
    RunVerdict,
    ScanConfig,
    ScanResult,
    ScanStatus,
    ToolDescriptor,
)

__all__ = [
    "BaseThresholdMissing",
    "ConfigNotFound",
    "ConfigParseError",
    "ContainerTarget",
    "DEFAULT_QUEUE",
    "DEFAULT_REPO_PREFIX",
    "DEFAULT_SCORE_THRESHOLD",
    "EffectiveThresholds",
    "EnvironmentConfig",
    "EnvironmentUndefined",
    "FetchError",
    "FleetScanError",
    "GithubOrgTarget",
    "HostTarget",
    "InfrastructureError",
    "KubernetesTarget",
    "LocalTarget",
    "NoPoliciesFound",
    "NoTargetsResolved",
    "PlannedTarget",
    "PolicyBundle",
    "RunVerdict",
    "ScanConfig",
    "ScanModality",
    "ScanResult",
    "ScanStatus",
    "TargetScanFailure",
    "TargetSpec",
    "ThresholdParseError",
    "ToolDescriptor",
]
