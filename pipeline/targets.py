"""pipeline.targets

Expand an environment's declared targets into concrete scan targets.

Rules
-----
* A manual override string is the only target; the declared list is ignored.
* ssh / winrm: one target per ``{host, port}`` entry, addressed ``host:port``.
* docker: one target per ``container`` entry.
* k8s / github / api: exactly one target taken from the environment
  (namespace + context, org, or ``local``); the declared list is ignored.
* Declared targets that map to the same result file are kept once (first
  wins), so every target keeps its own artifact.

The result is never empty; an empty expansion raises NoTargetsResolved.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from fleet_scan.domain import (
    ContainerTarget,
    EnvironmentConfig,
    GithubOrgTarget,
    HostTarget,
    KubernetesTarget,
    LocalTarget,
    NoTargetsResolved,
    PlannedTarget,
    ScanModality,
    TargetSpec,
)
from fleet_scan.domain.modality import DEFAULT_PORTS, unhandled_modality
from fleet_scan.io import sanitize_target_name

logger = logging.getLogger(__name__)

DEFAULT_K8S_NAMESPACE = "default"


def _port(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise NoTargetsResolved(f"Invalid port {value!r}")
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise NoTargetsResolved(f"Invalid port {value!r}") from None
    if not 0 < port < 65536:
        raise NoTargetsResolved(f"Port out of range: {port}")
    return port


def _host_target(entry: Mapping[str, Any], modality: ScanModality) -> Optional[HostTarget]:
    host = str(entry.get("host") or entry.get("name") or "").strip()
    if not host:
        return None
    return HostTarget(host=host, port=_port(entry.get("port"), DEFAULT_PORTS[modality]))


def parse_manual_target(modality: ScanModality, raw: str, env: EnvironmentConfig) -> TargetSpec:
    """Turn a manual override string into the descriptor the engine needs."""
    value = raw.strip()
    if modality in (ScanModality.SSH, ScanModality.WINRM):
        host, sep, port = value.rpartition(":")
        # rpartition leaves host empty when there is no colon.
        if not sep or not host:
            return HostTarget(host=value, port=DEFAULT_PORTS[modality])
        return HostTarget(host=host, port=_port(port, DEFAULT_PORTS[modality]))
    if modality is ScanModality.DOCKER:
        return ContainerTarget(container=value)
    if modality is ScanModality.K8S:
        return KubernetesTarget(namespace=value, context=env.context or "")
    if modality is ScanModality.GITHUB:
        return GithubOrgTarget(org=value)
    if modality is ScanModality.API:
        return LocalTarget()
    unhandled_modality(modality)


def _unique_by_artifact(targets: List[PlannedTarget]) -> List[PlannedTarget]:
    """Drop targets whose result file would collide with an earlier one; first wins."""
    seen = set()
    out: List[PlannedTarget] = []
    for t in targets:
        key = sanitize_target_name(t.address)
        if key in seen:
            logger.warning("Ignoring duplicate target %s (result file %s.json already taken)", t.address, key)
            continue
        seen.add(key)
        out.append(t)
    return out


def _declared_targets(modality: ScanModality, env: EnvironmentConfig) -> List[PlannedTarget]:
    if modality in (ScanModality.SSH, ScanModality.WINRM):
        out = []
        for entry in env.targets:
            t = _host_target(entry, modality)
            if t is not None:
                out.append(PlannedTarget(address=t.address, spec=t))
        return out
    if modality is ScanModality.DOCKER:
        out = []
        for entry in env.targets:
            name = str(entry.get("container") or entry.get("name") or "").strip()
            if name:
                t = ContainerTarget(container=name)
                out.append(PlannedTarget(address=t.address, spec=t))
        return out
    if modality is ScanModality.K8S:
        t = KubernetesTarget(namespace=env.namespace or DEFAULT_K8S_NAMESPACE, context=env.context or "")
        return [PlannedTarget(address=t.address, spec=t)]
    if modality is ScanModality.GITHUB:
        if not env.org:
            return []
        t = GithubOrgTarget(org=env.org)
        return [PlannedTarget(address=t.address, spec=t)]
    if modality is ScanModality.API:
        t = LocalTarget()
        return [PlannedTarget(address=t.address, spec=t)]
    unhandled_modality(modality)


def plan_targets(
    env: EnvironmentConfig,
    modality: ScanModality,
    manual_target: Optional[str] = None,
) -> List[PlannedTarget]:
    if manual_target is not None and manual_target.strip():
        spec = parse_manual_target(modality, manual_target, env)
        return [PlannedTarget(address=manual_target, spec=spec)]

    targets = _unique_by_artifact(_declared_targets(modality, env))
    if not targets:
        raise NoTargetsResolved(
            f"No {modality.value} targets declared for environment '{env.name}'"
        )
    return targets
