"""fleet_scan.domain.modality

Scan modalities and their per-variant target descriptors.

Each modality addresses targets differently:

* ssh / winrm -> :class:`HostTarget` (host + port), one per declared entry
* docker      -> :class:`ContainerTarget`, one per declared container
* k8s         -> :class:`KubernetesTarget` (namespace + context), singleton
* github      -> :class:`GithubOrgTarget`, singleton
* api         -> :class:`LocalTarget`, singleton

Code that branches on modality should go through :func:`require_modality`
and end every if/elif chain with :func:`unhandled_modality` so that adding an
enum member fails loudly instead of silently falling through.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, Union


class ScanModality(str, Enum):
    SSH = "ssh"
    WINRM = "winrm"
    DOCKER = "docker"
    K8S = "k8s"
    GITHUB = "github"
    API = "api"

    @property
    def is_singleton(self) -> bool:
        return self in (ScanModality.K8S, ScanModality.GITHUB, ScanModality.API)


SUPPORTED_MODALITIES = tuple(m.value for m in ScanModality)

DEFAULT_PORTS = {
    ScanModality.SSH: 22,
    ScanModality.WINRM: 5985,
}


def require_modality(raw: object) -> ScanModality:
    """Parse a modality string; raises ValueError for unknown values."""
    value = str(raw or "").strip().lower()
    try:
        return ScanModality(value)
    except ValueError:
        raise ValueError(
            f"Unknown scan modality {raw!r}. Valid: {', '.join(SUPPORTED_MODALITIES)}"
        ) from None


def unhandled_modality(modality: object) -> NoReturn:
    raise AssertionError(f"Unhandled scan modality: {modality!r}")


@dataclass(frozen=True)
class HostTarget:
    host: str
    port: int

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ContainerTarget:
    container: str

    @property
    def address(self) -> str:
        return self.container


@dataclass(frozen=True)
class KubernetesTarget:
    namespace: str
    context: str

    @property
    def address(self) -> str:
        return f"{self.context}/{self.namespace}" if self.context else self.namespace


@dataclass(frozen=True)
class GithubOrgTarget:
    org: str

    @property
    def address(self) -> str:
        return self.org


@dataclass(frozen=True)
class LocalTarget:
    @property
    def address(self) -> str:
        return "local"


TargetSpec = Union[HostTarget, ContainerTarget, KubernetesTarget, GithubOrgTarget, LocalTarget]
