"""pipeline.scan_config

Scan descriptor parsing and environment lookup.

A tool's repository carries ``scan-config.yml``::

  scanModality: ssh
  environments:
    production:
      scoreThreshold: 90          # optional, default 80
      queue: mondoo-scanners      # optional
      timeout: 30                 # optional, minutes
      targets:
        - host: v1.internal
          port: 22
    staging:
      targets:
        - host: v1.staging

k8s environments carry ``namespace`` and ``context``; github environments carry
``org``. snake_case spellings (``scan_modality``, ``score_threshold``) are
accepted too.

:func:`parse_scan_config` is pure (bytes in, ScanConfig out) so it can be
tested without a fetcher. :class:`ScanConfigResolver` adds the fetch and the
environment lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from fleet_scan.domain import (
    DEFAULT_QUEUE,
    DEFAULT_SCORE_THRESHOLD,
    ConfigNotFound,
    ConfigParseError,
    EnvironmentConfig,
    EnvironmentUndefined,
    ScanConfig,
    ScanModality,
    ToolDescriptor,
)
from fleet_scan.domain.modality import require_modality
from tools.config_fetcher import ConfigFetcher

from .core import SCAN_DESCRIPTOR_PATH


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return None


def _number(value: Any, *, what: str) -> float:
    # bool is a subclass of int; reject it explicitly.
    if isinstance(value, bool):
        raise ConfigParseError(f"{what} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigParseError(f"{what} must be a number, got {value!r}") from None


def _optional_str(value: Any, *, what: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ConfigParseError(f"{what} must be a string, got {type(value).__name__}")
    s = str(value).strip()
    return s or None


def _parse_environment(tool: str, name: str, raw: Any) -> EnvironmentConfig:
    where = f"{tool}: environments.{name}"
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigParseError(f"{where} must be a mapping")

    threshold_raw = _first(raw, "scoreThreshold", "score_threshold")
    explicit = threshold_raw is not None
    score = _number(threshold_raw, what=f"{where}.scoreThreshold") if explicit else float(DEFAULT_SCORE_THRESHOLD)

    targets_raw = raw.get("targets") or []
    if not isinstance(targets_raw, list):
        raise ConfigParseError(f"{where}.targets must be a list")
    targets = []
    for i, t in enumerate(targets_raw):
        if isinstance(t, str):
            # Shorthand: "- web-1" for a container name or bare host.
            t = {"name": t}
        if not isinstance(t, dict):
            raise ConfigParseError(f"{where}.targets[{i}] must be a mapping")
        targets.append(MappingProxyType(dict(t)))

    timeout_raw = raw.get("timeout")
    timeout = int(_number(timeout_raw, what=f"{where}.timeout")) if timeout_raw is not None else None

    return EnvironmentConfig(
        name=name,
        score_threshold=score,
        score_threshold_explicit=explicit,
        queue=_optional_str(raw.get("queue"), what=f"{where}.queue") or DEFAULT_QUEUE,
        targets=tuple(targets),
        namespace=_optional_str(raw.get("namespace"), what=f"{where}.namespace"),
        context=_optional_str(raw.get("context"), what=f"{where}.context"),
        org=_optional_str(raw.get("org"), what=f"{where}.org"),
        timeout_minutes=timeout,
    )


def parse_scan_config(tool: str, data: bytes) -> ScanConfig:
    """Parse a scan descriptor. Raises ConfigParseError on any invalid content."""
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"{tool}: scan descriptor is not valid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigParseError(f"{tool}: scan descriptor must be a mapping at top level")

    modality_raw = _first(raw, "scanModality", "scan_modality")
    if modality_raw is None:
        raise ConfigParseError(f"{tool}: scan descriptor is missing 'scanModality'")
    try:
        modality = require_modality(modality_raw)
    except ValueError as e:
        raise ConfigParseError(f"{tool}: {e}") from None

    envs_raw = raw.get("environments")
    if not isinstance(envs_raw, dict):
        raise ConfigParseError(f"{tool}: 'environments' must be a mapping")

    environments: Dict[str, EnvironmentConfig] = {}
    for name, env_raw in envs_raw.items():
        env_name = str(name)
        environments[env_name] = _parse_environment(tool, env_name, env_raw)

    return ScanConfig(tool=tool, scan_modality=modality, environments=MappingProxyType(environments))


def select_environment(config: ScanConfig, environment: str) -> EnvironmentConfig:
    env = config.environment(environment)
    if env is None:
        raise EnvironmentUndefined(config.tool, environment, list(config.environments.keys()))
    return env


@dataclass(frozen=True)
class ResolvedScanConfig:
    tool: ToolDescriptor
    config: ScanConfig
    environment: EnvironmentConfig

    @property
    def modality(self) -> ScanModality:
        return self.config.scan_modality


class ScanConfigResolver:
    def __init__(self, fetcher: ConfigFetcher, *, org: str, ref: str) -> None:
        self.fetcher = fetcher
        self.org = org
        self.ref = ref

    def load(self, tool: ToolDescriptor) -> ScanConfig:
        data = self.fetcher.fetch(self.org, tool.repo_name, SCAN_DESCRIPTOR_PATH, self.ref)
        if data is None:
            raise ConfigNotFound(tool.name, SCAN_DESCRIPTOR_PATH, self.ref)
        return parse_scan_config(tool.name, data)

    def resolve(self, tool: ToolDescriptor, environment: str) -> ResolvedScanConfig:
        config = self.load(tool)
        env = select_environment(config, environment)
        return ResolvedScanConfig(tool=tool, config=config, environment=env)
