"""pipeline.thresholds

Threshold documents and their merge.

Two documents live in each tool's repository:

* ``thresholds/base.yml``   - required; missing is fatal (BaseThresholdMissing)
* ``thresholds/<env>.yml``  - optional; missing means "no overrides"

The merge is field-level with override precedence: keys present in the
override replace the base value, keys only in the base survive, and nested
mappings merge recursively.

Effective score threshold, lowest to highest precedence:

  built-in default (80) < base document < environment's scoreThreshold
  (only when written in the scan descriptor) < override document
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from fleet_scan.domain import (
    DEFAULT_SCORE_THRESHOLD,
    BaseThresholdMissing,
    EffectiveThresholds,
    EnvironmentConfig,
    ThresholdParseError,
    ToolDescriptor,
)
from fleet_scan.io import write_yaml_atomic
from tools.config_fetcher import ConfigFetcher

from .core import BASE_THRESHOLDS_PATH, override_thresholds_path

SCORE_THRESHOLD_KEY = "score_threshold"


def parse_threshold_document(data: Optional[bytes], *, source: str) -> Dict[str, Any]:
    """Parse a threshold document; empty content is an empty mapping."""
    if data is None:
        return {}
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ThresholdParseError(f"{source} is not valid YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ThresholdParseError(f"{source} must be a mapping, got {type(raw).__name__}")
    return raw


def merge_thresholds(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(base)
    for key, value in override.items():
        current = out.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            out[key] = merge_thresholds(current, value)
        else:
            out[key] = value
    return out


def _score(value: Any, *, source: str) -> float:
    if isinstance(value, bool):
        raise ThresholdParseError(f"{source}: {SCORE_THRESHOLD_KEY} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ThresholdParseError(f"{source}: {SCORE_THRESHOLD_KEY} must be a number, got {value!r}") from None


def effective_thresholds(
    base: Mapping[str, Any],
    override: Mapping[str, Any],
    environment: Optional[EnvironmentConfig] = None,
) -> EffectiveThresholds:
    """Merge base + override and settle the score threshold (pure).

    Score threshold, lowest to highest precedence: built-in 80, the base
    document, the environment's scoreThreshold (only when written in the
    descriptor), the override document. With no value at any of those layers
    the result is exactly 80. A base-document value is a deliberate layer: it
    sets the tool-wide default that environments inherit.
    """
    layers: Dict[str, Any] = {SCORE_THRESHOLD_KEY: DEFAULT_SCORE_THRESHOLD}
    layers = merge_thresholds(layers, base)
    if environment is not None and environment.score_threshold_explicit:
        layers[SCORE_THRESHOLD_KEY] = environment.score_threshold
    merged = merge_thresholds(layers, override)

    score = _score(merged[SCORE_THRESHOLD_KEY], source="merged thresholds")
    return EffectiveThresholds(values=merged, score_threshold=score)


class ThresholdMerger:
    def __init__(self, fetcher: ConfigFetcher, *, org: str, ref: str) -> None:
        self.fetcher = fetcher
        self.org = org
        self.ref = ref

    def load(
        self,
        tool: ToolDescriptor,
        environment: EnvironmentConfig,
        artifact_path: Path,
    ) -> EffectiveThresholds:
        base_raw = self.fetcher.fetch(self.org, tool.repo_name, BASE_THRESHOLDS_PATH, self.ref)
        if base_raw is None:
            raise BaseThresholdMissing(
                f"{tool.name}: {BASE_THRESHOLDS_PATH} not found in {self.org}/{tool.repo_name}@{self.ref}"
            )
        base = parse_threshold_document(base_raw, source=f"{tool.name}:{BASE_THRESHOLDS_PATH}")

        override_path = override_thresholds_path(environment.name)
        override_raw = self.fetcher.fetch(self.org, tool.repo_name, override_path, self.ref)
        if override_raw is None:
            print(f"ℹ️  {tool.name}: no {override_path}, using base thresholds")
        override = parse_threshold_document(override_raw, source=f"{tool.name}:{override_path}")

        eff = effective_thresholds(base, override, environment)
        write_yaml_atomic(artifact_path, eff.to_dict())
        return EffectiveThresholds(
            values=eff.values,
            score_threshold=eff.score_threshold,
            artifact_path=Path(artifact_path),
        )
