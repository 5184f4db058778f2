# pipeline/core.py
from __future__ import annotations

from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
ENTRYPOINT = "fleet_scan_cli.py"

# Conventional paths inside each tool's scan repository.
SCAN_DESCRIPTOR_PATH = "scan-config.yml"
POLICY_DIR = "policies"
POLICY_DIR_SUFFIXES = (".mql.yaml", ".yaml", ".yml")
ROOT_POLICY_SUFFIX = ".mql.yaml"
BASE_THRESHOLDS_PATH = "thresholds/base.yml"


def override_thresholds_path(environment: str) -> str:
    return f"thresholds/{environment}.yml"
