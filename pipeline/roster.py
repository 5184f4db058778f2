"""pipeline.roster

The static list of tools a fleet run covers.

The built-in roster can be replaced with a YAML file, either a plain list or a
mapping with a ``tools`` key::

  tools:
    - vault
    - consul
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

import yaml

DEFAULT_ROSTER: List[str] = [
    "vault",
    "consul",
    "nomad",
    "grafana",
    "jenkins",
    "artifactory",
    "keycloak",
    "github",
]


def normalize_roster(names) -> List[str]:
    """Strip, drop empties, de-duplicate while keeping first-seen order."""
    seen = set()
    out: List[str] = []
    for n in names or []:
        s = str(n).strip()
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out


def load_roster(path: Union[str, Path]) -> List[str]:
    p = Path(path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"Roster file not found: {p}")
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Roster is not valid YAML: {p}: {e}") from e
    if isinstance(raw, dict):
        raw = raw.get("tools")
    if not isinstance(raw, list):
        raise ValueError(f"Roster must be a list of tool names (or a mapping with 'tools'): {p}")
    return normalize_roster(raw)
