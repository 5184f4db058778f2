"""pipeline.policies

Policy bundle loading.

Lookup order
------------
1. ``policies/`` in the tool's repository: every ``*.mql.yaml``, ``*.yaml`` or
   ``*.yml`` file.
2. If that directory does not exist or holds no policy files, the repository
   root: only files ending in ``.mql.yaml`` (the root also holds the scan
   descriptor and other YAML that must not be treated as policy).

Matching files are downloaded into the tool's run-scoped ``policies/`` folder.
Nothing is cached across runs; policy content may differ between refs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from fleet_scan.domain import FetchError, NoPoliciesFound, PolicyBundle, ToolDescriptor
from fleet_scan.io import write_bytes_atomic
from tools.config_fetcher import ConfigFetcher

from .core import POLICY_DIR, POLICY_DIR_SUFFIXES, ROOT_POLICY_SUFFIX


def select_policy_files(names: Iterable[str], suffixes: Sequence[str]) -> List[str]:
    """Filter names by suffix; unique by file name, sorted for a stable order."""
    picked = {n for n in names if n and any(n.endswith(s) for s in suffixes)}
    return sorted(picked)


class PolicyBundleLoader:
    def __init__(self, fetcher: ConfigFetcher, *, org: str, ref: str) -> None:
        self.fetcher = fetcher
        self.org = org
        self.ref = ref

    def discover(self, tool: ToolDescriptor) -> Tuple[str, List[str]]:
        """Return (source_dir, file names). source_dir is "" for the repo root."""
        listing = self.fetcher.list_dir(self.org, tool.repo_name, POLICY_DIR, self.ref)
        names = select_policy_files(listing or [], POLICY_DIR_SUFFIXES)
        if names:
            return POLICY_DIR, names

        print(f"ℹ️  {tool.name}: no policies under {POLICY_DIR}/, falling back to repository root")
        root_listing = self.fetcher.list_dir(self.org, tool.repo_name, "", self.ref)
        names = select_policy_files(root_listing or [], (ROOT_POLICY_SUFFIX,))
        if names:
            return "", names

        raise NoPoliciesFound(
            f"{tool.name}: no policy files in {POLICY_DIR}/ or *{ROOT_POLICY_SUFFIX} at the repository root "
            f"({self.org}/{tool.repo_name}@{self.ref})"
        )

    def load(self, tool: ToolDescriptor, dest_dir: Path) -> PolicyBundle:
        source_dir, names = self.discover(tool)

        files: List[Path] = []
        for name in names:
            remote_path = f"{source_dir}/{name}" if source_dir else name
            data = self.fetcher.fetch(self.org, tool.repo_name, remote_path, self.ref)
            if data is None:
                raise FetchError(
                    f"{tool.name}: policy file {remote_path} was listed but could not be downloaded",
                    retryable=True,
                )
            local = Path(dest_dir) / name
            write_bytes_atomic(local, data)
            files.append(local)

        print(f"📜 {tool.name}: loaded {len(files)} policy file(s) from {source_dir or 'repository root'}")
        return PolicyBundle(tool=tool.name, ref=self.ref, files=tuple(files), source_dir=source_dir)
