"""tools/config_fetcher.py

Remote configuration retrieval.

Every read of a tool's scan repository goes through a ConfigFetcher:

* ``fetch(org, repo, path, ref)`` -> file bytes, or ``None`` when the file does
  not exist at that ref.
* ``list_dir(org, repo, path, ref)`` -> file names in a directory, or ``None``
  when the directory does not exist.

Anything other than "not found" (auth failures, network errors, 5xx) raises
:class:`fleet_scan.domain.FetchError`. Parsing stays in ``pipeline/``; this
module only moves bytes.

Implementations:

* :class:`GitHubConfigFetcher` - GitHub contents API over ``requests``.
  The token is passed in explicitly; nothing here reads the environment.
  Each thread gets its own ``requests.Session``, so one fetcher can be shared
  by concurrent loaders.
* :class:`LocalConfigFetcher` - a directory tree laid out as
  ``<root>/<org>/<repo>/<path>`` (optionally ``<repo>@<ref>``) for offline runs
  and tests.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import quote

import requests

from fleet_scan.domain import FetchError

GITHUB_API_ROOT = "https://api.github.com"


class ConfigFetcher:
    """Interface for reading files from a tool's scan repository."""

    def fetch(self, org: str, repo: str, path: str, ref: str) -> Optional[bytes]:
        raise NotImplementedError

    def list_dir(self, org: str, repo: str, path: str, ref: str) -> Optional[List[str]]:
        raise NotImplementedError


class GitHubConfigFetcher(ConfigFetcher):
    def __init__(
        self,
        token: Optional[str],
        *,
        api_root: str = GITHUB_API_ROOT,
        timeout_seconds: float = 30,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.api_root = api_root.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._token = token
        self._session_factory = session_factory
        # requests.Session is not documented as thread-safe; policies and
        # thresholds load concurrently, and fleet mode runs tools in parallel.
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The calling thread's session, created on first use."""
        s = getattr(self._local, "session", None)
        if s is None:
            s = self._session_factory()
            if self._token:
                s.headers["Authorization"] = f"Bearer {self._token}"
            s.headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
            self._local.session = s
        return s

    def _contents_url(self, org: str, repo: str, path: str) -> str:
        clean = quote(path.strip("/"), safe="/")
        return f"{self.api_root}/repos/{org}/{repo}/contents/{clean}"

    def _get(self, url: str, *, ref: str, accept: str) -> Optional[requests.Response]:
        try:
            resp = self.session.get(
                url,
                params={"ref": ref},
                headers={"Accept": accept},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}", retryable=True) from e

        if resp.status_code == 404:
            return None
        if resp.status_code in (401, 403):
            # GitHub reports primary rate limiting as 403 with no remaining quota.
            rate_limited = resp.headers.get("X-RateLimit-Remaining") == "0"
            raise FetchError(
                f"HTTP {resp.status_code} for {url}: {resp.text[:200]!r}",
                retryable=rate_limited,
                status_code=resp.status_code,
            )
        if resp.status_code == 429 or 500 <= resp.status_code < 600:
            raise FetchError(
                f"HTTP {resp.status_code} for {url}",
                retryable=True,
                status_code=resp.status_code,
            )
        if not resp.ok:
            raise FetchError(
                f"HTTP {resp.status_code} for {url}: {resp.text[:200]!r}",
                retryable=False,
                status_code=resp.status_code,
            )
        return resp

    def fetch(self, org: str, repo: str, path: str, ref: str) -> Optional[bytes]:
        resp = self._get(self._contents_url(org, repo, path), ref=ref, accept="application/vnd.github.raw+json")
        if resp is None:
            return None
        return resp.content

    def list_dir(self, org: str, repo: str, path: str, ref: str) -> Optional[List[str]]:
        resp = self._get(self._contents_url(org, repo, path), ref=ref, accept="application/vnd.github+json")
        if resp is None:
            return None
        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError(f"Could not decode directory listing for {org}/{repo}/{path}", retryable=True) from e

        # A file path returns a single object, not a listing.
        if not isinstance(data, list):
            return None
        return [str(e["name"]) for e in data if isinstance(e, dict) and e.get("type") == "file" and e.get("name")]


class LocalConfigFetcher(ConfigFetcher):
    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _repo_dir(self, org: str, repo: str, ref: str) -> Path:
        pinned = self.root / org / f"{repo}@{ref}"
        if pinned.is_dir():
            return pinned
        return self.root / org / repo

    def _resolve(self, org: str, repo: str, path: str, ref: str) -> Path:
        repo_dir = self._repo_dir(org, repo, ref).resolve()
        p = (repo_dir / path.strip("/")).resolve()
        try:
            p.relative_to(repo_dir)
        except ValueError:
            raise FetchError(f"Path escapes repository: {path}", retryable=False) from None
        return p

    def fetch(self, org: str, repo: str, path: str, ref: str) -> Optional[bytes]:
        p = self._resolve(org, repo, path, ref)
        if not p.is_file():
            return None
        try:
            return p.read_bytes()
        except OSError as e:
            raise FetchError(f"Could not read {p}: {e}", retryable=False) from e

    def list_dir(self, org: str, repo: str, path: str, ref: str) -> Optional[List[str]]:
        p = self._resolve(org, repo, path, ref)
        if not p.is_dir():
            return None
        return sorted(child.name for child in p.iterdir() if child.is_file())
