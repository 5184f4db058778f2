"""tools/reporting.py

Reporting sinks for scan verdicts.

A sink does two things, both best-effort from the caller's point of view:

* ``notify(context, style, message)`` - one pass/fail notification per tool,
  keyed by a stable context (``scan-<tool>``) so re-runs replace rather than
  append.
* ``upload_artifacts(pattern)`` - publish the per-target result files.

:class:`BuildkiteSink` shells out to ``buildkite-agent``; :class:`ConsoleSink`
prints. Use :func:`default_sink` to pick one from the environment.
"""

from __future__ import annotations

import os
from typing import Callable, List, Mapping, Optional

from .core_cmd import CmdResult, run_cmd

STYLE_SUCCESS = "success"
STYLE_ERROR = "error"


class ReportingError(RuntimeError):
    pass


class ReportSink:
    def notify(self, context: str, style: str, message: str) -> None:
        raise NotImplementedError

    def upload_artifacts(self, pattern: str) -> None:
        raise NotImplementedError


class ConsoleSink(ReportSink):
    def notify(self, context: str, style: str, message: str) -> None:
        icon = "✅" if style == STYLE_SUCCESS else "❌"
        print(f"\n{icon} [{context}]")
        print(message)

    def upload_artifacts(self, pattern: str) -> None:
        print(f"📎 Artifacts: {pattern}")


class BuildkiteSink(ReportSink):
    def __init__(
        self,
        agent_bin: str = "buildkite-agent",
        *,
        timeout_seconds: float = 120,
        runner: Callable[..., CmdResult] = run_cmd,
    ) -> None:
        self.agent_bin = agent_bin
        self.timeout_seconds = timeout_seconds
        self._runner = runner

    def _run(self, cmd: List[str]) -> None:
        try:
            res = self._runner(cmd, timeout_seconds=self.timeout_seconds)
        except OSError as e:
            raise ReportingError(f"{cmd[0]} could not be executed: {e}") from e
        if res.exit_code != 0:
            raise ReportingError(f"{res.command_str} exited {res.exit_code}: {res.stderr.strip()[:200]}")

    def notify(self, context: str, style: str, message: str) -> None:
        self._run([self.agent_bin, "annotate", "--context", context, "--style", style, message])

    def upload_artifacts(self, pattern: str) -> None:
        self._run([self.agent_bin, "artifact", "upload", pattern])


def default_sink(environ: Optional[Mapping[str, str]] = None) -> ReportSink:
    """Buildkite when running inside a Buildkite job, console otherwise."""
    env = os.environ if environ is None else environ
    if str(env.get("BUILDKITE", "")).lower() == "true":
        return BuildkiteSink()
    return ConsoleSink()
