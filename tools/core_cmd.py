"""tools/core_cmd.py

Command-execution helpers shared by the engine adapter and the reporting sink.

This module deliberately avoids engine-specific knowledge. It provides:

* :func:`which_or_raise` - resolve executables reliably across environments.
* :func:`run_cmd` - run subprocesses (no shell=True), bounded by a timeout,
  and capture output.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

# Conventional exit code for "killed by timeout" (matches coreutils timeout(1)).
TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class CmdResult:
    exit_code: int
    elapsed_seconds: float
    command_str: str
    stdout: str
    stderr: str
    timed_out: bool = False


def which_or_raise(bin_name: str, fallbacks: Optional[List[str]] = None) -> str:
    """Locate an executable and return its absolute path."""
    found = shutil.which(bin_name)
    if found:
        return found

    for candidate in fallbacks or []:
        p = Path(candidate)
        if p.exists() and os.access(str(p), os.X_OK):
            return str(p)

    raise FileNotFoundError(
        f"Executable '{bin_name}' not found on PATH.\n"
        f"Install it and ensure it's available to this Python process.\n"
        f"Tried fallbacks: {fallbacks or []}"
    )


def _text(v) -> str:
    if v is None:
        return ""
    if isinstance(v, bytes):
        return v.decode("utf-8", errors="replace")
    return str(v)


def run_cmd(
    cmd: List[str],
    *,
    cwd: Optional[Path] = None,
    timeout_seconds: float = 0,
    env: Optional[Dict[str, str]] = None,
) -> CmdResult:
    """Run a subprocess and capture stdout/stderr (no ``shell=True``).

    Never raises on non-zero exit codes or timeouts; a timeout is reported as
    exit code 124 with ``timed_out=True``. Execution errors (binary not found,
    permission denied) propagate as OSError.
    """
    t0 = time.time()

    # If env is provided, merge it onto the current process environment.
    env2 = None
    if env is not None:
        env2 = os.environ.copy()
        env2.update(env)

    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            text=True,
            capture_output=True,
            timeout=timeout_seconds if timeout_seconds and timeout_seconds > 0 else None,
            env=env2,
        )
    except subprocess.TimeoutExpired as e:
        return CmdResult(
            exit_code=TIMEOUT_EXIT_CODE,
            elapsed_seconds=time.time() - t0,
            command_str=" ".join(cmd),
            stdout=_text(e.stdout),
            stderr=_text(e.stderr),
            timed_out=True,
        )

    return CmdResult(
        exit_code=proc.returncode,
        elapsed_seconds=time.time() - t0,
        command_str=" ".join(cmd),
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
