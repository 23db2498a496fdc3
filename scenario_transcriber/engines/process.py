"""
Subprocess helpers for the external audio engines.

Every engine call goes through :func:`run_process`, which waits for the child
to exit and reports the outcome as a :class:`ProcessResult` instead of raising,
so callers can treat a non-zero exit, a timeout and a failed spawn the same way.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one external process invocation."""

    args: List[str]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def describe(self) -> str:
        """Short diagnostic used in log lines."""
        if self.timed_out:
            return f"timed out after {self.duration:.1f}s"
        if self.returncode is None:
            return f"could not be started: {self.stderr.strip()}"
        return f"exited with code {self.returncode}: {self.stderr.strip()}"


def engine_env() -> Dict[str, str]:
    """Environment for engine subprocesses (UTF-8 locale, common bin dirs on PATH)."""
    env = dict(os.environ)
    env["PATH"] = f"/usr/bin:/bin:/usr/local/bin:{os.environ.get('PATH', '')}"
    env["LANG"] = os.environ.get("LANG") or "en_US.UTF-8"
    env["LC_ALL"] = os.environ.get("LC_ALL") or "en_US.UTF-8"
    env["PYTHONUTF8"] = "1"
    return env


def run_process(args: List[str], timeout: Optional[float] = None) -> ProcessResult:
    """
    Run an external command to completion and capture its output.

    Args:
        args: Command line, executable first
        timeout: Seconds to wait before killing the child (None waits forever)

    Returns:
        ProcessResult; returncode is None when the executable could not be spawned
    """
    start_time = time.time()
    try:
        proc = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            env=engine_env(),
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
        return ProcessResult(
            args=args, returncode=None, stderr=stderr, timed_out=True, duration=time.time() - start_time
        )
    except OSError as e:
        logger.error(f"Failed to spawn {args[0]}: {e}")
        return ProcessResult(args=args, returncode=None, stderr=str(e), duration=time.time() - start_time)

    return ProcessResult(
        args=args,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
        duration=time.time() - start_time,
    )
