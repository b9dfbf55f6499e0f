"""
Subprocess helper shared by the runtime probes, package installs and code
execution.

stdout and stderr are merged into one text stream: missing-module messages
appear on either depending on the ecosystem, and the detector only needs the
combined text.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from runtimekit.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one finished process."""

    args: List[str]
    returncode: int
    output: str
    """Combined stdout/stderr"""

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_process(
    cmd: Sequence[Union[str, Path]],
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> ProcessResult:
    """
    Run a command to completion and capture its combined output.

    Args:
        cmd: Program and arguments
        cwd: Working directory (default: current)
        env: Full environment for the child (default: inherited)
        timeout: Seconds before the child is killed (default: no limit)

    Returns:
        ProcessResult; a non-zero exit code is not an error here

    Raises:
        ExecutionError: If the program cannot be started or times out
    """
    args = [str(part) for part in cmd]
    logger.debug(f"Running: {' '.join(args)}")

    try:
        completed = subprocess.run(
            args,
            cwd=str(cwd) if cwd is not None else None,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ExecutionError(
            f"Command timed out after {timeout}s: {' '.join(args)}",
            output=_decode(e.output),
        ) from e
    except OSError as e:
        raise ExecutionError(f"Failed to start {args[0]}: {e}") from e

    return ProcessResult(
        args=args,
        returncode=completed.returncode,
        output=completed.stdout or "",
    )


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


__all__ = ["ProcessResult", "run_process"]
