"""
Host command runner used by the network and account agents.
"""

import shlex
import subprocess
from typing import Callable

from ..core.config import COMMAND_TIMEOUT_SEC
from ..core.errors import SnapshotError

CommandRunner = Callable[[str], str]


def run_command(command: str, timeout: float = None) -> str:
    """
    Run a host command and return its stdout.

    Raises:
        SnapshotError: command missing, timed out or exited non-zero
    """
    args = shlex.split(command)
    if not args:
        raise SnapshotError("Empty command")

    try:
        proc = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            timeout=timeout or COMMAND_TIMEOUT_SEC,
        )
    except FileNotFoundError as e:
        raise SnapshotError(f"Command not found: {args[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise SnapshotError(f"Command timed out: {command}") from e
    except OSError as e:
        raise SnapshotError(f"Command failed to start: {command}: {e}") from e

    if proc.returncode != 0:
        raise SnapshotError(f"Command exited with {proc.returncode}: {command}")

    return proc.stdout or ""
