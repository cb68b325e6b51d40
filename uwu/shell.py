"""Target shell detection and execution of the confirmed command."""
from __future__ import annotations

import logging
import os
import platform
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# Exit status a POSIX shell uses for "command not found"
SHELL_NOT_FOUND = 127


def detect_shell(environ: dict[str, str] | None = None) -> str:
    """Basename of ``$SHELL``, or ``sh`` when it is unset."""
    environ = os.environ if environ is None else environ
    shell_path = environ.get("SHELL", "")
    if not shell_path:
        return "sh"
    return Path(shell_path).name


def detect_os() -> str:
    """Lower-case OS name, e.g. ``linux`` or ``darwin``."""
    return platform.system().lower() or "unknown"


def run_command(command: str, shell: str) -> int:
    """Run ``command`` through ``shell -c`` attached to this terminal.

    Returns the command's exit code, or 127 when ``shell`` is not installed.
    """
    logger.info("Executing with %s: %s", shell, command)
    try:
        completed = subprocess.run([shell, "-c", command], check=False)
    except FileNotFoundError as exc:
        logger.error("Shell %s not found: %s", shell, exc)
        return SHELL_NOT_FOUND
    logger.info("Command exited with %d", completed.returncode)
    return completed.returncode
