import logging
import subprocess
from collections.abc import Sequence
from typing import Any

from .log import colorize


class CommandError(RuntimeError):
    """An external command exited with an unexpected status."""

    def __init__(self, args: Sequence[str], returncode: int, stdout: str, stderr: str):
        self.command = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command failed ({returncode}): {' '.join(self.command)}\n"
            f"stdout: {stdout.strip()}\n"
            f"stderr: {stderr.strip()}"
        )


def run_command(
    args: Sequence[str],
    check: bool = True,
    logger: logging.Logger | None = logging.getLogger(__name__),
    silent: bool = False,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Run a command, capturing its output as text.

    Extra keyword arguments (``env``, ``cwd``, ``user``, ``group``...) are
    handed to ``subprocess.run`` unchanged.
    """
    result = subprocess.run(args=list(args), capture_output=True, text=True, check=False, **kwargs)
    msg = f"Running command {colorize(' '.join(args), 'blue')} (exit {result.returncode}):"
    if not silent and result.stdout:
        msg = msg + "\nSTDOUT:\n" + colorize(result.stdout.strip(), "green")
    if not silent and result.stderr:
        msg = msg + "\nSTDERR:\n" + colorize(result.stderr.strip(), "red")
    if logger:
        logger.debug(msg)
    if check and result.returncode != 0:
        raise CommandError(args, result.returncode, result.stdout or "", result.stderr or "")

    return result
