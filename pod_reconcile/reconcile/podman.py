"""Podman CLI wrapper functions.

Every call runs inside an ``ExecutionContext`` so the same function drives
the system-wide (root) podman and a rootless per-user podman.
"""

from collections.abc import Mapping
from pathlib import Path
from subprocess import CompletedProcess

from pod_reconcile.reconcile.context import ExecutionContext
from pod_reconcile.reconcile.flags import FlagValue, build_flag_args
from pod_reconcile.utils import CommandError, run_command
from pod_reconcile.utils.log import get_logger

logger = get_logger(__name__)


def _podman(context: ExecutionContext, *args: str, **kwargs: object) -> CompletedProcess[str]:
    return run_command(["podman", *args], logger=logger, **{**context.command_kwargs(), **kwargs})


def pod_exists(context: ExecutionContext, pod_name: str) -> bool:
    """``podman pod exists`` answers 0 (exists) or 1 (missing); anything else is an error."""
    result = _podman(context, "pod", "exists", pod_name, check=False)
    if result.returncode == 0:
        return True
    if result.returncode == 1:
        return False
    raise CommandError(
        ["podman", "pod", "exists", pod_name], result.returncode, result.stdout, result.stderr
    )


def create_pod(
    context: ExecutionContext, pod_name: str, flags: Mapping[str, FlagValue]
) -> CompletedProcess[str]:
    return _podman(context, "pod", "create", "--name", pod_name, *build_flag_args(flags))


def play_kube(
    context: ExecutionContext, manifest_path: Path, replace: bool = False
) -> CompletedProcess[str]:
    args = ["play", "kube"]
    if replace:
        args.append("--replace")
    return _podman(context, *args, str(manifest_path))


def teardown_kube(context: ExecutionContext, manifest_path: Path) -> CompletedProcess[str]:
    return _podman(context, "play", "kube", "--down", str(manifest_path))


def remove_pod(context: ExecutionContext, pod_name: str) -> CompletedProcess[str]:
    return _podman(context, "pod", "rm", "--force", pod_name)


def generate_systemd(
    context: ExecutionContext, pod_name: str, output_dir: Path
) -> CompletedProcess[str]:
    """Write ``pod-<pod>.service`` and one ``container-<name>.service`` per container."""
    return _podman(context, "generate", "systemd", "--files", "--name", pod_name, cwd=output_dir)
