"""systemctl wrapper functions for the system or per-user service manager."""

from subprocess import CompletedProcess

from pod_reconcile.reconcile.context import ExecutionContext
from pod_reconcile.utils import CommandError, run_command
from pod_reconcile.utils.log import get_logger

logger = get_logger(__name__)

ACTIVE_STATES = frozenset({"active", "reloading", "refreshing"})
INACTIVE_STATES = frozenset(
    {"inactive", "failed", "unknown", "activating", "deactivating", "maintenance"}
)


def _systemctl(context: ExecutionContext, *args: str, check: bool = True) -> CompletedProcess[str]:
    return run_command(
        [*context.service_manager, *args], check=check, logger=logger, **context.command_kwargs()
    )


def daemon_reload(context: ExecutionContext) -> CompletedProcess[str]:
    return _systemctl(context, "daemon-reload")


def start(context: ExecutionContext, unit: str) -> CompletedProcess[str]:
    return _systemctl(context, "start", unit)


def stop(context: ExecutionContext, unit: str) -> CompletedProcess[str]:
    return _systemctl(context, "stop", unit)


def is_active(context: ExecutionContext, unit: str) -> bool:
    """Any state word ``is-active`` prints is an answer; no state word is an error."""
    result = _systemctl(context, "is-active", unit, check=False)
    state = result.stdout.strip()
    if state in ACTIVE_STATES:
        return True
    if state in INACTIVE_STATES:
        return False
    raise CommandError(
        [*context.service_manager, "is-active", unit],
        result.returncode,
        result.stdout,
        result.stderr,
    )
