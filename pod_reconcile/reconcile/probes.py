"""Read-only queries of observed state.

Nothing is cached: every guard asks again right before its action runs, so
changes made earlier in the same pass are always visible.
"""

from pathlib import Path

from pod_reconcile.reconcile import podman, systemd
from pod_reconcile.reconcile.context import ExecutionContext
from pod_reconcile.reconcile.errors import CommandError, ProbeError
from pod_reconcile.utils.log import get_logger

logger = get_logger(__name__)


class StateProber:
    def __init__(self, context: ExecutionContext):
        self.context = context

    def pod_exists(self, pod_name: str) -> bool:
        try:
            exists = podman.pod_exists(self.context, pod_name)
        except (CommandError, OSError) as e:
            raise ProbeError(f"pod exists {pod_name}", e) from e
        logger.debug(f"Pod {pod_name} exists: {exists}")
        return exists

    def service_active(self, unit: str) -> bool:
        try:
            active = systemd.is_active(self.context, unit)
        except (CommandError, OSError) as e:
            raise ProbeError(f"is-active {unit}", e) from e
        logger.debug(f"Unit {unit} active: {active}")
        return active

    def file_matches(self, path: Path, content: bytes) -> bool:
        """True when ``path`` exists and holds exactly ``content``."""
        try:
            return path.read_bytes() == content
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ProbeError(f"read {path}", e) from e

    def file_exists(self, path: Path) -> bool:
        try:
            path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            raise ProbeError(f"stat {path}", e) from e
        return True
