"""Execution context resolution.

A convergence pass runs every command either against the system-wide
service manager or against the per-user instance of one provisioned user.
The difference is captured once, up front, in an ``ExecutionContext`` that
is handed to every command-issuing function.
"""

import os
import pwd
import shutil
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pod_reconcile.reconcile.errors import DependencyError
from pod_reconcile.reconcile.paths import (
    SYSTEM_MANIFEST_DIR,
    SYSTEM_UNIT_DIR,
    get_runtime_dir,
    get_user_manifest_dir,
    get_user_unit_dir,
)
from pod_reconcile.reconcile.types import Mode, Owner
from pod_reconcile.utils.log import get_logger

if TYPE_CHECKING:
    from pod_reconcile.reconcile.actions import Action

logger = get_logger(__name__)

REQUIRED_EXECUTABLES = ("podman", "systemctl")


@dataclass(frozen=True)
class ExecutionContext:
    mode: Mode
    service_manager: tuple[str, ...]
    unit_dir: Path
    manifest_dir: Path
    environment: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    working_directory: Path | None = None
    user: str | None = None
    owner: Owner | None = None

    @property
    def key(self) -> tuple[Mode, str | None]:
        return (self.mode, self.user)

    def __str__(self) -> str:
        return "system" if self.mode is Mode.SYSTEM else f"user:{self.user}"

    def command_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``subprocess.run`` that place a command in this context."""
        kwargs: dict[str, Any] = {}
        if self.environment:
            kwargs["env"] = {**os.environ, **self.environment}
        if self.working_directory is not None:
            kwargs["cwd"] = self.working_directory
        if self.owner is not None and os.geteuid() != self.owner.uid:
            kwargs["user"] = self.owner.uid
            kwargs["group"] = self.owner.gid
        return kwargs


def system_context(manifest_dir: Path | None = None) -> ExecutionContext:
    return ExecutionContext(
        mode=Mode.SYSTEM,
        service_manager=("systemctl",),
        unit_dir=SYSTEM_UNIT_DIR,
        manifest_dir=manifest_dir or SYSTEM_MANIFEST_DIR,
    )


def user_context(user: str, manifest_dir: Path | None = None) -> ExecutionContext:
    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        raise DependencyError(
            f"User '{user}' does not exist. "
            "Create the account (with a home directory and lingering enabled) first."
        )

    home = Path(entry.pw_dir)
    runtime_dir = get_runtime_dir(entry.pw_uid)
    return ExecutionContext(
        mode=Mode.USER,
        service_manager=("systemctl", "--user"),
        unit_dir=get_user_unit_dir(home),
        manifest_dir=manifest_dir or get_user_manifest_dir(home),
        environment=MappingProxyType(
            {
                "HOME": str(home),
                "XDG_RUNTIME_DIR": str(runtime_dir),
                "DBUS_SESSION_BUS_ADDRESS": f"unix:path={runtime_dir}/bus",
            }
        ),
        working_directory=home,
        user=user,
        owner=Owner(uid=entry.pw_uid, gid=entry.pw_gid),
    )


def resolve_context(user: str | None = None, manifest_dir: Path | None = None) -> ExecutionContext:
    context = user_context(user, manifest_dir) if user else system_context(manifest_dir)
    logger.debug(f"Resolved execution context {context}: unit dir {context.unit_dir}")
    return context


def check_dependencies(executables: Iterable[str] = REQUIRED_EXECUTABLES) -> None:
    missing = [name for name in executables if shutil.which(name) is None]
    if missing:
        raise DependencyError(
            f"Required executables not found in PATH: {', '.join(missing)}. "
            "Install podman and systemd first."
        )


class ReloadRegistry:
    """One supervisor reload action per execution context.

    Pods reconciled in the same context share the reload action instead of
    each registering their own.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._actions: dict[tuple[Mode, str | None], "Action"] = {}

    def get(
        self, context: ExecutionContext, factory: Callable[[ExecutionContext], "Action"]
    ) -> "Action":
        with self._lock:
            action = self._actions.get(context.key)
            if action is None:
                action = factory(context)
                self._actions[context.key] = action
                logger.debug(f"Registered supervisor reload for {context}")
            return action

    def clear(self) -> None:
        with self._lock:
            self._actions.clear()


RELOAD_REGISTRY = ReloadRegistry()
