"""Error taxonomy of a convergence pass.

Every error derives from ``RuntimeError`` so the command line front end can
report it the same way as any other failed step.
"""

from typing import TYPE_CHECKING

from pod_reconcile.utils import CommandError

if TYPE_CHECKING:
    from pod_reconcile.reconcile.executor import PassResult

__all__ = [
    "ActionError",
    "CommandError",
    "DependencyError",
    "ProbeError",
    "ReconcileError",
    "ValidationError",
]


class ReconcileError(RuntimeError):
    #: the partial result of the pass that raised, set by the executor
    result: "PassResult | None" = None


class ValidationError(ReconcileError):
    """The desired state is malformed or incomplete."""


class DependencyError(ReconcileError):
    """A required collaborator (user account, runtime binary) is missing."""


class ProbeError(ReconcileError):
    """A read-only query failed instead of answering yes or no."""

    def __init__(self, probe: str, cause: Exception):
        self.probe = probe
        self.cause = cause
        super().__init__(f"Probe '{probe}' was inconclusive: {cause}")


class ActionError(ReconcileError):
    def __init__(self, pod: str, action: str, cause: Exception):
        self.pod = pod
        self.action = action
        self.cause = cause
        super().__init__(f"[{pod}]: action {action} failed: {cause}")
