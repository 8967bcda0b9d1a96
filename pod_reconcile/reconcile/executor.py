"""Execution of an action graph for one pod."""

from pydantic import BaseModel, ConfigDict, PrivateAttr

from pod_reconcile.reconcile.actions import Action, ActionGraph
from pod_reconcile.reconcile.errors import ActionError, CommandError, ProbeError, ReconcileError
from pod_reconcile.reconcile.types import ActionKind, Ensure, Outcome
from pod_reconcile.utils.log import colorize, get_logger

logger = get_logger(__name__)


class ActionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    kind: ActionKind
    outcome: Outcome
    changed: bool = False
    detail: str | None = None


class PassResult(BaseModel):
    pod: str
    context: str
    ensure: Ensure
    actions: list[ActionResult] = []

    _error: ReconcileError | None = PrivateAttr(default=None)

    @property
    def error(self) -> ReconcileError | None:
        return self._error

    @property
    def succeeded(self) -> bool:
        return self._error is None

    @property
    def changed(self) -> bool:
        return any(r.changed for r in self.actions)

    @property
    def trace(self) -> list[str]:
        """Identities of the actions that ran, in execution order."""
        return [r.action for r in self.actions if r.outcome is Outcome.RAN]

    def by_outcome(self, outcome: Outcome) -> list[ActionResult]:
        return [r for r in self.actions if r.outcome is outcome]

    def raise_for_status(self) -> None:
        if self._error is not None:
            raise self._error


class Executor:
    """Walks an ``ActionGraph`` in order, honouring guards and notifications.

    The first failure stops the walk; the partially filled ``PassResult`` is
    returned with the error attached.
    """

    def __init__(self, graph: ActionGraph, context: str, ensure: Ensure):
        self.graph = graph
        self.result = PassResult(pod=graph.pod, context=context, ensure=ensure)
        self._triggered: set[str] = set()

    def _record(
        self, action: Action, outcome: Outcome, changed: bool = False, detail: str | None = None
    ) -> None:
        self.result.actions.append(
            ActionResult(
                action=str(action.id),
                kind=action.kind,
                outcome=outcome,
                changed=changed,
                detail=detail,
            )
        )

    def _fail(self, action: Action, error: ReconcileError) -> PassResult:
        logger.error(f"[{self.graph.pod}]: {colorize(action.id, 'red')} failed")
        self._record(action, Outcome.FAILED, detail=str(error))
        error.result = self.result
        self.result._error = error
        return self.result

    def _skip(self, action: Action, reason: str) -> None:
        logger.debug(f"[{self.graph.pod}]: {action.id} skipped ({reason})")
        self._record(action, Outcome.SKIPPED, detail=reason)

    def run(self) -> PassResult:
        for action in self.graph.ordered():
            if action.refresh_only and action.id not in self._triggered:
                self._skip(action, "not triggered")
                continue

            if action.skip_if is not None:
                try:
                    satisfied = action.skip_if()
                except ProbeError as e:
                    return self._fail(action, e)
                if satisfied:
                    self._skip(action, "already in desired state")
                    continue

            logger.info(f"[{self.graph.pod}]: {colorize(action.id, 'blue')}: {action.description}")
            try:
                changed = action.command()
            except (CommandError, OSError) as e:
                return self._fail(action, ActionError(self.graph.pod, action.id, e))
            except ProbeError as e:
                return self._fail(action, e)
            except Exception as e:
                logger.debug(f"[{self.graph.pod}]: {action.id} raised", exc_info=True)
                return self._fail(action, ActionError(self.graph.pod, action.id, e))

            self._record(action, Outcome.RAN, changed=changed)
            if changed:
                self._triggered.update(action.notifies)

        return self.result


def execute(graph: ActionGraph, context: str, ensure: Ensure) -> PassResult:
    return Executor(graph, context, ensure).run()
