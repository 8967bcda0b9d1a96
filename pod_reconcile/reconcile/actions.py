"""Typed action nodes and the graph that orders them.

An ``Action`` is one idempotent step. Its ``skip_if`` guard is evaluated
right before it would run, ``refresh_only`` actions run only after another
action notified them, and ``notifies`` lists the actions to trigger when this
one changed something. Notification edges double as ordering edges.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from pod_reconcile.reconcile.types import ActionKind


@dataclass(frozen=True, eq=False)
class Action:
    id: str
    kind: ActionKind
    command: Callable[[], bool]
    description: str
    skip_if: Callable[[], bool] | None = None
    refresh_only: bool = False
    notifies: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.id


class ActionGraph:
    def __init__(self, pod: str):
        self.pod = pod
        self._actions: dict[str, Action] = {}
        self._after: dict[str, list[str]] = {}

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.ordered())

    def __getitem__(self, action_id: str) -> Action:
        return self._actions[action_id]

    def add(self, action: Action, after: Iterable[Action] = ()) -> Action:
        if action.id in self._actions:
            raise ValueError(f"Action {action.id} is already part of the plan for {self.pod}")
        self._actions[action.id] = action
        self._after[action.id] = [a.id for a in after]
        return action

    def _predecessors(self) -> dict[str, list[str]]:
        predecessors = {action_id: list(after) for action_id, after in self._after.items()}
        for action in self._actions.values():
            for target in action.notifies:
                if target not in self._actions:
                    raise ValueError(f"{action.id} notifies unknown action {target}")
                if action.id not in predecessors[target]:
                    predecessors[target].append(action.id)
        for action_id, after in predecessors.items():
            unknown = [a for a in after if a not in self._actions]
            if unknown:
                raise ValueError(f"{action_id} is ordered after unknown actions {unknown}")
        return predecessors

    def ordered(self) -> list[Action]:
        """Topological order; ties keep the order in which actions were added."""
        predecessors = self._predecessors()
        done: set[str] = set()
        order: list[Action] = []
        pending = list(self._actions)
        while pending:
            ready = next(
                (a for a in pending if all(p in done for p in predecessors[a])),
                None,
            )
            if ready is None:
                raise ValueError(f"Dependency cycle between actions: {', '.join(pending)}")
            pending.remove(ready)
            done.add(ready)
            order.append(self._actions[ready])
        return order

    def describe(self) -> list[str]:
        lines = []
        for action in self.ordered():
            notes = []
            if action.refresh_only:
                notes.append("refresh only")
            if action.skip_if is not None:
                notes.append("guarded")
            if action.notifies:
                notes.append(f"notifies {', '.join(action.notifies)}")
            suffix = f" [{'; '.join(notes)}]" if notes else ""
            lines.append(f"{action.id}: {action.description}{suffix}")
        return lines
