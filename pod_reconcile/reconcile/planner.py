"""Reconciliation planner.

Builds the ordered action graph that converges one pod towards ``present``
or ``absent``. Guards close over a ``StateProber`` and are only evaluated by
the executor, never while planning.

Present::

    PersistManifest -> ReplacePod -> CreatePod -> GenerateSystemd
        -> SupervisorReload -> StartPod

ReplacePod is ordered before CreatePod: it only runs for a pod that already
existed and whose manifest changed, so a pod created in this very pass is
never replaced right away.

Absent::

    StopPod -> RemoveUnitDescriptor(pod) -> RemoveUnitDescriptor(container)...
        -> SupervisorReload -> RemovePod -> RemoveManifest
"""

from typing import assert_never

from pod_reconcile.reconcile import files, podman, systemd
from pod_reconcile.reconcile.actions import Action, ActionGraph
from pod_reconcile.reconcile.context import RELOAD_REGISTRY, ExecutionContext, ReloadRegistry
from pod_reconcile.reconcile.manifest import PodManifest
from pod_reconcile.reconcile.paths import container_unit_name, get_manifest_path, pod_unit_name
from pod_reconcile.reconcile.probes import StateProber
from pod_reconcile.reconcile.types import ActionKind, Ensure

RELOAD_ID = str(ActionKind.SUPERVISOR_RELOAD)


def _reload_action(context: ExecutionContext) -> Action:
    def command() -> bool:
        systemd.daemon_reload(context)
        return True

    return Action(
        id=RELOAD_ID,
        kind=ActionKind.SUPERVISOR_RELOAD,
        command=command,
        description=f"{' '.join(context.service_manager)} daemon-reload ({context})",
        refresh_only=True,
    )


def unit_descriptor_id(unit: str) -> str:
    return f"{ActionKind.REMOVE_UNIT_DESCRIPTOR}({unit})"


class Planner:
    def __init__(
        self,
        context: ExecutionContext,
        prober: StateProber | None = None,
        registry: ReloadRegistry = RELOAD_REGISTRY,
    ):
        self.context = context
        self.prober = prober if prober is not None else StateProber(context)
        self.registry = registry

    def reload_action(self) -> Action:
        return self.registry.get(self.context, _reload_action)

    def plan(self, ensure: Ensure, pod: PodManifest) -> ActionGraph:
        match ensure:
            case Ensure.PRESENT:
                return self.plan_present(pod)
            case Ensure.ABSENT:
                return self.plan_absent(pod)
            case _:
                assert_never(ensure)

    def plan_present(self, pod: PodManifest) -> ActionGraph:
        ctx = self.context
        prober = self.prober
        graph = ActionGraph(pod.name)
        manifest_path = get_manifest_path(ctx.manifest_dir, pod.name)
        pod_unit = pod_unit_name(pod.name)

        def pod_exists() -> bool:
            return prober.pod_exists(pod.name)

        creators: list[Action] = []
        if pod.from_manifest:
            content = pod.canonical()

            def persist() -> bool:
                return files.write_file(manifest_path, content, ctx.owner)

            persist_action = graph.add(
                Action(
                    id=ActionKind.PERSIST_MANIFEST,
                    kind=ActionKind.PERSIST_MANIFEST,
                    command=persist,
                    description=f"write {manifest_path}",
                    skip_if=lambda: prober.file_matches(manifest_path, content),
                    notifies=(ActionKind.REPLACE_POD,),
                )
            )

            def replace() -> bool:
                podman.play_kube(ctx, manifest_path, replace=True)
                return True

            creators.append(
                graph.add(
                    Action(
                        id=ActionKind.REPLACE_POD,
                        kind=ActionKind.REPLACE_POD,
                        command=replace,
                        description=f"podman play kube --replace {manifest_path}",
                        skip_if=lambda: not pod_exists(),
                        refresh_only=True,
                        notifies=(ActionKind.GENERATE_SYSTEMD,),
                    ),
                    after=[persist_action],
                )
            )

            def create() -> bool:
                podman.play_kube(ctx, manifest_path)
                return True

            create_description = f"podman play kube {manifest_path}"
        else:

            def create() -> bool:
                podman.create_pod(ctx, pod.name, pod.flags)
                return True

            create_description = f"podman pod create --name {pod.name}"

        creators.append(
            graph.add(
                Action(
                    id=ActionKind.CREATE_POD,
                    kind=ActionKind.CREATE_POD,
                    command=create,
                    description=create_description,
                    skip_if=pod_exists,
                    notifies=(ActionKind.GENERATE_SYSTEMD,),
                ),
                after=list(creators),
            )
        )

        def generate() -> bool:
            files.ensure_directory(ctx.unit_dir, ctx.owner)
            podman.generate_systemd(ctx, pod.name, ctx.unit_dir)
            return True

        generate_action = graph.add(
            Action(
                id=ActionKind.GENERATE_SYSTEMD,
                kind=ActionKind.GENERATE_SYSTEMD,
                command=generate,
                description=f"podman generate systemd --files --name {pod.name} in {ctx.unit_dir}",
                refresh_only=True,
                notifies=(RELOAD_ID,),
            ),
            after=creators,
        )

        reload = graph.add(self.reload_action(), after=[generate_action])

        def start() -> bool:
            systemd.start(ctx, pod_unit)
            return True

        graph.add(
            Action(
                id=ActionKind.START_POD,
                kind=ActionKind.START_POD,
                command=start,
                description=f"{' '.join(ctx.service_manager)} start {pod_unit}",
                skip_if=lambda: prober.service_active(pod_unit),
            ),
            after=[reload],
        )
        return graph

    def plan_absent(self, pod: PodManifest) -> ActionGraph:
        ctx = self.context
        prober = self.prober
        graph = ActionGraph(pod.name)
        manifest_path = get_manifest_path(ctx.manifest_dir, pod.name)
        pod_unit = pod_unit_name(pod.name)

        def stop() -> bool:
            systemd.stop(ctx, pod_unit)
            return True

        stop_action = graph.add(
            Action(
                id=ActionKind.STOP_POD,
                kind=ActionKind.STOP_POD,
                command=stop,
                description=f"{' '.join(ctx.service_manager)} stop {pod_unit}",
                skip_if=lambda: not prober.service_active(pod_unit),
            )
        )

        removals = [
            graph.add(self._remove_unit_action(unit), after=[stop_action])
            for unit in [pod_unit, *map(container_unit_name, pod.container_names)]
        ]

        reload = graph.add(self.reload_action(), after=removals)

        def remove_pod() -> bool:
            if pod.from_manifest and prober.file_exists(manifest_path):
                podman.teardown_kube(ctx, manifest_path)
            else:
                podman.remove_pod(ctx, pod.name)
            return True

        remove_pod_action = graph.add(
            Action(
                id=ActionKind.REMOVE_POD,
                kind=ActionKind.REMOVE_POD,
                command=remove_pod,
                description=f"remove pod {pod.name}",
                skip_if=lambda: not prober.pod_exists(pod.name),
            ),
            after=[reload, *removals],
        )

        if pod.from_manifest:
            graph.add(
                Action(
                    id=ActionKind.REMOVE_MANIFEST,
                    kind=ActionKind.REMOVE_MANIFEST,
                    command=lambda: files.remove_file(manifest_path),
                    description=f"remove {manifest_path}",
                    skip_if=lambda: not prober.file_exists(manifest_path),
                ),
                after=[remove_pod_action],
            )
        return graph

    def _remove_unit_action(self, unit: str) -> Action:
        path = self.context.unit_dir / unit
        return Action(
            id=unit_descriptor_id(unit),
            kind=ActionKind.REMOVE_UNIT_DESCRIPTOR,
            command=lambda: files.remove_file(path),
            description=f"remove {path}",
            notifies=(RELOAD_ID,),
        )
