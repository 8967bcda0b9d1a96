"""Entry points of a convergence pass.

``reconcile`` is what callers use: it normalizes the desired state, checks
dependencies, resolves the execution context and runs one pass, raising the
error that halted it. ``converge`` runs a pass for an already normalized pod
in an already resolved context and leaves error handling to the caller.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pod_reconcile.reconcile.context import (
    RELOAD_REGISTRY,
    ExecutionContext,
    ReloadRegistry,
    check_dependencies,
    resolve_context,
)
from pod_reconcile.reconcile.errors import ValidationError
from pod_reconcile.reconcile.executor import PassResult, execute
from pod_reconcile.reconcile.flags import FlagValue
from pod_reconcile.reconcile.manifest import PodManifest, normalize_flags, normalize_manifest
from pod_reconcile.reconcile.planner import Planner
from pod_reconcile.reconcile.probes import StateProber
from pod_reconcile.reconcile.types import Ensure, Outcome
from pod_reconcile.utils.log import colorize, generate_log_decorator, get_logger

logger = get_logger(__name__)
log = generate_log_decorator(logger)


def _prefix_log_pod(ensure: Ensure, pod: PodManifest, *_args: Any, **_kwargs: Any) -> str:
    return f"[{colorize(pod.name, 'blue')}]: "


def normalize_desired(
    manifest: Mapping[str, Any] | None = None,
    flags: Mapping[str, FlagValue] | None = None,
    identifier: str | None = None,
) -> PodManifest:
    if manifest is not None and flags:
        raise ValidationError("Pass either a manifest or pod flags, not both")
    if manifest is not None:
        return normalize_manifest(manifest)
    return normalize_flags(flags or {}, identifier)


@log(prefix=_prefix_log_pod)
def converge(
    ensure: Ensure,
    pod: PodManifest,
    context: ExecutionContext,
    registry: ReloadRegistry = RELOAD_REGISTRY,
    prober: StateProber | None = None,
) -> PassResult:
    graph = Planner(context, prober, registry).plan(ensure, pod)
    result = execute(graph, str(context), ensure)

    ran = len(result.by_outcome(Outcome.RAN))
    skipped = len(result.by_outcome(Outcome.SKIPPED))
    if result.succeeded:
        logger.debug(f"[{pod.name}]: {ran} action(s) ran, {skipped} skipped")
    else:
        logger.debug(f"[{pod.name}]: pass halted after {ran} action(s) ran, {skipped} skipped")
    return result


def reconcile(
    ensure: Ensure,
    *,
    manifest: Mapping[str, Any] | None = None,
    flags: Mapping[str, FlagValue] | None = None,
    identifier: str | None = None,
    user: str | None = None,
    manifest_dir: Path | None = None,
    registry: ReloadRegistry = RELOAD_REGISTRY,
) -> PassResult:
    pod = normalize_desired(manifest, flags, identifier)
    check_dependencies()
    context = resolve_context(user, manifest_dir)

    result = converge(ensure, pod, context, registry)
    result.raise_for_status()
    return result
