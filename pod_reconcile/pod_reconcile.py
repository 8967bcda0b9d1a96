"""pod-reconcile

Converge a podman pod and its systemd units to the desired state.

The desired pod is described either by a Kubernetes-style Pod manifest
(--manifest) or, for an empty pod, by a set of `podman pod create` flags
(--flag KEY=VALUE, repeatable). Every run is idempotent: a second run with
the same input changes nothing.

Execution contexts:
  • system (default)
    - units in /etc/systemd/system, manifests in /etc/containers/pods
    - driven through `systemctl`
  • user (--user NAME)
    - units in ~NAME/.config/systemd/user
    - manifests in ~NAME/.config/containers/pods
    - driven through `systemctl --user` as NAME, with its session bus

Unit files:
  pod-{pod}.service                    generated for the pod
  container-{pod}-{container}.service  generated per container
"""

import argparse
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pod_reconcile.reconcile.context import resolve_context
from pod_reconcile.reconcile.engine import normalize_desired, reconcile
from pod_reconcile.reconcile.errors import ReconcileError, ValidationError
from pod_reconcile.reconcile.executor import PassResult
from pod_reconcile.reconcile.flags import FlagValue, parse_flag_assignments
from pod_reconcile.reconcile.manifest import PodManifest, load_manifest_file
from pod_reconcile.reconcile.planner import Planner
from pod_reconcile.reconcile.types import Ensure, Outcome
from pod_reconcile.utils.cli import clean_cli_exit
from pod_reconcile.utils.log import ROOT_LOGGER_NAME, Color, colorize, get_logger
from pod_reconcile.version import __version__

logger = get_logger(__name__)

OUTCOME_COLORS: dict[Outcome, Color] = {
    Outcome.RAN: "green",
    Outcome.SKIPPED: "cyan",
    Outcome.FAILED: "red",
}


def _add_desired_state_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-m",
        "--manifest",
        type=Path,
        help="Kubernetes Pod manifest (YAML) describing the pod",
    )
    source.add_argument(
        "--flag",
        dest="flags",
        action="append",
        metavar="KEY=VALUE",
        help="podman pod create flag for an empty pod (repeat a key to pass it several times)",
    )
    parser.add_argument(
        "-n",
        "--name",
        help="Pod name for an empty pod (a 'name' flag takes precedence)",
    )


def parse_arguments() -> argparse.Namespace:
    assert __doc__ is not None, "__doc__ must be a non-None string"
    prog, descr = __doc__.split("\n", 1)

    parser = argparse.ArgumentParser(
        prog=prog,
        description=descr,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-u",
        "--user",
        help="Manage the pod in the per-user service manager of this (existing) user",
    )
    parser.add_argument(
        "--manifest-dir",
        type=Path,
        help="Directory for persisted manifests (default depends on the execution context)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the pass result as JSON on stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be used multiple times: -v, -vv, -vvv)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (can be used multiple times)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    present_parser = subparsers.add_parser(
        "present",
        help="Create or update the pod and start its service",
        description="Persist the manifest, create or replace the pod, generate and start its units",
    )
    _add_desired_state_arguments(present_parser)
    present_parser.set_defaults(func=cmd_present)

    absent_parser = subparsers.add_parser(
        "absent",
        help="Stop the pod service and remove the pod",
        description="Stop the pod service, remove its unit files and remove the pod",
    )
    _add_desired_state_arguments(absent_parser)
    absent_parser.set_defaults(func=cmd_absent)

    plan_parser = subparsers.add_parser(
        "plan",
        help="Show the ordered actions without running them",
        description="Show the ordered actions of a pass; guards are not evaluated",
    )
    plan_parser.add_argument(
        "ensure",
        type=Ensure,
        choices=list(Ensure),
        help="Desired state to plan for",
    )
    _add_desired_state_arguments(plan_parser)
    plan_parser.set_defaults(func=cmd_plan)

    context_parser = subparsers.add_parser(
        "context",
        help="Show the resolved execution context",
        description="Show paths and environment used for the system or --user context",
    )
    context_parser.set_defaults(func=cmd_context)

    return parser.parse_args()


def _desired_inputs(
    args: argparse.Namespace,
) -> tuple[Mapping[str, Any] | None, dict[str, FlagValue] | None]:
    if args.manifest is not None:
        return load_manifest_file(args.manifest), None
    try:
        return None, parse_flag_assignments(args.flags or [])
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _desired_pod(args: argparse.Namespace) -> PodManifest:
    manifest, flags = _desired_inputs(args)
    return normalize_desired(manifest, flags, args.name)


def report(result: PassResult, as_json: bool = False) -> None:
    if as_json:
        print(result.model_dump_json(indent=2))
        return

    logger.info(f"Pod {result.pod} ({result.context}), ensure {result.ensure}:")
    for action in result.actions:
        outcome = colorize(str(action.outcome), OUTCOME_COLORS[action.outcome])
        changed = " (changed)" if action.changed else ""
        logger.info(f"  - {action.action}: {outcome}{changed}")
    logger.info("Changed" if result.changed else "Nothing to do")


def _run_pass(args: argparse.Namespace, ensure: Ensure) -> int:
    manifest, flags = _desired_inputs(args)
    try:
        result = reconcile(
            ensure,
            manifest=manifest,
            flags=flags,
            identifier=args.name,
            user=args.user,
            manifest_dir=args.manifest_dir,
        )
    except ReconcileError as e:
        if e.result is not None:
            report(e.result, args.json)
        raise
    report(result, args.json)
    return 0


def cmd_present(args: argparse.Namespace) -> int:
    return _run_pass(args, Ensure.PRESENT)


def cmd_absent(args: argparse.Namespace) -> int:
    return _run_pass(args, Ensure.ABSENT)


def cmd_plan(args: argparse.Namespace) -> int:
    pod = _desired_pod(args)
    context = resolve_context(args.user, args.manifest_dir)
    graph = Planner(context).plan(args.ensure, pod)

    logger.info(f"Plan for pod {pod.name} ({context}), ensure {args.ensure}:")
    for number, line in enumerate(graph.describe(), start=1):
        logger.info(f"  {number}. {line}")
    return 0


def cmd_context(args: argparse.Namespace) -> int:
    context = resolve_context(args.user, args.manifest_dir)
    logger.info(f"Mode: {context.mode}")
    logger.info(f"Service manager: {' '.join(context.service_manager)}")
    logger.info(f"Unit directory: {context.unit_dir}")
    logger.info(f"Manifest directory: {context.manifest_dir}")
    if context.working_directory is not None:
        logger.info(f"Working directory: {context.working_directory}")
    for key, value in context.environment.items():
        logger.info(f"  {key}={value}")
    return 0


def main() -> int:
    args = parse_arguments()

    log_level = max(logging.INFO - ((args.verbose - args.quiet) * 10), logging.DEBUG)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(log_level)

    with clean_cli_exit():
        try:
            return args.func(args)
        except RuntimeError as e:
            # Show clean error message without traceback unless in verbose mode
            if args.verbose > 0:
                raise
            logger.error(str(e))
            return 1
        except Exception as e:
            if args.verbose > 0:
                raise
            logger.error(f"Unexpected error: {e}")
            logger.error("Run with -v for more details")
            return 1


if __name__ == "__main__":
    raise SystemExit(main())
