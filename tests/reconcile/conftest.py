"""Fixtures simulating podman and systemctl for convergence passes."""

import subprocess
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest
import yaml

from pod_reconcile.reconcile.context import ExecutionContext, ReloadRegistry, system_context

EFFECTING = (
    ("podman", "pod", "create"),
    ("podman", "pod", "rm"),
    ("podman", "play", "kube"),
    ("podman", "generate", "systemd"),
    ("systemctl", "daemon-reload"),
    ("systemctl", "start"),
    ("systemctl", "stop"),
)


class FakeHost:
    """Stands in for ``subprocess.run``, keeping podman and systemd state in memory."""

    def __init__(self) -> None:
        self.pods: dict[str, list[str]] = {}
        self.active: set[str] = set()
        self.unit_states: dict[str, str] = {}
        self.reloads = 0
        self.calls: list[list[str]] = []
        self.call_kwargs: list[dict[str, Any]] = []
        self.failures: dict[tuple[str, ...], int] = {}

    def __call__(self, args: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        args = list(args)
        self.calls.append(args)
        self.call_kwargs.append(kwargs)
        for prefix, returncode in self.failures.items():
            if tuple(args[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(args, returncode, "", "simulated failure")

        if args[0] == "podman":
            return self._podman(args, args[1:], kwargs)
        if args[0] == "systemctl":
            rest = [a for a in args[1:] if a != "--user"]
            return self._systemctl(args, rest)
        raise AssertionError(f"unexpected command {args}")

    @staticmethod
    def _done(args: list[str], returncode: int = 0, stdout: str = "") -> Any:
        return subprocess.CompletedProcess(args, returncode, stdout, "")

    @staticmethod
    def _read_manifest(path: str) -> tuple[str, list[str]]:
        document = yaml.safe_load(Path(path).read_text())
        return (
            document["metadata"]["name"],
            [c["name"] for c in document["spec"]["containers"]],
        )

    def _podman(self, args: list[str], rest: list[str], kwargs: dict[str, Any]) -> Any:
        match rest:
            case ["pod", "exists", name]:
                return self._done(args, 0 if name in self.pods else 1)
            case ["pod", "create", "--name", name, *_flags]:
                self.pods[name] = []
                return self._done(args)
            case ["pod", "rm", "--force", name]:
                self.pods.pop(name, None)
                return self._done(args)
            case ["play", "kube", "--down", path]:
                name, _ = self._read_manifest(path)
                self.pods.pop(name, None)
                return self._done(args)
            case ["play", "kube", "--replace", path]:
                name, containers = self._read_manifest(path)
                self.pods[name] = containers
                return self._done(args)
            case ["play", "kube", path]:
                name, containers = self._read_manifest(path)
                if name in self.pods:
                    return subprocess.CompletedProcess(args, 125, "", "pod already exists")
                self.pods[name] = containers
                return self._done(args)
            case ["generate", "systemd", "--files", "--name", name]:
                output_dir = Path(kwargs["cwd"])
                (output_dir / f"pod-{name}.service").write_text("[Unit]\n")
                for container in self.pods[name]:
                    (output_dir / f"container-{name}-{container}.service").write_text("[Unit]\n")
                return self._done(args)
        raise AssertionError(f"unexpected podman command {args}")

    def _systemctl(self, args: list[str], rest: list[str]) -> Any:
        match rest:
            case ["daemon-reload"]:
                self.reloads += 1
                return self._done(args)
            case ["start", unit]:
                self.active.add(unit)
                self.unit_states.pop(unit, None)
                return self._done(args)
            case ["stop", unit]:
                self.active.discard(unit)
                self.unit_states.pop(unit, None)
                return self._done(args)
            case ["is-active", unit] if unit in self.unit_states:
                state = self.unit_states[unit]
                return self._done(args, 0 if state == "active" else 3, f"{state}\n")
            case ["is-active", unit]:
                if unit in self.active:
                    return self._done(args, 0, "active\n")
                return self._done(args, 3, "inactive\n")
        raise AssertionError(f"unexpected systemctl command {args}")

    def effecting_calls(self) -> list[list[str]]:
        return [
            call
            for call in self.calls
            if any(tuple(a for a in call if a != "--user")[: len(p)] == p for p in EFFECTING)
        ]


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    fake = FakeHost()
    monkeypatch.setattr("subprocess.run", fake)
    return fake


@pytest.fixture
def context(tmp_path: Path) -> ExecutionContext:
    return replace(system_context(tmp_path / "pods"), unit_dir=tmp_path / "units")


@pytest.fixture
def registry() -> ReloadRegistry:
    return ReloadRegistry()


@pytest.fixture
def web_manifest() -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "web"},
        "spec": {
            "containers": [
                {"name": "app", "image": "docker.io/library/nginx:1.27"},
                {"name": "db", "image": "docker.io/library/postgres:16"},
            ]
        },
    }
