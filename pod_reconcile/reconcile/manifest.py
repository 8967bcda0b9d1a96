"""Manifest normalization.

Turns either a parsed Kubernetes-style Pod document or a flag mapping into a
``PodManifest``: the pod name, the ordered container names and the bytes that
are persisted for drift detection. Nothing here touches the system.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from pod_reconcile.reconcile.errors import ValidationError
from pod_reconcile.reconcile.flags import FlagValue

CONTAINER_SEPARATOR = "-"


class ContainerSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)


class PodSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    containers: list[ContainerSpec] = Field(min_length=1)


class PodMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)


class KubePod(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: str
    metadata: PodMetadata
    spec: PodSpec


@dataclass(frozen=True)
class PodManifest:
    """Desired state of one pod.

    ``document`` is set when a manifest is the source of truth, ``flags``
    when the pod is an empty pod created from a flag mapping.
    """

    name: str
    containers: tuple[str, ...] = ()
    document: Mapping[str, Any] | None = None
    flags: Mapping[str, FlagValue] = field(default_factory=dict)

    @property
    def from_manifest(self) -> bool:
        return self.document is not None

    @property
    def container_names(self) -> list[str]:
        return [f"{self.name}{CONTAINER_SEPARATOR}{c}" for c in self.containers]

    def canonical(self) -> bytes:
        if self.document is None:
            raise ValueError(f"Pod '{self.name}' has no manifest to serialize")
        return canonical_yaml(self.document)


def canonical_yaml(document: Mapping[str, Any]) -> bytes:
    return yaml.safe_dump(
        dict(document), sort_keys=True, default_flow_style=False
    ).encode("utf-8")


def _describe(error: PydanticValidationError) -> str:
    problems = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


def normalize_manifest(data: Mapping[str, Any]) -> PodManifest:
    if not isinstance(data, Mapping):
        raise ValidationError(f"Manifest must be a mapping, got {type(data).__name__}")

    kind = data.get("kind")
    if kind != "Pod":
        raise ValidationError(f"Manifest kind must be 'Pod', got {kind!r}")

    try:
        pod = KubePod.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid Pod manifest: {_describe(e)}") from e

    containers = tuple(container.name for container in pod.spec.containers)
    duplicates = sorted({c for c in containers if containers.count(c) > 1})
    if duplicates:
        raise ValidationError(
            f"Pod '{pod.metadata.name}' has duplicate container names: {', '.join(duplicates)}"
        )

    return PodManifest(name=pod.metadata.name, containers=containers, document=dict(data))


def _is_scalar(value: Any) -> bool:
    return isinstance(value, str | int | float | bool)


def _check_flag(key: Any, value: Any) -> None:
    if not isinstance(key, str) or not key.strip():
        raise ValidationError(f"Flag names must be non-empty strings, got {key!r}")
    if _is_scalar(value):
        return
    if isinstance(value, list | tuple) and all(_is_scalar(item) for item in value):
        return
    raise ValidationError(
        f"Flag '{key}' must be a scalar or a list of scalars, got {type(value).__name__}"
    )


def normalize_flags(flags: Mapping[str, FlagValue], identifier: str | None) -> PodManifest:
    """Synthesize an empty pod from a flag mapping.

    A ``name`` flag wins over the caller supplied identifier.
    """
    if not isinstance(flags, Mapping):
        raise ValidationError(f"Pod flags must be a mapping, got {type(flags).__name__}")
    for key, value in flags.items():
        _check_flag(key, value)

    name = flags.get("name", identifier)
    if isinstance(name, Sequence) and not isinstance(name, str):
        raise ValidationError(f"Pod name flag must be a single value, got {name!r}")
    if name is None or not str(name).strip():
        raise ValidationError("Could not derive a pod name: no 'name' flag and no identifier")

    remaining = {key: value for key, value in flags.items() if key != "name"}
    return PodManifest(name=str(name), flags=remaining)


def load_manifest_file(path: Path) -> Mapping[str, Any]:
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValidationError(f"Could not parse manifest {path}: {e}") from e
    except OSError as e:
        raise ValidationError(f"Could not read manifest {path}: {e}") from e

    if not isinstance(data, Mapping):
        raise ValidationError(f"Manifest {path} does not contain a mapping")
    return data
