"""Tests for manifest normalization."""

from pathlib import Path
from typing import Any

import pytest

from pod_reconcile.reconcile.errors import ValidationError
from pod_reconcile.reconcile.manifest import (
    load_manifest_file,
    normalize_flags,
    normalize_manifest,
)


def _pod(name: str = "web", containers: list[Any] | None = None) -> dict[str, Any]:
    if containers is None:
        containers = [{"name": "app"}, {"name": "db"}]
    return {"kind": "Pod", "metadata": {"name": name}, "spec": {"containers": containers}}


def test_container_identities_preserve_order() -> None:
    pod = normalize_manifest(_pod())

    assert pod.name == "web"
    assert pod.containers == ("app", "db")
    assert pod.container_names == ["web-app", "web-db"]
    assert pod.from_manifest


def test_wrong_kind_is_rejected() -> None:
    manifest = _pod()
    manifest["kind"] = "Deployment"

    with pytest.raises(ValidationError, match="kind must be 'Pod'"):
        normalize_manifest(manifest)


def test_missing_kind_is_rejected() -> None:
    manifest = _pod()
    del manifest["kind"]

    with pytest.raises(ValidationError, match="None"):
        normalize_manifest(manifest)


def test_empty_containers_are_rejected() -> None:
    with pytest.raises(ValidationError, match="spec.containers"):
        normalize_manifest(_pod(containers=[]))


def test_missing_containers_are_rejected() -> None:
    manifest = _pod()
    del manifest["spec"]["containers"]

    with pytest.raises(ValidationError, match="spec.containers"):
        normalize_manifest(manifest)


@pytest.mark.parametrize("metadata", [{}, {"name": ""}, {"labels": {"app": "web"}}])
def test_missing_pod_name_is_rejected(metadata: dict[str, Any]) -> None:
    manifest = _pod()
    manifest["metadata"] = metadata

    with pytest.raises(ValidationError, match="metadata.name"):
        normalize_manifest(manifest)


def test_container_without_name_is_rejected() -> None:
    with pytest.raises(ValidationError, match="spec.containers.0.name"):
        normalize_manifest(_pod(containers=[{"image": "nginx"}]))


def test_duplicate_container_names_are_rejected() -> None:
    with pytest.raises(ValidationError, match="duplicate container names: app"):
        normalize_manifest(_pod(containers=[{"name": "app"}, {"name": "app"}]))


def test_canonical_form_ignores_key_order() -> None:
    first = normalize_manifest(_pod())
    reordered = {
        "spec": {"containers": [{"name": "app"}, {"name": "db"}]},
        "metadata": {"name": "web"},
        "kind": "Pod",
    }

    assert normalize_manifest(reordered).canonical() == first.canonical()
    assert first.canonical().startswith(b"kind: Pod\n")


def test_unknown_manifest_keys_are_kept() -> None:
    manifest = _pod()
    manifest["spec"]["restartPolicy"] = "Always"

    assert b"restartPolicy: Always" in normalize_manifest(manifest).canonical()


def test_flags_name_overrides_identifier() -> None:
    pod = normalize_flags({"name": "infra", "network": "bridge"}, "fallback")

    assert pod.name == "infra"
    assert pod.flags == {"network": "bridge"}
    assert pod.containers == ()
    assert not pod.from_manifest


def test_flags_use_identifier_without_name_flag() -> None:
    assert normalize_flags({"network": "bridge"}, "infra").name == "infra"


def test_flags_without_any_name_are_rejected() -> None:
    with pytest.raises(ValidationError, match="pod name"):
        normalize_flags({"network": "bridge"}, None)


@pytest.mark.parametrize(
    ("flags", "message"),
    [
        ({"": "x"}, "non-empty strings"),
        ({"  ": "x"}, "non-empty strings"),
        ({"publish": None}, "'publish' must be a scalar"),
        ({"label": {"a": "b"}}, "'label' must be a scalar"),
        ({"label": ["a=b", {"c": "d"}]}, "'label' must be a scalar"),
    ],
)
def test_malformed_flags_are_rejected(flags: dict[str, Any], message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        normalize_flags(flags, "infra")


def test_list_flags_are_kept() -> None:
    pod = normalize_flags({"publish": ["8080:80", "8443:443"], "infra": False}, "infra")

    assert pod.flags == {"publish": ["8080:80", "8443:443"], "infra": False}


def test_flags_pod_has_no_canonical_manifest() -> None:
    with pytest.raises(ValueError):
        normalize_flags({}, "infra").canonical()


def test_load_manifest_file(tmp_path: Path) -> None:
    path = tmp_path / "web.yaml"
    path.write_text("kind: Pod\nmetadata:\n  name: web\nspec:\n  containers:\n    - name: app\n")

    assert normalize_manifest(load_manifest_file(path)).container_names == ["web-app"]


@pytest.mark.parametrize("content", ["- just\n- a list\n", "kind: [unclosed\n"])
def test_load_manifest_file_rejects_bad_yaml(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ValidationError):
        load_manifest_file(path)


def test_load_manifest_file_missing(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="Could not read"):
        load_manifest_file(tmp_path / "missing.yaml")
