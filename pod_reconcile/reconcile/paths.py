"""Deterministic locations of manifests and unit descriptors."""

from pathlib import Path

SYSTEM_UNIT_DIR = Path("/etc/systemd/system")
SYSTEM_MANIFEST_DIR = Path("/etc/containers/pods")


def get_user_unit_dir(home: Path) -> Path:
    return home / ".config" / "systemd" / "user"


def get_user_manifest_dir(home: Path) -> Path:
    return home / ".config" / "containers" / "pods"


def get_runtime_dir(uid: int) -> Path:
    return Path(f"/run/user/{uid}")


def get_manifest_path(manifest_dir: Path, pod: str) -> Path:
    return manifest_dir / f"{pod}.yaml"


def pod_unit_name(pod: str) -> str:
    return f"pod-{pod}.service"


def container_unit_name(container: str) -> str:
    """Unit name for a fully qualified container (``<pod>-<container>``)."""
    return f"container-{container}.service"
