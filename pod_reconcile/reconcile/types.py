"""Value types shared by the reconciliation engine."""

from dataclasses import dataclass
from enum import StrEnum


class Ensure(StrEnum):
    PRESENT = "present"
    ABSENT = "absent"


class Mode(StrEnum):
    SYSTEM = "system"
    USER = "user"


class Outcome(StrEnum):
    RAN = "ran"
    SKIPPED = "skipped"
    FAILED = "failed"


class ActionKind(StrEnum):
    PERSIST_MANIFEST = "PersistManifest"
    CREATE_POD = "CreatePod"
    REPLACE_POD = "ReplacePod"
    GENERATE_SYSTEMD = "GenerateSystemd"
    SUPERVISOR_RELOAD = "SupervisorReload"
    START_POD = "StartPod"
    STOP_POD = "StopPod"
    REMOVE_UNIT_DESCRIPTOR = "RemoveUnitDescriptor"
    REMOVE_POD = "RemovePod"
    REMOVE_MANIFEST = "RemoveManifest"


@dataclass(frozen=True, slots=True)
class Owner:
    uid: int
    gid: int
