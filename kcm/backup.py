"""Backup objects and how a backup request is classified."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from kcm.management import Management
from kcm.meta import GroupVersion, ObjectMeta, ObjectReference

GENERIC_COMPONENT_LABEL_NAME = "k0rdent.mirantis.com/component"
GENERIC_COMPONENT_LABEL_VALUE_KCM = "kcm"

BACKUP_KIND = "Backup"

VELERO_GROUP_VERSION = GroupVersion(group="velero.io", version="v1")


class BackupType(enum.IntEnum):
    """What kind of underlying object a Backup stands for."""

    NONE = 0
    SCHEDULE = 1
    BACKUP = 2


@dataclass
class BackupSpec:
    """Desired state of a Backup."""

    oneshot: bool = False


@dataclass
class BackupStatus:
    """Observed state of a Backup."""

    reference: ObjectReference | None = None
    schedule: dict[str, Any] | None = None
    next_attempt: datetime | None = None
    last_backup: dict[str, Any] | None = None


@dataclass
class Backup:
    """A one-off or scheduled backup of the management objects."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: BackupSpec = field(default_factory=BackupSpec)
    status: BackupStatus = field(default_factory=BackupStatus)

    @property
    def kind(self) -> str:
        return BACKUP_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace


def _reference_gvk(reference: ObjectReference) -> tuple[str, str, str]:
    group, sep, version = reference.api_version.rpartition("/")
    if not sep:
        group, version = "", reference.api_version
    return (group, version, reference.kind)


def get_backup_type(
    instance: Backup, request_name: str, managements: Iterable[Management]
) -> BackupType:
    """Classify ``instance``.

    An existing reference decides by its kind; otherwise a request named like the
    first Management is the scheduled backup, and any other request a one-off one.
    With no Management at all there is nothing to do. Raises ValueError for a
    reference of an unexpected kind.
    """
    reference = instance.status.reference
    if reference is not None:
        gvk = _reference_gvk(reference)
        if gvk == VELERO_GROUP_VERSION.with_kind("Schedule"):
            return BackupType.SCHEDULE
        if gvk == VELERO_GROUP_VERSION.with_kind("Backup"):
            return BackupType.BACKUP
        raise ValueError(f"unexpected kind {reference.kind} in the backup reference")

    first = next(iter(managements), None)
    if first is None:
        return BackupType.NONE
    if request_name == first.name:
        return BackupType.SCHEDULE
    return BackupType.BACKUP