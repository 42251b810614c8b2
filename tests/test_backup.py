import pytest

from kcm.backup import (
    VELERO_GROUP_VERSION,
    Backup,
    BackupStatus,
    BackupType,
    get_backup_type,
)
from kcm.management import Management
from kcm.meta import ObjectMeta, ObjectReference


def _with_reference(kind, api_version=None):
    return Backup(
        metadata=ObjectMeta(name="b"),
        status=BackupStatus(
            reference=ObjectReference(
                kind=kind,
                name="ref",
                api_version=api_version or VELERO_GROUP_VERSION.api_version,
            )
        ),
    )


def test_velero_group_version_with_kind():
    assert VELERO_GROUP_VERSION.with_kind("Schedule") == ("velero.io", "v1", "Schedule")
    assert str(VELERO_GROUP_VERSION) == "velero.io/v1"


def test_reference_to_schedule():
    assert get_backup_type(_with_reference("Schedule"), "x", []) is BackupType.SCHEDULE


def test_reference_to_backup():
    assert get_backup_type(_with_reference("Backup"), "x", []) is BackupType.BACKUP


def test_reference_takes_precedence_over_managements():
    mgmt = Management(metadata=ObjectMeta(name="kcm"))
    assert get_backup_type(_with_reference("Backup"), "kcm", [mgmt]) is BackupType.BACKUP


def test_reference_of_unexpected_kind_raises():
    with pytest.raises(ValueError, match="unexpected kind Restore"):
        get_backup_type(_with_reference("Restore"), "x", [])


def test_reference_of_other_group_raises():
    with pytest.raises(ValueError, match="unexpected kind Schedule"):
        get_backup_type(_with_reference("Schedule", api_version="apps/v1"), "x", [])


def test_no_managements_means_none():
    assert get_backup_type(Backup(), "anything", []) is BackupType.NONE


def test_name_of_management_is_schedule():
    mgmt = Management(metadata=ObjectMeta(name="kcm"))
    assert get_backup_type(Backup(), "kcm", [mgmt]) is BackupType.SCHEDULE


def test_other_name_is_oneshot_backup():
    mgmt = Management(metadata=ObjectMeta(name="kcm"))
    assert get_backup_type(Backup(), "my-backup", [mgmt]) is BackupType.BACKUP


def test_only_first_management_counts():
    first = Management(metadata=ObjectMeta(name="first"))
    second = Management(metadata=ObjectMeta(name="second"))
    assert get_backup_type(Backup(), "second", iter([first, second])) is BackupType.BACKUP
    assert get_backup_type(Backup(), "first", [first, second]) is BackupType.SCHEDULE


def test_backup_defaults():
    backup = Backup(metadata=ObjectMeta(name="b", namespace="ns"))
    assert backup.kind == "Backup"
    assert (backup.name, backup.namespace) == ("b", "ns")
    assert backup.spec.oneshot is False
    assert backup.status.reference is None