"""Before/after settings snapshots keyed by project path."""

from __future__ import annotations

from gl_enforcer.models import SettingsSnapshot
from gl_enforcer.schema import ApprovalSettings, GeneralSettings

SnapshotMap = dict[str, SettingsSnapshot]


def record_snapshot(
    snapshots: SnapshotMap,
    project_path: str,
    approval: ApprovalSettings | None = None,
    general: GeneralSettings | None = None,
) -> SettingsSnapshot:
    """Create or update the snapshot for ``project_path``, overlaying only the given sections."""
    snapshot = snapshots.setdefault(project_path, SettingsSnapshot())
    if approval is not None:
        snapshot.approval = approval
    if general is not None:
        snapshot.general = general
    return snapshot
