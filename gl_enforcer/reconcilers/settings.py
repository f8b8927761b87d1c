"""General project settings and merge request approval configuration."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from gl_enforcer.exceptions import ConfigError, RemoteError
from gl_enforcer.models import ActionResult, DesiredState, Project
from gl_enforcer.reconcilers.base import Reconciler
from gl_enforcer.schema import ApprovalSettings, GeneralSettings, SettingsModel
from gl_enforcer.snapshots import SnapshotMap, record_snapshot

if TYPE_CHECKING:
    from gl_enforcer.client import GitLabClient


class SettingsReconciler(Reconciler):
    """Applies settings sections and records remote state before and after each update.

    ``before`` and ``after`` are the run-wide snapshot maps; this class is
    their only writer.
    """

    def __init__(
        self,
        client: GitLabClient,
        before: SnapshotMap,
        after: SnapshotMap,
        results: list[ActionResult] | None = None,
    ):
        super().__init__(client, results)
        self.before = before
        self.after = after

    def apply_settings(self, project: Project, desired: DesiredState, dry_run: bool = False) -> None:
        if desired.project_settings is None:
            raise ConfigError("No project_settings section provided in config")
        self._sync(
            project,
            operation="project-settings",
            desired=desired.project_settings,
            model=GeneralSettings,
            fetch=self.client.get_project,
            submit=self.client.edit_project,
            dry_run=dry_run,
        )

    def apply_approval_settings(self, project: Project, desired: DesiredState, dry_run: bool = False) -> None:
        if desired.approval_settings is None:
            raise ConfigError("No approval_settings section provided in config")
        self._sync(
            project,
            operation="approval-settings",
            desired=desired.approval_settings,
            model=ApprovalSettings,
            fetch=self.client.get_approval_configuration,
            submit=self.client.change_approval_configuration,
            dry_run=dry_run,
        )

    def _sync(
        self,
        project: Project,
        operation: str,
        desired: SettingsModel,
        model: type[SettingsModel],
        fetch: Callable[[int], dict],
        submit: Callable[[int, dict], Any],
        dry_run: bool,
    ) -> None:
        section = model.section
        self.logger.debug(f"Updating {section} of project {project.full_path} [{project.id}]")

        current = self._fetch(project, model, fetch)
        self._snapshot(self.before, project, current)

        payload = desired.to_payload()
        planned = sorted(k for k, v in payload.items() if current.get(k) != v)
        self.logger.debug(f"{section} payload for {project.full_path}: {payload}")

        if dry_run:
            self.logger.debug(f"DRY-RUN: skipping update of {section} for {project.full_path}")
        else:
            try:
                submit(project.id, payload)
            except RemoteError as e:
                raise RemoteError(f"failed to update {section} of project {project.full_path}: {e}", e.status_code) from e

        updated = self._fetch(project, model, fetch)
        self._snapshot(self.after, project, updated)

        if dry_run:
            if planned:
                self._record(project, operation, "would_apply", f"would change: {planned}", dry_run=True)
            else:
                self._record(project, operation, "already_set", f"keys: {sorted(payload)}")
            return

        changed = [label for label, _, _ in current.compare(updated)]
        if changed:
            self._record(project, operation, "applied", f"changed: {changed}")
        else:
            self._record(project, operation, "already_set", f"keys: {sorted(payload)}")

    def _fetch(self, project: Project, model: type[SettingsModel], fetch: Callable[[int], dict]) -> SettingsModel:
        try:
            return model.from_api(fetch(project.id))
        except RemoteError as e:
            raise RemoteError(
                f"failed to get current {model.section} of project {project.full_path}: {e}", e.status_code
            ) from e

    @staticmethod
    def _snapshot(snapshots: SnapshotMap, project: Project, settings: SettingsModel) -> None:
        if isinstance(settings, ApprovalSettings):
            record_snapshot(snapshots, project.full_path, approval=settings)
        else:
            record_snapshot(snapshots, project.full_path, general=settings)
