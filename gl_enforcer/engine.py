"""Run-level orchestration: resolve, discover, reconcile each project, report."""

from __future__ import annotations

import logging
from collections.abc import Callable

from gl_enforcer.client import GitLabClient
from gl_enforcer.discovery import ProjectDiscovery
from gl_enforcer.exceptions import EnforcerError
from gl_enforcer.models import ActionResult, DesiredState, Project
from gl_enforcer.reconcilers import ApprovalRuleReconciler, BranchReconciler, SettingsReconciler, log_result
from gl_enforcer.report import ChangeReporter
from gl_enforcer.resolver import GroupResolver
from gl_enforcer.snapshots import SnapshotMap


class Enforcer:
    """Reconciles every selected project of a group against a DesiredState.

    Projects are processed one at a time. A failure in one step of a project
    is logged and recorded, and the remaining steps and projects still run.
    """

    def __init__(self, client: GitLabClient, desired: DesiredState, dry_run: bool = False):
        self.client = client
        self.desired = desired
        self.dry_run = dry_run
        self.logger = logging.getLogger("gl-enforcer")
        self.results: list[ActionResult] = []
        self.before: SnapshotMap = {}
        self.after: SnapshotMap = {}

        self.resolver = GroupResolver(client)
        self.discovery = ProjectDiscovery(client)
        self.branches = BranchReconciler(client, self.results)
        self.settings = SettingsReconciler(client, self.before, self.after, self.results)
        self.approval_rules = ApprovalRuleReconciler(client, self.results)

    def discover(self) -> list[Project]:
        """Resolve the configured group and list its selected projects. Errors here are fatal."""
        self.logger.debug(f"Identifying group id of {self.desired.group_name}")
        group_id = self.resolver.resolve_group_id(self.desired.group_name)
        self.logger.debug(f"Group id is {group_id}")
        return self.discovery.list_projects(
            group_id, self.desired.project_whitelist, self.desired.project_blacklist
        )

    def run(self) -> list[Project]:
        projects = self.discover()
        self.logger.info(f"Found {len(projects)} projects.")
        for index, project in enumerate(projects, start=1):
            self.logger.info(f"Updating Project #{index}: {project.full_path}")
            self.reconcile_project(project)
        return projects

    def reconcile_project(self, project: Project) -> None:
        for operation, step in self._steps():
            try:
                step(project)
            except EnforcerError as e:
                self.logger.debug(f"{operation} failed for {project.full_path}", exc_info=True)
                result = ActionResult(
                    target_path=project.full_path,
                    target_id=project.id,
                    operation=operation,
                    action="error",
                    detail=str(e),
                    dry_run=self.dry_run,
                )
                self.results.append(result)
                log_result(self.logger, result)

    def _steps(self) -> list[tuple[str, Callable[[Project], None]]]:
        steps: list[tuple[str, Callable[[Project], None]]] = [("branches", self._ensure_branches)]
        if self.desired.project_settings is not None:
            steps.append(("project-settings", self._apply_settings))
        else:
            self.logger.debug("No project_settings section configured, skipping")
        if self.desired.approval_settings is not None:
            steps.append(("approval-settings", self._apply_approval_settings))
        if self.desired.approval_rules:
            steps.append(("approval-rules", self._apply_approval_rules))
        return steps

    def _ensure_branches(self, project: Project) -> None:
        self.branches.ensure_default_branch(project, self.desired, self.dry_run)
        self.branches.ensure_protected_branches(project, self.desired.protected_branches, self.dry_run)

    def _apply_settings(self, project: Project) -> None:
        self.settings.apply_settings(project, self.desired, self.dry_run)

    def _apply_approval_settings(self, project: Project) -> None:
        self.settings.apply_approval_settings(project, self.desired, self.dry_run)

    def _apply_approval_rules(self, project: Project) -> None:
        self.approval_rules.apply_approval_rules(project, self.desired.approval_rules, self.dry_run)

    def change_report(self) -> str | None:
        return ChangeReporter().report(self.before, self.after)

    def summary(self) -> dict[str, int]:
        return {
            "changed": sum(1 for r in self.results if r.action in ("applied", "would_apply")),
            "already_set": sum(1 for r in self.results if r.action == "already_set"),
            "errors": sum(1 for r in self.results if r.action == "error"),
        }
