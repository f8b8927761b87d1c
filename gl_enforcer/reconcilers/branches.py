"""Default branch creation and branch protection."""

from __future__ import annotations

from gl_enforcer.exceptions import NotFoundError, RemoteError
from gl_enforcer.models import BASE_BRANCH, DesiredState, Project, ProtectedBranchRule
from gl_enforcer.reconcilers.base import Reconciler


class BranchReconciler(Reconciler):
    """Ensures the default branch exists and protected branches match the configured rules."""

    def ensure_default_branch(self, project: Project, desired: DesiredState, dry_run: bool = False) -> None:
        branch = desired.default_branch
        if not desired.create_default_branch or not branch or branch == BASE_BRANCH:
            return

        operation = f"default-branch:{branch}"
        self.logger.debug(f"Ensuring default branch {branch} exists in {project.full_path}")

        try:
            self.client.get_branch(project.id, branch)
        except NotFoundError:
            pass
        else:
            self._record(project, operation, "already_set", "branch exists")
            return

        if dry_run:
            self._record(project, operation, "would_apply", f"create from {BASE_BRANCH}", dry_run=True)
            return

        try:
            self.client.create_branch(project.id, branch, BASE_BRANCH)
        except RemoteError as e:
            raise RemoteError(f"failed to create default branch {branch}: {e}", e.status_code) from e
        self._record(project, operation, "applied", f"created from {BASE_BRANCH}")

    def ensure_protected_branches(
        self, project: Project, rules: list[ProtectedBranchRule], dry_run: bool = False
    ) -> None:
        """Unprotect then protect every rule in order, stopping at the first failure."""
        for rule in rules:
            operation = f"protect-branch:{rule.name}"
            detail = f"push={rule.push_access_level.value}, merge={rule.merge_access_level.value}"

            if dry_run:
                self.logger.debug(f"DRY-RUN: skipping unprotect/protect of {rule.name} on {project.full_path}")
                self._record(project, operation, "would_apply", detail, dry_run=True)
                continue

            try:
                self.client.unprotect_branch(project.id, rule.name)
            except NotFoundError:
                self.logger.debug(f"Branch {rule.name} of {project.full_path} was not protected")
            except RemoteError as e:
                raise RemoteError(f"failed to unprotect branch {rule.name} before protection: {e}", e.status_code) from e

            try:
                self.client.protect_branch(
                    project.id,
                    rule.name,
                    rule.push_access_level.gitlab_value,
                    rule.merge_access_level.gitlab_value,
                )
            except RemoteError as e:
                raise RemoteError(f"failed to protect branch {rule.name}: {e}", e.status_code) from e

            self._record(project, operation, "applied", detail)
