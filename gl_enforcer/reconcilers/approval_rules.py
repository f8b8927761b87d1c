"""Project-level merge request approval rules."""

from __future__ import annotations

from gl_enforcer.exceptions import RemoteError
from gl_enforcer.models import ApprovalRule, Project
from gl_enforcer.reconcilers.base import Reconciler


class ApprovalRuleReconciler(Reconciler):
    """Creates or updates the configured approval rules, matched by name.

    Rules present on the project but absent from the configuration are left alone.
    """

    def apply_approval_rules(self, project: Project, rules: list[ApprovalRule], dry_run: bool = False) -> None:
        if not rules:
            return

        try:
            existing = {r.get("name"): r for r in self.client.list_approval_rules(project.id)}
        except RemoteError as e:
            raise RemoteError(f"failed to list approval rules of {project.full_path}: {e}", e.status_code) from e

        for rule in rules:
            current = existing.get(rule.name)
            if current is None:
                self._create(project, rule, dry_run)
            else:
                self._update(project, rule, current, dry_run)

    def _create(self, project: Project, rule: ApprovalRule, dry_run: bool) -> None:
        operation = f"approval-rule:{rule.name}"
        detail = f"created with {rule.approvals_required} approvals, {len(rule.user_ids)} users, {len(rule.group_ids)} groups"
        if dry_run:
            self._record(project, operation, "would_apply", detail, dry_run=True)
            return
        try:
            self.client.create_approval_rule(project.id, _payload(rule))
        except RemoteError as e:
            raise RemoteError(f"failed to create approval rule {rule.name}: {e}", e.status_code) from e
        self._record(project, operation, "applied", detail)

    def _update(self, project: Project, rule: ApprovalRule, current: dict, dry_run: bool) -> None:
        operation = f"approval-rule:{rule.name}"
        current_approvals = current.get("approvals_required", 0)
        current_users = tuple(sorted(u["id"] for u in current.get("users") or []))
        current_groups = tuple(sorted(g["id"] for g in current.get("groups") or []))

        changes = []
        if current_approvals != rule.approvals_required:
            changes.append(f"approvals: {current_approvals} -> {rule.approvals_required}")
        if current_users != rule.user_ids:
            changes.append(f"users: {len(current_users)} -> {len(rule.user_ids)}")
        if current_groups != rule.group_ids:
            changes.append(f"groups: {len(current_groups)} -> {len(rule.group_ids)}")

        if not changes:
            self._record(project, operation, "already_set", f"approvals={current_approvals}")
            return

        if dry_run:
            self._record(project, operation, "would_apply", "; ".join(changes), dry_run=True)
            return

        try:
            self.client.update_approval_rule(project.id, current["id"], _payload(rule))
        except RemoteError as e:
            raise RemoteError(f"failed to update approval rule {rule.name}: {e}", e.status_code) from e
        self._record(project, operation, "applied", "; ".join(changes))


def _payload(rule: ApprovalRule) -> dict:
    return {
        "name": rule.name,
        "approvals_required": rule.approvals_required,
        "user_ids": list(rule.user_ids),
        "group_ids": list(rule.group_ids),
    }
