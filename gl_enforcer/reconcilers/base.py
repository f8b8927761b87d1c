"""Base class for reconcilers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gl_enforcer.models import ActionResult, Project

if TYPE_CHECKING:
    from gl_enforcer.client import GitLabClient

ICONS = {
    "applied": "\u2713",
    "already_set": "\u00b7",
    "skipped": "\u2192",
    "error": "\u2717",
    "would_apply": "\u25cb",
}


def log_result(logger: logging.Logger, result: ActionResult) -> None:
    """Log a result; the JSON formatter serialises the attached ActionResult instead of the message."""
    icon = ICONS.get(result.action, "?")
    prefix = "[DRY-RUN] " if result.dry_run else ""
    level = logging.ERROR if result.action == "error" else logging.INFO
    logger.log(
        level,
        f"{prefix}{icon} {result.target_path}: {result.operation} \u2192 {result.action}"
        f"{' (' + result.detail + ')' if result.detail else ''}",
        extra={"action_result": result},
    )


class Reconciler:
    """Shared plumbing: a client, the logger, and the run-wide result list."""

    def __init__(self, client: GitLabClient, results: list[ActionResult] | None = None):
        self.client = client
        self.logger = logging.getLogger("gl-enforcer")
        self.results: list[ActionResult] = results if results is not None else []

    def _record(
        self, project: Project, operation: str, action: str, detail: str = "", dry_run: bool = False
    ) -> ActionResult:
        result = ActionResult(
            target_path=project.full_path,
            target_id=project.id,
            operation=operation,
            action=action,
            detail=detail,
            dry_run=dry_run,
        )
        self.results.append(result)
        log_result(self.logger, result)
        return result
