"""Typed settings schemas for the two reconciled settings domains.

Every field is declared with :func:`setting`, which tags it as part of the
schema. A field left at ``UNSET`` is omitted from update payloads, while an
explicit ``None`` is sent as ``null``. Snapshots taken from the API fill every
field, using ``None`` for keys the API did not return.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from gl_enforcer.exceptions import ConfigError


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def setting(label: str | None = None) -> Any:
    """Declare a schema field. ``label`` overrides the name shown in change reports."""
    return field(default=UNSET, metadata={"setting": True, "label": label})


@dataclass
class SettingsModel:
    """Common behaviour of the settings schemas."""

    section = ""

    @classmethod
    def setting_names(cls) -> list[str]:
        return [f.name for f in fields(cls) if f.metadata.get("setting")]

    @classmethod
    def from_config(cls, data: Mapping[str, Any] | None):
        """Build from a configuration section, rejecting keys outside the schema."""
        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise ConfigError(f"{cls.section} must be a mapping, got {type(data).__name__}")
        known = set(cls.setting_names())
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown {cls.section} key(s): {', '.join(unknown)}")
        return cls(**dict(data))

    @classmethod
    def from_api(cls, data: Mapping[str, Any]):
        """Build a snapshot from an API response, ignoring keys outside the schema."""
        return cls(**{name: data.get(name) for name in cls.setting_names()})

    def get(self, name: str, default: Any = None) -> Any:
        value = getattr(self, name)
        return default if value is UNSET else value

    def to_payload(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.setting_names() if getattr(self, name) is not UNSET}

    def compare(self, other: SettingsModel) -> list[tuple[str, Any, Any]]:
        """Return ``(label, ours, theirs)`` for every schema field whose value differs."""
        changes = []
        for f in fields(self):
            if not f.metadata.get("setting"):
                continue
            old, new = getattr(self, f.name), getattr(other, f.name)
            if old != new:
                changes.append((f.metadata.get("label") or f.name, old, new))
        return changes


@dataclass
class GeneralSettings(SettingsModel):
    """Project settings accepted by ``PUT /projects/:id``."""

    section = "project_settings"

    default_branch: str | None = setting()
    visibility: str | None = setting()
    issues_enabled: bool | None = setting()
    merge_requests_enabled: bool | None = setting()
    wiki_enabled: bool | None = setting()
    jobs_enabled: bool | None = setting()
    snippets_enabled: bool | None = setting()
    container_registry_enabled: bool | None = setting()
    lfs_enabled: bool | None = setting()
    packages_enabled: bool | None = setting()
    request_access_enabled: bool | None = setting()
    shared_runners_enabled: bool | None = setting()
    public_jobs: bool | None = setting()
    emails_disabled: bool | None = setting()
    only_allow_merge_if_pipeline_succeeds: bool | None = setting()
    only_allow_merge_if_all_discussions_are_resolved: bool | None = setting()
    allow_merge_on_skipped_pipeline: bool | None = setting()
    remove_source_branch_after_merge: bool | None = setting()
    resolve_outdated_diff_discussions: bool | None = setting()
    printing_merge_request_link_enabled: bool | None = setting()
    merge_method: str | None = setting()
    squash_option: str | None = setting()
    suggestion_commit_message: str | None = setting()
    ci_config_path: str | None = setting()
    ci_default_git_depth: int | None = setting()
    build_timeout: int | None = setting()
    auto_devops_enabled: bool | None = setting()
    auto_cancel_pending_pipelines: str | None = setting()
    issues_access_level: str | None = setting()
    merge_requests_access_level: str | None = setting()
    repository_access_level: str | None = setting()
    builds_access_level: str | None = setting()
    wiki_access_level: str | None = setting()
    snippets_access_level: str | None = setting()
    pages_access_level: str | None = setting()
    forking_access_level: str | None = setting()


@dataclass
class ApprovalSettings(SettingsModel):
    """Merge request approval configuration of ``/projects/:id/approvals``."""

    section = "approval_settings"

    approvals_before_merge: int | None = setting()
    reset_approvals_on_push: bool | None = setting()
    disable_overriding_approvers_per_merge_request: bool | None = setting()
    merge_requests_author_approval: bool | None = setting()
    merge_requests_disable_committers_approval: bool | None = setting()
    require_password_to_approve: bool | None = setting()
