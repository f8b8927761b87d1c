"""Loading and validation of the desired-state configuration document."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from gl_enforcer.exceptions import ConfigError
from gl_enforcer.models import AccessLevel, ApprovalRule, DesiredState, ProtectedBranchRule
from gl_enforcer.schema import ApprovalSettings, GeneralSettings

logger = logging.getLogger("gl-enforcer")

KNOWN_KEYS = {
    "group_name",
    "project_whitelist",
    "project_blacklist",
    "create_default_branch",
    "protected_branches",
    "project_settings",
    "approval_settings",
    "approval_rules",
}


def load_config(config_path: Path) -> DesiredState:
    """Load and validate the configuration file at ``config_path``.

    The document may be YAML or JSON. Raises ConfigError if the file is
    missing, cannot be parsed, or does not describe a valid desired state.
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    return parse_config(raw)


def parse_config(raw: Any) -> DesiredState:
    """Validate an already-parsed document and build the DesiredState."""
    if not isinstance(raw, Mapping):
        raise ConfigError("Configuration must be a mapping")

    unknown = sorted(set(raw) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    group_name = raw.get("group_name")
    if isinstance(group_name, str):
        group_name = group_name.strip("/")
    if not group_name or not isinstance(group_name, str):
        raise ConfigError("'group_name' is required and must be a string")

    create_default_branch = raw.get("create_default_branch", False)
    if not isinstance(create_default_branch, bool):
        raise ConfigError("'create_default_branch' must be true or false")

    return DesiredState(
        group_name=group_name,
        project_whitelist=_string_list(raw, "project_whitelist"),
        project_blacklist=_string_list(raw, "project_blacklist"),
        create_default_branch=create_default_branch,
        protected_branches=[_parse_branch_rule(i, b) for i, b in enumerate(raw.get("protected_branches") or [])],
        project_settings=GeneralSettings.from_config(raw.get("project_settings")),
        approval_settings=ApprovalSettings.from_config(raw.get("approval_settings")),
        approval_rules=[_parse_approval_rule(i, r) for i, r in enumerate(raw.get("approval_rules") or [])],
    )


def _string_list(raw: Mapping, key: str) -> list[str]:
    value = raw.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of project paths")
    return value


def _parse_branch_rule(index: int, entry: Any) -> ProtectedBranchRule:
    if not isinstance(entry, Mapping) or not entry.get("name"):
        raise ConfigError(f"protected_branches[{index}] must be a mapping with a 'name'")
    return ProtectedBranchRule(
        name=str(entry["name"]),
        push_access_level=AccessLevel.parse(entry.get("push_access_level")),
        merge_access_level=AccessLevel.parse(entry.get("merge_access_level")),
    )


def _parse_approval_rule(index: int, entry: Any) -> ApprovalRule:
    if not isinstance(entry, Mapping) or not entry.get("name"):
        raise ConfigError(f"approval_rules[{index}] must be a mapping with a 'name'")
    approvals = entry.get("approvals_required")
    if not isinstance(approvals, int) or isinstance(approvals, bool) or approvals < 0:
        raise ConfigError(f"approval_rules[{index}].approvals_required must be a non-negative integer")
    try:
        user_ids = tuple(sorted(int(u) for u in entry.get("user_ids") or []))
        group_ids = tuple(sorted(int(g) for g in entry.get("group_ids") or []))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"approval_rules[{index}] has a non-numeric id: {e}") from e
    return ApprovalRule(
        name=str(entry["name"]),
        approvals_required=approvals,
        user_ids=user_ids,
        group_ids=group_ids,
    )
