"""Data models and constants for gl-enforcer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gl_enforcer.exceptions import ConfigError
from gl_enforcer.schema import ApprovalSettings, GeneralSettings

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_GITLAB_URL = "https://gitlab.com"
DEFAULT_CONFIG_PATH = "config.yml"
API_V4 = "/api/v4"
PER_PAGE = 100
REQUEST_TIMEOUT = 30  # seconds

# Retry configuration
DEFAULT_MAX_RETRIES = 3
RETRY_BACKOFF_FACTOR = 0.5  # seconds
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Branch that is assumed to exist in every project and used as the ref for new branches
BASE_BRANCH = "master"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AccessLevel(Enum):
    """Access levels accepted for protected branch rules."""

    NONE = "none"
    DEVELOPER = "developer"
    MAINTAINER = "maintainer"

    @property
    def gitlab_value(self) -> int:
        return {"none": 0, "developer": 30, "maintainer": 40}[self.value]

    @classmethod
    def parse(cls, value: Any) -> AccessLevel:
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(level.value for level in cls)
            raise ConfigError(f"Invalid access level {value!r} (expected one of: {allowed})") from None


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Project:
    """A GitLab project discovered under the configured group."""

    id: int
    name: str
    full_path: str


@dataclass(frozen=True)
class ProtectedBranchRule:
    name: str
    push_access_level: AccessLevel
    merge_access_level: AccessLevel


@dataclass(frozen=True)
class ApprovalRule:
    """A named project-level merge request approval rule."""

    name: str
    approvals_required: int
    user_ids: tuple[int, ...] = ()
    group_ids: tuple[int, ...] = ()


@dataclass
class DesiredState:
    """Parsed configuration document describing how every project should look."""

    group_name: str
    project_whitelist: list[str] = field(default_factory=list)
    project_blacklist: list[str] = field(default_factory=list)
    create_default_branch: bool = False
    protected_branches: list[ProtectedBranchRule] = field(default_factory=list)
    project_settings: GeneralSettings | None = None
    approval_settings: ApprovalSettings | None = None
    approval_rules: list[ApprovalRule] = field(default_factory=list)

    def __post_init__(self):
        if self.project_whitelist and self.project_blacklist:
            raise ConfigError("project_whitelist and project_blacklist are mutually exclusive")

    @property
    def default_branch(self) -> str | None:
        if self.project_settings is None:
            return None
        return self.project_settings.get("default_branch")


@dataclass
class SettingsSnapshot:
    """Remote approval and general settings of one project at a point in time."""

    approval: ApprovalSettings | None = None
    general: GeneralSettings | None = None


@dataclass(frozen=True)
class ChangeEntry:
    """A single field-level difference between two snapshots."""

    project_path: str
    field_name: str
    old_value: Any
    new_value: Any


@dataclass
class ActionResult:
    """Result of a single reconciliation step on a project."""

    target_path: str
    target_id: int
    operation: str
    action: str  # "applied", "would_apply", "already_set", "skipped", "error"
    detail: str = ""
    dry_run: bool = False

    def to_dict(self) -> dict:
        d = {
            "target_path": self.target_path,
            "target_id": self.target_id,
            "operation": self.operation,
            "action": self.action,
            "detail": self.detail,
        }
        if self.dry_run:
            d["dry_run"] = True
        return d
