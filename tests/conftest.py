"""Shared test fixtures for gl-enforcer tests."""

import sys
from pathlib import Path
from typing import Any

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from gl_enforcer.client import GitLabClient
from gl_enforcer.config import parse_config
from gl_enforcer.models import DesiredState, Project

# Constants for use in tests - pytest makes conftest.py fixtures available,
# but these constants need to be imported directly from tests
MOCK_GITLAB_URL = "https://gitlab.example.com"
MOCK_API_URL = f"{MOCK_GITLAB_URL}/api/v4"


@pytest.fixture
def mock_client():
    """GitLabClient pointing at mock server."""
    return GitLabClient(MOCK_GITLAB_URL, "test-token", max_retries=0)


@pytest.fixture
def sample_project() -> Project:
    return Project(id=123, name="my-project", full_path="myorg/my-project")


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """Configuration document exercising every section."""
    return {
        "group_name": "myorg",
        "create_default_branch": True,
        "protected_branches": [
            {"name": "develop", "push_access_level": "developer", "merge_access_level": "maintainer"},
            {"name": "master", "push_access_level": "none", "merge_access_level": "maintainer"},
        ],
        "project_settings": {
            "default_branch": "develop",
            "visibility": "private",
            "merge_method": "ff",
        },
        "approval_settings": {
            "approvals_before_merge": 2,
            "reset_approvals_on_push": True,
        },
    }


@pytest.fixture
def desired(sample_config) -> DesiredState:
    return parse_config(sample_config)


def make_desired(**overrides) -> DesiredState:
    """Helper to build a DesiredState from a minimal document plus overrides."""
    doc = {"group_name": "myorg"}
    doc.update(overrides)
    return parse_config(doc)
