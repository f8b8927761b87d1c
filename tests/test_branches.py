"""Tests for default branch creation and branch protection."""

import json
import sys
from pathlib import Path

import pytest
import responses

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Constants
MOCK_GITLAB_URL = "https://gitlab.example.com"
MOCK_API_URL = f"{MOCK_GITLAB_URL}/api/v4"

from conftest import make_desired
from gl_enforcer.exceptions import RemoteError
from gl_enforcer.models import AccessLevel, ProtectedBranchRule
from gl_enforcer.reconcilers import BranchReconciler

RULES = [
    ProtectedBranchRule("develop", AccessLevel.DEVELOPER, AccessLevel.MAINTAINER),
    ProtectedBranchRule("master", AccessLevel.NONE, AccessLevel.MAINTAINER),
]


def add_protection(branch, unprotect_status=204):
    responses.add(
        responses.DELETE,
        f"{MOCK_API_URL}/projects/123/protected_branches/{branch}",
        status=unprotect_status,
    )
    responses.add(
        responses.POST,
        f"{MOCK_API_URL}/projects/123/protected_branches",
        json={"name": branch},
    )


class TestDefaultBranch:
    """Tests for ensure_default_branch."""

    @responses.activate
    def test_creates_missing_branch_from_master(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123/repository/branches/develop", status=404)
        responses.add(responses.POST, f"{MOCK_API_URL}/projects/123/repository/branches", json={"name": "develop"})

        desired = make_desired(create_default_branch=True, project_settings={"default_branch": "develop"})
        reconciler = BranchReconciler(mock_client)
        reconciler.ensure_default_branch(sample_project, desired)

        assert json.loads(responses.calls[1].request.body) == {"branch": "develop", "ref": "master"}
        assert reconciler.results[0].action == "applied"

    @responses.activate
    def test_existing_branch_is_noop(self, mock_client, sample_project):
        responses.add(
            responses.GET, f"{MOCK_API_URL}/projects/123/repository/branches/develop", json={"name": "develop"}
        )

        desired = make_desired(create_default_branch=True, project_settings={"default_branch": "develop"})
        reconciler = BranchReconciler(mock_client)
        reconciler.ensure_default_branch(sample_project, desired)

        assert len(responses.calls) == 1
        assert reconciler.results[0].action == "already_set"

    @pytest.mark.parametrize("create", [True, False])
    @responses.activate
    def test_master_is_never_created(self, mock_client, sample_project, create):
        # No responses registered - any request fails the test
        desired = make_desired(create_default_branch=create, project_settings={"default_branch": "master"})
        BranchReconciler(mock_client).ensure_default_branch(sample_project, desired)

        assert len(responses.calls) == 0

    @responses.activate
    def test_creation_disabled_is_noop(self, mock_client, sample_project):
        desired = make_desired(create_default_branch=False, project_settings={"default_branch": "develop"})
        BranchReconciler(mock_client).ensure_default_branch(sample_project, desired)

        assert len(responses.calls) == 0

    @responses.activate
    def test_unexpected_lookup_failure_is_fatal(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123/repository/branches/develop", status=403)

        desired = make_desired(create_default_branch=True, project_settings={"default_branch": "develop"})
        with pytest.raises(RemoteError):
            BranchReconciler(mock_client).ensure_default_branch(sample_project, desired)
        assert len(responses.calls) == 1

    @responses.activate
    def test_dry_run_checks_but_does_not_create(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123/repository/branches/develop", status=404)

        desired = make_desired(create_default_branch=True, project_settings={"default_branch": "develop"})
        reconciler = BranchReconciler(mock_client)
        reconciler.ensure_default_branch(sample_project, desired, dry_run=True)

        assert len(responses.calls) == 1
        assert responses.calls[0].request.method == "GET"
        assert reconciler.results[0].action == "would_apply"


class TestProtectedBranches:
    """Tests for ensure_protected_branches."""

    @responses.activate
    def test_unprotects_then_protects_each_rule_in_order(self, mock_client, sample_project):
        add_protection("develop")
        add_protection("master")

        reconciler = BranchReconciler(mock_client)
        reconciler.ensure_protected_branches(sample_project, RULES)

        methods = [(c.request.method, c.request.url.rsplit("/", 1)[-1]) for c in responses.calls]
        assert methods == [
            ("DELETE", "develop"),
            ("POST", "protected_branches"),
            ("DELETE", "master"),
            ("POST", "protected_branches"),
        ]
        assert json.loads(responses.calls[1].request.body) == {
            "name": "develop",
            "push_access_level": 30,
            "merge_access_level": 40,
        }
        assert json.loads(responses.calls[3].request.body)["push_access_level"] == 0
        assert [r.action for r in reconciler.results] == ["applied", "applied"]

    @responses.activate
    def test_unprotect_not_found_is_not_an_error(self, mock_client, sample_project):
        add_protection("develop", unprotect_status=404)

        BranchReconciler(mock_client).ensure_protected_branches(sample_project, RULES[:1])

        assert responses.calls[-1].request.method == "POST"

    @responses.activate
    def test_failure_aborts_remaining_branches(self, mock_client, sample_project):
        responses.add(responses.DELETE, f"{MOCK_API_URL}/projects/123/protected_branches/develop", status=204)
        responses.add(responses.POST, f"{MOCK_API_URL}/projects/123/protected_branches", status=422)

        with pytest.raises(RemoteError, match="failed to protect branch develop"):
            BranchReconciler(mock_client).ensure_protected_branches(sample_project, RULES)

        # Nothing attempted for "master"
        assert len(responses.calls) == 2

    @responses.activate
    def test_unprotect_failure_aborts(self, mock_client, sample_project):
        responses.add(responses.DELETE, f"{MOCK_API_URL}/projects/123/protected_branches/develop", status=403)

        with pytest.raises(RemoteError, match="before protection"):
            BranchReconciler(mock_client).ensure_protected_branches(sample_project, RULES)
        assert len(responses.calls) == 1

    @responses.activate
    def test_running_twice_converges_to_same_requests(self, mock_client, sample_project):
        add_protection("develop")
        add_protection("master")

        reconciler = BranchReconciler(mock_client)
        reconciler.ensure_protected_branches(sample_project, RULES)
        first = [(c.request.method, c.request.url, c.request.body) for c in responses.calls]
        reconciler.ensure_protected_branches(sample_project, RULES)
        second = [(c.request.method, c.request.url, c.request.body) for c in responses.calls][len(first) :]

        assert first == second

    @responses.activate
    def test_dry_run_issues_no_requests(self, mock_client, sample_project):
        reconciler = BranchReconciler(mock_client)
        reconciler.ensure_protected_branches(sample_project, RULES, dry_run=True)

        assert len(responses.calls) == 0
        assert [r.action for r in reconciler.results] == ["would_apply", "would_apply"]
        assert all(r.dry_run for r in reconciler.results)
