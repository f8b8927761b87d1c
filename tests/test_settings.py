"""Tests for project settings and approval configuration reconciliation."""

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
from gl_enforcer.exceptions import ConfigError, RemoteError
from gl_enforcer.models import SettingsSnapshot
from gl_enforcer.reconcilers import SettingsReconciler
from gl_enforcer.schema import ApprovalSettings, GeneralSettings
from gl_enforcer.snapshots import record_snapshot


def make_reconciler(client):
    return SettingsReconciler(client, before={}, after={})


class TestApplySettings:
    @responses.activate
    def test_records_before_and_after(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={"id": 123, "visibility": "public"})
        responses.add(responses.PUT, f"{MOCK_API_URL}/projects/123", json={"id": 123, "visibility": "private"})
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={"id": 123, "visibility": "private"})

        reconciler = make_reconciler(mock_client)
        reconciler.apply_settings(sample_project, make_desired(project_settings={"visibility": "private"}))

        assert reconciler.before["myorg/my-project"].general.visibility == "public"
        assert reconciler.after["myorg/my-project"].general.visibility == "private"
        assert [c.request.method for c in responses.calls] == ["GET", "PUT", "GET"]
        assert json.loads(responses.calls[1].request.body) == {"visibility": "private"}
        assert reconciler.results[0].action == "applied"

    @responses.activate
    def test_explicit_null_is_sent(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={"ci_config_path": "x.yml"})
        responses.add(responses.PUT, f"{MOCK_API_URL}/projects/123", json={})
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={})

        desired = make_desired(project_settings={"ci_config_path": None, "visibility": "private"})
        make_reconciler(mock_client).apply_settings(sample_project, desired)

        assert json.loads(responses.calls[1].request.body) == {"ci_config_path": None, "visibility": "private"}

    @responses.activate
    def test_rejected_update_raises_and_skips_after(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={"visibility": "public"})
        responses.add(responses.PUT, f"{MOCK_API_URL}/projects/123", status=400)

        reconciler = make_reconciler(mock_client)
        with pytest.raises(RemoteError, match="failed to update project_settings"):
            reconciler.apply_settings(sample_project, make_desired(project_settings={"visibility": "private"}))

        assert "myorg/my-project" in reconciler.before
        assert "myorg/my-project" not in reconciler.after

    def test_missing_section_is_config_error(self, mock_client, sample_project):
        with pytest.raises(ConfigError):
            make_reconciler(mock_client).apply_settings(sample_project, make_desired())

    @responses.activate
    def test_dry_run_skips_update(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={"visibility": "public"})

        reconciler = make_reconciler(mock_client)
        reconciler.apply_settings(
            sample_project, make_desired(project_settings={"visibility": "private"}), dry_run=True
        )

        assert [c.request.method for c in responses.calls] == ["GET", "GET"]
        path = "myorg/my-project"
        assert reconciler.before[path].general == reconciler.after[path].general
        assert reconciler.results[0].action == "would_apply"
        assert "visibility" in reconciler.results[0].detail


class TestApplyApprovalSettings:
    @responses.activate
    def test_posts_approval_configuration(self, mock_client, sample_project):
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123/approvals", json={"approvals_before_merge": 0})
        responses.add(responses.POST, f"{MOCK_API_URL}/projects/123/approvals", json={"approvals_before_merge": 2})
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123/approvals", json={"approvals_before_merge": 2})

        reconciler = make_reconciler(mock_client)
        reconciler.apply_approval_settings(
            sample_project, make_desired(approval_settings={"approvals_before_merge": 2})
        )

        path = "myorg/my-project"
        assert reconciler.before[path].approval.approvals_before_merge == 0
        assert reconciler.after[path].approval.approvals_before_merge == 2
        assert reconciler.after[path].general is None

    def test_missing_section_is_config_error(self, mock_client, sample_project):
        with pytest.raises(ConfigError):
            make_reconciler(mock_client).apply_approval_settings(sample_project, make_desired())

    @responses.activate
    def test_unchanged_is_already_set(self, mock_client, sample_project):
        responses.add(
            responses.GET, f"{MOCK_API_URL}/projects/123/approvals", json={"reset_approvals_on_push": True}
        )
        responses.add(responses.POST, f"{MOCK_API_URL}/projects/123/approvals", json={})

        reconciler = make_reconciler(mock_client)
        reconciler.apply_approval_settings(
            sample_project, make_desired(approval_settings={"reset_approvals_on_push": True})
        )

        assert reconciler.results[0].action == "already_set"


class TestRecordSnapshot:
    """Snapshot recording is an upsert that overlays one section at a time."""

    def test_first_write_creates_entry(self):
        snapshots = {}
        record_snapshot(snapshots, "org/a", general=GeneralSettings(visibility="private"))

        assert snapshots["org/a"] == SettingsSnapshot(general=GeneralSettings(visibility="private"))

    def test_second_write_keeps_other_section(self):
        snapshots = {}
        record_snapshot(snapshots, "org/a", general=GeneralSettings(visibility="private"))
        record_snapshot(snapshots, "org/a", approval=ApprovalSettings(approvals_before_merge=1))

        assert snapshots["org/a"].general.visibility == "private"
        assert snapshots["org/a"].approval.approvals_before_merge == 1

    def test_overwrites_same_section(self):
        snapshots = {}
        record_snapshot(snapshots, "org/a", general=GeneralSettings(visibility="private"))
        record_snapshot(snapshots, "org/a", general=GeneralSettings(visibility="public"))

        assert snapshots["org/a"].general.visibility == "public"
