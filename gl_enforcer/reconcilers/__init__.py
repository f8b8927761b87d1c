"""Reconcilers for gl-enforcer."""

from gl_enforcer.reconcilers.approval_rules import ApprovalRuleReconciler
from gl_enforcer.reconcilers.base import Reconciler, log_result
from gl_enforcer.reconcilers.branches import BranchReconciler
from gl_enforcer.reconcilers.settings import SettingsReconciler

__all__ = [
    "Reconciler",
    "log_result",
    "BranchReconciler",
    "SettingsReconciler",
    "ApprovalRuleReconciler",
]
