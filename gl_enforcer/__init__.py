"""
gl-enforcer: Enforce a declarative settings document on every project of a GitLab group.

Resolves a (possibly nested) group path, discovers its projects, then protects
branches and applies project and merge request approval settings to each one,
printing a change log of what actually changed.

Environment:
    GITLAB_TOKEN - GitLab Personal Access Token (required)
    GITLAB_URL   - GitLab instance URL (default: https://gitlab.com)
"""

from gl_enforcer.cli import main

__version__ = "0.1.0"
__all__ = ["main", "__version__"]
