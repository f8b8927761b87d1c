"""Project discovery under a resolved group."""

from __future__ import annotations

import logging

from gl_enforcer.client import GitLabClient
from gl_enforcer.models import Project


class ProjectDiscovery:
    """Lists every project below a group, including nested subgroups."""

    def __init__(self, client: GitLabClient):
        self.client = client
        self.logger = logging.getLogger("gl-enforcer")

    def list_projects(self, group_id: int, allow: list[str] | None = None, deny: list[str] | None = None) -> list[Project]:
        allow = allow or []
        deny = deny or []
        projects: list[Project] = []

        page = 1
        while True:
            data, info = self.client.list_group_projects(group_id, page=page, include_subgroups=True)
            for p in data:
                path = p["path_with_namespace"]
                if allow and path not in allow:
                    self.logger.debug(f"Skipping project {path} as it's not whitelisted")
                    continue
                if path in deny:
                    self.logger.debug(f"Skipping project {path} as it's blacklisted")
                    continue
                projects.append(Project(id=p["id"], name=p.get("name", path), full_path=path))

            if not info.has_next:
                break
            page = info.next_page or page + 1

        self.logger.debug(f"Retrieved {len(projects)} projects under group {group_id}")
        return projects
