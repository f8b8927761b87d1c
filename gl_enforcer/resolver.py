"""Resolution of a slash-separated group path to a numeric group id."""

from __future__ import annotations

import logging

from gl_enforcer.client import GitLabClient
from gl_enforcer.exceptions import MatchError, NotFoundError


class GroupResolver:
    """Walks the subgroup tree one level at a time to find a nested group."""

    def __init__(self, client: GitLabClient):
        self.client = client
        self.logger = logging.getLogger("gl-enforcer")

    def resolve_group_id(self, path: str) -> int:
        segments = path.strip("/").split("/")

        try:
            base = self.client.get_group(segments[0])
        except NotFoundError:
            raise NotFoundError(f"Group '{segments[0]}' not found") from None
        group_id = base["id"]
        self.logger.debug(f"Base group '{segments[0]}' has id {group_id}")

        for depth in range(1, len(segments)):
            path_so_far = "/".join(segments[: depth + 1])
            self.logger.debug(f"Walking {path}, looking for {path_so_far} [{depth}/{len(segments) - 1}]")
            group_id = self._find_subgroup(group_id, path, path_so_far, segments[depth])
            self.logger.debug(f"Found group id {group_id} for {path_so_far}")

        return group_id

    def _find_subgroup(self, parent_id: int, path: str, path_so_far: str, segment: str) -> int:
        page = 1
        while True:
            subgroups, info = self.client.list_subgroups(parent_id, page=page)
            self.logger.debug(f"Subgroups of {parent_id} (page {page}): {len(subgroups)}")
            for group in subgroups:
                if group.get("full_path") == path_so_far:
                    return group["id"]
            if not subgroups or not info.has_next:
                raise MatchError(path, segment)
            page = info.next_page or page + 1
