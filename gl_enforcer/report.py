"""Change report built from the before/after settings snapshots."""

from __future__ import annotations

import logging
import re
from typing import Any

from gl_enforcer.models import ChangeEntry
from gl_enforcer.snapshots import SnapshotMap

SECTIONS = ("general", "approval")

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    return re.sub(r"[\s\-]+", "_", _WORD_BOUNDARY.sub("_", name)).lower()


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ChangeReporter:
    """Diffs snapshot maps and renders the per-project change log."""

    def __init__(self):
        self.logger = logging.getLogger("gl-enforcer")

    def diff(self, before: SnapshotMap, after: SnapshotMap) -> list[ChangeEntry]:
        """Compare every section recorded on both sides, field by field."""
        entries = []
        for path in sorted(before.keys() & after.keys()):
            for section in SECTIONS:
                old = getattr(before[path], section)
                new = getattr(after[path], section)
                if old is None or new is None:
                    continue
                for label, old_value, new_value in old.compare(new):
                    entries.append(ChangeEntry(path, snake_case(label), old_value, new_value))
        return entries

    def render(self, entries: list[ChangeEntry]) -> str | None:
        if not entries:
            self.logger.debug("No changes discovered.")
            return None

        changelog: dict[str, dict[str, ChangeEntry]] = {}
        for entry in entries:
            self.logger.debug(f"{entry}")
            changelog.setdefault(entry.project_path, {})[entry.field_name] = entry

        width = max(len(name) for fields in changelog.values() for name in fields) + 2

        lines = ["", "CHANGE LOG"]
        for path in sorted(changelog):
            lines.append(f"  {path}")
            for name in sorted(changelog[path]):
                entry = changelog[path][name]
                label = f"{name}:"
                lines.append(
                    f'    {label:<{width}} "{format_value(entry.old_value)}" => "{format_value(entry.new_value)}"'
                )
            lines.append("")
        return "\n".join(lines) + "\n"

    def report(self, before: SnapshotMap, after: SnapshotMap) -> str | None:
        return self.render(self.diff(before, after))
