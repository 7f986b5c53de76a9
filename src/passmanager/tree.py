"""Render sorted secret paths as an indented tree (PassFF-compatible)."""

from __future__ import annotations

from typing import Iterable

BRANCH = "|-- "
INDENT = "|   "


def render_tree(paths: Iterable[str]) -> list[str]:
    """Turn lexicographically sorted paths into tree lines.

    Each path is compared with the one before it. Segments shared with
    the previous path were already printed and are skipped; from the
    first differing segment on, every segment gets its own line,
    indented by depth. The last segment is always printed.

    Args:
        paths: Slash-delimited paths, already sorted.

    Returns:
        list[str]: One line per rendered segment.

    Example::

        >>> render_tree(["email/home", "email/work"])
        ['|-- email', '|   |-- home', '|   |-- work']
    """
    lines: list[str] = []
    previous: list[str] = []
    for path in paths:
        segments = path.split("/")
        branched = False
        for depth, segment in enumerate(segments):
            last = depth == len(segments) - 1
            if not branched:
                branched = depth >= len(previous) or segment != previous[depth]
            if branched or last:
                lines.append(INDENT * depth + BRANCH + segment)
        previous = segments
    return lines
