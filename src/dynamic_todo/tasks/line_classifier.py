# src/dynamic_todo/tasks/line_classifier.py

"""
Line classification for checkbox task lines.

A line is a task line when its trimmed form starts with the configured prefix
(e.g. "- [ ]") or with one of its checked variants ("- [x]", "- [X]").
Matching is prefix-anchored: "note: - [ ] foo" is not a task line.
"""

from __future__ import annotations

from .task_models import CHECKED_BOXES, UNCHECKED_BOX


def prefix_variants(task_prefix: str) -> tuple[str, ...]:
    """Unchecked prefix first, then the checked forms."""
    return (task_prefix,) + tuple(task_prefix.replace(UNCHECKED_BOX, box, 1) for box in CHECKED_BOXES)


def matched_prefix(line: str, task_prefix: str) -> str | None:
    trimmed = line.strip()
    for variant in prefix_variants(task_prefix):
        if trimmed.startswith(variant):
            return variant
    return None


def is_task_line(line: str, task_prefix: str) -> bool:
    return matched_prefix(line, task_prefix) is not None


def box_offset(line: str, task_prefix: str) -> int:
    """Column of the checkbox in `line`, or -1 if the prefix has no checkbox."""
    inner = task_prefix.find(UNCHECKED_BOX)
    if inner < 0:
        return -1
    indent = len(line) - len(line.lstrip())
    return indent + inner


def is_checked(line: str, task_prefix: str) -> bool:
    """
    True iff the checkbox at the prefix's box position is [x] or [X].

    Text after the checkbox ("- [ ] learn [x] syntax") does not count.
    """
    offset = box_offset(line, task_prefix)
    if offset < 0:
        return False
    return line[offset : offset + len(UNCHECKED_BOX)] in CHECKED_BOXES
