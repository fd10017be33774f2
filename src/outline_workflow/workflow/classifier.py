"""Classify the ranges of an incoming edit.

Only ``task_status_change`` events are planned. Everything else is reported so
that callers can log or route it, but never produces a transition.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from outline_workflow.config import WorkflowSettings

from .document import Document, Line
from .emitter import is_workflow_originated
from .events import (
    PRIORITY_CHANGE_MARKER,
    RESOLVED_STATUS_CHANGE_VALUES,
    TASK_STATUS_CHANGE_MARKER,
    ChangedRange,
    ClassifiedEvent,
    DocumentChange,
    EditOrigin,
    EventKind,
)
from .tokens import CHECKBOX_RE, parse_task_prefix, workflow_tokens

logger = logging.getLogger(__name__)

_KIND_RANK: dict[EventKind, int] = {
    EventKind.UNRELATED: 0,
    EventKind.PRIORITY_CHANGE: 1,
    EventKind.WORKFLOW_TAG_CHANGE: 2,
    EventKind.TASK_STATUS_CHANGE: 3,
}


def classify_change(
    change: DocumentChange,
    settings: WorkflowSettings,
    *,
    old_doc: Document | None = None,
    new_doc: Document | None = None,
) -> list[ClassifiedEvent]:
    """Classify each changed range of ``change``; one event per affected line.

    Returns an empty list when the edit must not be looked at at all: feature
    disabled, edit produced by this engine, or an already-resolved status change.
    """

    if not settings.enable_workflow:
        return []
    if is_workflow_originated(change.markers):
        logger.debug("Skipping workflow-originated edit")
        return []
    if change.marker(TASK_STATUS_CHANGE_MARKER) in RESOLVED_STATUS_CHANGE_VALUES:
        logger.debug("Skipping resolved status change")
        return []
    if not change.ranges or change.old_text == change.new_text:
        return []

    if old_doc is None:
        old_doc = Document(change.old_text)
    if new_doc is None:
        new_doc = Document(change.new_text)

    if change.marker(PRIORITY_CHANGE_MARKER) is not None:
        forced: EventKind | None = EventKind.PRIORITY_CHANGE
    elif change.origin is EditOrigin.PASTE:
        forced = EventKind.UNRELATED
    else:
        forced = None

    kinds: dict[int, EventKind] = {}
    for changed in sorted(change.ranges, key=lambda r: (r.new_start, r.new_end)):
        if not _in_bounds(changed, old_doc, new_doc):
            logger.debug(
                "Dropping out-of-bounds range",
                extra={"new_start": changed.new_start, "new_end": changed.new_end},
            )
            continue
        for line_number, kind in _classify_range(
            changed, old_doc, new_doc, settings.completed_mark_set
        ):
            if forced is not None:
                kind = forced
            previous = kinds.get(line_number)
            if previous is None or _KIND_RANK[kind] > _KIND_RANK[previous]:
                kinds[line_number] = kind

    return [ClassifiedEvent(line_number=n, kind=kinds[n]) for n in sorted(kinds)]


def qualifying_events(events: list[ClassifiedEvent]) -> list[ClassifiedEvent]:
    return [e for e in events if e.qualifies]


def _in_bounds(changed: ChangedRange, old_doc: Document, new_doc: Document) -> bool:
    return (
        0 <= changed.old_start <= changed.old_end <= len(old_doc)
        and 0 <= changed.new_start <= changed.new_end <= len(new_doc)
    )


def _classify_range(
    changed: ChangedRange,
    old_doc: Document,
    new_doc: Document,
    completed: Collection[str],
) -> list[tuple[int, EventKind]]:
    new_lines = new_doc.lines_between(changed.new_start, changed.new_end)
    old_lines = old_doc.lines_between(changed.old_start, changed.old_end)
    old_tokens = frozenset().union(*(workflow_tokens(line.text) for line in old_lines))

    results: list[tuple[int, EventKind]] = []
    for line in new_lines:
        if _completes_task(line, changed, old_doc, new_doc, completed):
            results.append((line.number, EventKind.TASK_STATUS_CHANGE))
        elif workflow_tokens(line.text) - old_tokens:
            results.append((line.number, EventKind.WORKFLOW_TAG_CHANGE))
        else:
            results.append((line.number, EventKind.UNRELATED))
    return results


def _completes_task(
    line: Line,
    changed: ChangedRange,
    old_doc: Document,
    new_doc: Document,
    completed: Collection[str],
) -> bool:
    """The range typed a completed mark (or a whole ``- [x]`` checkbox) over an open one.

    Larger replacements never count: a block rewrite that carries an already
    completed task along must not complete it a second time.
    """

    prefix = parse_task_prefix(line.text)
    if prefix is None or prefix.mark not in completed:
        return False

    mark_offset = line.start + prefix.mark_offset
    if not changed.new_start <= mark_offset < changed.new_end:
        return False

    inserted = new_doc.text[changed.new_start : changed.new_end]
    replaced = old_doc.text[changed.old_start : changed.old_end]
    if len(inserted) == 1:
        return len(replaced) <= 1 and replaced not in completed

    if CHECKBOX_RE.fullmatch(inserted) is None:
        return False
    old_checkbox = CHECKBOX_RE.fullmatch(replaced)
    return old_checkbox is None or old_checkbox.group("mark") not in completed
