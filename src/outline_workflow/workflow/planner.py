"""Transition planning.

Given a line whose task was just completed, decide which stage comes next and
which literal text edits express that: timestamp bookkeeping on the completed
line, plus an optional new line for the next stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from outline_workflow.config import WorkflowSettings

from .document import Document, Line
from .emitter import TextEdit
from .events import ClassifiedEvent
from .extractor import ResolvedLine, resolve_line
from .models import PendingTransition, StageType, SubStage, WorkflowDefinition, WorkflowStage
from .registry import WorkflowRegistry
from .timestamps import elapsed_between, find_start_timestamp, format_duration, format_timestamp
from .tokens import (
    SPENT_TIME_RE,
    TOTAL_SPENT_TIME_RE,
    encode_stage_marker,
    format_spent_time,
    format_start_timestamp,
    format_total_spent_time,
    indent_width,
    leading_whitespace,
    parse_task_prefix,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StageTarget:
    stage: WorkflowStage
    sub_stage: SubStage | None = None


@dataclass(frozen=True, slots=True)
class TransitionPlan:
    transition: PendingTransition
    edits: tuple[TextEdit, ...]


def _enter(stage: WorkflowStage) -> StageTarget:
    return StageTarget(stage=stage, sub_stage=stage.sub_stages[0] if stage.sub_stages else None)


def determine_next_stage(
    registry: WorkflowRegistry,
    definition: WorkflowDefinition,
    stage: WorkflowStage,
    sub_stage: SubStage | None = None,
    *,
    advance_cycle_by_order: bool = False,
) -> StageTarget | None:
    """Where a task in ``stage`` (optionally ``sub_stage``) goes once completed.

    None means no further transition: a terminal stage, or a stage with nowhere
    to go.
    """

    if stage.is_terminal:
        return None

    if sub_stage is not None and stage.sub_stages:
        following = registry.sub_stage_after(stage, sub_stage)
        if following is not None:
            return StageTarget(stage=stage, sub_stage=following)

    if stage.type is StageType.CYCLE:
        if not advance_cycle_by_order:
            return _enter(stage)
        after = registry.stage_after(definition, stage)
        return _enter(after) if after is not None else None

    targets = registry.proceed_targets(definition, stage)
    return _enter(targets[0]) if targets else None


def plan_transition(
    event: ClassifiedEvent,
    document: Document,
    registry: WorkflowRegistry,
    settings: WorkflowSettings,
    now: datetime,
) -> TransitionPlan | None:
    if not event.qualifies or not document.has_line(event.line_number):
        return None

    resolved = resolve_line(document, event.line_number, registry, settings.tab_size)
    if resolved is None or resolved.stage is None:
        return None

    from_stage = resolved.stage
    target = determine_next_stage(
        registry,
        resolved.definition,
        from_stage,
        resolved.sub_stage,
        advance_cycle_by_order=settings.advance_cycle_by_order,
    )

    line = document.line(event.line_number)
    bookkeeping = _bookkeeping(line, resolved, document, settings, now)
    edits = list(bookkeeping.deletions)
    tail = "".join(f" {token}" for token in bookkeeping.appended)

    create_child = False
    if target is not None and settings.auto_add_next_task:
        create_child = True
        child = "\n" + _child_line(line, resolved, target, settings, now)
        insert_at = _subtree_end(document, line, settings.tab_size)
        if insert_at == line.end:
            tail += child
        else:
            edits.append(TextEdit(start=insert_at, end=insert_at, insert=child))
    if tail:
        edits.append(TextEdit(start=line.end, end=line.end, insert=tail))
    edits.sort(key=lambda e: (e.start, e.end))

    transition = PendingTransition(
        source_line_number=line.number,
        workflow_definition_id=resolved.definition.id,
        from_stage=from_stage.id,
        from_sub_stage=resolved.sub_stage.id if resolved.sub_stage else None,
        to_stage=target.stage.id if target else None,
        to_sub_stage=target.sub_stage.id if target and target.sub_stage else None,
        occurred_at=now,
        elapsed=bookkeeping.elapsed,
        total_elapsed=bookkeeping.total_elapsed,
        create_child_line=create_child,
    )
    logger.info(
        "Planned workflow transition",
        extra={
            "line_number": transition.source_line_number,
            "workflow_id": transition.workflow_definition_id,
            "from_stage": transition.from_stage,
            "to_stage": transition.to_stage,
            "create_child_line": transition.create_child_line,
        },
    )
    return TransitionPlan(transition=transition, edits=tuple(edits))


@dataclass(frozen=True, slots=True)
class _Bookkeeping:
    deletions: list[TextEdit]
    appended: list[str]
    elapsed: timedelta | None
    total_elapsed: timedelta | None


def _bookkeeping(
    line: Line,
    resolved: ResolvedLine,
    document: Document,
    settings: WorkflowSettings,
    now: datetime,
) -> _Bookkeeping:
    """Timestamp and spent-time changes for the completed line."""

    deletions: list[TextEdit] = []
    appended: list[str] = []

    stamp = find_start_timestamp(line.text, settings.timestamp_format)
    elapsed = elapsed_between(stamp.value, now) if stamp else None

    root_text = document.line(resolved.root_line_number).text
    root_stamp = find_start_timestamp(root_text, settings.timestamp_format)
    total_elapsed = elapsed_between(root_stamp.value, now) if root_stamp else None

    if settings.remove_timestamp_on_transition and stamp is not None:
        deletions.append(TextEdit(start=line.start + stamp.start, end=line.start + stamp.end))

    if settings.calculate_spent_time and elapsed is not None:
        existing = SPENT_TIME_RE.search(line.text)
        if existing is not None:
            deletions.append(
                TextEdit(start=line.start + existing.start(), end=line.start + existing.end())
            )
        appended.append(format_spent_time(format_duration(elapsed, settings.spent_time_format)))

    if settings.calculate_full_spent_time and total_elapsed is not None:
        existing = TOTAL_SPENT_TIME_RE.search(line.text)
        if existing is not None:
            deletions.append(
                TextEdit(start=line.start + existing.start(), end=line.start + existing.end())
            )
        appended.append(
            format_total_spent_time(format_duration(total_elapsed, settings.spent_time_format))
        )

    deletions.sort(key=lambda e: e.start)
    return _Bookkeeping(
        deletions=deletions,
        appended=appended,
        elapsed=elapsed,
        total_elapsed=total_elapsed,
    )


def _child_line(
    line: Line,
    resolved: ResolvedLine,
    target: StageTarget,
    settings: WorkflowSettings,
    now: datetime,
) -> str:
    indent = leading_whitespace(line.text)
    if resolved.info.is_root:
        # Children of the root must sit below it to inherit its workflow.
        indent += " " * settings.tab_size

    prefix = parse_task_prefix(line.text)
    bullet = prefix.bullet if prefix and not prefix.bullet[0].isdigit() else "-"
    parts = [f"{bullet} [{settings.incomplete_mark}]"]

    if settings.label_new_tasks:
        label = target.stage.name or target.stage.id
        if target.sub_stage is not None:
            label += f" ({target.sub_stage.name or target.sub_stage.id})"
        parts.append(label)

    if not (settings.auto_remove_last_stage_marker and target.stage.is_terminal):
        parts.append(
            encode_stage_marker(target.stage.id, target.sub_stage.id if target.sub_stage else None)
        )

    if settings.auto_add_timestamp:
        parts.append(format_start_timestamp(format_timestamp(now, settings.timestamp_format)))

    return indent + " ".join(parts)


def _subtree_end(document: Document, line: Line, tab_size: int) -> int:
    """Offset just past the last line nested under ``line``.

    A blank line or a line at the same (or lower) indentation closes the block.
    """

    indent = indent_width(line.text, tab_size)
    end = line.end
    for number in range(line.number + 1, document.line_count + 1):
        candidate = document.line(number)
        if not candidate.text.strip() or indent_width(candidate.text, tab_size) <= indent:
            break
        end = candidate.end
    return end
