"""Line-level workflow identity.

Extraction is pure text matching. Resolving a ``fromParent`` line walks upward
from that line only; nothing below it is read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .document import Document
from .models import (
    FROM_PARENT,
    ROOT_STAGE,
    StageType,
    SubStage,
    TaskLineInfo,
    WorkflowDefinition,
    WorkflowStage,
)
from .registry import WorkflowRegistry
from .tokens import (
    LineToken,
    StageReference,
    WorkflowRoot,
    find_stage_marker,
    find_workflow_tag,
    indent_width,
    parse_task_prefix,
)

logger = logging.getLogger(__name__)


def extract_token(text: str) -> LineToken | None:
    """Workflow tag first, then stage marker, else None."""

    workflow_id = find_workflow_tag(text)
    if workflow_id is not None:
        return WorkflowRoot(workflow_id=workflow_id)
    return find_stage_marker(text)


def extract_task_line_info(
    text: str, line_number: int = 0, tab_size: int = 4
) -> TaskLineInfo | None:
    token = extract_token(text)
    if token is None:
        return None

    prefix = parse_task_prefix(text)
    common = {
        "line_number": line_number,
        "indent_level": indent_width(text, tab_size),
        "status_mark": prefix.mark if prefix else None,
    }
    if isinstance(token, WorkflowRoot):
        return TaskLineInfo(workflow_type=token.workflow_id, current_stage=ROOT_STAGE, **common)
    return TaskLineInfo(
        workflow_type=FROM_PARENT,
        current_stage=token.stage_id,
        sub_stage=token.sub_stage_id,
        **common,
    )


def find_workflow_root(
    document: Document, line_number: int, tab_size: int = 4
) -> tuple[int, str] | None:
    """Find the ancestor line declaring the workflow for ``line_number``.

    Walks upward through structural ancestors (each strictly less indented
    than the previous one). The first ancestor carrying a workflow tag wins.
    A bare tag line that is not a task ("project info" line) also counts when
    it sits at the same indentation as the current ancestor.

    Returns ``(root_line_number, workflow_id)`` or None when the line is
    orphaned.
    """

    if not document.has_line(line_number):
        return None

    threshold = indent_width(document.line(line_number).text, tab_size)
    for number in range(line_number - 1, 0, -1):
        text = document.line(number).text
        if not text.strip():
            continue
        indent = indent_width(text, tab_size)
        if indent > threshold:
            continue

        workflow_id = find_workflow_tag(text)
        if indent == threshold:
            if workflow_id is not None and parse_task_prefix(text) is None:
                return number, workflow_id
            continue

        if workflow_id is not None:
            return number, workflow_id
        threshold = indent
    return None


@dataclass(frozen=True, slots=True)
class ResolvedLine:
    info: TaskLineInfo
    definition: WorkflowDefinition
    root_line_number: int
    # None only for a root line whose definition has no stages.
    stage: WorkflowStage | None
    sub_stage: SubStage | None = None


def resolve_line(
    document: Document,
    line_number: int,
    registry: WorkflowRegistry,
    tab_size: int = 4,
) -> ResolvedLine | None:
    """Resolve a line all the way to its workflow definition and stage.

    Any miss (no token, orphaned line, unknown workflow, unknown stage or
    sub-stage) yields None.
    """

    if not document.has_line(line_number):
        return None

    info = extract_task_line_info(document.line(line_number).text, line_number, tab_size)
    if info is None:
        return None

    if info.is_root:
        root_line_number, workflow_id = line_number, info.workflow_type
    else:
        root = find_workflow_root(document, line_number, tab_size)
        if root is None:
            logger.debug("Orphaned stage marker", extra={"line_number": line_number})
            return None
        root_line_number, workflow_id = root

    definition = registry.resolve_definition(workflow_id)
    if definition is None:
        logger.debug(
            "Unknown workflow", extra={"workflow_id": workflow_id, "line_number": line_number}
        )
        return None

    if info.is_root:
        return ResolvedLine(
            info=info,
            definition=definition,
            root_line_number=root_line_number,
            stage=registry.root_stage(definition),
        )

    stage = registry.resolve_stage(definition, info.current_stage)
    if stage is None:
        logger.debug(
            "Unknown stage",
            extra={"workflow_id": workflow_id, "stage": info.current_stage, "line": line_number},
        )
        return None

    sub_stage: SubStage | None = None
    if info.sub_stage is not None:
        sub_stage = registry.resolve_sub_stage(stage, info.sub_stage)
        if sub_stage is None:
            logger.debug(
                "Unknown sub-stage",
                extra={"stage": stage.id, "sub_stage": info.sub_stage, "line_number": line_number},
            )
            return None

    return ResolvedLine(
        info=info,
        definition=definition,
        root_line_number=root_line_number,
        stage=stage,
        sub_stage=sub_stage,
    )


def is_last_stage_or_not_workflow(
    document: Document,
    line_number: int,
    registry: WorkflowRegistry,
    tab_size: int = 4,
) -> bool:
    """True when completing this line ends its workflow branch.

    Lines outside any resolvable workflow count as "last" so that parent
    auto-completion treats them like plain tasks. Workflow roots never do.
    Hosts that auto-complete parents call this; the CLI reports it as
    ``last_stage``.
    """

    resolved = resolve_line(document, line_number, registry, tab_size)
    if resolved is None:
        return True
    if resolved.info.is_root:
        return False

    stage = resolved.stage
    if stage is None or stage.is_terminal:
        return True
    if resolved.sub_stage is not None and registry.sub_stage_after(stage, resolved.sub_stage):
        return False
    if registry.proceed_targets(resolved.definition, stage):
        return False
    # Without targets a cycle stage repeats; any other stage ends here.
    return stage.type is not StageType.CYCLE
