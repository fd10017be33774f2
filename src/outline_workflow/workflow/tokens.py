"""Text grammar for workflow-aware outline lines.

Every pattern the engine recognises or produces lives here:

- task line prefix      ``- [ ] ...``, ``* [x] ...``, ``1. [/] ...``
- workflow tag          ``#workflow/<workflowId>``
- stage marker          ``[stage::<stageId>]`` or ``[stage::<stageId>.<subStageId>]``
- start timestamp       ``🛫 <timestamp>``
- spent time            ``(⏱️ <duration>)``
- total spent time      ``(Total ⏱️ <duration>)``

Keep matching side-effect free and cheap: these helpers run once per candidate
line on every keystroke.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

TASK_LINE_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<bullet>[-*+]|\d+\.)\s+\[(?P<mark>.)\]")
CHECKBOX_RE = re.compile(r"(?:[-*+]|\d+\.)\s+\[(?P<mark>.)\]")
WORKFLOW_TAG_RE = re.compile(r"#workflow/(?P<id>[^/\s]+)")
STAGE_MARKER_RE = re.compile(r"\[stage::(?P<value>[^\]]+)\]")

STAGE_SEPARATOR = "."
START_TIMESTAMP_SYMBOL = "🛫"
SPENT_TIME_SYMBOL = "⏱️"

SPENT_TIME_RE = re.compile(r"\s*\(" + SPENT_TIME_SYMBOL + r" [^)]*\)")
TOTAL_SPENT_TIME_RE = re.compile(r"\s*\(Total " + SPENT_TIME_SYMBOL + r" [^)]*\)")

_STRFTIME_PATTERNS: dict[str, str] = {
    "Y": r"\d{4}",
    "y": r"\d{2}",
    "m": r"\d{1,2}",
    "d": r"\d{1,2}",
    "H": r"\d{1,2}",
    "I": r"\d{1,2}",
    "M": r"\d{1,2}",
    "S": r"\d{1,2}",
    "f": r"\d{1,6}",
    "p": r"[AaPp][Mm]",
    "b": r"[A-Za-z]{3}",
    "a": r"[A-Za-z]{3}",
    "j": r"\d{1,3}",
    "z": r"[+-]\d{4}",
    "%": "%",
}


@dataclass(frozen=True, slots=True)
class WorkflowRoot:
    """A line declaring a workflow instance via ``#workflow/<id>``."""

    workflow_id: str


@dataclass(frozen=True, slots=True)
class StageReference:
    """A line sitting inside a stage of an ancestor's workflow."""

    stage_id: str
    sub_stage_id: str | None = None


LineToken = WorkflowRoot | StageReference


@dataclass(frozen=True, slots=True)
class TaskPrefix:
    indent: str
    bullet: str
    mark: str
    mark_offset: int


def parse_task_prefix(text: str) -> TaskPrefix | None:
    match = TASK_LINE_RE.match(text)
    if match is None:
        return None
    return TaskPrefix(
        indent=match.group("indent"),
        bullet=match.group("bullet"),
        mark=match.group("mark"),
        mark_offset=match.start("mark"),
    )


def leading_whitespace(text: str) -> str:
    return text[: len(text) - len(text.lstrip(" \t"))]


def indent_width(text: str, tab_size: int = 4) -> int:
    """Indentation in columns, counting a tab as ``tab_size``."""

    width = 0
    for char in leading_whitespace(text):
        width += tab_size if char == "\t" else 1
    return width


def find_workflow_tag(text: str) -> str | None:
    match = WORKFLOW_TAG_RE.search(text)
    return match.group("id") if match else None


def find_stage_marker(text: str) -> StageReference | None:
    match = STAGE_MARKER_RE.search(text)
    if match is None:
        return None
    return decode_stage_value(match.group("value"))


def decode_stage_value(value: str) -> StageReference | None:
    """Split ``stage.sub``; only the first two segments are used."""
    parts = value.strip().split(STAGE_SEPARATOR)
    if not parts[0]:
        return None
    if len(parts) < 2 or not parts[1]:
        return StageReference(stage_id=parts[0])
    return StageReference(stage_id=parts[0], sub_stage_id=parts[1])


def encode_stage_marker(stage_id: str, sub_stage_id: str | None = None) -> str:
    value = f"{stage_id}{STAGE_SEPARATOR}{sub_stage_id}" if sub_stage_id else stage_id
    return f"[stage::{value}]"


def workflow_tokens(text: str) -> frozenset[str]:
    """All workflow tags and stage markers on a line, as literal strings."""

    found = {m.group(0) for m in WORKFLOW_TAG_RE.finditer(text)}
    found.update(m.group(0) for m in STAGE_MARKER_RE.finditer(text))
    return frozenset(found)


def _strftime_to_regex(fmt: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(fmt):
        char = fmt[i]
        if char == "%" and i + 1 < len(fmt):
            directive = fmt[i + 1]
            out.append(_STRFTIME_PATTERNS.get(directive, r"\S+?"))
            i += 2
            continue
        out.append(r"\s+" if char.isspace() else re.escape(char))
        i += 1
    return "".join(out)


@lru_cache(maxsize=16)
def start_timestamp_pattern(timestamp_format: str) -> re.Pattern[str]:
    """Pattern for a start-timestamp token rendered with ``timestamp_format``.

    The ``value`` group holds the bare timestamp text.
    """

    value = _strftime_to_regex(timestamp_format)
    return re.compile(r"\s*" + START_TIMESTAMP_SYMBOL + r"\s*(?P<value>" + value + ")")


def format_start_timestamp(value: str) -> str:
    return f"{START_TIMESTAMP_SYMBOL} {value}"


def format_spent_time(duration: str) -> str:
    return f"({SPENT_TIME_SYMBOL} {duration})"


def format_total_spent_time(duration: str) -> str:
    return f"(Total {SPENT_TIME_SYMBOL} {duration})"
