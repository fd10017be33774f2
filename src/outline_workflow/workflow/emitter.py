from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .events import WORKFLOW_CHANGE_MARKER, ChangedRange, DocumentChange, EditOrigin

if TYPE_CHECKING:
    from .planner import TransitionPlan

logger = logging.getLogger(__name__)

WORKFLOW_CHANGE_VALUE = "workflowChange"


class OverlappingEditError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class TextEdit:
    """Replace ``text[start:end]`` with ``insert``."""

    start: int
    end: int
    insert: str = ""


def is_workflow_originated(markers: Mapping[str, str]) -> bool:
    """Loop guard: True for edits this engine synthesized."""

    return WORKFLOW_CHANGE_MARKER in markers


@dataclass(frozen=True, slots=True)
class OutgoingEdit:
    """One atomic change request for the host, in ascending offset order.

    Offsets refer to the document the incoming change produced.
    """

    edits: tuple[TextEdit, ...]
    markers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({WORKFLOW_CHANGE_MARKER: WORKFLOW_CHANGE_VALUE})
    )

    def __post_init__(self) -> None:
        previous_end = -1
        for edit in self.edits:
            if edit.start > edit.end:
                raise OverlappingEditError(f"Inverted edit span: {edit.start}..{edit.end}")
            if edit.start < previous_end:
                raise OverlappingEditError(
                    f"Edit at {edit.start}..{edit.end} overlaps edit ending at {previous_end}"
                )
            previous_end = edit.end

    def apply(self, text: str) -> str:
        for edit in reversed(self.edits):
            text = text[: edit.start] + edit.insert + text[edit.end :]
        return text

    def as_change(self, text: str) -> DocumentChange:
        """The notification a host raises after applying this edit to ``text``."""

        ranges: list[ChangedRange] = []
        delta = 0
        for edit in self.edits:
            new_start = edit.start + delta
            ranges.append(
                ChangedRange(
                    old_start=edit.start,
                    old_end=edit.end,
                    new_start=new_start,
                    new_end=new_start + len(edit.insert),
                    inserted_text=edit.insert,
                )
            )
            delta += len(edit.insert) - (edit.end - edit.start)
        return DocumentChange(
            old_text=text,
            new_text=self.apply(text),
            ranges=tuple(ranges),
            origin=EditOrigin.PROGRAMMATIC,
            markers=self.markers,
        )


def emit(plans: Iterable[TransitionPlan]) -> OutgoingEdit | None:
    """Coalesce every plan of one incoming change into a single tagged edit.

    Plans are merged in document order. An edit overlapping an earlier one is
    dropped (together with the rest of its plan) so the host never receives an
    ambiguous change set. Insertions sharing an offset put the later source
    line's text first, so a subtask's own tokens stay on its line.
    """

    accepted: list[tuple[TextEdit, int]] = []
    for plan in sorted(plans, key=lambda p: p.transition.source_line_number):
        line_number = plan.transition.source_line_number
        candidate = sorted(
            [*accepted, *((edit, line_number) for edit in plan.edits)],
            key=lambda pair: (pair[0].start, pair[0].end, -pair[1]),
        )
        if _overlaps([edit for edit, _ in candidate]):
            logger.warning(
                "Dropping overlapping transition plan",
                extra={"line_number": line_number},
            )
            continue
        accepted = candidate

    if not accepted:
        return None
    return OutgoingEdit(edits=tuple(edit for edit, _ in accepted))


def _overlaps(edits: list[TextEdit]) -> bool:
    previous_end = -1
    for edit in edits:
        if edit.start < previous_end:
            return True
        previous_end = edit.end
    return False
