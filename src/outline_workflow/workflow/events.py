from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

# Marker keys attached to an edit. The host carries them opaquely; sibling
# subsystems (status switcher, priority picker) set their own.
WORKFLOW_CHANGE_MARKER = "workflowChange"
TASK_STATUS_CHANGE_MARKER = "taskStatusChange"
PRIORITY_CHANGE_MARKER = "priorityChange"

# Values of TASK_STATUS_CHANGE_MARKER meaning "this already is a resolved
# workflow transition".
RESOLVED_STATUS_CHANGE_VALUES = frozenset({"workflowChange", "workflowStageTransition"})


class EditOrigin(str, Enum):
    INPUT = "input"
    PASTE = "paste"
    PROGRAMMATIC = "programmatic"


class EventKind(str, Enum):
    TASK_STATUS_CHANGE = "taskStatusChange"
    WORKFLOW_TAG_CHANGE = "workflowTagChange"
    PRIORITY_CHANGE = "priorityChange"
    UNRELATED = "unrelated"


@dataclass(frozen=True, slots=True)
class ChangedRange:
    """``old_text[old_start:old_end]`` was replaced by ``new_text[new_start:new_end]``."""

    old_start: int
    old_end: int
    new_start: int
    new_end: int
    inserted_text: str = ""


@dataclass(frozen=True, slots=True)
class DocumentChange:
    """An edit notification raised by the host editor.

    The engine never mutates it.
    """

    old_text: str
    new_text: str
    ranges: tuple[ChangedRange, ...] = ()
    origin: EditOrigin = EditOrigin.INPUT
    markers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def marker(self, key: str) -> str | None:
        return self.markers.get(key)


@dataclass(frozen=True, slots=True)
class ClassifiedEvent:
    line_number: int
    kind: EventKind

    @property
    def qualifies(self) -> bool:
        return self.kind is EventKind.TASK_STATUS_CHANGE
