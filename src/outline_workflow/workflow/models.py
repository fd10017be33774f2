from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ROOT_STAGE = "root"
FROM_PARENT = "fromParent"


class StageType(str, Enum):
    NORMAL = "normal"
    CYCLE = "cycle"
    TERMINAL = "terminal"


class SubStage(BaseModel):
    """A step inside a stage. `next` overrides definition order when set."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    next: str | None = None


class WorkflowStage(BaseModel):
    """One node of a workflow's stage graph.

    Older configuration files describe ordinary stages as ``linear`` and carry a
    ``next`` field next to ``canProceedTo``. Both are accepted: ``linear`` maps to
    :attr:`StageType.NORMAL` and ``next`` entries are placed first in
    ``can_proceed_to``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    type: StageType = StageType.NORMAL
    can_proceed_to: tuple[str, ...] = Field(default=(), alias="canProceedTo")
    sub_stages: tuple[SubStage, ...] = Field(default=(), alias="subStages")

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        if out.get("type") == "linear":
            out["type"] = StageType.NORMAL.value

        legacy_next = out.pop("next", None)
        if legacy_next:
            targets = [legacy_next] if isinstance(legacy_next, str) else list(legacy_next)
            key = "canProceedTo" if "canProceedTo" in out else "can_proceed_to"
            existing = list(out.get(key) or [])
            out[key] = targets + [t for t in existing if t not in targets]
        return out

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("stage id must not be empty")
        return value

    @property
    def is_terminal(self) -> bool:
        return self.type is StageType.TERMINAL


class WorkflowDefinition(BaseModel):
    """A named, ordered set of stages describing a task's lifecycle."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    description: str = ""
    stages: tuple[WorkflowStage, ...] = ()

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("workflow id must not be empty")
        return value


@dataclass(frozen=True, slots=True)
class TaskLineInfo:
    """Workflow identity parsed from a single line.

    Recomputed on every pass; never stored.
    """

    line_number: int
    indent_level: int
    status_mark: str | None
    workflow_type: str
    current_stage: str
    sub_stage: str | None = None

    @property
    def is_root(self) -> bool:
        return self.current_stage == ROOT_STAGE and self.workflow_type != FROM_PARENT


@dataclass(frozen=True, slots=True)
class PendingTransition:
    source_line_number: int
    workflow_definition_id: str
    from_stage: str
    to_stage: str | None
    occurred_at: datetime
    from_sub_stage: str | None = None
    to_sub_stage: str | None = None
    elapsed: timedelta | None = None
    total_elapsed: timedelta | None = None
    create_child_line: bool = False

    @property
    def is_self_loop(self) -> bool:
        return self.to_stage == self.from_stage and self.to_sub_stage == self.from_sub_stage
