"""Configuration for the workflow transition engine.

Configuration is loaded from:
- environment variables prefixed with ``OUTLINE_WORKFLOW_``
- and a local `.env` file (if present)

Workflow definitions come either inline (``OUTLINE_WORKFLOW_DEFINITIONS`` as a
JSON list, or the ``definitions`` argument in code) or from a JSON file named by
``OUTLINE_WORKFLOW_DEFINITIONS_PATH``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from outline_workflow.workflow.models import WorkflowDefinition
from outline_workflow.workflow.registry import WorkflowRegistry, load_definitions_file


def _split_marks(value: str) -> frozenset[str]:
    return frozenset(part for part in value.split("|") if len(part) == 1)


class WorkflowSettings(BaseSettings):
    """Resolved settings consumed (never mutated) by the engine.

    Environment variables (all optional):
    - OUTLINE_WORKFLOW_ENABLE_WORKFLOW
    - OUTLINE_WORKFLOW_DEFINITIONS_PATH
    - OUTLINE_WORKFLOW_TIMESTAMP_FORMAT
    - OUTLINE_WORKFLOW_LOG_LEVEL
    - ... one per field below

    Notes:
        Tests can skip the `.env` lookup via `WorkflowSettings(_env_file=None)`.
    """

    enable_workflow: bool = Field(default=True, description="Global on/off switch")

    definitions: list[WorkflowDefinition] = Field(
        default_factory=list,
        description="Inline workflow definitions",
    )
    definitions_path: Path | None = Field(
        default=None,
        description="JSON file with workflow definitions (merged after inline ones)",
    )

    # Status-mark alphabets, pipe separated, one character per mark.
    completed_marks: str = Field(default="x|X")
    in_progress_marks: str = Field(default=">|/")
    cancelled_marks: str = Field(default="-")
    todo_marks: str = Field(default=" ")

    timestamp_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="strftime format for start timestamps",
    )
    spent_time_format: str = Field(
        default="HH:mm:ss",
        description="Duration template for spent-time tokens (DD, HH, mm, ss)",
    )

    auto_add_timestamp: bool = Field(
        default=False,
        description="Append a start timestamp to lines created for the next stage",
    )
    remove_timestamp_on_transition: bool = Field(default=False)
    calculate_spent_time: bool = Field(default=False)
    calculate_full_spent_time: bool = Field(default=False)
    auto_remove_last_stage_marker: bool = Field(default=False)
    auto_add_next_task: bool = Field(
        default=True,
        description="Create a line for the next stage when a task completes",
    )
    advance_cycle_by_order: bool = Field(
        default=False,
        description="Cycle stages advance to the next stage in order instead of repeating",
    )
    label_new_tasks: bool = Field(
        default=False,
        description="Prefix created lines with the stage (and sub-stage) name",
    )

    tab_size: int = Field(default=4, ge=1, le=16)

    log_level: str = Field(default="INFO", description="Root logging level")

    model_config = SettingsConfigDict(
        env_prefix="OUTLINE_WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("completed_marks")
    @classmethod
    def _require_completed_mark(cls, value: str) -> str:
        if not _split_marks(value):
            raise ValueError("completed_marks must name at least one single-character mark")
        return value

    @property
    def completed_mark_set(self) -> frozenset[str]:
        return _split_marks(self.completed_marks)

    @property
    def completed_mark(self) -> str:
        """First configured completed mark."""

        return next(part for part in self.completed_marks.split("|") if len(part) == 1)

    @property
    def incomplete_mark(self) -> str:
        """Mark written into newly created lines."""

        marks = [part for part in self.todo_marks.split("|") if len(part) == 1]
        return marks[0] if marks else " "

    def resolved_definitions(self) -> list[WorkflowDefinition]:
        definitions = list(self.definitions)
        if self.definitions_path is not None:
            definitions.extend(load_definitions_file(self.definitions_path))
        return definitions

    def build_registry(self) -> WorkflowRegistry:
        return WorkflowRegistry(self.resolved_definitions())
