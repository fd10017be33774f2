from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from outline_workflow.config import WorkflowSettings

from .classifier import classify_change, qualifying_events
from .document import Document
from .emitter import OutgoingEdit, emit
from .events import DocumentChange, EventKind
from .planner import TransitionPlan, plan_transition
from .registry import WorkflowRegistry

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Turns one host edit notification into at most one compensating edit.

    The engine holds no state between calls besides the read-only registry and
    settings; the document text is the only durable workflow state.
    """

    def __init__(
        self,
        settings: WorkflowSettings,
        registry: WorkflowRegistry | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings
        self._registry = registry if registry is not None else settings.build_registry()
        self._clock = clock

    @property
    def settings(self) -> WorkflowSettings:
        return self._settings

    @property
    def registry(self) -> WorkflowRegistry:
        return self._registry

    def plan(self, change: DocumentChange) -> list[TransitionPlan]:
        if not self._settings.enable_workflow or len(self._registry) == 0:
            return []

        old_doc = Document(change.old_text)
        new_doc = Document(change.new_text)
        events = classify_change(change, self._settings, old_doc=old_doc, new_doc=new_doc)
        for event in events:
            if event.kind is EventKind.WORKFLOW_TAG_CHANGE:
                logger.debug("Workflow token edited", extra={"line_number": event.line_number})

        qualifying = qualifying_events(events)
        if not qualifying:
            return []

        now = self._clock()
        plans: list[TransitionPlan] = []
        for event in qualifying:
            plan = plan_transition(event, new_doc, self._registry, self._settings, now)
            if plan is not None:
                plans.append(plan)
        return plans

    def handle(self, change: DocumentChange) -> OutgoingEdit | None:
        """Process one edit; returns the tagged follow-up edit, if any."""

        outgoing = emit(self.plan(change))
        if outgoing is not None:
            logger.info(
                "Emitting workflow edit",
                extra={"edit_count": len(outgoing.edits), "origin": change.origin.value},
            )
        return outgoing
