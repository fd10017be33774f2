"""End-to-end tests for the workflow engine.

Each test toggles a task the way a user would in an editor and checks the
document the host ends up with once the engine's follow-up edit is applied.
"""

from __future__ import annotations

from collections.abc import Callable

from outline_workflow.main import toggle_change
from outline_workflow.workflow.classifier import classify_change
from outline_workflow.workflow.engine import WorkflowEngine
from outline_workflow.workflow.events import ChangedRange, DocumentChange, EditOrigin

MakeEngine = Callable[..., WorkflowEngine]


def _complete(engine: WorkflowEngine, text: str, line_number: int) -> str:
    change = toggle_change(text, line_number, "x")
    assert change is not None
    outgoing = engine.handle(change)
    return outgoing.apply(change.new_text) if outgoing else change.new_text


def test_root_completion_creates_next_stage_line(engine: WorkflowEngine) -> None:
    result = _complete(engine, "- [ ] Task #workflow/dev", 1)
    assert result == "- [x] Task #workflow/dev\n    - [ ] [stage::development]"


def test_root_completion_appends_spent_time(make_engine: MakeEngine) -> None:
    engine = make_engine(calculate_spent_time=True)
    result = _complete(engine, "- [ ] Task #workflow/dev 🛫 2024-01-02 10:30:00", 1)
    assert result == (
        "- [x] Task #workflow/dev 🛫 2024-01-02 10:30:00 (⏱️ 01:30:00)\n"
        "    - [ ] [stage::development]"
    )


def test_terminal_target_without_marker(make_engine: MakeEngine) -> None:
    engine = make_engine(auto_remove_last_stage_marker=True)
    text = "- [ ] Feature #workflow/dev\n    - [ ] Sub [stage::testing]"

    result = _complete(engine, text, 2)

    assert result == (
        "- [ ] Feature #workflow/dev\n"
        "    - [x] Sub [stage::testing]\n"
        "    - [ ]"
    )


def test_terminal_target_keeps_marker_by_default(engine: WorkflowEngine) -> None:
    text = "- [ ] Feature #workflow/dev\n    - [ ] Sub [stage::testing]"
    assert _complete(engine, text, 2).endswith("\n    - [ ] [stage::done]")


def test_cycle_stage_repeats(engine: WorkflowEngine) -> None:
    text = "- [ ] Article #workflow/content\n    - [ ] Edit pass [stage::review]"
    assert _complete(engine, text, 2).endswith(
        "    - [x] Edit pass [stage::review]\n    - [ ] [stage::review]"
    )


def test_cycle_stage_can_advance_by_order(make_engine: MakeEngine) -> None:
    engine = make_engine(advance_cycle_by_order=True)
    text = "- [ ] Article #workflow/content\n    - [ ] Edit pass [stage::review]"
    assert _complete(engine, text, 2).endswith("\n    - [ ] [stage::publish]")


def test_paste_never_triggers_transitions(engine: WorkflowEngine) -> None:
    pasted = "- [x] Task #workflow/dev"
    change = DocumentChange(
        old_text="",
        new_text=pasted,
        ranges=(ChangedRange(0, 0, 0, len(pasted), pasted),),
        origin=EditOrigin.PASTE,
    )
    assert engine.plan(change) == []
    assert engine.handle(change) is None


def test_sub_stage_advances_before_parent(engine: WorkflowEngine) -> None:
    text = "- [ ] Feature #workflow/dev\n    - [ ] Research [stage::planning.research]"
    result = _complete(engine, text, 2)
    assert result.endswith("\n    - [ ] [stage::planning.draft]")

    result = _complete(engine, result, 3)
    assert result.endswith("\n    - [ ] [stage::development]")


def test_terminal_stage_absorbs_further_completions(engine: WorkflowEngine) -> None:
    text = "- [ ] Feature #workflow/dev\n    - [ ] Ship [stage::done]"

    change = toggle_change(text, 2, "x")
    assert change is not None
    plans = engine.plan(change)

    assert len(plans) == 1
    assert plans[0].transition.to_stage is None
    assert plans[0].edits == ()
    assert engine.handle(change) is None


def test_terminal_stage_still_records_spent_time(make_engine: MakeEngine) -> None:
    engine = make_engine(calculate_spent_time=True)
    text = "- [ ] Feature #workflow/dev\n    - [ ] Ship [stage::done] 🛫 2024-01-02 11:00:00"
    assert _complete(engine, text, 2) == (
        "- [ ] Feature #workflow/dev\n"
        "    - [x] Ship [stage::done] 🛫 2024-01-02 11:00:00 (⏱️ 01:00:00)"
    )


def test_full_spent_time_from_root_timestamp(make_engine: MakeEngine) -> None:
    engine = make_engine(calculate_spent_time=True, calculate_full_spent_time=True)
    text = (
        "- [ ] Feature #workflow/dev 🛫 2024-01-01 12:00:00\n"
        "    - [ ] Build [stage::development] 🛫 2024-01-02 11:00:00"
    )

    result = _complete(engine, text, 2)

    assert result.splitlines()[1] == (
        "    - [x] Build [stage::development] 🛫 2024-01-02 11:00:00"
        " (⏱️ 01:00:00) (Total ⏱️ 24:00:00)"
    )


def test_timestamp_removed_and_spent_time_replaced(make_engine: MakeEngine) -> None:
    engine = make_engine(remove_timestamp_on_transition=True, calculate_spent_time=True)
    text = (
        "- [ ] Feature #workflow/dev\n"
        "    - [ ] Build [stage::development] 🛫 2024-01-02 11:00:00 (⏱️ 00:10:00)"
    )

    result = _complete(engine, text, 2)

    assert result == (
        "- [ ] Feature #workflow/dev\n"
        "    - [x] Build [stage::development] (⏱️ 01:00:00)\n"
        "    - [ ] [stage::testing]"
    )


def test_unparsable_timestamp_only_skips_spent_time(make_engine: MakeEngine) -> None:
    engine = make_engine(calculate_spent_time=True)
    text = "- [ ] Task #workflow/dev 🛫 2024-13-45 10:00:00"
    assert _complete(engine, text, 1) == (
        "- [x] Task #workflow/dev 🛫 2024-13-45 10:00:00\n    - [ ] [stage::development]"
    )


def test_new_line_gets_label_and_timestamp(make_engine: MakeEngine) -> None:
    engine = make_engine(label_new_tasks=True, auto_add_timestamp=True)
    text = "- [ ] Feature #workflow/dev\n    * [ ] Research [stage::planning.research]"

    result = _complete(engine, text, 2)

    assert result.splitlines()[2] == (
        "    * [ ] Planning (Draft) [stage::planning.draft] 🛫 2024-01-02 12:00:00"
    )


def test_numbered_list_child_uses_dash_bullet(engine: WorkflowEngine) -> None:
    result = _complete(engine, "1. [ ] Task #workflow/dev", 1)
    assert result.splitlines()[1] == "    - [ ] [stage::development]"


def test_auto_add_next_task_disabled(make_engine: MakeEngine) -> None:
    engine = make_engine(auto_add_next_task=False)
    text = "- [ ] Task #workflow/dev"
    change = toggle_change(text, 1, "x")
    assert change is not None

    plans = engine.plan(change)

    assert plans[0].transition.to_stage == "development"
    assert plans[0].transition.create_child_line is False
    assert engine.handle(change) is None


def test_disabled_or_empty_configuration_is_a_noop(make_engine: MakeEngine) -> None:
    change = toggle_change("- [ ] Task #workflow/dev", 1, "x")
    assert change is not None
    assert make_engine(enable_workflow=False).handle(change) is None
    assert make_engine(definitions=[]).handle(change) is None


def test_synthesized_edit_does_not_retrigger(engine: WorkflowEngine) -> None:
    change = toggle_change("- [ ] Task #workflow/dev", 1, "x")
    assert change is not None
    outgoing = engine.handle(change)
    assert outgoing is not None

    follow_up = outgoing.as_change(change.new_text)

    assert follow_up.new_text == outgoing.apply(change.new_text)
    assert classify_change(follow_up, engine.settings) == []
    assert engine.handle(follow_up) is None


def test_created_lines_never_qualify_even_without_marker(engine: WorkflowEngine) -> None:
    change = toggle_change("- [ ] Task #workflow/dev", 1, "x")
    assert change is not None
    outgoing = engine.handle(change)
    assert outgoing is not None

    follow_up = outgoing.as_change(change.new_text)
    untagged = DocumentChange(
        old_text=follow_up.old_text,
        new_text=follow_up.new_text,
        ranges=follow_up.ranges,
        origin=EditOrigin.PROGRAMMATIC,
    )

    assert engine.plan(untagged) == []


def test_multiple_completions_coalesce_into_one_edit(engine: WorkflowEngine) -> None:
    old = "- [ ] A #workflow/dev\n- [ ] B #workflow/dev"
    new = "- [x] A #workflow/dev\n- [x] B #workflow/dev"
    second = old.index("- [ ] B") + 3
    change = DocumentChange(
        old_text=old,
        new_text=new,
        ranges=(
            ChangedRange(3, 4, 3, 4, "x"),
            ChangedRange(second, second + 1, second, second + 1, "x"),
        ),
    )

    outgoing = engine.handle(change)

    assert outgoing is not None
    assert len(outgoing.edits) == 2
    assert outgoing.apply(new) == (
        "- [x] A #workflow/dev\n"
        "    - [ ] [stage::development]\n"
        "- [x] B #workflow/dev\n"
        "    - [ ] [stage::development]"
    )


def test_next_stage_line_goes_after_existing_subtasks(make_engine: MakeEngine) -> None:
    engine = make_engine(calculate_spent_time=True)
    text = (
        "- [ ] Feature #workflow/dev\n"
        "    - [ ] Build [stage::development] 🛫 2024-01-02 11:00:00\n"
        "        - [ ] write code\n"
        "        - [ ] review\n"
        "    - [ ] Other"
    )

    result = _complete(engine, text, 2)

    assert result == (
        "- [ ] Feature #workflow/dev\n"
        "    - [x] Build [stage::development] 🛫 2024-01-02 11:00:00 (⏱️ 01:00:00)\n"
        "        - [ ] write code\n"
        "        - [ ] review\n"
        "    - [ ] [stage::testing]\n"
        "    - [ ] Other"
    )


def test_root_completion_appends_after_existing_children(engine: WorkflowEngine) -> None:
    text = "- [ ] Feature #workflow/dev\n    - [x] Notes [stage::development]\n- [ ] Next"

    result = _complete(engine, text, 1)

    assert result == (
        "- [x] Feature #workflow/dev\n"
        "    - [x] Notes [stage::development]\n"
        "    - [ ] [stage::development]\n"
        "- [ ] Next"
    )


def test_rewriting_a_block_with_completed_tasks_is_a_noop(engine: WorkflowEngine) -> None:
    old = "- [x] A #workflow/dev"
    new = "intro\n" + old
    change = DocumentChange(
        old_text=old,
        new_text=new,
        ranges=(ChangedRange(0, len(old), 0, len(new), new),),
        origin=EditOrigin.PROGRAMMATIC,
    )
    assert engine.handle(change) is None
