"""Unit tests for the line token grammar."""

from __future__ import annotations

import pytest

from outline_workflow.workflow.tokens import (
    SPENT_TIME_RE,
    TOTAL_SPENT_TIME_RE,
    StageReference,
    decode_stage_value,
    encode_stage_marker,
    find_stage_marker,
    find_workflow_tag,
    format_spent_time,
    format_start_timestamp,
    format_total_spent_time,
    indent_width,
    parse_task_prefix,
    start_timestamp_pattern,
    workflow_tokens,
)


@pytest.mark.parametrize(
    ("text", "bullet", "mark", "offset"),
    [
        ("- [ ] Task", "-", " ", 3),
        ("    * [x] Task", "*", "x", 7),
        ("\t+ [/] Task", "+", "/", 4),
        ("12. [X] Task", "12.", "X", 5),
    ],
)
def test_parse_task_prefix(text: str, bullet: str, mark: str, offset: int) -> None:
    prefix = parse_task_prefix(text)
    assert prefix is not None
    assert prefix.bullet == bullet
    assert prefix.mark == mark
    assert prefix.mark_offset == offset
    assert text[prefix.mark_offset] == mark


@pytest.mark.parametrize("text", ["plain text", "- no checkbox", "-[ ] tight", "#workflow/dev"])
def test_parse_task_prefix_rejects_non_tasks(text: str) -> None:
    assert parse_task_prefix(text) is None


def test_indent_width_counts_tabs_as_tab_size() -> None:
    assert indent_width("- [ ] a") == 0
    assert indent_width("    - [ ] a") == 4
    assert indent_width("\t- [ ] a", tab_size=2) == 2
    assert indent_width("\t  - [ ] a") == 6


def test_find_workflow_tag() -> None:
    assert find_workflow_tag("- [ ] Ship it #workflow/dev #urgent") == "dev"
    assert find_workflow_tag("- [ ] #workflows") is None


def test_find_stage_marker_with_and_without_sub_stage() -> None:
    assert find_stage_marker("- [ ] a [stage::testing]") == StageReference("testing")
    assert find_stage_marker("- [ ] a [stage::planning.draft]") == StageReference(
        "planning", "draft"
    )


def test_empty_stage_marker_is_not_a_stage() -> None:
    assert find_stage_marker("- [ ] a [stage::]") is None
    assert decode_stage_value("   ") is None


def test_trailing_separator_means_no_sub_stage() -> None:
    assert decode_stage_value("planning.") == StageReference("planning")


def test_extra_stage_segments_are_ignored() -> None:
    assert decode_stage_value("planning.draft.v2") == StageReference("planning", "draft")
    assert find_stage_marker("- [ ] a [stage::a.b.c]") == StageReference("a", "b")


@pytest.mark.parametrize(
    ("stage_id", "sub_stage_id"),
    [("planning", None), ("planning", "research"), ("qa-2", "smoke_tests"), ("x", "y")],
)
def test_stage_marker_round_trip(stage_id: str, sub_stage_id: str | None) -> None:
    marker = encode_stage_marker(stage_id, sub_stage_id)
    assert find_stage_marker(f"- [ ] work {marker}") == StageReference(stage_id, sub_stage_id)


def test_workflow_tokens_collects_tags_and_markers() -> None:
    tokens = workflow_tokens("- [ ] a #workflow/dev [stage::testing] #other")
    assert tokens == frozenset({"#workflow/dev", "[stage::testing]"})


def test_start_timestamp_pattern_follows_format() -> None:
    text = f"- [ ] a {format_start_timestamp('2024-01-02 10:30:00')} trailing"
    match = start_timestamp_pattern("%Y-%m-%d %H:%M:%S").search(text)
    assert match is not None
    assert match.group("value") == "2024-01-02 10:30:00"

    match = start_timestamp_pattern("%d/%m/%Y").search("- [ ] a 🛫 02/01/2024")
    assert match is not None
    assert match.group("value") == "02/01/2024"


def test_spent_time_patterns_do_not_overlap() -> None:
    text = f"- [x] a {format_spent_time('01:00:00')} {format_total_spent_time('05:00:00')}"

    spent = SPENT_TIME_RE.search(text)
    total = TOTAL_SPENT_TIME_RE.search(text)
    assert spent is not None and total is not None
    assert "Total" not in spent.group(0)
    assert total.group(0).strip() == "(Total ⏱️ 05:00:00)"
