"""Tests for record transforms and graph merging."""

import pytest
from pydantic import ValidationError

from gantt_stream.gantt.models import (
    AggregatedGraph,
    LinkEntry,
    RawProjectRecord,
    TaskEntry,
    TaskKind,
)
from gantt_stream.gantt.transform import (
    build_fragment,
    merge_graphs,
    to_link_batch,
    to_task_entries,
)


def _record(data: dict) -> RawProjectRecord:
    return RawProjectRecord.model_validate(data)


class TestToTaskEntries:
    """Tests for to_task_entries()."""

    @pytest.mark.parametrize("sprint_count", [0, 1, 4])
    def test_produces_one_entry_per_sprint_plus_project(self, sprint_count):
        """N sprints yield N+1 entries, sprints parented to the project."""
        record = _record({"id": "P", "sprints": [{"id": f"S{i}"} for i in range(sprint_count)]})

        entries = to_task_entries(record)

        assert len(entries) == sprint_count + 1
        assert entries[0].parent is None
        assert entries[0].kind is TaskKind.PROJECT
        assert all(e.parent == "P" for e in entries[1:])
        assert all(e.kind is TaskKind.SPRINT for e in entries[1:])

    def test_preserves_sprint_order(self):
        record = _record({"id": "P", "sprints": [{"id": "b"}, {"id": "a"}, {"id": "c"}]})

        assert [e.id for e in to_task_entries(record)] == ["P", "b", "a", "c"]

    def test_display_fields_are_kept(self):
        """Declared and extra display fields end up in fields."""
        record = _record(
            {
                "id": 7,
                "text": "Platform",
                "progress": 0.5,
                "owner": "ops",
                "sprints": [{"id": 8, "color": "red"}],
            }
        )

        project, sprint = to_task_entries(record)

        assert project.id == 7
        assert project.fields == {"text": "Platform", "progress": 0.5, "owner": "ops"}
        assert sprint.parent == 7
        assert sprint.fields == {"color": "red"}

    def test_extra_keys_cannot_override_structure(self):
        """Source-supplied parent/kind keys do not leak into the output."""
        record = _record({"id": "P", "parent": "X", "kind": "sprint"})

        data = to_task_entries(record)[0].to_dict()

        assert data["parent"] is None
        assert data["kind"] == "project"

    def test_inverted_temporal_bounds_pass_through(self):
        """Start after end is not validated at this layer."""
        record = _record({"id": "P", "start_date": "2024-05-10", "end_date": "2024-05-01"})

        entry = to_task_entries(record)[0]

        assert entry.start_date == "2024-05-10"
        assert entry.end_date == "2024-05-01"


    def test_non_string_display_fields_and_numeric_dates_pass_through(self):
        record = _record(
            {
                "id": "P",
                "text": 5,
                "progress": "half",
                "start_date": 1700000000,
                "end_date": None,
                "duration": "3",
            }
        )

        entry = to_task_entries(record)[0]

        assert entry.start_date == 1700000000
        assert entry.duration == "3"
        assert entry.fields == {"text": 5, "progress": "half"}


class TestToLinkBatch:
    """Tests for to_link_batch()."""

    def test_links_promoted_unchanged(self):
        record = _record(
            {
                "id": "P",
                "links": [
                    {"source": "P", "target": "S1", "type": "finish_to_start"},
                    {"source": "S1", "target": "S9", "type": "start_to_start"},
                ],
            }
        )

        links = to_link_batch(record)

        assert links == [
            LinkEntry("P", "S1", "finish_to_start"),
            LinkEntry("S1", "S9", "start_to_start"),
        ]

    def test_missing_links_default_empty(self):
        assert to_link_batch(_record({"id": "P"})) == []

    def test_link_without_type_is_rejected(self):
        with pytest.raises(ValidationError):
            _record({"id": "P", "links": [{"source": "P", "target": "S"}]})


class TestBuildFragment:
    """Tests for build_fragment()."""

    def test_documented_scenario(self, project_record):
        """P1 with sprints S1, S2 and one link produces the expected fragment."""
        fragment = build_fragment([_record(project_record)])

        assert fragment.to_dict() == {
            "tasks": [
                {"id": "P1", "parent": None, "kind": "project"},
                {"id": "S1", "parent": "P1", "kind": "sprint"},
                {"id": "S2", "parent": "P1", "kind": "sprint"},
            ],
            "links": [{"source": "P1", "target": "S1", "type": "finish_to_start"}],
        }

    def test_concatenates_records_in_order(self):
        r1 = _record({"id": "A", "sprints": [{"id": "A1"}], "links": [{"source": "A", "target": "A1", "type": "x"}]})
        r2 = _record({"id": "B", "links": [{"source": "B", "target": "A", "type": "y"}]})

        fragment = build_fragment([r1, r2])

        assert fragment.task_ids() == [*(e.id for e in to_task_entries(r1)), *(e.id for e in to_task_entries(r2))]
        assert list(fragment.links) == to_link_batch(r1) + to_link_batch(r2)

    def test_empty_payload_gives_empty_fragment(self):
        assert build_fragment([]).is_empty


class TestMergeGraphs:
    """Tests for merge_graphs()."""

    def test_first_fragment_is_returned_as_is(self):
        fragment = AggregatedGraph(tasks=(TaskEntry("P", None, TaskKind.PROJECT),))

        assert merge_graphs(None, fragment) is fragment

    def test_new_tasks_appended_and_existing_replaced_in_place(self):
        current = AggregatedGraph(
            tasks=(
                TaskEntry("P1", None, TaskKind.PROJECT, duration=3),
                TaskEntry("P2", None, TaskKind.PROJECT),
            ),
            links=(LinkEntry("P1", "P2", "finish_to_start"),),
        )
        fragment = AggregatedGraph(
            tasks=(
                TaskEntry("P1", None, TaskKind.PROJECT, duration=5),
                TaskEntry("P3", None, TaskKind.PROJECT),
            ),
            links=(
                LinkEntry("P1", "P2", "finish_to_start"),
                LinkEntry("P2", "P3", "finish_to_start"),
            ),
        )

        merged = merge_graphs(current, fragment)

        assert merged.task_ids() == ["P1", "P2", "P3"]
        assert merged.tasks[0].duration == 5
        assert len(merged.links) == 2
        # Inputs untouched
        assert current.tasks[0].duration == 3
