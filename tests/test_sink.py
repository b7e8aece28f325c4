"""Tests for the console rendering sink."""

from rich.console import Console

from gantt_stream.core.config import PublishMode
from gantt_stream.gantt.models import AggregatedGraph, LinkEntry, TaskEntry, TaskKind
from gantt_stream.sink import GanttTableSink


def _project(task_id: str, **fields) -> TaskEntry:
    return TaskEntry(task_id, None, TaskKind.PROJECT, start_date="2024-01-01", duration=10, fields=fields)


def _sprint(task_id: str, parent: str) -> TaskEntry:
    return TaskEntry(task_id, parent, TaskKind.SPRINT, fields={"text": f"Sprint {task_id}", "progress": 0.25})


def _render(renderable) -> str:
    console = Console(width=120, record=True)
    console.print(renderable)
    return console.export_text()


class TestGanttTableSink:
    """Tests for GanttTableSink accumulation and rendering."""

    def test_incremental_fragments_accumulate(self):
        sink = GanttTableSink()

        sink(AggregatedGraph(tasks=(_project("P1"), _sprint("S1", "P1"))))
        sink(AggregatedGraph(tasks=(_project("P2"),), links=(LinkEntry("P1", "P2", "finish_to_start"),)))

        assert [t.id for t in sink.tasks] == ["P1", "S1", "P2"]
        assert len(sink.links) == 1
        assert sink.received == 2

    def test_resent_task_replaces_previous(self):
        sink = GanttTableSink()

        sink(AggregatedGraph(tasks=(_project("P1", text="old"),)))
        sink(AggregatedGraph(tasks=(_project("P1", text="new"),)))

        assert len(sink.tasks) == 1
        assert sink.tasks[0].fields["text"] == "new"

    def test_accumulate_mode_replaces_state(self):
        sink = GanttTableSink(PublishMode.ACCUMULATE)

        sink(AggregatedGraph(tasks=(_project("P1"),)))
        sink(AggregatedGraph(tasks=(_project("P2"),)))

        assert [t.id for t in sink.tasks] == ["P2"]

    def test_dangling_links_reported(self):
        sink = GanttTableSink()

        sink(
            AggregatedGraph(
                tasks=(_project("P1"),),
                links=(LinkEntry("P1", "S9", "finish_to_start"), LinkEntry("P1", "P1", "x")),
            )
        )

        assert sink.dangling_links() == [LinkEntry("P1", "S9", "finish_to_start")]

    def test_render_lists_projects_with_their_sprints(self):
        sink = GanttTableSink()
        sink(AggregatedGraph(tasks=(_project("P1", text="Alpha"), _project("P2", text="Beta"))))
        sink(AggregatedGraph(tasks=(_sprint("S1", "P1"),)))

        table = sink.render()
        text = _render(table)

        assert table.row_count == 3
        assert text.index("Alpha") < text.index("Sprint S1") < text.index("Beta")
        assert "25%" in text

    def test_render_tree(self):
        sink = GanttTableSink()
        sink(AggregatedGraph(tasks=(_project("P1", text="Alpha"), _sprint("S1", "P1"))))

        text = _render(sink.render_tree())

        assert "Alpha" in text
        assert "Sprint S1" in text

    def test_render_tolerates_free_form_values(self):
        sink = GanttTableSink()
        sink(
            AggregatedGraph(
                tasks=(
                    TaskEntry("P1", None, TaskKind.PROJECT, start_date=1700000000, fields={"text": 5, "progress": "n/a"}),
                ),
            )
        )

        text = _render(sink.render())

        assert "1700000000" in text
        assert "n/a" in text
        assert "5" in text
