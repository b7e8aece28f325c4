"""Console rendering sink standing in for the chart widget.

Accumulates incoming graphs and renders the task hierarchy as a rich table.
"""

import logging
from typing import Any

from rich.table import Table
from rich.tree import Tree

from gantt_stream.core.config import PublishMode
from gantt_stream.gantt.models import AggregatedGraph, LinkEntry, TaskEntry, TaskId, TaskKind

logger = logging.getLogger(__name__)


def _cell(value: Any) -> str:
    return "-" if value is None else str(value)


def _format_progress(value: Any) -> str:
    """Render a 0..1 progress ratio as a percentage, anything else verbatim."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.0%}"
    return _cell(value)


class GanttTableSink:
    """Observer that keeps the complete graph seen so far.

    In incremental mode each received fragment is merged (a re-sent task id
    replaces the earlier entry). In accumulate mode every received value is
    already the full graph and replaces the held state.

    Attributes:
        mode: Publish mode of the cell this sink observes.
        received: Number of values received.

    """

    def __init__(self, mode: PublishMode = PublishMode.INCREMENTAL) -> None:
        self.mode = mode
        self.received = 0
        self._tasks: dict[TaskId, TaskEntry] = {}
        self._links: dict[LinkEntry, None] = {}

    def __call__(self, graph: AggregatedGraph) -> None:
        self.received += 1
        if self.mode is PublishMode.ACCUMULATE:
            self._tasks.clear()
            self._links.clear()
        for task in graph.tasks:
            self._tasks[task.id] = task
        self._links.update(dict.fromkeys(graph.links))

    @property
    def tasks(self) -> list[TaskEntry]:
        return list(self._tasks.values())

    @property
    def links(self) -> list[LinkEntry]:
        return list(self._links)

    def dangling_links(self) -> list[LinkEntry]:
        """Links whose source or target has not arrived (yet)."""
        return [link for link in self._links if link.source not in self._tasks or link.target not in self._tasks]

    def render(self) -> Table:
        """Render the held graph as a table (projects followed by their sprints)."""
        table = Table(title=f"Gantt: {len(self._tasks)} task(s), {len(self._links)} link(s)")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Task")
        table.add_column("Start")
        table.add_column("Days", justify="right")
        table.add_column("Progress", justify="right")

        for task in self._ordered():
            label = str(task.fields.get("text", task.id))
            if task.kind is TaskKind.SPRINT:
                label = f"  └ {label}"
            table.add_row(
                str(task.id),
                label,
                _cell(task.start_date),
                _cell(task.duration),
                _format_progress(task.fields.get("progress")),
            )
        return table

    def render_tree(self) -> Tree:
        """Render the project/sprint hierarchy as a tree."""
        tree = Tree("Projects")
        nodes: dict[TaskId, Tree] = {}
        for task in self._ordered():
            label = str(task.fields.get("text", task.id))
            parent = nodes.get(task.parent) if task.parent is not None else None
            nodes[task.id] = (parent or tree).add(label)
        return tree

    def _ordered(self) -> list[TaskEntry]:
        """Projects in arrival order, each followed by its sprints."""
        children: dict[TaskId, list[TaskEntry]] = {}
        roots: list[TaskEntry] = []
        for task in self._tasks.values():
            if task.parent is not None and task.parent in self._tasks:
                children.setdefault(task.parent, []).append(task)
            else:
                roots.append(task)

        ordered: list[TaskEntry] = []
        for root in roots:
            ordered.append(root)
            ordered.extend(children.get(root.id, []))
        return ordered
