"""Pure transforms from raw project records to Gantt graph entries.

No state and no I/O. Temporal bounds are passed through exactly as received;
a start after its end is the rendering sink's problem, as are links whose
endpoints never arrive.
"""

import logging
from collections.abc import Iterable

from .models import (
    AggregatedGraph,
    LinkEntry,
    RawProjectRecord,
    RawSprintRecord,
    TaskEntry,
    TaskId,
    TaskKind,
    display_fields,
)

logger = logging.getLogger(__name__)


def _to_entry(record: RawSprintRecord, parent: TaskId | None, kind: TaskKind) -> TaskEntry:
    return TaskEntry(
        id=record.id,
        parent=parent,
        kind=kind,
        start_date=record.start_date,
        duration=record.duration,
        end_date=record.end_date,
        fields=display_fields(record),
    )


def to_task_entries(record: RawProjectRecord) -> list[TaskEntry]:
    """Turn one project record into its task entries.

    Args:
        record: Validated project record.

    Returns:
        The project entry followed by one entry per sprint, in record order.
        Sprint entries carry the project's id as parent.

    """
    entries = [_to_entry(record, None, TaskKind.PROJECT)]
    entries.extend(_to_entry(sprint, record.id, TaskKind.SPRINT) for sprint in record.sprints)
    return entries


def to_link_batch(record: RawProjectRecord) -> list[LinkEntry]:
    """Promote the record's embedded links unchanged."""
    return [LinkEntry(source=link.source, target=link.target, type=link.type) for link in record.links]


def build_fragment(records: Iterable[RawProjectRecord]) -> AggregatedGraph:
    """Fold a payload's records into one fragment.

    Args:
        records: Records in arrival order.

    Returns:
        Graph whose tasks and links are the concatenated per-record outputs.

    """
    tasks: list[TaskEntry] = []
    links: list[LinkEntry] = []
    for record in records:
        tasks.extend(to_task_entries(record))
        links.extend(to_link_batch(record))
    return AggregatedGraph(tasks=tuple(tasks), links=tuple(links))


def merge_graphs(current: AggregatedGraph | None, fragment: AggregatedGraph) -> AggregatedGraph:
    """Merge a fragment into a running graph.

    A task whose id is already present replaces the earlier entry in place;
    new tasks are appended. Links are deduplicated by value.

    Args:
        current: Running graph, or None before the first fragment.
        fragment: Newly received fragment.

    Returns:
        New merged graph (inputs are not modified).

    """
    if current is None:
        return fragment

    tasks: dict[TaskId, TaskEntry] = {task.id: task for task in current.tasks}
    for task in fragment.tasks:
        tasks[task.id] = task

    links = dict.fromkeys(current.links)
    links.update(dict.fromkeys(fragment.links))

    return AggregatedGraph(tasks=tuple(tasks.values()), links=tuple(links))
