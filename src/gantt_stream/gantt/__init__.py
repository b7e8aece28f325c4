"""Gantt graph model and record transforms."""

from .models import (
    AggregatedGraph,
    LinkEntry,
    RawLink,
    RawProjectRecord,
    RawSprintRecord,
    TaskEntry,
    TaskKind,
)
from .transform import build_fragment, merge_graphs, to_link_batch, to_task_entries

__all__ = [
    "AggregatedGraph",
    "LinkEntry",
    "RawLink",
    "RawProjectRecord",
    "RawSprintRecord",
    "TaskEntry",
    "TaskKind",
    "build_fragment",
    "merge_graphs",
    "to_link_batch",
    "to_task_entries",
]
