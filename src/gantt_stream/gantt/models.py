"""Raw wire records and normalized Gantt graph types.

Raw records are validated with pydantic as they arrive from the push stream.
Normalized entries are plain dataclasses handed to observers.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

TaskId = str | int


class TaskKind(StrEnum):
    """Presentation discriminator for task entries."""

    PROJECT = "project"
    SPRINT = "sprint"


class RawLink(BaseModel):
    """Edge between two task identifiers as sent by the source."""

    model_config = ConfigDict(frozen=True)

    source: TaskId
    target: TaskId
    type: str


class RawSprintRecord(BaseModel):
    """One sprint nested inside a project record.

    Only the id is validated. Temporal bounds and display fields are kept
    exactly as sent, and unknown keys are kept as display fields.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: TaskId
    text: Any = None
    start_date: Any = None
    end_date: Any = None
    duration: Any = None
    progress: Any = None


class RawProjectRecord(RawSprintRecord):
    """One project with its sprints and links."""

    sprints: list[RawSprintRecord] = Field(default_factory=list)
    links: list[RawLink] = Field(default_factory=list)


# Keys of RawSprintRecord that map to dedicated TaskEntry attributes
_STRUCTURAL_KEYS = frozenset(
    {"id", "parent", "kind", "start_date", "end_date", "duration", "sprints", "links"}
)


def display_fields(record: RawSprintRecord) -> dict[str, Any]:
    """Collect the free-form display fields of a raw record.

    Returns:
        Declared display attributes that are set, plus any extra keys.

    """
    fields: dict[str, Any] = {}
    if record.text is not None:
        fields["text"] = record.text
    if record.progress is not None:
        fields["progress"] = record.progress
    for key, value in (record.model_extra or {}).items():
        if key not in _STRUCTURAL_KEYS:
            fields[key] = value
    return fields


@dataclass(frozen=True)
class TaskEntry:
    """Normalized task consumed by a chart sink.

    Attributes:
        id: Identifier, unique across the aggregated graph.
        parent: Owning project id for sprints, None for projects.
        kind: Project or sprint.
        start_date: Start as sent by the source (not validated).
        duration: Duration in days as sent by the source.
        end_date: End as sent by the source.
        fields: Remaining display fields.

    """

    id: TaskId
    parent: TaskId | None
    kind: TaskKind
    start_date: Any = None
    duration: Any = None
    end_date: Any = None
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the wire shape a chart widget accepts."""
        data: dict[str, Any] = {
            "id": self.id,
            "parent": self.parent,
            "kind": str(self.kind),
        }
        if self.start_date is not None:
            data["start_date"] = self.start_date
        if self.duration is not None:
            data["duration"] = self.duration
        if self.end_date is not None:
            data["end_date"] = self.end_date
        data.update(self.fields)
        return data


@dataclass(frozen=True)
class LinkEntry:
    """Directed dependency edge between two tasks."""

    source: TaskId
    target: TaskId
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "type": self.type}


@dataclass(frozen=True)
class AggregatedGraph:
    """Tasks in arrival order plus links; the unit published to observers."""

    tasks: tuple[TaskEntry, ...] = ()
    links: tuple[LinkEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.tasks and not self.links

    def task_ids(self) -> list[TaskId]:
        return [task.id for task in self.tasks]

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize as ``{"tasks": [...], "links": [...]}``."""
        return {
            "tasks": [task.to_dict() for task in self.tasks],
            "links": [link.to_dict() for link in self.links],
        }
