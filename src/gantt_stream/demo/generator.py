"""Dummy project/sprint data for the demo push source."""

import logging
import random
from datetime import date, timedelta
from typing import Any

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
FINISH_TO_START = "finish_to_start"

# Sprint length bounds in days
MIN_SPRINT_DAYS = 5
MAX_SPRINT_DAYS = 15


def generate_project(
    index: int,
    sprint_count: int,
    start: date,
    rng: random.Random,
) -> dict[str, Any]:
    """Build one raw project record.

    Sprints run back to back from the project start. Links chain the project
    to its first sprint and each sprint to the next (finish-to-start).

    Args:
        index: 1-based project number, used in ids and labels.
        sprint_count: Number of sprints to nest.
        start: Project start date.
        rng: Random source for durations and progress.

    Returns:
        Record dict in the record-channel wire shape.

    """
    project_id = f"P{index}"
    sprints: list[dict[str, Any]] = []
    links: list[dict[str, Any]] = []

    cursor = start
    for number in range(1, sprint_count + 1):
        duration = rng.randint(MIN_SPRINT_DAYS, MAX_SPRINT_DAYS)
        sprint_id = f"{project_id}-S{number}"
        sprints.append(
            {
                "id": sprint_id,
                "text": f"Sprint {number}",
                "start_date": cursor.strftime(DATE_FORMAT),
                "duration": duration,
                "progress": round(rng.random(), 2),
            }
        )
        source = project_id if number == 1 else sprints[-2]["id"]
        links.append({"source": source, "target": sprint_id, "type": FINISH_TO_START})
        cursor += timedelta(days=duration)

    total_days = (cursor - start).days
    progress = round(sum(s["progress"] for s in sprints) / len(sprints), 2) if sprints else 0.0

    return {
        "id": project_id,
        "text": f"Project {index}",
        "start_date": start.strftime(DATE_FORMAT),
        "duration": total_days,
        "progress": progress,
        "sprints": sprints,
        "links": links,
    }


def generate_projects(
    count: int,
    sprints_per_project: int,
    start_date: date | None = None,
    seed: int | None = None,
) -> list[dict[str, Any]]:
    """Build a list of dummy project records.

    Projects start a week apart. The same seed and start date always produce
    the same records.

    Args:
        count: Number of projects.
        sprints_per_project: Sprints nested in each project.
        start_date: First project start (defaults to today).
        seed: Random seed; None for nondeterministic output.

    Returns:
        Project records in emission order.

    """
    rng = random.Random(seed)
    first = start_date or date.today()
    projects = [
        generate_project(i + 1, sprints_per_project, first + timedelta(weeks=i), rng) for i in range(count)
    ]
    logger.debug("Generated %d demo project(s) starting %s", count, first)
    return projects
