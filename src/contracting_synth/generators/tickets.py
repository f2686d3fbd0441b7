"""Generator for the tickets table.

Ticket volume per project follows the project's estimated hours; ticket
effort follows story points.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.generators._parents import require_parent
from contracting_synth.schema import (
    STORY_POINTS,
    TICKETS,
    Priority,
    TicketStatus,
    TicketType,
    values,
)
from contracting_synth.util.sampling import randint, uniform

TABLE_NAME = "tickets"

# completed_date offset from created_date, in days
COMPLETION_OFFSET_DAYS = (1, 14)


def tickets_for_project(hours_estimated: float, hours_per_ticket: float, minimum: int) -> int:
    """Number of tickets for a project, clamped to ``minimum``."""
    if pd.isna(hours_estimated):
        return minimum
    return max(minimum, int(float(hours_estimated) / hours_per_ticket))


def generate(
    ctx: GenerationContext,
    cfg: SynthConfig,
    parents: Mapping[str, pd.DataFrame],
    count: int | None = None,
) -> pd.DataFrame:
    """Generate tickets for every project.

    Creates ticket records with:
    - ticket_id, project_id (FK to projects), assignee_id (FK to team_members)
    - ticket_title, ticket_type, priority, status
    - story_points: from {1, 2, 3, 5, 8, 13, 21}
    - estimated_hours, actual_hours: scaled by story points
    - created_date: inside the first half of the project's planned span
    - completed_date: 1-14 days after creation, only when status is Done
    """
    rng = ctx.rng_for(TABLE_NAME)
    fake = ctx.faker_for(TABLE_NAME)
    projects = require_parent(parents, "projects", TABLE_NAME)
    team = require_parent(parents, "team_members", TABLE_NAME)

    member_ids = team["member_id"].tolist()
    ticket_types = values(TicketType)
    priorities = values(Priority)
    statuses = values(TicketStatus)
    story_points = list(STORY_POINTS.values)

    rows = []
    for project in projects.itertuples(index=False):
        num_tickets = tickets_for_project(
            project.hours_estimated,
            cfg.scale.hours_per_ticket,
            cfg.scale.min_tickets_per_project,
        )

        start_date = project.start_date if pd.notna(project.start_date) else ctx.reference_date
        planned_end = project.planned_end_date if pd.notna(project.planned_end_date) else start_date
        half_span = max(1, (planned_end - start_date).days // 2)

        for _ in range(num_tickets):
            ticket_type = ctx.sample_categorical(rng, ticket_types)
            assignee_id = member_ids[int(rng.integers(0, len(member_ids)))]

            points = ctx.sample_categorical(rng, story_points, weights=STORY_POINTS.weights)
            estimated_hours = points * uniform(rng, 2, 6)
            actual_hours = estimated_hours * uniform(rng, 0.5, 1.8)

            created_date = start_date + timedelta(days=randint(rng, 0, half_span))

            status = ctx.sample_categorical(rng, statuses)
            completed_date = None
            if status == TicketStatus.DONE.value:
                completed_date = created_date + timedelta(days=randint(rng, *COMPLETION_OFFSET_DAYS))

            rows.append(
                {
                    "ticket_id": ctx.stable_id(TICKETS.id_prefix),
                    "project_id": project.project_id,
                    "ticket_title": f"{ticket_type}: {fake.catch_phrase()}",
                    "ticket_type": ticket_type,
                    "priority": ctx.sample_categorical(rng, priorities),
                    "status": status,
                    "assignee_id": assignee_id,
                    "story_points": points,
                    "created_date": created_date,
                    "completed_date": completed_date,
                    "estimated_hours": round(estimated_hours, 2),
                    "actual_hours": round(actual_hours, 2),
                }
            )

    return pd.DataFrame(rows, columns=TICKETS.column_names)
