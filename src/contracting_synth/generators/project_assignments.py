"""Generator for the project_assignments bridge table."""

from __future__ import annotations

from collections.abc import Mapping

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.generators._parents import as_int, require_parent
from contracting_synth.schema import PROJECT_ASSIGNMENTS, AssignmentRole, values
from contracting_synth.util.sampling import uniform

TABLE_NAME = "project_assignments"


def allocate_hours(hours_estimated: float, team_size: int, factor: float) -> int:
    """Hours allocated to one member: an even share of the estimate scaled by ``factor``.

    Leads draw ``factor`` from U(1.2, 1.5), everyone else from U(0.8, 1.2).
    """
    return int(hours_estimated / team_size * factor)


def generate(
    ctx: GenerationContext,
    cfg: SynthConfig,
    parents: Mapping[str, pd.DataFrame],
    count: int | None = None,
) -> pd.DataFrame:
    """Generate project assignments.

    Each project gets ``min(team_size, len(team_members))`` distinct members.
    The sum of allocated hours across a project's assignments approximates
    its estimated hours, weighted up for the Lead role.
    """
    rng = ctx.rng_for(TABLE_NAME)
    projects = require_parent(parents, "projects", TABLE_NAME)
    team = require_parent(parents, "team_members", TABLE_NAME)

    member_ids = team["member_id"].tolist()
    roles = values(AssignmentRole)

    rows = []
    for project in projects.itertuples(index=False):
        team_size = min(as_int(project.team_size, minimum=1), len(member_ids))
        hours_estimated = float(project.hours_estimated) if pd.notna(project.hours_estimated) else 0.0
        end_date = project.actual_end_date if pd.notna(project.actual_end_date) else None

        picked = rng.choice(len(member_ids), size=team_size, replace=False)
        for idx in picked:
            role_on_project = ctx.sample_categorical(rng, roles)
            if role_on_project == AssignmentRole.LEAD.value:
                factor = uniform(rng, 1.2, 1.5)
            else:
                factor = uniform(rng, 0.8, 1.2)

            hours_allocated = allocate_hours(hours_estimated, team_size, factor)
            hours_logged = int(hours_allocated * uniform(rng, 0.7, 1.3))

            rows.append(
                {
                    "assignment_id": ctx.stable_id(PROJECT_ASSIGNMENTS.id_prefix),
                    "project_id": project.project_id,
                    "member_id": member_ids[int(idx)],
                    "role_on_project": role_on_project,
                    "hours_allocated": hours_allocated,
                    "hours_logged": hours_logged,
                    "start_date": project.start_date,
                    "end_date": end_date,
                }
            )

    return pd.DataFrame(rows, columns=PROJECT_ASSIGNMENTS.column_names)
