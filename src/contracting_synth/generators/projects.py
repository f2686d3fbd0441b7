"""Generator for the projects table.

Projects are attached to clients by revenue-weighted sampling, so larger
clients accumulate proportionally more projects. Budget scales with the
owning client's retainer and the project's complexity.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.generators._parents import require_parent
from contracting_synth.schema import (
    PROJECTS,
    Priority,
    ProjectStatus,
    ProjectType,
    TechStack,
    values,
)
from contracting_synth.util.sampling import cumulative_weighted_choice, randint, uniform

TABLE_NAME = "projects"

AVERAGE_HOURLY_RATE = 150
MAX_TEAM_SIZE = 12
# actual_end_date offset from planned_end_date, in days
ACTUAL_END_OFFSET_DAYS = (-30, 60)


def compute_budget(monthly_retainer: float, complexity: int, spread: float, adjustment: float) -> int:
    """Original budget from the client's retainer and the project's complexity.

    ``spread`` is drawn from U(0.5, 3.0) and ``adjustment`` from U(0.8, 1.5).
    """
    base_budget = monthly_retainer * spread * (complexity / 5)
    return int(base_budget * adjustment)


def compute_team_size(complexity: int, extra: int) -> int:
    return min(MAX_TEAM_SIZE, max(1, complexity // 2 + extra))


def generate(
    ctx: GenerationContext,
    cfg: SynthConfig,
    parents: Mapping[str, pd.DataFrame],
    count: int | None = None,
) -> pd.DataFrame:
    """Generate the projects table.

    Creates project records with:
    - project_id: PRJ_000000 .. PRJ_{count-1}
    - client_id: FK to clients, drawn with weight = annual_revenue
    - project_type, tech_stack, project_status, priority
    - start_date, planned_end_date, actual_end_date (only when Completed)
    - budget_original, budget_current, hours_estimated, hours_actual
    - team_size, complexity_score

    Args:
        ctx: Generation context with RNG.
        cfg: Configuration with scale and time window.
        parents: Must contain ``clients``.
        count: Number of projects; defaults to ``cfg.scale.projects``.

    Returns:
        DataFrame with project data.
    """
    rng = ctx.rng_for(TABLE_NAME)
    clients = require_parent(parents, "clients", TABLE_NAME)
    n_projects = cfg.scale.projects if count is None else count

    # Independent weighted draws, one per project
    weights = clients["annual_revenue"].astype(float).fillna(0.0).clip(lower=0.0).to_numpy()
    client_idx = cumulative_weighted_choice(rng, weights, size=n_projects)

    project_types = values(ProjectType)
    tech_stacks = values(TechStack)
    statuses = values(ProjectStatus)
    priorities = values(Priority)

    rows = []
    for i in range(n_projects):
        client = clients.iloc[int(client_idx[i])]

        project_type = ctx.sample_categorical(rng, project_types)
        tech_stack = ctx.sample_categorical(rng, tech_stacks)

        # Project complexity affects budget and timeline
        complexity = randint(rng, 1, 10)

        budget_original = compute_budget(
            float(client["monthly_retainer"]),
            complexity,
            uniform(rng, 0.5, 3.0),
            uniform(rng, 0.8, 1.5),
        )
        budget_current = int(budget_original * uniform(rng, 0.9, 1.3))

        hours_estimated = int(budget_original / AVERAGE_HOURLY_RATE)
        hours_actual = int(hours_estimated * uniform(rng, 0.7, 1.4))

        start_date = ctx.date_within(rng, cfg.time_window.project_history_years)
        planned_duration = timedelta(days=complexity * 30 + randint(rng, 14, 90))
        planned_end = start_date + planned_duration

        status = ctx.sample_categorical(rng, statuses)
        actual_end = None
        if status == ProjectStatus.COMPLETED.value:
            actual_end = planned_end + timedelta(days=randint(rng, *ACTUAL_END_OFFSET_DAYS))

        company_name = str(client["company_name"])
        rows.append(
            {
                "project_id": ctx.stable_id(PROJECTS.id_prefix),
                "client_id": client["client_id"],
                "project_name": f"{project_type} for {company_name[:20]}",
                "project_type": project_type,
                "tech_stack": tech_stack,
                "project_status": status,
                "priority": ctx.sample_categorical(rng, priorities),
                "start_date": start_date,
                "planned_end_date": planned_end,
                "actual_end_date": actual_end,
                "budget_original": budget_original,
                "budget_current": budget_current,
                "hours_estimated": hours_estimated,
                "hours_actual": hours_actual,
                "team_size": compute_team_size(complexity, randint(rng, 1, 3)),
                "complexity_score": complexity,
            }
        )

    return pd.DataFrame(rows, columns=PROJECTS.column_names)
