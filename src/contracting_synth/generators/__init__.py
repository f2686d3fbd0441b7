"""Table generators for synthetic data generation.

Base generators expose ``generate(ctx, cfg, count)``; dependent generators
expose ``generate(ctx, cfg, parents, count=None)`` and read their parent
rows from ``parents``. Every generator returns a pandas DataFrame.
"""

from __future__ import annotations

from collections.abc import Mapping

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.errors import ConfigurationError

# Base generators
from contracting_synth.generators.clients import generate as generate_clients
from contracting_synth.generators.team_members import generate as generate_team_members

# Dependent generators
from contracting_synth.generators.contracts import generate as generate_contracts
from contracting_synth.generators.invoices import generate as generate_invoices
from contracting_synth.generators.project_assignments import (
    generate as generate_project_assignments,
)
from contracting_synth.generators.projects import generate as generate_projects
from contracting_synth.generators.tickets import generate as generate_tickets

BASE_GENERATORS = {
    "clients": generate_clients,
    "team_members": generate_team_members,
}

DEPENDENT_GENERATORS = {
    "projects": generate_projects,
    "project_assignments": generate_project_assignments,
    "tickets": generate_tickets,
    "invoices": generate_invoices,
    "contracts": generate_contracts,
}


def generate_base(
    ctx: GenerationContext, cfg: SynthConfig, table_name: str, count: int
) -> pd.DataFrame:
    """Generate exactly ``count`` rows of a root table.

    Raises:
        ConfigurationError: If ``table_name`` is not a base table.
    """
    generator = BASE_GENERATORS.get(table_name)
    if generator is None:
        raise ConfigurationError(
            f"'{table_name}' is not a base table. Base tables: {list(BASE_GENERATORS)}"
        )
    return generator(ctx, cfg, count)


def generate_dependent(
    ctx: GenerationContext,
    cfg: SynthConfig,
    table_name: str,
    parent_tables: Mapping[str, pd.DataFrame],
    count: int | None = None,
) -> pd.DataFrame:
    """Generate a child table from already-generated parent tables.

    Raises:
        ConfigurationError: If ``table_name`` is not a dependent table or a
            required parent is missing.
    """
    generator = DEPENDENT_GENERATORS.get(table_name)
    if generator is None:
        raise ConfigurationError(
            f"'{table_name}' is not a dependent table. "
            f"Dependent tables: {list(DEPENDENT_GENERATORS)}"
        )
    return generator(ctx, cfg, parent_tables, count)


__all__ = [
    "BASE_GENERATORS",
    "DEPENDENT_GENERATORS",
    "generate_base",
    "generate_dependent",
    # Base
    "generate_clients",
    "generate_team_members",
    # Dependent
    "generate_projects",
    "generate_project_assignments",
    "generate_tickets",
    "generate_invoices",
    "generate_contracts",
]
