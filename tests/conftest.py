"""Shared fixtures for contracting_synth tests."""

from datetime import date

import pandas as pd
import pytest

from contracting_synth.config import ExpansionConfig, ScaleConfig, SynthConfig, TimeWindowConfig
from contracting_synth.context import GenerationContext
from contracting_synth.generators import generate_base, generate_dependent


@pytest.fixture
def small_config() -> SynthConfig:
    """Get the small preset configuration."""
    return SynthConfig.preset("small")


@pytest.fixture
def tiny_config() -> SynthConfig:
    """A configuration small enough for end-to-end pipeline runs."""
    return SynthConfig(
        seed=7,
        scale=ScaleConfig(clients=20, team_members=6, projects=30),
        time_window=TimeWindowConfig(reference_date=date(2024, 12, 31)),
        expansion=ExpansionConfig(model="replication", memory_gb=8, multiplier=2),
    )


@pytest.fixture
def context(small_config: SynthConfig) -> GenerationContext:
    """Create a generation context with small config."""
    return GenerationContext(
        seed=small_config.seed,
        reference_date=small_config.time_window.reference_date,
    )


@pytest.fixture
def base_tables(context: GenerationContext, small_config: SynthConfig) -> dict[str, pd.DataFrame]:
    """Seed clients, team members and projects for the small preset."""
    clients = generate_base(context, small_config, "clients", small_config.scale.clients)
    team = generate_base(context, small_config, "team_members", small_config.scale.team_members)
    projects = generate_dependent(
        context, small_config, "projects", {"clients": clients}, count=small_config.scale.projects
    )
    return {"clients": clients, "team_members": team, "projects": projects}
