"""Configuration schema for synthetic data generation."""

from __future__ import annotations

import json
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class ScalePreset(str, Enum):
    """Predefined scale presets, matching the memory tiers of the generation host."""

    SMALL = "small"
    STANDARD = "standard"
    LARGE = "large"


class ScaleConfig(BaseModel):
    """Row counts for the seed tables and child-count rules."""

    clients: int = Field(ge=1, description="Number of base client records")
    team_members: int = Field(ge=1, description="Number of base team member records")
    projects: int = Field(ge=1, description="Number of seed project records")
    min_tickets_per_project: int = Field(
        ge=1, default=5, description="Lower clamp on tickets generated per project"
    )
    hours_per_ticket: float = Field(
        gt=0, default=20.0, description="Estimated project hours represented by one ticket"
    )
    retainer_months_min: int = Field(ge=1, default=12, description="Minimum retainer invoices per client")
    retainer_months_max: int = Field(ge=1, default=24, description="Maximum retainer invoices per client")
    contracts_per_client_min: int = Field(ge=1, default=1, description="Minimum contracts per client")
    contracts_per_client_max: int = Field(ge=1, default=3, description="Maximum contracts per client")

    @model_validator(mode="after")
    def validate_ranges(self) -> "ScaleConfig":
        """Ensure min <= max for all range fields."""
        if self.retainer_months_min > self.retainer_months_max:
            raise ValueError("retainer_months_min must be <= retainer_months_max")
        if self.contracts_per_client_min > self.contracts_per_client_max:
            raise ValueError("contracts_per_client_min must be <= contracts_per_client_max")
        return self


CTGAN_PAC = 10

DEFAULT_EPOCHS = {
    "clients": 150,
    "team_members": 100,
    "projects": 200,
    "project_assignments": 75,
    "tickets": 120,
    "invoices": 100,
    "contracts": 75,
}


class ExpansionConfig(BaseModel):
    """Row-count expansion options.

    ``memory_gb`` and ``target_records`` are operator inputs: the pipeline never
    probes the host. An explicit ``multiplier`` overrides the tiered sizing.
    """

    model: Literal["ctgan", "replication"] = Field(
        default="ctgan",
        description="Primary expansion model; 'replication' skips straight to the fallback",
    )
    memory_gb: float = Field(gt=0, default=18.0, description="Operator-supplied memory budget in GB")
    target_records: int = Field(ge=1, default=120_000, description="Target record count per table")
    multiplier: int | None = Field(
        default=None, ge=1, description="Explicit expansion multiplier (overrides sizing)"
    )
    epochs: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_EPOCHS),
        description="CTGAN training epochs per table",
    )
    batch_size: int = Field(ge=10, default=3000, description="Maximum CTGAN batch size")
    generator_dim: tuple[int, ...] = Field(default=(128, 128))
    discriminator_dim: tuple[int, ...] = Field(default=(128, 128))
    noise_scale: float = Field(
        ge=0.0,
        default=0.1,
        description="Fallback noise sigma as a fraction of each column's standard deviation",
    )

    @field_validator("epochs")
    @classmethod
    def validate_epochs(cls, v: dict[str, int]) -> dict[str, int]:
        """Ensure epoch counts are positive."""
        if any(e < 1 for e in v.values()):
            raise ValueError("epochs must all be >= 1")
        return v

    def epochs_for(self, table_name: str) -> int:
        """Training epochs for a table, capped on smaller memory budgets."""
        epochs = self.epochs.get(table_name, 100)
        if self.memory_gb < 18:
            epochs = min(150, epochs)
        return epochs

    def batch_size_for(self, n_rows: int) -> int:
        """CTGAN batch size for a table of ``n_rows`` rows."""
        cap = self.batch_size if self.memory_gb >= 18 else min(1500, self.batch_size)
        # CTGAN requires the batch size to be a multiple of its pac (10)
        size = max(CTGAN_PAC, min(cap, n_rows))
        return size - (size % CTGAN_PAC)

    def resolve_multiplier(self, base_rows: int) -> int:
        """Expansion multiplier for a table with ``base_rows`` seed rows."""
        if self.multiplier is not None:
            return self.multiplier
        if base_rows <= 0:
            return 1
        if self.memory_gb >= 18:
            return max(2, min(4, self.target_records // base_rows))
        if self.memory_gb >= 12:
            return max(2, min(3, self.target_records // base_rows))
        return 2


class OutputConfig(BaseModel):
    """Bundle output options."""

    csv_delimiter: str = Field(default=",", min_length=1, max_length=1)
    parquet: bool = Field(default=False, description="Also write Parquet copies under parquet/")
    include_file_hashes: bool = Field(default=True, description="Include file hashes in the summary")
    summary_filename: str = Field(default="dataset_summary.json")
    write_seed_samples: bool = Field(
        default=False,
        description="Also write the pre-expansion tables under seed_samples/",
    )
    compression: Literal["none", "gzip", "snappy"] = Field(
        default="snappy",
        description="Compression for Parquet files",
    )


class TimeWindowConfig(BaseModel):
    """Reference point for all date arithmetic."""

    reference_date: date = Field(description="The 'today' every generated date is relative to")
    client_history_years: int = Field(ge=1, default=4)
    team_history_years: int = Field(ge=1, default=6)
    project_history_years: int = Field(ge=1, default=2)


class SynthConfig(BaseModel):
    """Main configuration for synthetic data generation."""

    seed: int = Field(ge=0, description="Random seed for reproducible generation")
    scale: ScaleConfig = Field(description="Seed table sizes")
    time_window: TimeWindowConfig = Field(description="Reference date and history windows")
    expansion: ExpansionConfig = Field(
        default_factory=ExpansionConfig,
        description="Row-count expansion options",
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description="Bundle output options",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SynthConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            Parsed SynthConfig instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the YAML is invalid.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.model_validate(data)

    @classmethod
    def from_json(cls, path: str | Path) -> "SynthConfig":
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the JSON is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def preset(cls, name: str | ScalePreset) -> "SynthConfig":
        """Get a built-in configuration preset.

        Args:
            name: Preset name ("small", "standard", or "large").

        Raises:
            ValueError: If the preset name is unknown.
        """
        if isinstance(name, str):
            try:
                name = ScalePreset(name.lower())
            except ValueError:
                valid = [p.value for p in ScalePreset]
                raise ValueError(f"Unknown preset '{name}'. Valid presets: {valid}")

        presets = {
            ScalePreset.SMALL: cls._preset_small,
            ScalePreset.STANDARD: cls._preset_standard,
            ScalePreset.LARGE: cls._preset_large,
        }

        return presets[name]()

    @classmethod
    def _preset_small(cls) -> "SynthConfig":
        """Small preset for quick runs and tests. Replication-only expansion."""
        return cls(
            seed=42,
            scale=ScaleConfig(clients=40, team_members=10, projects=120),
            time_window=TimeWindowConfig(reference_date=date(2024, 12, 31)),
            expansion=ExpansionConfig(
                model="replication",
                memory_gb=8,
                target_records=1000,
                multiplier=2,
            ),
        )

    @classmethod
    def _preset_standard(cls) -> "SynthConfig":
        """Standard preset for a 12 GB generation host."""
        return cls(
            seed=42,
            scale=ScaleConfig(clients=600, team_members=35, projects=2500),
            time_window=TimeWindowConfig(reference_date=date(2024, 12, 31)),
            expansion=ExpansionConfig(
                model="ctgan",
                memory_gb=12,
                target_records=75_000,
            ),
        )

    @classmethod
    def _preset_large(cls) -> "SynthConfig":
        """Large preset for an 18 GB generation host."""
        return cls(
            seed=42,
            scale=ScaleConfig(clients=800, team_members=45, projects=3500),
            time_window=TimeWindowConfig(reference_date=date(2024, 12, 31)),
            expansion=ExpansionConfig(
                model="ctgan",
                memory_gb=18,
                target_records=120_000,
            ),
            output=OutputConfig(parquet=True),
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize configuration to JSON string."""
        return self.model_dump_json(indent=indent)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation with date objects converted to ISO strings.
        """
        return self.model_dump(mode="json")
