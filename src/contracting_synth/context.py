"""Generation context for managing seeds, state, and deterministic data generation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

import pandas as pd
from faker import Faker
from numpy.random import PCG64, Generator

from contracting_synth import __version__
from contracting_synth.schema import format_id, schema_definition
from contracting_synth.util import sampling
from contracting_synth.util.hashing import seed_from_str, stable_hash_str


class GenerationContext:
    """Context for deterministic synthetic data generation.

    Manages seeded RNGs, the reference date, stable identifiers and the
    registry of generated tables. All randomness flows through this context,
    so two contexts built with the same seed produce the same tables.

    Attributes:
        seed: Base seed for all random number generation.
        reference_date: The "today" every generated date is relative to.
        schema_snapshot_id: Stable hash identifying schema + package version.
    """

    def __init__(self, seed: int, reference_date: date) -> None:
        self._seed = seed
        self._reference_date = reference_date

        snapshot_input = f"{schema_definition()}|{__version__}"
        self._schema_snapshot_id = stable_hash_str(snapshot_input)

        self._tables: dict[str, pd.DataFrame] = {}
        self._table_rngs: dict[str, Generator] = {}
        self._fakers: dict[str, Faker] = {}
        self._id_counters: dict[str, int] = {}

    @property
    def seed(self) -> int:
        """Base seed for generation."""
        return self._seed

    @property
    def reference_date(self) -> date:
        return self._reference_date

    @property
    def schema_snapshot_id(self) -> str:
        """Stable hash of schema + package version."""
        return self._schema_snapshot_id

    @property
    def tables(self) -> dict[str, pd.DataFrame]:
        """Registry of generated tables."""
        return self._tables

    def _sub_seed(self, name: str) -> int:
        # Mix base seed with name hash for unique but deterministic seed
        return (self._seed + seed_from_str(name)) % (2**32)

    def rng_for(self, name: str) -> Generator:
        """Get a deterministic sub-RNG for a table or pipeline stage.

        Cached, so repeated calls within one run continue the same stream.
        """
        if name not in self._table_rngs:
            self._table_rngs[name] = Generator(PCG64(self._sub_seed(name)))
        return self._table_rngs[name]

    def faker_for(self, name: str) -> Faker:
        """Get a seeded Faker instance for a table."""
        if name not in self._fakers:
            fake = Faker("en_US")
            fake.seed_instance(self._sub_seed(f"faker:{name}"))
            self._fakers[name] = fake
        return self._fakers[name]

    def stable_id(self, prefix: str) -> str:
        """Next identifier for a prefix, formatted ``PREFIX_%06d``.

        Sequences start at 0 and are independent per prefix.
        """
        n = self._id_counters.get(prefix, 0)
        self._id_counters[prefix] = n + 1
        return format_id(prefix, n)

    def stable_ids(self, prefix: str, n: int) -> list[str]:
        """Next ``n`` identifiers for a prefix."""
        return [self.stable_id(prefix) for _ in range(n)]

    def sample_categorical(
        self,
        rng: Generator,
        categories: Sequence[Any],
        weights: Sequence[float] | None = None,
        size: int = 1,
    ) -> Any | list[Any]:
        """Sample from a categorical distribution with optional weights."""
        return sampling.sample_categorical(rng, categories, weights=weights, size=size)

    def date_within(self, rng: Generator, years_back: int) -> date:
        """Uniform date in the ``years_back`` years up to the reference date."""
        days = int(rng.integers(0, years_back * 365 + 1))
        return self._reference_date - timedelta(days=days)

    def register_table(self, name: str, df: pd.DataFrame) -> None:
        self._tables[name] = df

    def get_table(self, name: str) -> pd.DataFrame | None:
        """Get a registered table by name, or None."""
        return self._tables.get(name)

    def reset_all(self) -> None:
        """Reset RNGs, tables, and ID counters to their initial state."""
        self._tables.clear()
        self._table_rngs.clear()
        self._fakers.clear()
        self._id_counters.clear()
