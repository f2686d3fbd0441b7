"""Row-count expansion behind a single train/sample interface.

The primary strategy trains a CTGAN model on a seed table and samples
``len(table) * multiplier`` rows. Any failure of that path degrades to
replication-with-noise, which implements the same ``ModelTrainer``
interface so tests can force either branch.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import pandas as pd
from numpy.random import Generator

from contracting_synth.config import ExpansionConfig, SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.errors import ConfigurationError, ExpansionError
from contracting_synth.schema import ColumnType, TableSpec, format_id, parse_id

logger = logging.getLogger(__name__)

STRATEGY_NONE = "none"

_EPOCH = pd.Timestamp("1970-01-01")
_NULL_FLAG_SUFFIX = "__is_null"


class TabularModel(Protocol):
    """A trained model that can draw new rows shaped like its training table."""

    def sample(self, n: int) -> pd.DataFrame:
        """Draw ``n`` rows with the training table's columns."""
        ...


class ModelTrainer(ABC):
    """Trains a ``TabularModel`` on one table."""

    name: str = "model"

    @abstractmethod
    def train(self, table: pd.DataFrame, spec: TableSpec) -> TabularModel:
        """Fit a model to ``table``.

        Raises:
            ExpansionError: If training fails.
        """


@dataclass
class ExpansionResult:
    """Outcome of expanding one table.

    Attributes:
        table: The expanded rows.
        strategy: Name of the trainer that produced them, or ``"none"``.
        error: Message from the primary strategy when it failed.
    """

    table: pd.DataFrame
    strategy: str
    error: str | None = None


def shift_id(value: object, offset: int) -> object:
    """Add ``offset`` to the sequence number of a ``PREFIX_%06d`` identifier."""
    if pd.isna(value):
        return value
    prefix, number = parse_id(str(value))
    return format_id(prefix, number + offset)


def restamp_ids(n: int, prefix: str) -> list[str]:
    """Sequential identifiers ``PREFIX_000000`` .. for ``n`` sampled rows."""
    return [format_id(prefix, i) for i in range(n)]


# CTGAN


def _dates_to_ordinal(series: pd.Series) -> pd.Series:
    return (pd.to_datetime(series, errors="coerce") - _EPOCH).dt.days


def _ordinal_to_dates(series: pd.Series) -> pd.Series:
    days = pd.to_numeric(series, errors="coerce").round()
    return (_EPOCH + pd.to_timedelta(days, unit="D")).dt.date


@dataclass
class TrainingFrame:
    """A seed table transformed for CTGAN, with what is needed to undo it."""

    frame: pd.DataFrame
    discrete: list[str]
    date_columns: list[str]
    null_flagged: list[str]


class CTGANModel:
    """A fitted CTGAN synthesizer plus the column transforms applied for training."""

    def __init__(self, synthesizer, spec: TableSpec, prepared: TrainingFrame) -> None:
        self._synthesizer = synthesizer
        self._spec = spec
        self._prepared = prepared

    def sample(self, n: int) -> pd.DataFrame:
        try:
            raw = self._synthesizer.sample(n)
        except Exception as e:
            raise ExpansionError(f"CTGAN sampling failed for {self._spec.name}: {e}") from e

        for col in self._prepared.null_flagged:
            flag = f"{col}{_NULL_FLAG_SUFFIX}"
            raw.loc[raw[flag] == "yes", col] = np.nan
            raw = raw.drop(columns=[flag])

        for col in self._prepared.date_columns:
            raw[col] = _ordinal_to_dates(raw[col])

        # Discrete nulls were trained as empty strings
        for col in self._prepared.discrete:
            if col in raw.columns:
                raw[col] = raw[col].where(raw[col] != "", None)

        # Sampled keys are not unique; assign fresh sequential ones.
        raw.insert(0, self._spec.primary_key, restamp_ids(len(raw), self._spec.id_prefix))
        return raw[self._spec.column_names].reset_index(drop=True)


class CTGANTrainer(ModelTrainer):
    """Trains ``ctgan.CTGAN`` on a seed table.

    Every non-numeric column is declared discrete. Datetime columns are
    trained as ordinal days and converted back after sampling, with a
    discrete null flag for columns that contain nulls. The primary key is
    dropped for training and re-stamped sequentially on sampling.
    """

    name = "ctgan"

    def __init__(self, expansion: ExpansionConfig, seed: int | None = None) -> None:
        self.expansion = expansion
        self.seed = seed

    @staticmethod
    def ensure_available() -> None:
        """Raise ``ConfigurationError`` if the ctgan library cannot be imported."""
        try:
            import ctgan  # noqa: F401
        except ImportError as e:
            raise ConfigurationError(
                "expansion model 'ctgan' is configured but the ctgan package is not installed"
            ) from e

    def _build_synthesizer(self, table_name: str, n_rows: int):
        from ctgan import CTGAN

        epochs = self.expansion.epochs_for(table_name)
        batch_size = self.expansion.batch_size_for(n_rows)
        logger.info(
            "Training CTGAN on %s (%d rows, %d epochs, batch size %d)",
            table_name,
            n_rows,
            epochs,
            batch_size,
        )
        synthesizer = CTGAN(
            epochs=epochs,
            batch_size=batch_size,
            generator_dim=tuple(self.expansion.generator_dim),
            discriminator_dim=tuple(self.expansion.discriminator_dim),
            verbose=False,
        )
        if self.seed is not None:
            synthesizer.set_random_state(self.seed)
        return synthesizer

    @staticmethod
    def prepare(table: pd.DataFrame, spec: TableSpec) -> TrainingFrame:
        """Transform a seed table into a CTGAN training frame."""
        train_df = table.drop(columns=[spec.primary_key]).reset_index(drop=True)
        date_columns = [c for c in spec.columns_of_type(ColumnType.DATETIME) if c in train_df.columns]
        numeric_columns = [c for c in spec.columns_of_type(ColumnType.NUMERICAL) if c in train_df.columns]

        for col in date_columns:
            train_df[col] = _dates_to_ordinal(train_df[col])

        null_flagged = []
        for col in date_columns + numeric_columns:
            values = train_df[col]
            if values.isna().any():
                null_flagged.append(col)
                train_df[f"{col}{_NULL_FLAG_SUFFIX}"] = np.where(values.isna(), "yes", "no")
                fill = values.median() if values.notna().any() else 0
                train_df[col] = values.fillna(fill)

        continuous = set(date_columns) | set(numeric_columns)
        discrete = [c for c in train_df.columns if c not in continuous]
        for col in discrete:
            train_df[col] = train_df[col].astype(object).where(train_df[col].notna(), "")

        return TrainingFrame(train_df, discrete, date_columns, null_flagged)

    def train(self, table: pd.DataFrame, spec: TableSpec) -> TabularModel:
        self.ensure_available()
        prepared = self.prepare(table, spec)
        synthesizer = self._build_synthesizer(spec.name, len(prepared.frame))
        try:
            synthesizer.fit(prepared.frame, discrete_columns=prepared.discrete)
        except Exception as e:
            raise ExpansionError(f"CTGAN training failed for {spec.name}: {e}") from e
        return CTGANModel(synthesizer, spec, prepared)


# Replication fallback


class ReplicationModel:
    """Replicates a table with Gaussian noise on its numeric columns.

    Each replica gets noise with sigma ``noise_scale`` times the column's
    standard deviation, is clipped at the column's pre-noise minimum, and has
    its primary key shifted by ``replica_index * len(table)`` so keys stay
    unique across replicas.
    """

    def __init__(
        self,
        table: pd.DataFrame,
        spec: TableSpec,
        rng: Generator,
        noise_scale: float = 0.1,
        rewrite_foreign_keys: bool = False,
    ) -> None:
        self._table = table.reset_index(drop=True)
        self._spec = spec
        self._rng = rng
        self._noise_scale = noise_scale
        self._id_columns = [spec.primary_key]
        if rewrite_foreign_keys:
            self._id_columns += [c for c in spec.foreign_key_columns if c in table.columns]
        self._numeric_columns = [
            c for c in spec.columns_of_type(ColumnType.NUMERICAL) if c in table.columns
        ]

    def _noisy(self, column: str) -> pd.Series:
        original = self._table[column]
        values = pd.to_numeric(original, errors="coerce")
        std = values.std()
        if pd.isna(std) or std == 0:
            return original.copy()

        noisy = values + self._rng.normal(0.0, std * self._noise_scale, len(values))
        noisy = noisy.clip(lower=values.min())
        if pd.api.types.is_integer_dtype(original.dtype):
            noisy = noisy.round().astype(original.dtype)
        return noisy

    def sample(self, n: int) -> pd.DataFrame:
        base_rows = len(self._table)
        if base_rows == 0:
            raise ExpansionError(f"cannot replicate empty table {self._spec.name}")

        replicas = []
        for i in range(math.ceil(n / base_rows)):
            replica = self._table.copy()
            for col in self._numeric_columns:
                replica[col] = self._noisy(col)
            offset = i * base_rows
            for col in self._id_columns:
                replica[col] = replica[col].map(lambda v: shift_id(v, offset))
            replicas.append(replica)

        return pd.concat(replicas, ignore_index=True).iloc[:n].reset_index(drop=True)


class ReplicationTrainer(ModelTrainer):
    """Fallback trainer: "training" just captures the seed table."""

    name = "replication"

    def __init__(
        self,
        rng: Generator,
        noise_scale: float = 0.1,
        rewrite_foreign_keys: bool = False,
    ) -> None:
        self.rng = rng
        self.noise_scale = noise_scale
        self.rewrite_foreign_keys = rewrite_foreign_keys

    def train(self, table: pd.DataFrame, spec: TableSpec) -> TabularModel:
        return ReplicationModel(
            table,
            spec,
            self.rng,
            noise_scale=self.noise_scale,
            rewrite_foreign_keys=self.rewrite_foreign_keys,
        )


class RowCountExpander:
    """Expands tables with a primary trainer, degrading to a fallback on failure."""

    def __init__(self, primary: ModelTrainer | None, fallback: ModelTrainer) -> None:
        self.primary = primary
        self.fallback = fallback

    def expand(self, table: pd.DataFrame, multiplier: int, spec: TableSpec) -> ExpansionResult:
        """Return ``len(table) * multiplier`` rows shaped like ``table``.

        A multiplier of 1 or less, or an empty table, returns a copy untouched.
        """
        if multiplier <= 1 or table.empty:
            return ExpansionResult(table.copy(), STRATEGY_NONE)

        target = len(table) * multiplier
        error = None

        if self.primary is not None:
            try:
                model = self.primary.train(table, spec)
                sampled = model.sample(target)
                _check_sample(sampled, target, spec)
                logger.info(
                    "Expanded %s: %d -> %d rows via %s", spec.name, len(table), target, self.primary.name
                )
                return ExpansionResult(sampled, self.primary.name)
            except Exception as e:
                error = str(e)
                logger.warning(
                    "%s expansion failed for %s, falling back to %s: %s",
                    self.primary.name,
                    spec.name,
                    self.fallback.name,
                    e,
                )

        sampled = self.fallback.train(table, spec).sample(target)
        logger.info(
            "Expanded %s: %d -> %d rows via %s", spec.name, len(table), len(sampled), self.fallback.name
        )
        return ExpansionResult(sampled, self.fallback.name, error)


def _check_sample(sampled: pd.DataFrame, target: int, spec: TableSpec) -> None:
    if not isinstance(sampled, pd.DataFrame):
        raise ExpansionError(f"model for {spec.name} returned {type(sampled).__name__}, not a DataFrame")
    if len(sampled) != target:
        raise ExpansionError(f"model for {spec.name} returned {len(sampled)} rows, expected {target}")
    missing = set(spec.column_names) - set(sampled.columns)
    if missing:
        raise ExpansionError(f"model for {spec.name} is missing columns: {sorted(missing)}")


def build_expander(cfg: SynthConfig, ctx: GenerationContext) -> RowCountExpander:
    """Expander for a config: CTGAN primary unless ``model == "replication"``."""
    fallback = ReplicationTrainer(
        ctx.rng_for("expansion:replication"),
        noise_scale=cfg.expansion.noise_scale,
    )
    primary = None
    if cfg.expansion.model == "ctgan":
        primary = CTGANTrainer(cfg.expansion, seed=cfg.seed)
    return RowCountExpander(primary, fallback)
