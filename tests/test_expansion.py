"""Tests for the row-count expander and its strategies."""

import sys
from datetime import date

import numpy as np
import pandas as pd
import pytest

from contracting_synth.config import ExpansionConfig, SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.errors import ConfigurationError, ExpansionError
from contracting_synth.expansion import (
    CTGANModel,
    CTGANTrainer,
    ModelTrainer,
    ReplicationModel,
    ReplicationTrainer,
    RowCountExpander,
    build_expander,
    shift_id,
)
from contracting_synth.schema import CLIENTS, PROJECTS, ColumnType, TableSpec, parse_id


class FailingTrainer(ModelTrainer):
    """Primary strategy that always fails to train."""

    name = "failing"

    def train(self, table: pd.DataFrame, spec: TableSpec):
        raise ExpansionError("training diverged")


class _ShortModel:
    def __init__(self, table: pd.DataFrame) -> None:
        self._table = table

    def sample(self, n: int) -> pd.DataFrame:
        return self._table.head(max(0, n - 1))


class ShortSampleTrainer(ModelTrainer):
    """Primary strategy whose samples come back one row short."""

    name = "short"

    def train(self, table: pd.DataFrame, spec: TableSpec):
        return _ShortModel(table)


class _FakeSynthesizer:
    """Stands in for a fitted CTGAN: resamples training rows."""

    def __init__(self) -> None:
        self.fitted_with = None

    def fit(self, train_data: pd.DataFrame, discrete_columns=()) -> None:
        self.fitted_with = (train_data, list(discrete_columns))

    def sample(self, n: int) -> pd.DataFrame:
        train_data, _ = self.fitted_with
        return train_data.sample(n, replace=True, random_state=0).reset_index(drop=True)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(123)


class TestShiftId:
    """Tests for identifier suffix rewriting."""

    def test_adds_offset(self) -> None:
        assert shift_id("CLT_000007", 40) == "CLT_000047"

    def test_null_passes_through(self) -> None:
        assert shift_id(None, 10) is None

    def test_malformed_rejected(self) -> None:
        with pytest.raises(ValueError):
            shift_id("CLT-7", 10)


class TestReplicationModel:
    """Tests for the replication-with-noise fallback."""

    def test_identifiers_pairwise_distinct(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        projects = base_tables["projects"]
        n, multiplier = len(projects), 3
        sampled = ReplicationModel(projects, PROJECTS, rng).sample(n * multiplier)

        assert len(sampled) == n * multiplier
        assert sampled["project_id"].is_unique
        numbers = sorted(parse_id(v)[1] for v in sampled["project_id"])
        assert numbers == list(range(n * multiplier))

    def test_foreign_keys_untouched_by_default(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        projects = base_tables["projects"]
        sampled = ReplicationModel(projects, PROJECTS, rng).sample(len(projects) * 2)
        assert set(sampled["client_id"]) == set(projects["client_id"])

    def test_foreign_key_rewrite_is_optional(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        projects = base_tables["projects"]
        sampled = ReplicationModel(projects, PROJECTS, rng, rewrite_foreign_keys=True).sample(len(projects) * 2)
        assert not set(sampled["client_id"]) <= set(projects["client_id"])

    def test_numeric_columns_clipped_at_seed_minimum(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        projects = base_tables["projects"]
        sampled = ReplicationModel(projects, PROJECTS, rng).sample(len(projects) * 4)
        for col in PROJECTS.columns_of_type(ColumnType.NUMERICAL):
            assert sampled[col].min() >= projects[col].min()

    def test_integer_dtype_restored(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        clients = base_tables["clients"]
        sampled = ReplicationModel(clients, CLIENTS, rng).sample(len(clients) * 2)
        assert pd.api.types.is_integer_dtype(sampled["annual_revenue"])
        assert pd.api.types.is_integer_dtype(sampled["monthly_retainer"])

    def test_statistics_approximately_preserved(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        projects = base_tables["projects"]
        sampled = ReplicationModel(projects, PROJECTS, rng).sample(len(projects) * 4)
        seed_mean = projects["budget_original"].mean()
        assert abs(sampled["budget_original"].mean() - seed_mean) < 0.1 * seed_mean

    def test_categorical_columns_copied(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        clients = base_tables["clients"]
        sampled = ReplicationModel(clients, CLIENTS, rng).sample(len(clients) * 2)
        assert sampled["industry"].tolist() == clients["industry"].tolist() * 2

    def test_partial_replica_truncated(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        clients = base_tables["clients"]
        sampled = ReplicationModel(clients, CLIENTS, rng).sample(len(clients) + 5)
        assert len(sampled) == len(clients) + 5


class TestCTGANAdapter:
    """Tests for the CTGAN adapter, with the synthesizer faked out."""

    def test_prepare_marks_non_numeric_discrete(self, base_tables: dict[str, pd.DataFrame]) -> None:
        prepared = CTGANTrainer.prepare(base_tables["projects"], PROJECTS)
        assert "project_id" not in prepared.frame.columns
        assert "project_status" in prepared.discrete
        assert "client_id" in prepared.discrete
        assert "budget_original" not in prepared.discrete
        assert "start_date" not in prepared.discrete

    def test_prepare_converts_dates_to_ordinals(self, base_tables: dict[str, pd.DataFrame]) -> None:
        prepared = CTGANTrainer.prepare(base_tables["projects"], PROJECTS)
        assert pd.api.types.is_numeric_dtype(prepared.frame["start_date"])
        assert prepared.frame["actual_end_date"].notna().all()
        assert "actual_end_date" in prepared.null_flagged

    def test_sample_restores_dates_and_restamps_keys(self, base_tables: dict[str, pd.DataFrame]) -> None:
        projects = base_tables["projects"]
        prepared = CTGANTrainer.prepare(projects, PROJECTS)
        synthesizer = _FakeSynthesizer()
        synthesizer.fit(prepared.frame, prepared.discrete)

        sampled = CTGANModel(synthesizer, PROJECTS, prepared).sample(250)

        assert list(sampled.columns) == PROJECTS.column_names
        assert sampled["project_id"].tolist()[:2] == ["PRJ_000000", "PRJ_000001"]
        assert sampled["project_id"].is_unique
        assert isinstance(sampled["start_date"].iloc[0], date)
        assert set(sampled["start_date"]) <= set(projects["start_date"])
        completed = sampled["project_status"] == "Completed"
        assert sampled.loc[~completed, "actual_end_date"].isna().all()

    def test_train_uses_synthesizer(self, base_tables: dict[str, pd.DataFrame], monkeypatch) -> None:
        synthesizer = _FakeSynthesizer()
        monkeypatch.setattr(CTGANTrainer, "ensure_available", staticmethod(lambda: None))
        monkeypatch.setattr(CTGANTrainer, "_build_synthesizer", lambda self, name, n: synthesizer)

        trainer = CTGANTrainer(ExpansionConfig(), seed=1)
        expander = RowCountExpander(trainer, ReplicationTrainer(np.random.default_rng(0)))
        result = expander.expand(base_tables["clients"], 3, CLIENTS)

        assert result.strategy == "ctgan"
        assert result.error is None
        assert len(result.table) == 3 * len(base_tables["clients"])
        _, discrete = synthesizer.fitted_with
        assert "industry" in discrete

    def test_sampling_failure_is_expansion_error(self, base_tables: dict[str, pd.DataFrame]) -> None:
        class Broken:
            def sample(self, n):
                raise RuntimeError("CUDA out of memory")

        prepared = CTGANTrainer.prepare(base_tables["clients"], CLIENTS)
        with pytest.raises(ExpansionError, match="sampling failed"):
            CTGANModel(Broken(), CLIENTS, prepared).sample(10)

    def test_missing_library_is_configuration_error(self, monkeypatch) -> None:
        monkeypatch.setitem(sys.modules, "ctgan", None)
        with pytest.raises(ConfigurationError, match="ctgan"):
            CTGANTrainer.ensure_available()


class TestRowCountExpander:
    """Tests for strategy selection and fallback."""

    def test_primary_failure_falls_back(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        expander = RowCountExpander(FailingTrainer(), ReplicationTrainer(rng))
        result = expander.expand(base_tables["clients"], 2, CLIENTS)

        assert result.strategy == "replication"
        assert "training diverged" in result.error
        assert len(result.table) == 2 * len(base_tables["clients"])

    def test_wrong_shaped_sample_falls_back(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        expander = RowCountExpander(ShortSampleTrainer(), ReplicationTrainer(rng))
        result = expander.expand(base_tables["clients"], 2, CLIENTS)
        assert result.strategy == "replication"
        assert "rows, expected" in result.error

    def test_no_primary_uses_fallback_directly(self, base_tables: dict[str, pd.DataFrame], rng) -> None:
        result = RowCountExpander(None, ReplicationTrainer(rng)).expand(base_tables["clients"], 2, CLIENTS)
        assert result.strategy == "replication"
        assert result.error is None

    def test_failure_logged_as_warning(self, base_tables: dict[str, pd.DataFrame], rng, caplog) -> None:
        expander = RowCountExpander(FailingTrainer(), ReplicationTrainer(rng))
        with caplog.at_level("WARNING"):
            expander.expand(base_tables["clients"], 2, CLIENTS)
        assert any("falling back" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("multiplier", [0, 1])
    def test_multiplier_one_is_noop(self, base_tables: dict[str, pd.DataFrame], rng, multiplier: int) -> None:
        clients = base_tables["clients"]
        result = RowCountExpander(FailingTrainer(), ReplicationTrainer(rng)).expand(clients, multiplier, CLIENTS)
        assert result.strategy == "none"
        pd.testing.assert_frame_equal(result.table, clients)
        assert result.table is not clients

    def test_empty_table_is_noop(self, rng) -> None:
        empty = pd.DataFrame(columns=CLIENTS.column_names)
        result = RowCountExpander(FailingTrainer(), ReplicationTrainer(rng)).expand(empty, 3, CLIENTS)
        assert result.strategy == "none"
        assert result.table.empty


class TestBuildExpander:
    """Tests for build_expander."""

    def test_replication_model_has_no_primary(self, small_config: SynthConfig, context: GenerationContext) -> None:
        expander = build_expander(small_config, context)
        assert expander.primary is None
        assert expander.fallback.name == "replication"

    def test_ctgan_model_has_ctgan_primary(self, context: GenerationContext) -> None:
        cfg = SynthConfig.preset("large")
        expander = build_expander(cfg, context)
        assert isinstance(expander.primary, CTGANTrainer)
