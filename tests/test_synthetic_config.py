"""Tests for the synthetic data configuration."""

import json
import tempfile
from datetime import date
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from contracting_synth.config import (
    ExpansionConfig,
    ScaleConfig,
    ScalePreset,
    SynthConfig,
)


class TestPresets:
    """Tests for built-in presets."""

    @pytest.mark.parametrize("name", [p.value for p in ScalePreset])
    def test_presets_load(self, name: str) -> None:
        cfg = SynthConfig.preset(name)
        assert cfg.seed == 42
        assert cfg.time_window.reference_date == date(2024, 12, 31)

    def test_memory_tier_sizes(self) -> None:
        standard = SynthConfig.preset("standard")
        large = SynthConfig.preset("large")
        assert (standard.scale.clients, standard.scale.team_members, standard.scale.projects) == (600, 35, 2500)
        assert (large.scale.clients, large.scale.team_members, large.scale.projects) == (800, 45, 3500)

    def test_small_uses_replication(self) -> None:
        assert SynthConfig.preset("small").expansion.model == "replication"

    def test_preset_is_case_insensitive(self) -> None:
        assert SynthConfig.preset("SMALL").scale.clients == 40

    def test_unknown_preset(self) -> None:
        with pytest.raises(ValueError, match="Unknown preset"):
            SynthConfig.preset("huge")


class TestValidation:
    """Tests for config validation."""

    def test_rejects_inverted_ranges(self) -> None:
        with pytest.raises(ValidationError):
            ScaleConfig(clients=1, team_members=1, projects=1, retainer_months_min=24, retainer_months_max=12)

    def test_rejects_non_positive_epochs(self) -> None:
        with pytest.raises(ValidationError):
            ExpansionConfig(epochs={"clients": 0})

    def test_rejects_unknown_model(self) -> None:
        with pytest.raises(ValidationError):
            ExpansionConfig(model="gaussian")


class TestExpansionSizing:
    """Tests for multiplier, epochs and batch sizing."""

    def test_explicit_multiplier_wins(self) -> None:
        assert ExpansionConfig(multiplier=5).resolve_multiplier(10) == 5

    def test_large_memory_tier(self) -> None:
        cfg = ExpansionConfig(memory_gb=18, target_records=120_000)
        assert cfg.resolve_multiplier(800) == 4
        assert cfg.resolve_multiplier(100_000) == 2

    def test_standard_memory_tier(self) -> None:
        cfg = ExpansionConfig(memory_gb=12, target_records=75_000)
        assert cfg.resolve_multiplier(600) == 3
        assert cfg.resolve_multiplier(50_000) == 2

    def test_low_memory_tier(self) -> None:
        assert ExpansionConfig(memory_gb=8).resolve_multiplier(10) == 2

    def test_empty_table_not_expanded(self) -> None:
        assert ExpansionConfig().resolve_multiplier(0) == 1

    def test_epochs_capped_below_18gb(self) -> None:
        assert ExpansionConfig(memory_gb=18).epochs_for("projects") == 200
        assert ExpansionConfig(memory_gb=12).epochs_for("projects") == 150

    def test_batch_size_multiple_of_pac(self) -> None:
        cfg = ExpansionConfig(memory_gb=18)
        assert cfg.batch_size_for(800) == 800
        assert cfg.batch_size_for(45) == 40
        assert cfg.batch_size_for(5) == 10
        assert cfg.batch_size_for(10_000) == 3000
        assert ExpansionConfig(memory_gb=12).batch_size_for(10_000) == 1500


class TestLoaders:
    """Tests for YAML and JSON loading."""

    def test_from_yaml(self) -> None:
        data = {
            "seed": 3,
            "scale": {"clients": 5, "team_members": 2, "projects": 8},
            "time_window": {"reference_date": "2023-06-30"},
            "expansion": {"model": "replication", "multiplier": 3},
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text(yaml.safe_dump(data))
            cfg = SynthConfig.from_yaml(path)

        assert cfg.seed == 3
        assert cfg.time_window.reference_date == date(2023, 6, 30)
        assert cfg.expansion.multiplier == 3

    def test_json_round_trip(self, tmp_path: Path) -> None:
        cfg = SynthConfig.preset("large")
        path = tmp_path / "config.json"
        path.write_text(cfg.to_json())
        assert SynthConfig.from_json(path) == cfg

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            SynthConfig.from_yaml(tmp_path / "nope.yaml")

    def test_to_dict_is_json_safe(self) -> None:
        data = SynthConfig.preset("small").to_dict()
        assert data["time_window"]["reference_date"] == "2024-12-31"
        json.dumps(data)
