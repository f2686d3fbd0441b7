"""Tests for the contracting-synth CLI."""

import json
import sys
from pathlib import Path

import pytest
import yaml

from contracting_synth.cli import build_parser, main


@pytest.fixture
def config_file(tiny_config, tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(tiny_config.to_dict()))
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_generate_requires_config_or_preset(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate", "--out", "x"])

    def test_generate_rejects_both(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate", "--preset", "small", "--config", "c.yaml", "--out", "x"])

    def test_overrides_parsed(self) -> None:
        args = build_parser().parse_args(
            ["generate", "--preset", "small", "--out", "x", "--seed", "9", "--model", "replication"]
        )
        assert args.seed == 9
        assert args.model == "replication"


class TestGenerateCommand:
    """Tests for the generate subcommand."""

    def test_generate_from_config(self, config_file: Path, tmp_path: Path, capsys) -> None:
        out = tmp_path / "bundle"
        assert main(["generate", "--config", str(config_file), "--out", str(out)]) == 0

        summary = json.loads((out / "dataset_summary.json").read_text())
        assert summary["seed"] == 7
        assert "SYNTHETIC DATA GENERATION SUMMARY" in capsys.readouterr().out

    def test_seed_override(self, config_file: Path, tmp_path: Path) -> None:
        out = tmp_path / "bundle"
        assert main(["generate", "--config", str(config_file), "--out", str(out), "--seed", "99"]) == 0
        assert json.loads((out / "dataset_summary.json").read_text())["seed"] == 99

    def test_json_config(self, tiny_config, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(tiny_config.to_json())
        assert main(["generate", "--config", str(path), "--out", str(tmp_path / "bundle")]) == 0

    def test_deliver_to(self, config_file: Path, tmp_path: Path, capsys) -> None:
        out = tmp_path / "bundle"
        outbox = tmp_path / "outbox"
        code = main(["generate", "--config", str(config_file), "--out", str(out), "--deliver-to", str(outbox)])

        assert code == 0
        assert (outbox / "bundle" / "clients.csv").exists()
        assert "Delivered To:" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path: Path, capsys) -> None:
        code = main(["generate", "--config", str(tmp_path / "missing.yaml"), "--out", str(tmp_path / "b")])
        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"scale": {"clients": -1}}))
        assert main(["generate", "--config", str(path), "--out", str(tmp_path / "b")]) == 1

    def test_missing_ctgan_exits_nonzero(self, config_file: Path, tmp_path: Path, monkeypatch, capsys) -> None:
        monkeypatch.setitem(sys.modules, "ctgan", None)
        out = tmp_path / "bundle"
        code = main(["generate", "--config", str(config_file), "--out", str(out), "--model", "ctgan"])

        assert code == 1
        assert "ctgan" in capsys.readouterr().err
        assert not out.exists()


class TestValidateCommand:
    """Tests for the validate subcommand."""

    def test_valid_bundle(self, config_file: Path, tmp_path: Path, capsys) -> None:
        out = tmp_path / "bundle"
        main(["generate", "--config", str(config_file), "--out", str(out)])
        capsys.readouterr()

        assert main(["validate", "--summary", str(out / "dataset_summary.json")]) == 0
        assert "Validation PASSED" in capsys.readouterr().out
        assert (out / "validation_report.md").exists()

    def test_missing_summary(self, tmp_path: Path, capsys) -> None:
        assert main(["validate", "--summary", str(tmp_path / "dataset_summary.json")]) == 1
        assert "Validation FAILED" in capsys.readouterr().out


class TestExportSchemaCommand:
    """Tests for the export-schema subcommand."""

    def test_writes_schema_yaml(self, tmp_path: Path) -> None:
        assert main(["export-schema", "--out", str(tmp_path)]) == 0

        data = yaml.safe_load((tmp_path / "schema.yaml").read_text())
        assert "clients" in data["tables"]
        assert len(data["tables"]) == 7
