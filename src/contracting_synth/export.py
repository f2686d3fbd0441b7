"""Output serialization for generated data."""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from contracting_synth.config import SynthConfig

from contracting_synth.context import GenerationContext
from contracting_synth.errors import ExportError
from contracting_synth.schema import EXPECTED_COLUMNS, GENERATION_ORDER
from contracting_synth.util.hashing import file_sha256
from contracting_synth.util.summary import generate_summary

logger = logging.getLogger(__name__)

SEED_SAMPLES_DIR = "seed_samples"


def _check_tables(tables: dict[str, pd.DataFrame]) -> None:
    missing = [name for name in GENERATION_ORDER if name not in tables]
    if missing:
        raise ExportError(f"Cannot export an incomplete table set; missing: {missing}")

    for table_name in GENERATION_ORDER:
        absent = set(EXPECTED_COLUMNS[table_name]) - set(tables[table_name].columns)
        if absent:
            raise ExportError(f"Table '{table_name}' is missing expected columns: {sorted(absent)}")


def _write_csv(df: pd.DataFrame, table_name: str, path: Path, relative: str, cfg: SynthConfig) -> dict[str, Any]:
    df.to_csv(path, index=False, sep=cfg.output.csv_delimiter)
    return {
        "table": table_name,
        "file": relative,
        "format": "csv",
        "rows": len(df),
        "hash": file_sha256(path) if cfg.output.include_file_hashes else None,
    }


def _write_files(
    tables: dict[str, pd.DataFrame],
    cfg: SynthConfig,
    staging: Path,
    seed_tables: dict[str, pd.DataFrame] | None = None,
) -> list[dict[str, Any]]:
    file_metadata = []
    pq_dir = staging / "parquet"
    if cfg.output.parquet:
        pq_dir.mkdir()

    for table_name in GENERATION_ORDER:
        df = tables[table_name][EXPECTED_COLUMNS[table_name]]

        csv_file = f"{table_name}.csv"
        logger.info("Exporting %s to CSV (%d rows)...", table_name, len(df))
        file_metadata.append(_write_csv(df, table_name, staging / csv_file, csv_file, cfg))

        if cfg.output.parquet:
            pq_file = f"{table_name}.parquet"
            pq_path = pq_dir / pq_file
            logger.info("Exporting %s to Parquet...", table_name)

            compression = cfg.output.compression
            if compression == "none":
                compression = None

            df.to_parquet(pq_path, index=False, compression=compression)
            file_metadata.append(
                {
                    "table": table_name,
                    "file": f"parquet/{pq_file}",
                    "format": "parquet",
                    "rows": len(df),
                    "hash": file_sha256(pq_path) if cfg.output.include_file_hashes else None,
                }
            )

    if cfg.output.write_seed_samples and seed_tables:
        seed_dir = staging / SEED_SAMPLES_DIR
        seed_dir.mkdir()
        for table_name in GENERATION_ORDER:
            if table_name not in seed_tables:
                continue
            df = seed_tables[table_name][EXPECTED_COLUMNS[table_name]]
            csv_file = f"{SEED_SAMPLES_DIR}/{table_name}.csv"
            logger.info("Exporting %s seed sample (%d rows)...", table_name, len(df))
            file_metadata.append(_write_csv(df, table_name, staging / csv_file, csv_file, cfg))

    return file_metadata


def _publish(staging: Path, out_path: Path) -> None:
    """Swap the staged bundle in for ``out_path`` using directory renames.

    A previous bundle is renamed aside and restored if the swap fails, so
    ``out_path`` always holds one complete bundle, old or new.
    """
    if not out_path.exists():
        staging.rename(out_path)
        return

    backup = staging.with_name(staging.name.replace(".staging-", ".previous-", 1))
    out_path.rename(backup)
    try:
        staging.rename(out_path)
    except OSError:
        backup.rename(out_path)
        raise
    shutil.rmtree(backup, ignore_errors=True)


def export_bundle(
    tables: dict[str, pd.DataFrame],
    cfg: SynthConfig,
    out_dir: str | Path,
    ctx: GenerationContext | None = None,
    seed_tables: dict[str, pd.DataFrame] | None = None,
) -> Path:
    """Export the final tables as a CSV bundle plus ``dataset_summary.json``.

    The export is all-or-nothing: every file is written to a staging
    directory beside ``out_dir`` and swapped into place only once all of them
    exist, so a failed export leaves no partial bundle behind. An existing
    bundle at ``out_dir`` is replaced as a whole.

    Args:
        tables: Final tables keyed by name; every table in the schema is required.
        cfg: Configuration with output options.
        out_dir: Bundle directory.
        ctx: Generation context, used for the schema snapshot id.
        seed_tables: Pre-expansion tables, written under ``seed_samples/`` when
            ``output.write_seed_samples`` is set.

    Returns:
        Path to the summary file.

    Raises:
        ExportError: If a table is missing or the bundle cannot be written.
    """
    _check_tables(tables)
    if ctx is None:
        ctx = GenerationContext(seed=cfg.seed, reference_date=cfg.time_window.reference_date)

    out_path = Path(out_dir)
    if out_path.exists() and not out_path.is_dir():
        raise ExportError(f"Output path {out_path} exists and is not a directory")

    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{out_path.name}.staging-", dir=out_path.parent))
        staging.chmod(0o755)
    except OSError as e:
        raise ExportError(f"Output directory {out_path} is not writable: {e}") from e

    try:
        file_metadata = _write_files(tables, cfg, staging, seed_tables)

        ordered = {name: tables[name] for name in GENERATION_ORDER}
        summary = generate_summary(ctx, cfg, ordered, file_metadata)
        with open(staging / cfg.output.summary_filename, "w") as f:
            json.dump(summary, f, indent=2, default=str)

        _publish(staging, out_path)
    except (OSError, ValueError, TypeError, ImportError) as e:
        raise ExportError(f"Failed to export bundle to {out_path}: {e}") from e
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)

    summary_path = out_path / cfg.output.summary_filename
    logger.info(
        "Export complete: %d records in %d tables. Summary saved to %s",
        summary["total_records"],
        len(ordered),
        summary_path,
    )
    return summary_path
