"""Bundle summary generation for synthetic data."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from contracting_synth.config import SynthConfig
    from contracting_synth.context import GenerationContext

from contracting_synth import __version__
from contracting_synth.util.hashing import stable_hash_str

SUMMARY_VERSION = "1.0"


def content_hash(files: list[dict[str, Any]]) -> str:
    """Deterministic hash over table names, formats, row counts and file hashes."""
    content_parts = []
    for f in sorted(files, key=lambda x: (x["table"], x["format"], x["file"])):
        part = f"{f['table']}|{f['format']}|{f['rows']}"
        if f.get("hash"):
            part += f"|{f['hash']}"
        content_parts.append(part)
    return stable_hash_str(":".join(content_parts))


def generate_summary(
    ctx: GenerationContext,
    cfg: SynthConfig,
    tables: dict[str, pd.DataFrame],
    files: list[dict[str, Any]],
) -> dict[str, Any]:
    """Generate the ``dataset_summary.json`` contents for a bundle.

    Args:
        ctx: Generation context (for the schema snapshot id).
        cfg: Synth configuration.
        tables: Final tables, in export order.
        files: List of file metadata (table, file, format, rows, hash).

    Returns:
        Summary dictionary.
    """
    return {
        "summary_version": SUMMARY_VERSION,
        "generator_version": __version__,
        "generation_timestamp": datetime.now().isoformat(),
        "content_hash": content_hash(files),
        "seed": cfg.seed,
        "schema_snapshot_id": ctx.schema_snapshot_id,
        "reference_date": cfg.time_window.reference_date.isoformat(),
        "total_records": int(sum(len(df) for df in tables.values())),
        "tables": {table_name: len(df) for table_name, df in tables.items()},
        "columns": {table_name: list(df.columns) for table_name, df in tables.items()},
        "config": cfg.to_dict(),
        "files": sorted(files, key=lambda x: (x["table"], x["format"], x["file"])),
    }
