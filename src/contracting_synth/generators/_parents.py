"""Parent-table lookups shared by the dependent generators."""

from __future__ import annotations

from collections.abc import Mapping

import pandas as pd

from contracting_synth.errors import ConfigurationError


def require_parent(parents: Mapping[str, pd.DataFrame], name: str, child: str) -> pd.DataFrame:
    """Return a parent table, or raise if it is missing or empty."""
    df = parents.get(name)
    if df is None or len(df) == 0:
        raise ConfigurationError(f"{name} must be generated before {child}")
    return df.reset_index(drop=True)


def as_int(value: object, minimum: int = 0) -> int:
    """Coerce an expanded (possibly float or NaN) count-like value to an int."""
    if pd.isna(value):
        return minimum
    return max(minimum, int(round(float(value))))
