"""Repairs expanded tables back into the domain of their seed tables.

Repairs run in a fixed order: seed-range clipping, declared-range clamping,
category repair, per-row bounds, conditional presence with follow-up dates,
and finally derived amounts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.random import Generator

from contracting_synth.generators.clients import REVENUE_RANGES
from contracting_synth.generators.invoices import (
    PROJECT_MAX_DAYS_TO_PAY,
    RETAINER_MAX_DAYS_TO_PAY,
    TAX_RATE_RANGE,
)
from contracting_synth.generators.projects import ACTUAL_END_OFFSET_DAYS
from contracting_synth.generators.team_members import BASE_RATES, rate_range
from contracting_synth.generators.tickets import COMPLETION_OFFSET_DAYS
from contracting_synth.schema import ColumnType, InvoiceType, TableSpec

logger = logging.getLogger(__name__)

CLIP_LOWER_FACTOR = 0.1
CLIP_UPPER_FACTOR = 2.0
MONEY_DECIMALS = 2

# column -> (minuend, subtrahend)
DERIVED_DIFFERENCES = {
    "amount_net": ("amount_gross", "tax_amount"),
}


@dataclass(frozen=True)
class FollowUpDate:
    """A conditional date drawn as ``anchor + randint(*offset_days)`` days.

    The date never falls before ``not_before``, or on it when ``strictly_after``
    is set. ``override`` swaps in another offset range for rows where
    ``override[0] == override[1]``.
    """

    column: str
    anchor: str
    not_before: str
    offset_days: tuple[int, int]
    strictly_after: bool = False
    override: tuple[str, str, tuple[int, int]] | None = None

    def earliest(self, df: pd.DataFrame) -> pd.Series:
        """Earliest valid date per row, as timestamps."""
        floor = pd.to_datetime(df[self.not_before], errors="coerce")
        if self.strictly_after:
            floor = floor + pd.Timedelta(days=1)
        return floor


FOLLOW_UP_DATES = {
    "projects": FollowUpDate("actual_end_date", "planned_end_date", "start_date", ACTUAL_END_OFFSET_DAYS),
    "tickets": FollowUpDate(
        "completed_date", "created_date", "created_date", COMPLETION_OFFSET_DAYS, strictly_after=True
    ),
    "invoices": FollowUpDate(
        "payment_date",
        "invoice_date",
        "invoice_date",
        (1, PROJECT_MAX_DAYS_TO_PAY),
        strictly_after=True,
        override=("invoice_type", InvoiceType.MONTHLY_RETAINER.value, (1, RETAINER_MAX_DAYS_TO_PAY)),
    ),
}


def revenue_bounds(df: pd.DataFrame) -> tuple[pd.Series, pd.Series] | None:
    """Per-row revenue bracket from ``company_size``."""
    if "company_size" not in df.columns:
        return None
    size = df["company_size"]
    lower = size.map({k: float(v[0]) for k, v in REVENUE_RANGES.items()})
    upper = size.map({k: float(v[1]) for k, v in REVENUE_RANGES.items()})
    return lower, upper


def hourly_rate_bounds(df: pd.DataFrame) -> tuple[pd.Series, pd.Series] | None:
    """Per-row rate band from ``role`` and ``seniority``."""
    if not {"role", "seniority"} <= set(df.columns):
        return None
    bands = [
        rate_range(role, seniority) if seniority in BASE_RATES else (np.nan, np.nan)
        for role, seniority in zip(df["role"], df["seniority"])
    ]
    lower = pd.Series([float(b[0]) for b in bands], index=df.index)
    upper = pd.Series([float(b[1]) for b in bands], index=df.index)
    return lower, upper


def tax_bounds(df: pd.DataFrame) -> tuple[pd.Series, pd.Series] | None:
    """Per-row tax range from ``amount_gross`` and the tax rate range."""
    if "amount_gross" not in df.columns:
        return None
    gross = pd.to_numeric(df["amount_gross"], errors="coerce")
    low_rate, high_rate = TAX_RATE_RANGE
    return gross * low_rate, gross * high_rate


Bounds = Callable[[pd.DataFrame], "tuple[pd.Series, pd.Series] | None"]

# table -> [(column, bounds, description)]
ROW_BOUNDS: dict[str, list[tuple[str, Bounds, str]]] = {
    "clients": [("annual_revenue", revenue_bounds, "company_size revenue bracket")],
    "team_members": [("hourly_rate", hourly_rate_bounds, "role and seniority rate band")],
    "invoices": [("tax_amount", tax_bounds, "tax rate range")],
}


def _numeric_columns(expanded: pd.DataFrame, original: pd.DataFrame, spec: TableSpec | None) -> list[str]:
    if spec is not None:
        candidates = spec.columns_of_type(ColumnType.NUMERICAL)
    else:
        candidates = list(expanded.select_dtypes(include=[np.number]).columns)
    return [c for c in candidates if c in expanded.columns and c in original.columns]


def _categorical_columns(expanded: pd.DataFrame, original: pd.DataFrame, spec: TableSpec | None) -> list[str]:
    if spec is not None:
        candidates = spec.columns_of_type(ColumnType.CATEGORICAL) + spec.foreign_key_columns
    else:
        # Without a schema, object columns that are unique in the seed are treated as keys.
        candidates = [
            c
            for c in expanded.select_dtypes(include=["object"]).columns
            if c in original.columns and not original[c].is_unique
        ]
    return [c for c in candidates if c in expanded.columns and c in original.columns]


def _keep_integer(values: pd.Series, like: pd.Series) -> pd.Series:
    if pd.api.types.is_integer_dtype(like.dtype) and values.notna().all():
        return values.round().astype(like.dtype)
    return values


def clip_to_seed_range(expanded: pd.Series, original: pd.Series) -> pd.Series:
    """Clip to ``[0.1 * min(original), 2.0 * max(original)]``, keeping integer dtype."""
    seed = pd.to_numeric(original, errors="coerce")
    if seed.notna().sum() == 0:
        return expanded

    values = pd.to_numeric(expanded, errors="coerce")
    clipped = values.clip(lower=seed.min() * CLIP_LOWER_FACTOR, upper=seed.max() * CLIP_UPPER_FACTOR)
    return _keep_integer(clipped, original)


def clamp_to_declared_range(values: pd.Series, low: float | None, high: float | None) -> pd.Series:
    """Clamp to a column's declared ``[min, max]``, keeping integer dtype."""
    if low is None and high is None:
        return values
    numeric = pd.to_numeric(values, errors="coerce")
    return _keep_integer(numeric.clip(lower=low, upper=high), values)


def clamp_between(values: pd.Series, lower: pd.Series, upper: pd.Series) -> pd.Series:
    """Clamp each value into its own row's ``[lower, upper]``.

    Rows with a null value or an unknown bound are left as they are.
    """
    numeric = pd.to_numeric(values, errors="coerce").astype(float)
    known = (numeric.notna() & lower.notna() & upper.notna()).to_numpy()
    clamped = numeric.to_numpy(copy=True)
    clamped[known] = np.clip(clamped[known], lower.to_numpy()[known], upper.to_numpy()[known])
    return _keep_integer(pd.Series(clamped, index=values.index, name=values.name), values)


def repair_categories(expanded: pd.Series, original: pd.Series, rng: Generator) -> pd.Series:
    """Replace values never seen in the seed with uniform draws from the seed's values.

    Nulls are left alone; required-column nulls are reported by validation.
    """
    valid = original.dropna().unique()
    if len(valid) == 0:
        return expanded

    invalid = expanded.notna() & ~expanded.isin(valid)
    n_invalid = int(invalid.sum())
    if n_invalid == 0:
        return expanded

    repaired = expanded.astype(object).copy()
    picks = rng.integers(0, len(valid), size=n_invalid)
    repaired.loc[invalid] = [valid[i] for i in picks]
    logger.debug("Repaired %d out-of-domain values in %s", n_invalid, expanded.name)
    return repaired


def repair_row_bounds(df: pd.DataFrame, spec: TableSpec) -> pd.DataFrame:
    """Clamp columns whose valid range depends on other columns of the same row."""
    for column, bounds, _ in ROW_BOUNDS.get(spec.name, []):
        found = bounds(df)
        if found is None or column not in df.columns:
            continue
        lower, upper = found
        df[column] = clamp_between(df[column], lower, upper)
    return df


def apply_presence_rules(df: pd.DataFrame, spec: TableSpec) -> pd.DataFrame:
    """Null conditional columns whose ``present_when`` condition no longer holds."""
    for col in spec.columns:
        if col.present_when is None or col.name not in df.columns:
            continue
        condition_column, expected = col.present_when
        if condition_column not in df.columns:
            continue
        absent = df[condition_column] != expected
        if absent.any():
            df[col.name] = df[col.name].astype(object)
            df.loc[absent, col.name] = None
    return df


def _offset_ranges(df: pd.DataFrame, rule: FollowUpDate) -> tuple[np.ndarray, np.ndarray]:
    low = np.full(len(df), rule.offset_days[0])
    high = np.full(len(df), rule.offset_days[1])
    if rule.override is not None and rule.override[0] in df.columns:
        column, value, (override_low, override_high) = rule.override
        matches = (df[column] == value).to_numpy()
        low[matches] = override_low
        high[matches] = override_high
    return low, high


def repair_follow_up_dates(df: pd.DataFrame, spec: TableSpec, rng: Generator) -> pd.DataFrame:
    """Redraw conditional dates that are missing or out of order where their condition holds.

    The new date is ``anchor + randint(low, high)`` days, raised to the
    earliest valid date if it would fall before it. Rows without an anchor date are
    left for validation to report.
    """
    rule = FOLLOW_UP_DATES.get(spec.name)
    col = spec.column(rule.column) if rule is not None else None
    if col is None or col.present_when is None:
        return df

    condition_column, expected = col.present_when
    if not {rule.column, rule.anchor, rule.not_before, condition_column} <= set(df.columns):
        return df

    current = pd.to_datetime(df[rule.column], errors="coerce")
    anchor = pd.to_datetime(df[rule.anchor], errors="coerce")
    floor = rule.earliest(df)
    stale = (df[condition_column] == expected) & anchor.notna() & (current.isna() | (current < floor))
    n_stale = int(stale.sum())
    if n_stale == 0:
        return df

    low, high = _offset_ranges(df, rule)
    mask = stale.to_numpy()
    offsets = rng.integers(low[mask], high[mask] + 1)
    redrawn = anchor[stale] + pd.to_timedelta(offsets, unit="D").to_numpy()
    too_early = floor[stale].notna() & (redrawn < floor[stale])
    redrawn = redrawn.where(~too_early, floor[stale])

    df[rule.column] = df[rule.column].astype(object)
    df.loc[stale, rule.column] = list(redrawn.dt.date)
    logger.debug("Redrew %d %s values in %s", n_stale, rule.column, spec.name)
    return df


def recompute_derived(df: pd.DataFrame) -> pd.DataFrame:
    """Recompute difference columns, e.g. ``amount_net = amount_gross - tax_amount``.

    Both operands are rounded to cents first so the difference is exact.
    """
    for target, (minuend, subtrahend) in DERIVED_DIFFERENCES.items():
        if {target, minuend, subtrahend} <= set(df.columns):
            df[minuend] = pd.to_numeric(df[minuend], errors="coerce").round(MONEY_DECIMALS)
            df[subtrahend] = pd.to_numeric(df[subtrahend], errors="coerce").round(MONEY_DECIMALS)
            df[target] = (df[minuend] - df[subtrahend]).round(MONEY_DECIMALS)
    return df


def postprocess(
    expanded: pd.DataFrame,
    original: pd.DataFrame,
    spec: TableSpec | None = None,
    rng: Generator | None = None,
) -> pd.DataFrame:
    """Bring an expanded table back into its seed table's domain.

    Numeric columns are clipped to ``[0.1 * seed min, 2.0 * seed max]`` and
    categorical columns (including foreign keys) are restricted to values
    present in the seed. With a schema, numeric columns are also clamped to
    their declared ``[min, max]``, row-dependent ranges (revenue bracket,
    rate band, tax rate) are re-applied, conditional columns are made present
    exactly where their condition holds and derived amounts are recomputed.
    Primary keys are never modified.

    Args:
        expanded: Output of the row-count expander.
        original: The seed table it was expanded from.
        spec: Table declaration. Without one, numeric and object dtypes
            decide which columns are clipped and repaired.
        rng: Generator for replacement draws. Defaults to a fixed-seed
            generator so repairs are reproducible.

    Returns:
        A repaired copy of ``expanded``.
    """
    if rng is None:
        rng = np.random.default_rng(0)

    out = expanded.copy()
    for col in _numeric_columns(out, original, spec):
        out[col] = clip_to_seed_range(out[col], original[col])
        declared = spec.column(col) if spec is not None else None
        if declared is not None:
            out[col] = clamp_to_declared_range(out[col], declared.min, declared.max)

    protected = {spec.primary_key} if spec is not None else set()
    for col in _categorical_columns(out, original, spec):
        if col in protected:
            continue
        out[col] = repair_categories(out[col], original[col], rng)

    if spec is not None:
        out = repair_row_bounds(out, spec)
        out = apply_presence_rules(out, spec)
        out = repair_follow_up_dates(out, spec, rng)
        out = recompute_derived(out)

    return out.reset_index(drop=True)
