"""Validation suite for synthetic data."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from contracting_synth.postprocess import DERIVED_DIFFERENCES, FOLLOW_UP_DATES, ROW_BOUNDS
from contracting_synth.schema import (
    FK_MAPPINGS,
    REQUIRED_COLUMNS,
    TABLES,
    InvoiceType,
    PaymentStatus,
    ProjectStatus,
    TicketStatus,
)

logger = logging.getLogger(__name__)

REPORT_FILENAME = "validation_report.md"

# Slack for values rounded to cents
BOUNDS_TOLERANCE = 0.01

# (table, column) pairs reported as p50/p95/p99
MONEY_COLUMNS = [
    ("clients", "annual_revenue"),
    ("clients", "monthly_retainer"),
    ("projects", "budget_original"),
    ("invoices", "amount_gross"),
    ("contracts", "contract_value"),
]


@dataclass
class ValidationResult:
    """Container for validation results."""

    is_valid: bool
    metrics: dict[str, Any] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)


def _check_required_nulls(tables: dict[str, pd.DataFrame]) -> list[str]:
    issues = []
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in tables:
            continue
        df = tables[table_name]
        for col in columns:
            if col not in df.columns:
                issues.append(f"{table_name}.{col}: column missing")
                continue
            null_count = int(df[col].isna().sum())
            if null_count > 0:
                issues.append(f"{table_name}.{col}: {null_count} null values")
    return issues


def _check_fk_integrity(tables: dict[str, pd.DataFrame]) -> list[str]:
    """Check foreign key integrity across all tables."""
    issues = []
    for source_table, mappings in FK_MAPPINGS.items():
        if source_table not in tables:
            continue

        df_src = tables[source_table]
        for src_col, target_table, target_col in mappings:
            if target_table not in tables or src_col not in df_src.columns:
                continue

            src_values = set(df_src[src_col].dropna().unique())
            target_values = set(tables[target_table][target_col].dropna().unique())

            orphaned = src_values - target_values
            if orphaned:
                examples = sorted(str(v) for v in orphaned)[:3]
                issues.append(
                    f"{source_table}.{src_col}: {len(orphaned)} orphaned values not found in "
                    f"{target_table}.{target_col}. Example: {examples}"
                )
    return issues


def _check_duplicate_keys(tables: dict[str, pd.DataFrame]) -> list[str]:
    issues = []
    for table_name, spec in TABLES.items():
        if table_name not in tables or spec.primary_key not in tables[table_name].columns:
            continue
        duplicates = int(tables[table_name][spec.primary_key].dropna().duplicated().sum())
        if duplicates:
            issues.append(f"{table_name}.{spec.primary_key}: {duplicates} duplicate keys")
    return issues


def _check_declared_ranges(tables: dict[str, pd.DataFrame]) -> list[str]:
    issues = []
    for table_name, spec in TABLES.items():
        if table_name not in tables:
            continue
        df = tables[table_name]
        for col in spec.columns:
            if not col.is_numeric or col.name not in df.columns or col.min is None or col.max is None:
                continue
            values = pd.to_numeric(df[col.name], errors="coerce")
            outside = int(((values < col.min) | (values > col.max)).sum())
            if outside:
                issues.append(f"{table_name}.{col.name}: {outside} values outside [{col.min}, {col.max}]")
    return issues


def _check_row_bounds(tables: dict[str, pd.DataFrame]) -> list[str]:
    """Check ranges that depend on other columns of the same row."""
    issues = []
    for table_name, rules in ROW_BOUNDS.items():
        if table_name not in tables:
            continue
        df = tables[table_name]
        for column, bounds, description in rules:
            found = bounds(df)
            if found is None or column not in df.columns:
                continue
            lower, upper = found
            values = pd.to_numeric(df[column], errors="coerce")
            outside = int(((values < lower - BOUNDS_TOLERANCE) | (values > upper + BOUNDS_TOLERANCE)).sum())
            if outside:
                issues.append(f"{table_name}.{column}: {outside} values outside the {description}")
    return issues


def _check_presence(tables: dict[str, pd.DataFrame]) -> list[str]:
    """Conditional columns must be present exactly where their condition holds."""
    issues = []
    for table_name, spec in TABLES.items():
        if table_name not in tables:
            continue
        df = tables[table_name]
        for col in spec.columns:
            if col.present_when is None or col.name not in df.columns:
                continue
            condition_column, expected = col.present_when
            if condition_column not in df.columns:
                continue
            holds = df[condition_column] == expected
            present = df[col.name].notna()
            missing = int((holds & ~present).sum())
            unexpected = int((~holds & present).sum())
            if missing:
                issues.append(
                    f"{table_name}.{col.name}: {missing} rows with {condition_column} == {expected!r} have no value"
                )
            if unexpected:
                issues.append(
                    f"{table_name}.{col.name}: {unexpected} rows with {condition_column} != {expected!r} have a value"
                )
    return issues


def _check_date_order(tables: dict[str, pd.DataFrame]) -> list[str]:
    issues = []
    for table_name, rule in FOLLOW_UP_DATES.items():
        if table_name not in tables:
            continue
        df = tables[table_name]
        if rule.column not in df.columns or rule.not_before not in df.columns:
            continue
        current = pd.to_datetime(df[rule.column], errors="coerce")
        early = int((current < rule.earliest(df)).sum())
        if early:
            relation = "not after" if rule.strictly_after else "before"
            issues.append(f"{table_name}.{rule.column}: {early} values {relation} {rule.not_before}")
    return issues


def _check_derived_amounts(tables: dict[str, pd.DataFrame]) -> list[str]:
    issues = []
    if "invoices" not in tables:
        return issues
    df = tables["invoices"]
    for target, (minuend, subtrahend) in DERIVED_DIFFERENCES.items():
        if not {target, minuend, subtrahend} <= set(df.columns):
            continue
        expected = pd.to_numeric(df[minuend], errors="coerce") - pd.to_numeric(df[subtrahend], errors="coerce")
        off = int(((pd.to_numeric(df[target], errors="coerce") - expected).abs() > BOUNDS_TOLERANCE).sum())
        if off:
            issues.append(f"invoices.{target}: {off} values differ from {minuend} - {subtrahend}")
    return issues


def validate(tables: dict[str, pd.DataFrame]) -> list[str]:
    """Data-quality issues in a set of final tables.

    Reports nulls in required columns, orphaned foreign keys (as counts of
    distinct missing values) and duplicate primary keys. Numeric values are
    checked against their declared ranges and row-dependent bounds (revenue
    bracket, rate band, tax rate), conditional columns against their
    presence rule and follow-up dates against the date they must not
    precede. Tables are never modified, and an issue is never raised as an
    exception.
    """
    issues = []
    issues.extend(_check_required_nulls(tables))
    issues.extend(_check_fk_integrity(tables))
    issues.extend(_check_duplicate_keys(tables))
    issues.extend(_check_declared_ranges(tables))
    issues.extend(_check_row_bounds(tables))
    issues.extend(_check_presence(tables))
    issues.extend(_check_date_order(tables))
    issues.extend(_check_derived_amounts(tables))

    if issues:
        logger.warning("Data quality issues found:")
        for issue in issues:
            logger.warning("  - %s", issue)
    else:
        logger.info("Data quality validation passed")
    return issues


def _check_distributions(tables: dict[str, pd.DataFrame]) -> dict[str, Any]:
    """Calculate p50/p95/p99 for money columns."""
    metrics = {}
    for table_name, col in MONEY_COLUMNS:
        if table_name not in tables or col not in tables[table_name].columns:
            continue
        values = pd.to_numeric(tables[table_name][col], errors="coerce").dropna()
        if values.empty:
            continue
        metrics[f"{table_name}.{col}"] = {
            "p50": float(values.quantile(0.5)),
            "p95": float(values.quantile(0.95)),
            "p99": float(values.quantile(0.99)),
        }
    return metrics


def _rate(df: pd.DataFrame, col: str, value: str) -> float:
    return float((df[col] == value).mean()) if len(df) > 0 else 0.0


def _calculate_aggregate_metrics(tables: dict[str, pd.DataFrame]) -> dict[str, float]:
    """Calculate high-level aggregate metrics."""
    metrics = {}

    if "invoices" in tables:
        invoices = tables["invoices"]
        metrics["invoice_paid_rate"] = _rate(invoices, "payment_status", PaymentStatus.PAID.value)
        metrics["retainer_invoice_share"] = _rate(
            invoices, "invoice_type", InvoiceType.MONTHLY_RETAINER.value
        )

    if "projects" in tables:
        metrics["project_completion_rate"] = _rate(
            tables["projects"], "project_status", ProjectStatus.COMPLETED.value
        )

    if "tickets" in tables:
        metrics["ticket_done_rate"] = _rate(tables["tickets"], "status", TicketStatus.DONE.value)

    return metrics


def revenue_decile_project_ratio(clients: pd.DataFrame, projects: pd.DataFrame) -> float | None:
    """Mean projects per client in the top revenue decile over the bottom decile.

    Returns None when there are fewer than ten clients or the bottom decile
    has no projects at all.
    """
    if len(clients) < 10:
        return None

    revenue = pd.to_numeric(clients["annual_revenue"], errors="coerce").fillna(0)
    deciles = pd.qcut(revenue.rank(method="first"), 10, labels=False)
    counts = projects["client_id"].value_counts()
    per_client = clients["client_id"].map(counts).fillna(0).to_numpy()

    top = per_client[deciles.to_numpy() == 9].mean()
    bottom = per_client[deciles.to_numpy() == 0].mean()
    if bottom == 0:
        return None
    return float(top / bottom)


def _check_correlations(tables: dict[str, pd.DataFrame]) -> dict[str, Any]:
    """Verify expected correlations in the data."""
    correlations: dict[str, Any] = {}

    if "clients" in tables and "projects" in tables:
        correlations["revenue_decile_project_ratio"] = revenue_decile_project_ratio(
            tables["clients"], tables["projects"]
        )

    if "team_members" in tables:
        team = tables["team_members"]
        by_seniority = team.groupby("seniority")["hourly_rate"].mean()
        correlations["mean_hourly_rate_by_seniority"] = {
            str(k): float(v) for k, v in by_seniority.items()
        }

    return correlations


def validate_tables(tables: dict[str, pd.DataFrame]) -> ValidationResult:
    """Validate tables and compute summary metrics."""
    issues = validate(tables)
    result = ValidationResult(is_valid=not issues, issues=issues)
    result.metrics["row_counts"] = {name: len(df) for name, df in tables.items()}
    result.metrics["distributions"] = _check_distributions(tables)
    result.metrics["aggregates"] = _calculate_aggregate_metrics(tables)
    result.metrics["correlations"] = _check_correlations(tables)
    return result


def load_bundle(summary_path: str | Path) -> tuple[dict[str, Any], dict[str, pd.DataFrame]]:
    """Read a bundle's summary file and every table it lists.

    Raises:
        FileNotFoundError: If the summary or a table file is missing.
    """
    summary_path = Path(summary_path)
    with open(summary_path) as f:
        summary = json.load(f)

    base_dir = summary_path.parent
    sep = summary.get("config", {}).get("output", {}).get("csv_delimiter", ",")
    tables = {}
    for table_name in summary.get("tables", {}):
        tables[table_name] = pd.read_csv(base_dir / f"{table_name}.csv", sep=sep)
    return summary, tables


def validate_bundle(summary_path: str | Path) -> ValidationResult:
    """Validate an exported bundle using its summary file.

    Writes ``validation_report.md`` next to the summary.
    """
    summary_path = Path(summary_path)
    if not summary_path.exists():
        return ValidationResult(is_valid=False, issues=[f"Summary not found: {summary_path}"])

    try:
        summary, tables = load_bundle(summary_path)
    except (OSError, ValueError) as e:
        return ValidationResult(is_valid=False, issues=[f"Failed to load bundle: {e}"])

    result = validate_tables(tables)

    for table_name, expected in summary.get("tables", {}).items():
        actual = len(tables.get(table_name, ()))
        if actual != expected:
            result.issues.append(f"{table_name}: summary lists {expected} rows, file has {actual}")
            result.is_valid = False

    _generate_markdown_report(result, summary_path.parent / REPORT_FILENAME, summary)
    return result


def _format_ratio(value: float | None) -> str:
    if value is None or not np.isfinite(value):
        return "N/A"
    return f"{value:.2f}x"


def _generate_markdown_report(result: ValidationResult, out_path: Path, summary: dict[str, Any]) -> None:
    """Write the validation result to a Markdown file."""
    lines = [
        "# Synthetic Data Validation Report",
        f"**Status**: {'✅ PASS' if result.is_valid else '❌ FAIL'}",
        f"**Timestamp**: {summary.get('generation_timestamp', 'Unknown')}",
        f"**Content Hash**: `{summary.get('content_hash', 'N/A')}`",
        "",
        "## Row Counts",
    ]
    for table_name, rows in result.metrics.get("row_counts", {}).items():
        lines.append(f"- **{table_name}**: {rows:,}")

    aggs = result.metrics.get("aggregates", {})
    lines.append("\n## Summary Metrics")
    lines.extend(
        [
            f"- **Invoice Paid Rate**: {aggs.get('invoice_paid_rate', 0):.2%}",
            f"- **Retainer Invoice Share**: {aggs.get('retainer_invoice_share', 0):.2%}",
            f"- **Project Completion Rate**: {aggs.get('project_completion_rate', 0):.2%}",
            f"- **Ticket Done Rate**: {aggs.get('ticket_done_rate', 0):.2%}",
        ]
    )

    lines.append("\n## Distribution Sanity (p50 / p95 / p99)")
    for name, stats in result.metrics.get("distributions", {}).items():
        lines.append(f"- **{name}**: ${stats['p50']:,.2f} / ${stats['p95']:,.2f} / ${stats['p99']:,.2f}")

    corrs = result.metrics.get("correlations", {})
    lines.append("\n## Correlation Analysis")
    lines.append(
        "- **Projects per client, top vs bottom revenue decile**: "
        f"{_format_ratio(corrs.get('revenue_decile_project_ratio'))}"
    )
    rates = corrs.get("mean_hourly_rate_by_seniority", {})
    if rates:
        lines.append("\n| Seniority | Mean Hourly Rate |")
        lines.append("|-----------|------------------|")
        for seniority, rate in rates.items():
            lines.append(f"| {seniority} | ${rate:.2f} |")

    if result.issues:
        lines.append("\n## Issues")
        for issue in result.issues:
            lines.append(f"- ❌ {issue}")

    with open(out_path, "w") as f:
        f.write("\n".join(lines))

    logger.info("Validation report written to %s", out_path)
