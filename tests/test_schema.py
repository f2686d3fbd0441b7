"""Tests for the schema registry."""

import json

import pytest

from contracting_synth import schema
from contracting_synth.generators import generate_dependent
from contracting_synth.schema import (
    ColumnType,
    PaymentStatus,
    WeightedCategories,
    format_id,
    get_table_spec,
    parse_id,
)


class TestIdentifiers:
    """Tests for format_id / parse_id."""

    def test_format_is_zero_padded(self) -> None:
        assert format_id("CLT", 0) == "CLT_000000"
        assert format_id("TM", 42) == "TM_000042"

    def test_parse_round_trip(self) -> None:
        assert parse_id("PRJ_001234") == ("PRJ", 1234)

    def test_wide_numbers_still_parse(self) -> None:
        """Sequences past six digits widen instead of wrapping."""
        assert format_id("TKT", 1_234_567) == "TKT_1234567"
        assert parse_id("TKT_1234567") == ("TKT", 1_234_567)

    @pytest.mark.parametrize("value", ["CLT000001", "CLT_12_34", "clt_000001", "CLT_", "_000001", ""])
    def test_parse_rejects_ambiguous_shapes(self, value: str) -> None:
        with pytest.raises(ValueError, match="Malformed identifier"):
            parse_id(value)


class TestRegistry:
    """Tests for table declarations."""

    def test_generation_order_covers_all_tables(self) -> None:
        assert set(schema.GENERATION_ORDER) == set(schema.TABLES)

    def test_parents_precede_children(self) -> None:
        position = {name: i for i, name in enumerate(schema.GENERATION_ORDER)}
        for table, deps in schema.DEPENDENCIES.items():
            for dep in deps:
                assert position[dep] < position[table], f"{dep} must precede {table}"

    def test_id_prefixes_are_unique(self) -> None:
        prefixes = [spec.id_prefix for spec in schema.TABLES.values()]
        assert len(prefixes) == len(set(prefixes))

    def test_foreign_keys_reference_primary_keys(self) -> None:
        for spec in schema.TABLES.values():
            for fk in spec.foreign_keys:
                target = schema.TABLES[fk.references_table]
                assert fk.references_column == target.primary_key
                assert fk.column in spec.column_names

    def test_required_columns_exist(self) -> None:
        for table, columns in schema.REQUIRED_COLUMNS.items():
            assert set(columns) <= set(schema.EXPECTED_COLUMNS[table])

    def test_present_when_targets_categorical_column(self) -> None:
        for spec in schema.TABLES.values():
            for col in spec.columns:
                if col.present_when is None:
                    continue
                condition_column, value = col.present_when
                condition = spec.column(condition_column)
                assert condition is not None
                assert value in condition.domain

    def test_categorical_columns_have_domains(self) -> None:
        for spec in schema.TABLES.values():
            for name in spec.columns_of_type(ColumnType.CATEGORICAL):
                assert spec.column(name).domain, f"{spec.name}.{name} has no domain"

    def test_numeric_columns_have_ranges(self) -> None:
        for spec in schema.TABLES.values():
            for col in spec.columns:
                if col.is_numeric:
                    assert col.min is not None and col.max is not None
                    assert col.min <= col.max

    def test_generated_values_within_declared_ranges(self, context, small_config, base_tables) -> None:
        tables = dict(base_tables)
        for name in ["project_assignments", "tickets", "invoices", "contracts"]:
            tables[name] = generate_dependent(context, small_config, name, tables)

        for name, df in tables.items():
            for col in schema.TABLES[name].columns:
                if not col.is_numeric:
                    continue
                values = df[col.name].dropna()
                assert values.between(col.min, col.max).all(), f"{name}.{col.name} left [{col.min}, {col.max}]"

    def test_story_points_domain(self) -> None:
        tickets = get_table_spec("tickets")
        assert tickets.column("story_points").domain == [1, 2, 3, 5, 8, 13, 21]

    def test_unknown_table_raises(self) -> None:
        with pytest.raises(KeyError, match="Unknown table"):
            get_table_spec("timesheets")


class TestWeightedCategories:
    """Tests for WeightedCategories."""

    def test_payment_weights_align_with_statuses(self) -> None:
        assert schema.RETAINER_PAYMENT_STATUS.values == tuple(schema.values(PaymentStatus))
        assert schema.RETAINER_PAYMENT_STATUS.weights == (5, 10, 70, 10, 5)
        assert schema.PROJECT_PAYMENT_STATUS.weights == (3, 7, 75, 12, 3)

    def test_mismatched_weights_rejected(self) -> None:
        with pytest.raises(ValueError):
            WeightedCategories(values=("a", "b"), weights=(1.0,))


class TestSchemaExport:
    """Tests for schema_as_dict / schema_definition."""

    def test_as_dict_lists_tables_in_generation_order(self) -> None:
        data = schema.schema_as_dict()
        assert list(data["tables"]) == schema.GENERATION_ORDER

    def test_as_dict_is_json_serializable(self) -> None:
        json.dumps(schema.schema_as_dict())

    def test_conditional_presence_exported(self) -> None:
        projects = schema.schema_as_dict()["tables"]["projects"]
        assert projects["columns"]["actual_end_date"]["present_when"] == {
            "column": "project_status",
            "equals": "Completed",
        }

    def test_definition_is_stable(self) -> None:
        assert schema.schema_definition() == schema.schema_definition()
