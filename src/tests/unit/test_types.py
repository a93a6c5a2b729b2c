"""Tests for warehouse type helpers."""

import pytest

from dbt2lookml.types import (
    LOOKML_TYPE_MAP,
    AggregationType,
    DimensionType,
    MeasureType,
    base_type,
    is_array_of_struct,
    is_array_type,
    is_struct_type,
    is_time_type,
    map_warehouse_type,
    qualify_sql_expression,
)


class TestMapWarehouseType:
    """Test cases for map_warehouse_type."""

    @pytest.mark.parametrize(
        "data_type,expected",
        [
            ("INT64", DimensionType.NUMBER),
            ("INTEGER", DimensionType.NUMBER),
            ("FLOAT64", DimensionType.NUMBER),
            ("NUMERIC(10, 2)", DimensionType.NUMBER),
            ("BIGNUMERIC", DimensionType.NUMBER),
            ("BOOL", DimensionType.YESNO),
            ("BOOLEAN", DimensionType.YESNO),
            ("STRING", DimensionType.STRING),
            ("BYTES", DimensionType.STRING),
            ("DATE", DimensionType.STRING),
            ("ARRAY<INT64>", DimensionType.STRING),
            ("STRUCT<a INT64>", DimensionType.STRING),
            ("GEOGRAPHY", DimensionType.STRING),
            (None, DimensionType.STRING),
        ],
    )
    def test_mapping(self, data_type: str | None, expected: DimensionType) -> None:
        """Test every type maps to string, number or yesno."""
        assert map_warehouse_type(data_type) == expected

    def test_case_insensitive(self) -> None:
        """Test lowercase catalog types are recognized."""
        assert map_warehouse_type("int64") == DimensionType.NUMBER


class TestTypePredicates:
    """Test cases for the type predicates."""

    def test_base_type(self) -> None:
        """Test parameters and element types are dropped."""
        assert base_type("NUMERIC(10, 2)") == "NUMERIC"
        assert base_type("ARRAY<STRUCT<a INT64>>") == "ARRAY"
        assert base_type(None) == ""

    @pytest.mark.parametrize("data_type", ["DATE", "DATETIME", "TIMESTAMP", "timestamp"])
    def test_time_types(self, data_type: str) -> None:
        """Test time types are detected."""
        assert is_time_type(data_type)

    def test_not_time_type(self) -> None:
        """Test non-time types are rejected."""
        assert not is_time_type("STRING")
        assert not is_time_type("ARRAY<DATE>")

    def test_arrays(self) -> None:
        """Test array and array-of-struct detection."""
        assert is_array_type("ARRAY<STRING>")
        assert not is_array_of_struct("ARRAY<STRING>")
        assert is_array_of_struct("ARRAY<STRUCT<amount NUMERIC>>")
        assert not is_array_type("STRUCT<a ARRAY<INT64>>")
        assert not is_array_type(None)

    def test_struct(self) -> None:
        """Test plain struct detection."""
        assert is_struct_type("STRUCT<code STRING>")
        assert not is_struct_type("ARRAY<STRUCT<code STRING>>")


class TestAggregationMap:
    """Test cases for the semantic aggregation map."""

    @pytest.mark.parametrize(
        "aggregation,expected",
        [
            (AggregationType.SUM, MeasureType.SUM),
            (AggregationType.SUM_BOOLEAN, MeasureType.SUM),
            (AggregationType.COUNT, MeasureType.COUNT_DISTINCT),
            (AggregationType.COUNT_DISTINCT, MeasureType.COUNT_DISTINCT),
            (AggregationType.AVERAGE, MeasureType.AVERAGE),
            (AggregationType.AVG, MeasureType.AVERAGE),
            (AggregationType.MIN, MeasureType.MIN),
            (AggregationType.MAX, MeasureType.MAX),
        ],
    )
    def test_lookml_type_map(
        self, aggregation: AggregationType, expected: MeasureType
    ) -> None:
        """Test semantic aggregations map to LookML measure types."""
        assert LOOKML_TYPE_MAP[aggregation] == expected


class TestQualifySqlExpression:
    """Test cases for qualify_sql_expression."""

    def test_none_defaults_to_field(self) -> None:
        """Test a missing expression references the field itself."""
        assert qualify_sql_expression(None, "revenue") == "${TABLE}.revenue"

    def test_bare_column(self) -> None:
        """Test a bare column is qualified."""
        assert qualify_sql_expression("amount", "revenue") == "${TABLE}.amount"

    def test_already_qualified(self) -> None:
        """Test LookML references are left alone."""
        assert qualify_sql_expression("${TABLE}.amount", "revenue") == "${TABLE}.amount"

    def test_numeric_literal(self) -> None:
        """Test literals are not qualified."""
        assert qualify_sql_expression("1", "count_field") == "1"

    def test_complex_expression(self) -> None:
        """Test every bare column in an expression is qualified."""
        result = qualify_sql_expression("amount * quantity", "revenue")
        assert "${TABLE}.amount" in result
        assert "${TABLE}.quantity" in result
