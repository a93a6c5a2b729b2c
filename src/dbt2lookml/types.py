"""Type definitions and enums for dbt2lookml."""

from __future__ import annotations

from enum import Enum


class AggregationType(str, Enum):
    """Aggregations a dbt semantic measure can declare."""

    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    SUM = "sum"
    SUM_BOOLEAN = "sum_boolean"
    AVERAGE = "average"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    PERCENTILE = "percentile"


class MeasureType(str, Enum):
    """LookML measure types."""

    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    SUM = "sum"
    SUM_DISTINCT = "sum_distinct"
    AVERAGE = "average"
    AVERAGE_DISTINCT = "average_distinct"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    MEDIAN_DISTINCT = "median_distinct"
    PERCENTILE = "percentile"
    PERCENTILE_DISTINCT = "percentile_distinct"
    NUMBER = "number"
    LIST = "list"
    STRING = "string"
    DATE = "date"
    YESNO = "yesno"


class DimensionType(str, Enum):
    """LookML dimension types produced from warehouse columns."""

    STRING = "string"
    NUMBER = "number"
    YESNO = "yesno"
    TIME = "time"


class Timeframe(str, Enum):
    """Timeframes a dimension group can expose."""

    RAW = "raw"
    TIME = "time"
    DATE = "date"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class JoinType(str, Enum):
    """LookML join types."""

    LEFT_OUTER = "left_outer"
    INNER = "inner"
    FULL_OUTER = "full_outer"
    CROSS = "cross"


class RelationshipType(str, Enum):
    """LookML join relationships."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


class MetricType(str, Enum):
    """Supported metric types."""

    SIMPLE = "simple"
    RATIO = "ratio"
    DERIVED = "derived"
    CUMULATIVE = "cumulative"
    CONVERSION = "conversion"


class ErrorStrategy(str, Enum):
    """How the generation driver reacts to a failing model."""

    FAIL_FAST = "fail_fast"
    FAIL_AT_END = "fail_at_end"
    CONTINUE_ON_ERROR = "continue_on_error"


class LogFormat(str, Enum):
    """Log output formats."""

    RICH = "rich"
    JSON = "json"


# Type mapping from dbt semantic aggregations to LookML measure types
LOOKML_TYPE_MAP = {
    AggregationType.SUM: MeasureType.SUM,
    AggregationType.SUM_BOOLEAN: MeasureType.SUM,
    AggregationType.COUNT: MeasureType.COUNT_DISTINCT,
    AggregationType.COUNT_DISTINCT: MeasureType.COUNT_DISTINCT,
    AggregationType.AVERAGE: MeasureType.AVERAGE,
    AggregationType.AVG: MeasureType.AVERAGE,
    AggregationType.MIN: MeasureType.MIN,
    AggregationType.MAX: MeasureType.MAX,
    AggregationType.MEDIAN: MeasureType.MEDIAN,
    AggregationType.PERCENTILE: MeasureType.PERCENTILE,
}

NUMERIC_TYPES = frozenset(
    {"INT64", "INTEGER", "FLOAT", "FLOAT64", "NUMERIC", "DECIMAL", "BIGNUMERIC"}
)
BOOLEAN_TYPES = frozenset({"BOOL", "BOOLEAN"})
TIME_TYPES = frozenset({"DATE", "DATETIME", "TIMESTAMP"})


def base_type(data_type: str | None) -> str:
    """Return the warehouse type without parameters or element types.

    Examples:
        >>> base_type("NUMERIC(10, 2)")
        'NUMERIC'
        >>> base_type("ARRAY<STRING>")
        'ARRAY'
    """
    if not data_type:
        return ""
    for marker in ("<", "("):
        data_type = data_type.split(marker, 1)[0]
    return data_type.strip().upper()


def map_warehouse_type(data_type: str | None) -> DimensionType:
    """Map a BigQuery type to a LookML dimension type.

    Unknown, array, struct and time types map to ``string``; time columns are
    normally rendered as dimension groups instead.
    """
    kind = base_type(data_type)
    if kind in NUMERIC_TYPES:
        return DimensionType.NUMBER
    if kind in BOOLEAN_TYPES:
        return DimensionType.YESNO
    return DimensionType.STRING


def is_time_type(data_type: str | None) -> bool:
    """Whether the column should become a dimension group."""
    return base_type(data_type) in TIME_TYPES


def is_array_type(data_type: str | None) -> bool:
    """Whether the column is an ARRAY."""
    return bool(data_type) and data_type.strip().upper().startswith("ARRAY")


def is_array_of_struct(data_type: str | None) -> bool:
    """Whether the column is an ARRAY whose elements are STRUCTs."""
    return is_array_type(data_type) and "STRUCT" in data_type.upper()


def is_struct_type(data_type: str | None) -> bool:
    """Whether the column is a plain (non-repeated) STRUCT."""
    return bool(data_type) and data_type.strip().upper().startswith("STRUCT")


def qualify_sql_expression(expr: str | None, field_name: str) -> str:
    """Ensure SQL expressions use ${TABLE} to avoid ambiguous column references.

    Uses sqlglot to find bare column references in complex expressions while
    leaving functions, keywords and literals untouched.

    Args:
        expr: Custom SQL expression or None
        field_name: Name of the field (used as default when expr is None)

    Returns:
        Qualified SQL expression

    Examples:
        >>> qualify_sql_expression(None, "revenue")
        '${TABLE}.revenue'
        >>> qualify_sql_expression("amount", "revenue")
        '${TABLE}.amount'
        >>> qualify_sql_expression("${TABLE}.amount", "revenue")
        '${TABLE}.amount'
        >>> qualify_sql_expression("1", "count_field")
        '1'
    """
    if expr is None or not expr.strip():
        return f"${{TABLE}}.{field_name}"

    if "${" in expr:
        return expr

    if expr.strip().lstrip("-").replace(".", "", 1).isdigit():
        return expr

    if expr.replace("_", "").isalnum():
        return f"${{TABLE}}.{expr}"

    return _qualify_with_sqlglot(expr)


def _qualify_with_sqlglot(expr: str) -> str:
    """Parse a complex SQL expression with sqlglot and qualify bare column references."""
    from sqlglot import exp, parse_one
    from sqlglot.errors import ParseError

    try:
        tree = parse_one(expr, read="bigquery")
    except ParseError:
        # Dialect-specific SQL sqlglot cannot read is passed through untouched
        return expr

    for column in tree.find_all(exp.Column):
        if not column.table:
            column.set("table", exp.to_identifier("${TABLE}"))

    result = tree.sql(dialect="bigquery", identify=False)
    result = result.replace("`${TABLE}`", "${TABLE}")
    result = result.replace('"${TABLE}"', "${TABLE}")
    return result
