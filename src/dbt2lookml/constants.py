"""Constants shared by the parser, generators and CLI."""

from dbt2lookml.types import Timeframe

# =============================================================================
# Dimension groups
# =============================================================================

DATE_TIMEFRAMES = [
    Timeframe.RAW,
    Timeframe.DATE,
    Timeframe.WEEK,
    Timeframe.MONTH,
    Timeframe.QUARTER,
    Timeframe.YEAR,
]

DATETIME_TIMEFRAMES = [
    Timeframe.RAW,
    Timeframe.TIME,
    Timeframe.DATE,
    Timeframe.WEEK,
    Timeframe.MONTH,
    Timeframe.QUARTER,
    Timeframe.YEAR,
]

# Order matters: only the first matching suffix is stripped
DIMENSION_GROUP_SUFFIXES = ("_datetime", "_timestamp", "_date")

CONFLICT_SUFFIX = "_conflict_dimension"

# =============================================================================
# Views and explores
# =============================================================================

DEFAULT_COUNT_MEASURE = "count"

DEFAULT_MAX_NESTED_DEPTH = 2

VIEW_FILE_SUFFIX = ".view.lkml"

EXPLORE_COMMENT = (
    "# Un-hide and use this explore, or copy the joins into another explore, "
    "to get all the fully nested relationships from this view"
)

CUMULATIVE_VIEW_SUFFIX = "__cumulative"
CONVERSION_VIEW_SUFFIX = "__conversion"

# Fallback join keys for metric sidecar views when no primary entity is known
FALLBACK_CUMULATIVE_KEY = "order_id"
FALLBACK_CONVERSION_KEY = "customer_id"
FALLBACK_TIME_DIMENSION = "order_date"

# =============================================================================
# Inputs and configuration
# =============================================================================

SUPPORTED_ADAPTERS = ("bigquery",)

ENV_PREFIX = "DBT2LOOKML_"

DEFAULT_CONFIG_FILE = "dbt2lookml.yml"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR")
