"""dbt Semantic Layer schemas for semantic models and metrics.

Semantic models attach entities, dimensions and measures to a dbt model via
a ``ref('...')`` string. Metrics build on those measures (simple, ratio,
derived, cumulative, conversion). Only the fields the generators consume are
modelled; everything else in the manifest is ignored.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from dbt2lookml.types import MetricType

__all__ = [
    "Entity",
    "Dimension",
    "AggregationParams",
    "SemanticMeasure",
    "SemanticModelDefaults",
    "SemanticModel",
    "MetricInput",
    "MetricWindow",
    "CumulativeTypeParams",
    "ConversionTypeParams",
    "MetricTypeParams",
    "Metric",
]

_REF_PATTERN = re.compile(r"""ref\(\s*['"]([^'"]+)['"]\s*(?:,\s*['"]([^'"]+)['"]\s*)?\)""")


# ============================================================================
# Semantic Model Schemas
# ============================================================================


class Entity(BaseModel):
    """Represents an entity in a semantic model."""

    name: str
    type: str
    expr: str | None = None
    description: str | None = None

    @property
    def column(self) -> str:
        return self.expr or self.name


class Dimension(BaseModel):
    """Represents a dimension in a semantic model."""

    name: str
    type: str
    expr: str | None = None
    description: str | None = None
    label: str | None = None


class AggregationParams(BaseModel):
    """Extra parameters of percentile aggregations."""

    percentile: float | None = None
    use_discrete_percentile: bool = False
    use_approximate_percentile: bool = False


class SemanticMeasure(BaseModel):
    """A measure declared in a semantic model."""

    name: str
    agg: str
    expr: str | None = None
    description: str | None = None
    label: str | None = None
    agg_params: AggregationParams | None = None
    non_additive_dimension: dict | None = None

    @property
    def is_percentile(self) -> bool:
        return self.agg.lower() == "percentile"

    @property
    def is_semi_additive(self) -> bool:
        return self.non_additive_dimension is not None

    def percentile_value(self) -> int | None:
        """Percentile as a LookML integer (0.95 becomes 95)."""
        if self.agg_params is None or self.agg_params.percentile is None:
            return None
        value = self.agg_params.percentile
        return int(round(value * 100)) if value <= 1 else int(value)


class SemanticModelDefaults(BaseModel):
    agg_time_dimension: str | None = None


class SemanticModel(BaseModel):
    """Represents a dbt semantic model."""

    name: str
    model: str
    description: str | None = None
    defaults: SemanticModelDefaults | None = None
    entities: list[Entity] = Field(default_factory=list)
    dimensions: list[Dimension] = Field(default_factory=list)
    measures: list[SemanticMeasure] = Field(default_factory=list)

    def model_ref(self) -> str:
        """Name of the dbt model this semantic model is built on.

        Examples:
            >>> SemanticModel(name="o", model="ref('orders')").model_ref()
            'orders'
        """
        match = _REF_PATTERN.search(self.model)
        if not match:
            return self.model
        return match.group(2) or match.group(1)

    def primary_entity(self) -> Entity | None:
        """The first entity typed ``primary`` or ``unique``."""
        for entity in self.entities:
            if entity.type in ("primary", "unique"):
                return entity
        return None

    def time_dimension(self) -> str | None:
        """Aggregation time dimension, falling back to the first time dimension."""
        if self.defaults and self.defaults.agg_time_dimension:
            return self.defaults.agg_time_dimension
        for dimension in self.dimensions:
            if dimension.type == "time":
                return dimension.expr or dimension.name
        return None


# ============================================================================
# Metric Schemas
# ============================================================================


class MetricInput(BaseModel):
    """Reference from a metric to a measure or another metric."""

    name: str
    alias: str | None = None
    filter: dict | str | None = None


class MetricWindow(BaseModel):
    count: int
    granularity: str


class CumulativeTypeParams(BaseModel):
    window: MetricWindow | None = None
    grain_to_date: str | None = None


class ConversionTypeParams(BaseModel):
    base_measure: MetricInput
    conversion_measure: MetricInput
    entity: str
    calculation: str | None = None
    window: MetricWindow | None = None


class MetricTypeParams(BaseModel):
    """Union of the ``type_params`` used by every metric type."""

    measure: MetricInput | None = None
    numerator: MetricInput | None = None
    denominator: MetricInput | None = None
    expr: str | None = None
    metrics: list[MetricInput] = Field(default_factory=list)
    window: MetricWindow | None = None
    grain_to_date: str | None = None
    cumulative_type_params: CumulativeTypeParams | None = None
    conversion_type_params: ConversionTypeParams | None = None

    def cumulative(self) -> CumulativeTypeParams:
        """Cumulative settings from either manifest layout."""
        if self.cumulative_type_params is not None:
            return self.cumulative_type_params
        return CumulativeTypeParams(window=self.window, grain_to_date=self.grain_to_date)


class Metric(BaseModel):
    """A dbt semantic layer metric."""

    name: str
    type: MetricType
    label: str | None = None
    description: str | None = None
    type_params: MetricTypeParams = Field(default_factory=MetricTypeParams)
