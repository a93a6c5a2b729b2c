"""Measure generation.

Measures come from two places: the dbt semantic layer (supplied by the
metrics plugin) and explicit ``meta.looker.measures`` entries on the model
or its columns. Semantic measures win when both define the same name.
"""

from __future__ import annotations

import logging

from dbt2lookml.constants import DEFAULT_COUNT_MEASURE
from dbt2lookml.exceptions import MeasureValidationError
from dbt2lookml.naming import quote_column_if_needed, to_lookml_name, to_title_case
from dbt2lookml.schemas.dbt import DbtMetaLookerMeasure, DbtModel, DbtModelColumn
from dbt2lookml.schemas.lookml import LookMLMeasure, LookMLMeasureFilter
from dbt2lookml.schemas.semantic_layer import SemanticMeasure
from dbt2lookml.types import (
    LOOKML_TYPE_MAP,
    AggregationType,
    MeasureType,
    qualify_sql_expression,
)

logger = logging.getLogger(__name__)

# Measure types that aggregate a column and therefore need SQL
_COLUMN_AGGREGATES = frozenset(
    {
        MeasureType.SUM,
        MeasureType.SUM_DISTINCT,
        MeasureType.AVERAGE,
        MeasureType.AVERAGE_DISTINCT,
        MeasureType.MIN,
        MeasureType.MAX,
        MeasureType.MEDIAN,
        MeasureType.MEDIAN_DISTINCT,
        MeasureType.PERCENTILE,
        MeasureType.PERCENTILE_DISTINCT,
        MeasureType.COUNT_DISTINCT,
        MeasureType.LIST,
    }
)


class MeasureGenerator:
    """Generates LookML measures from semantic and metadata definitions."""

    def generate_semantic_measure(self, measure: SemanticMeasure) -> LookMLMeasure:
        """Convert a dbt semantic measure.

        Args:
            measure: Semantic layer measure.

        Returns:
            The LookML measure.

        Raises:
            MeasureValidationError: If the aggregation is not supported.
        """
        try:
            aggregation = AggregationType(measure.agg.lower())
        except ValueError as e:
            raise MeasureValidationError(
                f"unsupported aggregation type '{measure.agg}' on measure {measure.name}"
            ) from e

        sql = qualify_sql_expression(measure.expr, measure.name)
        if aggregation == AggregationType.SUM_BOOLEAN:
            sql = f"CAST({sql} AS INT64)"

        lookml_measure = LookMLMeasure(
            name=measure.name,
            type=LOOKML_TYPE_MAP[aggregation],
            sql=sql,
            label=measure.label or None,
            description=measure.description or None,
        )

        if measure.is_percentile:
            lookml_measure.percentile = measure.percentile_value()

        if measure.is_semi_additive:
            logger.warning(
                "Measure %s: semi-additive measures (non_additive_dimension) "
                "are generated as plain aggregates",
                measure.name,
            )

        return lookml_measure

    def generate_semantic_measures(
        self, measures: list[SemanticMeasure]
    ) -> list[LookMLMeasure]:
        """Convert semantic measures, skipping unsupported aggregations."""
        result = []
        for measure in measures:
            try:
                result.append(self.generate_semantic_measure(measure))
            except MeasureValidationError as e:
                logger.warning("Skipping semantic measure: %s", e)
        return result

    def generate_meta_measure(
        self,
        measure_meta: DbtMetaLookerMeasure,
        column: DbtModelColumn | None = None,
    ) -> LookMLMeasure:
        """Convert an explicit metadata measure.

        Args:
            measure_meta: Entry from ``meta.looker.measures``.
            column: Column the entry is attached to, if any; used as the
                default SQL for aggregating measure types.

        Returns:
            The LookML measure.

        Raises:
            MeasureValidationError: If attributes don't fit the measure type.
        """
        measure_meta.validate_attributes()
        measure_type = MeasureType(measure_meta.type)
        name = measure_meta.name or measure_meta.type

        return LookMLMeasure(
            name=name,
            type=measure_type,
            sql=self._meta_measure_sql(measure_meta, measure_type, column),
            label=measure_meta.label or to_title_case(name),
            description=measure_meta.description,
            hidden=measure_meta.hidden,
            group_label=measure_meta.group_label,
            value_format_name=measure_meta.value_format_name,
            approximate=measure_meta.approximate,
            approximate_threshold=measure_meta.approximate_threshold,
            precision=measure_meta.precision,
            sql_distinct_key=measure_meta.sql_distinct_key,
            percentile=measure_meta.percentile,
            filters=[
                LookMLMeasureFilter(
                    filter_dimension=f.filter_dimension,
                    filter_expression=f.filter_expression,
                )
                for f in measure_meta.filters
            ],
        )

    def generate_meta_measures(self, model: DbtModel) -> list[LookMLMeasure]:
        """All metadata measures of a model: model-level first, then per column.

        Raises:
            MeasureValidationError: If any entry is invalid.
        """
        measures = []
        if model.looker is not None:
            for measure_meta in model.looker.measures:
                measures.append(self.generate_meta_measure(measure_meta))
        for path in sorted(model.columns):
            column = model.columns[path]
            for measure_meta in column.looker_measures:
                measures.append(self.generate_meta_measure(measure_meta, column))
        return measures

    def merge_measures(
        self,
        semantic_measures: list[LookMLMeasure],
        meta_measures: list[LookMLMeasure],
    ) -> list[LookMLMeasure]:
        """Combine both sources; a metadata measure named like a semantic one is dropped."""
        semantic_names = {m.name for m in semantic_measures}
        merged = list(semantic_measures)
        for measure in meta_measures:
            if measure.name in semantic_names:
                logger.debug(
                    "Skipping meta measure %s (overridden by semantic model measure)",
                    measure.name,
                )
                continue
            merged.append(measure)
        return merged

    def generate_default_count_measure(
        self, measures: list[LookMLMeasure]
    ) -> LookMLMeasure | None:
        """A bare ``count`` measure unless one already exists."""
        if any(m.name == DEFAULT_COUNT_MEASURE for m in measures):
            return None
        return LookMLMeasure(name=DEFAULT_COUNT_MEASURE, type=MeasureType.COUNT)

    def generate_primary_key_measure(self, column: DbtModelColumn) -> LookMLMeasure:
        """Count distinct values of a primary-key column."""
        name = to_lookml_name(column.ref)
        return LookMLMeasure(
            name=f"count_distinct_{name}",
            type=MeasureType.COUNT_DISTINCT,
            sql=f"${{TABLE}}.{quote_column_if_needed(column.ref)}",
            label=f"Count Distinct {to_title_case(name)}",
            description=f"Count of distinct {name} values",
        )

    @staticmethod
    def _meta_measure_sql(
        measure_meta: DbtMetaLookerMeasure,
        measure_type: MeasureType,
        column: DbtModelColumn | None,
    ) -> str | None:
        if measure_meta.sql:
            return measure_meta.sql
        if measure_type == MeasureType.COUNT:
            return None
        if measure_type == MeasureType.COUNT_DISTINCT and measure_meta.sql_distinct_key:
            return f"${{TABLE}}.{measure_meta.sql_distinct_key.lower()}"
        if column is not None and measure_type in _COLUMN_AGGREGATES:
            return f"${{TABLE}}.{quote_column_if_needed(column.ref)}"
        return None
