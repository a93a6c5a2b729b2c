"""Semantic layer plugin.

Supplies dbt semantic measures to the view assembler and turns metrics into
LookML next to each model's view file:

- ``<base>__metrics.view.lkml`` refines the base view with simple, ratio and
  derived metrics as ``number`` measures over existing measures.
- ``<base>__cumulative.view.lkml`` holds cumulative metrics as window
  functions over the base view's table.
- ``<base>__conversion.view.lkml`` holds conversion metrics as a funnel over
  first and subsequent entity events.

The explore of a model with cumulative or conversion metrics gets a
one-to-one join to the matching sidecar view.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from dbt2lookml.constants import (
    CONVERSION_VIEW_SUFFIX,
    CUMULATIVE_VIEW_SUFFIX,
    DEFAULT_COUNT_MEASURE,
    FALLBACK_CONVERSION_KEY,
    FALLBACK_CUMULATIVE_KEY,
    FALLBACK_TIME_DIMENSION,
    VIEW_FILE_SUFFIX,
)
from dbt2lookml.generators.serializer import LookMLSerializer
from dbt2lookml.parsers.semantic import SemanticModelParser
from dbt2lookml.plugins.base import (
    DataIngestionHook,
    ExploreEnrichmentHook,
    ModelGenerationHook,
    Plugin,
    SemanticMeasureProvider,
)
from dbt2lookml.schemas.dbt import DbtManifest, DbtModel
from dbt2lookml.schemas.lookml import (
    LookMLDimension,
    LookMLExplore,
    LookMLJoin,
    LookMLMeasure,
    LookMLView,
)
from dbt2lookml.schemas.semantic_layer import (
    ConversionTypeParams,
    Metric,
    SemanticMeasure,
    SemanticModel,
)
from dbt2lookml.types import JoinType, MeasureType, MetricType, RelationshipType

if TYPE_CHECKING:
    from dbt2lookml.generators.lookml import GenerationContext

logger = logging.getLogger(__name__)

METRICS_VIEW_SUFFIX = "__metrics"

CUMULATIVE_VIEW_LABEL = "Cumulative Metrics"
CONVERSION_VIEW_LABEL = "Conversion Metrics"

DEFAULT_CONVERSION_WINDOW = "INTERVAL 30 DAY"

# Conversion calculations that count conversions instead of a rate
_COUNTING_CALCULATIONS = frozenset({"conversions", "converted_entity_count"})

_WINDOW_AGGREGATES = {
    "sum": "SUM({expr})",
    "sum_boolean": "SUM(CAST({expr} AS INT64))",
    "count": "COUNT({expr})",
    "count_distinct": "COUNT(DISTINCT {expr})",
    "average": "AVG({expr})",
    "avg": "AVG({expr})",
    "min": "MIN({expr})",
    "max": "MAX({expr})",
}


class MetricsPlugin(
    Plugin,
    DataIngestionHook,
    SemanticMeasureProvider,
    ExploreEnrichmentHook,
    ModelGenerationHook,
):
    """Generates LookML for the dbt semantic layer."""

    def __init__(self, use_semantic_models: bool = False) -> None:
        """Initialize the plugin.

        Args:
            use_semantic_models: Enables the plugin.
        """
        self.use_semantic_models = use_semantic_models
        self.semantic: SemanticModelParser | None = None
        self.measures: dict[str, list[SemanticMeasure]] = {}
        self.metrics: dict[MetricType, list[Metric]] = {t: [] for t in MetricType}
        self.serializer = LookMLSerializer()

    def name(self) -> str:
        return "SemanticMetrics"

    def enabled(self) -> bool:
        return self.use_semantic_models

    # ------------------------------------------------------------------
    # Data ingestion
    # ------------------------------------------------------------------

    def on_manifest_loaded(self, manifest: DbtManifest) -> None:
        self.semantic = SemanticModelParser(manifest.semantic_models, manifest.metrics)
        self.measures = {name: list(m) for name, m in self.semantic.measures.items()}
        self.metrics = {t: self.semantic.metrics_of(t) for t in MetricType}
        logger.info(
            "Semantic layer: %d model(s) with measures, %d metric(s)",
            len(self.measures),
            sum(len(m) for m in self.metrics.values()),
        )

    def on_semantic_measures(self, measures: dict[str, list[SemanticMeasure]]) -> None:
        self.measures = {name: list(m) for name, m in measures.items()}

    def on_metrics(self, metrics: list[Metric], kind: str) -> None:
        self.metrics[MetricType(kind)] = list(metrics)

    def semantic_measures(self, model_name: str) -> list[SemanticMeasure]:
        return list(self.measures.get(model_name, []))

    # ------------------------------------------------------------------
    # Explore enrichment
    # ------------------------------------------------------------------

    def enrich_explore(
        self,
        ctx: GenerationContext,
        model: DbtModel,
        explore: LookMLExplore,
        base_name: str,
    ) -> None:
        semantic_model = self._semantic_model(model.name)
        if self.cumulative_metrics(model.name):
            key = cumulative_key(semantic_model)
            view_name = f"{base_name}{CUMULATIVE_VIEW_SUFFIX}"
            explore.joins.append(
                self._sidecar_join(base_name, view_name, key, CUMULATIVE_VIEW_LABEL)
            )

        conversions = self.conversion_metrics(model.name)
        if conversions:
            params = conversions[0].type_params.conversion_type_params
            key = conversion_key(semantic_model, params)
            view_name = f"{base_name}{CONVERSION_VIEW_SUFFIX}"
            explore.joins.append(
                self._sidecar_join(base_name, view_name, key, CONVERSION_VIEW_LABEL)
            )

    @staticmethod
    def _sidecar_join(base_name: str, view_name: str, key: str, label: str) -> LookMLJoin:
        return LookMLJoin(
            name=view_name,
            view_label=label,
            type=JoinType.LEFT_OUTER,
            sql_on=f"${{{base_name}.{key}}} = ${{{view_name}.{key}}}",
            relationship=RelationshipType.ONE_TO_ONE,
        )

    # ------------------------------------------------------------------
    # Sidecar files
    # ------------------------------------------------------------------

    def after_model_generation(self, ctx: GenerationContext, model: DbtModel) -> None:
        if not self.semantic_measures(model.name):
            return

        base_name = ctx.base_name
        includes = [f"{base_name}{VIEW_FILE_SUFFIX}"]
        sidecars = (
            (METRICS_VIEW_SUFFIX, self.metrics_view(model.name, base_name)),
            (CUMULATIVE_VIEW_SUFFIX, self.cumulative_view(model.name, base_name)),
            (CONVERSION_VIEW_SUFFIX, self.conversion_view(model.name, base_name)),
        )
        for suffix, view in sidecars:
            if view is None:
                continue
            filename = f"{base_name}{suffix}{VIEW_FILE_SUFFIX}"
            ctx.write_file(filename, self.serializer.render_views([view], includes))
            logger.info("Generated %s", filename)

    # ------------------------------------------------------------------
    # Metric selection
    # ------------------------------------------------------------------

    def _measure_names(self, model_name: str) -> set[str]:
        return {m.name for m in self.semantic_measures(model_name)}

    def _semantic_model(self, model_name: str) -> SemanticModel | None:
        if self.semantic is None:
            return None
        return self.semantic.semantic_model_for(model_name)

    def cumulative_metrics(self, model_name: str) -> list[Metric]:
        """Cumulative metrics whose measure is defined on the model."""
        names = self._measure_names(model_name)
        return [
            metric
            for metric in self.metrics.get(MetricType.CUMULATIVE, [])
            if metric.type_params.measure and metric.type_params.measure.name in names
        ]

    def conversion_metrics(self, model_name: str) -> list[Metric]:
        """Conversion metrics whose base and conversion measures are on the model."""
        names = self._measure_names(model_name)
        selected = []
        for metric in self.metrics.get(MetricType.CONVERSION, []):
            params = metric.type_params.conversion_type_params
            if params is None:
                continue
            if params.base_measure.name in names and params.conversion_measure.name in names:
                selected.append(metric)
        return selected

    # ------------------------------------------------------------------
    # Refinement view with simple, ratio and derived metrics
    # ------------------------------------------------------------------

    def metric_measures(self, model_name: str) -> list[LookMLMeasure]:
        """Metrics over the model's measures, as ``number`` measures.

        Simple metrics come first, then ratios, then derived metrics. A
        metric is only generated when every input resolves to a measure
        already available on the view.
        """
        existing = self._measure_names(model_name) | {DEFAULT_COUNT_MEASURE}
        if not self._measure_names(model_name):
            return []

        available = set(existing)
        measures: list[LookMLMeasure] = []

        for metric in self.metrics.get(MetricType.SIMPLE, []):
            source = metric.type_params.measure
            if source is None or source.name not in existing:
                continue
            if metric.name in available:
                logger.debug("Simple metric %s has the name of a measure", metric.name)
                continue
            measures.append(self._number_measure(metric, f"${{{source.name}}}"))
            available.add(metric.name)

        for metric in self.metrics.get(MetricType.RATIO, []):
            numerator = metric.type_params.numerator
            denominator = metric.type_params.denominator
            if numerator is None or denominator is None:
                continue
            if numerator.name not in available or denominator.name not in available:
                continue
            if metric.name in available:
                continue
            sql = f"${{{numerator.name}}} / NULLIF(${{{denominator.name}}}, 0)"
            measures.append(self._number_measure(metric, sql))
            available.add(metric.name)

        pending = [
            m
            for m in self.metrics.get(MetricType.DERIVED, [])
            if m.type_params.expr and m.name not in available
        ]
        # Derived metrics may build on each other; resolve until nothing changes
        progress = True
        while pending and progress:
            progress = False
            for metric in list(pending):
                inputs = metric.type_params.metrics
                if not all(i.name in available for i in inputs):
                    continue
                sql = metric.type_params.expr or ""
                for metric_input in inputs:
                    token = re.escape(metric_input.alias or metric_input.name)
                    sql = re.sub(rf"\b{token}\b", f"${{{metric_input.name}}}", sql)
                measures.append(self._number_measure(metric, sql))
                available.add(metric.name)
                pending.remove(metric)
                progress = True

        for metric in pending:
            logger.debug("Derived metric %s has unresolved inputs", metric.name)
        return measures

    @staticmethod
    def _number_measure(metric: Metric, sql: str) -> LookMLMeasure:
        return LookMLMeasure(
            name=metric.name,
            type=MeasureType.NUMBER,
            sql=sql,
            label=metric.label or None,
            description=metric.description or None,
        )

    def metrics_view(self, model_name: str, base_name: str) -> LookMLView | None:
        measures = self.metric_measures(model_name)
        if not measures:
            return None
        return LookMLView(name=f"+{base_name}", measures=measures)

    # ------------------------------------------------------------------
    # Cumulative view
    # ------------------------------------------------------------------

    def cumulative_view(self, model_name: str, base_name: str) -> LookMLView | None:
        metrics = self.cumulative_metrics(model_name)
        if not metrics:
            return None

        semantic_model = self._semantic_model(model_name)
        key = cumulative_key(semantic_model)
        time_column = time_dimension(semantic_model)
        measures = {m.name: m for m in self.semantic_measures(model_name)}

        columns = [key] if key == time_column else [key, time_column]
        for metric in metrics:
            source = measures[metric.type_params.measure.name]
            window = window_function(metric, source, time_column)
            columns.append(f"{window} AS {metric.name}")

        select = ",\n  ".join(columns)
        sql = f"SELECT\n  {select}\nFROM ${{{base_name}.SQL_TABLE_NAME}}"

        return LookMLView(
            name=f"{base_name}{CUMULATIVE_VIEW_SUFFIX}",
            derived_table_sql=sql,
            dimensions=[_key_dimension(key)],
            measures=[
                LookMLMeasure(
                    name=metric.name,
                    type=MeasureType.SUM,
                    sql=f"${{TABLE}}.{metric.name}",
                    label=metric.label or None,
                    description=metric.description or None,
                )
                for metric in metrics
            ],
        )

    # ------------------------------------------------------------------
    # Conversion view
    # ------------------------------------------------------------------

    def conversion_view(self, model_name: str, base_name: str) -> LookMLView | None:
        metrics = self.conversion_metrics(model_name)
        if not metrics:
            return None

        semantic_model = self._semantic_model(model_name)
        time_column = time_dimension(semantic_model)
        source = f"${{{base_name}.SQL_TABLE_NAME}}"

        ctes = []
        for metric in metrics:
            params = metric.type_params.conversion_type_params
            entity = conversion_key(semantic_model, params)
            ctes.append(
                f"{metric.name}_base_events AS (\n"
                f"  SELECT {entity} AS entity_id, MIN({time_column}) AS base_time\n"
                f"  FROM {source}\n"
                f"  GROUP BY {entity}\n"
                f"),\n"
                f"{metric.name}_conversion_events AS (\n"
                f"  SELECT t.{entity} AS entity_id, MIN(t.{time_column}) AS conversion_time\n"
                f"  FROM {source} t\n"
                f"  INNER JOIN {metric.name}_base_events b\n"
                f"    ON t.{entity} = b.entity_id AND t.{time_column} > b.base_time\n"
                f"  GROUP BY t.{entity}\n"
                f")"
            )

        first = metrics[0]
        key = conversion_key(semantic_model, first.type_params.conversion_type_params)
        columns = [f"b.entity_id AS {key}"]
        joins = []
        for i, metric in enumerate(metrics):
            interval = conversion_window(metric.type_params.conversion_type_params)
            columns.append(
                f"CASE WHEN c{i}.conversion_time <= DATE_ADD(b.base_time, {interval}) "
                f"THEN 1 ELSE 0 END AS {metric.name}"
            )
            joins.append(
                f"LEFT JOIN {metric.name}_conversion_events c{i}\n"
                f"  ON b.entity_id = c{i}.entity_id"
            )

        sql = (
            "WITH "
            + ",\n".join(ctes)
            + "\nSELECT\n  "
            + ",\n  ".join(columns)
            + f"\nFROM {first.name}_base_events b\n"
            + "\n".join(joins)
        )

        measures = []
        for metric in metrics:
            params = metric.type_params.conversion_type_params
            counting = params.calculation in _COUNTING_CALCULATIONS
            measures.append(
                LookMLMeasure(
                    name=metric.name,
                    type=MeasureType.SUM if counting else MeasureType.AVERAGE,
                    sql=f"${{TABLE}}.{metric.name}",
                    label=metric.label or None,
                    description=metric.description or None,
                    value_format_name=None if counting else "percent_1",
                )
            )

        return LookMLView(
            name=f"{base_name}{CONVERSION_VIEW_SUFFIX}",
            derived_table_sql=sql,
            dimensions=[_key_dimension(key)],
            measures=measures,
        )


def _key_dimension(key: str) -> LookMLDimension:
    return LookMLDimension(
        name=key, sql=f"${{TABLE}}.{key}", primary_key=True, hidden=True
    )


def cumulative_key(semantic_model: SemanticModel | None) -> str:
    """Join key of the cumulative view: the primary entity's column."""
    if semantic_model is not None:
        entity = semantic_model.primary_entity()
        if entity is not None:
            return entity.column
    return FALLBACK_CUMULATIVE_KEY


def conversion_key(
    semantic_model: SemanticModel | None, params: ConversionTypeParams | None
) -> str:
    """Column identifying the converting entity."""
    if params is None:
        return FALLBACK_CONVERSION_KEY
    if semantic_model is not None:
        for entity in semantic_model.entities:
            if entity.name == params.entity:
                return entity.column
    return f"{params.entity}_id"


def time_dimension(semantic_model: SemanticModel | None) -> str:
    if semantic_model is not None:
        name = semantic_model.time_dimension()
        if name:
            return name
    return FALLBACK_TIME_DIMENSION


def conversion_window(params: ConversionTypeParams | None) -> str:
    if params is None or params.window is None:
        return DEFAULT_CONVERSION_WINDOW
    return f"INTERVAL {params.window.count} {params.window.granularity.upper()}"


def window_function(metric: Metric, measure: SemanticMeasure, time_column: str) -> str:
    """Window expression computing a cumulative metric per row.

    ``grain_to_date`` restarts the running total every grain period; a
    ``window`` limits it to the trailing ``count`` rows.

    Examples:
        ``SUM(amount) OVER (ORDER BY order_date)``
        ``SUM(amount) OVER (PARTITION BY DATE_TRUNC(order_date, MONTH) ORDER BY order_date)``
    """
    template = _WINDOW_AGGREGATES.get(measure.agg.lower(), f"{measure.agg.upper()}({{expr}})")
    aggregate = template.format(expr=measure.expr or "*")

    params = metric.type_params.cumulative()
    over = f"ORDER BY {time_column}"
    if params.grain_to_date:
        grain = params.grain_to_date.upper()
        over = f"PARTITION BY DATE_TRUNC({time_column}, {grain}) {over}"
    elif params.window is not None and params.window.count > 0:
        over = f"{over} ROWS BETWEEN {params.window.count - 1} PRECEDING AND CURRENT ROW"
    return f"{aggregate} OVER ({over})"
