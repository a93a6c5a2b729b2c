"""Semantic models and metrics from the manifest's semantic layer."""

from __future__ import annotations

import logging
from collections import defaultdict

from dbt2lookml.schemas.semantic_layer import Metric, SemanticMeasure, SemanticModel
from dbt2lookml.types import MetricType

logger = logging.getLogger(__name__)


class SemanticModelParser:
    """Indexes semantic models by the dbt model they are built on.

    Attributes:
        semantic_models: dbt model name to the semantic models referencing it.
        measures: dbt model name to its semantic measures.
        metrics: Metric type to metrics of that type, in manifest order.
    """

    def __init__(
        self,
        semantic_models: dict[str, SemanticModel],
        metrics: dict[str, Metric] | None = None,
    ) -> None:
        self.semantic_models: dict[str, list[SemanticModel]] = defaultdict(list)
        self.measures: dict[str, list[SemanticMeasure]] = defaultdict(list)
        self.metrics: dict[MetricType, list[Metric]] = {t: [] for t in MetricType}

        for semantic_model in semantic_models.values():
            model_name = semantic_model.model_ref()
            self.semantic_models[model_name].append(semantic_model)
            self.measures[model_name].extend(semantic_model.measures)

        for metric in (metrics or {}).values():
            self.metrics[metric.type].append(metric)

        logger.debug(
            "Loaded %d semantic model(s) and %d metric(s)",
            len(semantic_models),
            len(metrics or {}),
        )

    def measures_for(self, model_name: str) -> list[SemanticMeasure]:
        return list(self.measures.get(model_name, []))

    def semantic_model_for(self, model_name: str) -> SemanticModel | None:
        """First semantic model built on ``model_name``."""
        candidates = self.semantic_models.get(model_name)
        return candidates[0] if candidates else None

    def metrics_of(self, metric_type: MetricType) -> list[Metric]:
        return list(self.metrics.get(metric_type, []))
