"""LookML generators."""

from dbt2lookml.generators.columns import ColumnClassifier, ColumnCollection
from dbt2lookml.generators.dimension import DimensionGenerator
from dbt2lookml.generators.explore import ExploreGenerator
from dbt2lookml.generators.lookml import (
    CancellationToken,
    GenerationContext,
    GenerationResult,
    LookMLGenerator,
)
from dbt2lookml.generators.measure import MeasureGenerator
from dbt2lookml.generators.serializer import LookMLSerializer
from dbt2lookml.generators.view import GeneratedModel, ViewGenerator

__all__ = [
    "CancellationToken",
    "ColumnClassifier",
    "ColumnCollection",
    "DimensionGenerator",
    "ExploreGenerator",
    "GeneratedModel",
    "GenerationContext",
    "GenerationResult",
    "LookMLGenerator",
    "LookMLSerializer",
    "MeasureGenerator",
    "ViewGenerator",
]
