"""Plugins extending generation with semantic layer output."""

from dbt2lookml.plugins.base import (
    DataIngestionHook,
    ExploreEnrichmentHook,
    ModelGenerationHook,
    Plugin,
    PluginRegistry,
    SemanticMeasureProvider,
)
from dbt2lookml.plugins.metrics import MetricsPlugin

__all__ = [
    "DataIngestionHook",
    "ExploreEnrichmentHook",
    "MetricsPlugin",
    "ModelGenerationHook",
    "Plugin",
    "PluginRegistry",
    "SemanticMeasureProvider",
]
