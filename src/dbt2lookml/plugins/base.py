"""Plugin interfaces and registry.

Plugins observe a fixed set of generation events. They receive models by
reference and must not mutate them; only the explore passed to
``enrich_explore`` may be changed. Plugins are best-effort enrichment: a
failing hook is logged and generation continues.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, TypeVar

from dbt2lookml.exceptions import GenerationCancelledError
from dbt2lookml.schemas.dbt import DbtManifest, DbtModel
from dbt2lookml.schemas.lookml import LookMLExplore
from dbt2lookml.schemas.semantic_layer import Metric, SemanticMeasure

if TYPE_CHECKING:
    from dbt2lookml.generators.lookml import GenerationContext

logger = logging.getLogger(__name__)

HookT = TypeVar("HookT")


class Plugin(ABC):
    """Base interface every plugin implements."""

    @abstractmethod
    def name(self) -> str:
        """Human readable plugin name used in logs."""
        pass

    @abstractmethod
    def enabled(self) -> bool:
        """Disabled plugins are skipped silently."""
        pass


class DataIngestionHook(ABC):
    """Receives manifest data before generation starts."""

    @abstractmethod
    def on_manifest_loaded(self, manifest: DbtManifest) -> None:
        pass

    def on_semantic_measures(self, measures: dict[str, list[SemanticMeasure]]) -> None:
        """Receive semantic measures keyed by model name."""

    def on_metrics(self, metrics: list[Metric], kind: str) -> None:
        """Receive metrics of one type (``simple``, ``ratio``, ...)."""


class SemanticMeasureProvider(ABC):
    """Supplies semantic layer measures for a model."""

    @abstractmethod
    def semantic_measures(self, model_name: str) -> list[SemanticMeasure]:
        pass


class ExploreEnrichmentHook(ABC):
    """May append joins to a model's explore before it is rendered."""

    @abstractmethod
    def enrich_explore(
        self,
        ctx: GenerationContext,
        model: DbtModel,
        explore: LookMLExplore,
        base_name: str,
    ) -> None:
        pass


class ModelGenerationHook(ABC):
    """Runs after a model's view file has been written."""

    @abstractmethod
    def after_model_generation(self, ctx: GenerationContext, model: DbtModel) -> None:
        pass


class PluginRegistry:
    """Holds registered plugins and dispatches hook calls.

    Plugins are registered before generation; the registry is read-only
    while models are being generated.
    """

    def __init__(self, plugins: list[Plugin] | None = None) -> None:
        self._plugins: list[Plugin] = []
        for plugin in plugins or []:
            self.register(plugin)

    def register(self, plugin: Plugin) -> None:
        """Add a plugin."""
        self._plugins.append(plugin)
        logger.debug("Registered plugin %s", plugin.name())

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def enabled_plugins(self, hook: type[HookT]) -> list[HookT]:
        """Enabled plugins implementing ``hook``, in registration order."""
        return [p for p in self._plugins if isinstance(p, hook) and p.enabled()]

    def semantic_measures(self, model_name: str) -> list[SemanticMeasure]:
        """Semantic measures for a model from every provider."""
        measures: list[SemanticMeasure] = []
        for provider in self.enabled_plugins(SemanticMeasureProvider):
            try:
                measures.extend(provider.semantic_measures(model_name))
            except Exception as e:
                logger.warning(
                    "Plugin %s failed in semantic_measures: %s", provider.name(), e
                )
        return measures

    def fire_manifest_loaded(self, manifest: DbtManifest) -> None:
        for plugin in self.enabled_plugins(DataIngestionHook):
            self._call(plugin, "on_manifest_loaded", manifest)

    def fire_semantic_measures(self, measures: dict[str, list[SemanticMeasure]]) -> None:
        for plugin in self.enabled_plugins(DataIngestionHook):
            self._call(plugin, "on_semantic_measures", measures)

    def fire_metrics(self, metrics: list[Metric], kind: str) -> None:
        for plugin in self.enabled_plugins(DataIngestionHook):
            self._call(plugin, "on_metrics", metrics, kind)

    def fire_enrich_explore(
        self,
        ctx: GenerationContext,
        model: DbtModel,
        explore: LookMLExplore,
        base_name: str,
    ) -> None:
        for plugin in self.enabled_plugins(ExploreEnrichmentHook):
            self._call(plugin, "enrich_explore", ctx, model, explore, base_name)

    def fire_after_model(self, ctx: GenerationContext, model: DbtModel) -> None:
        for plugin in self.enabled_plugins(ModelGenerationHook):
            self._call(plugin, "after_model_generation", ctx, model)

    @staticmethod
    def _call(plugin: Plugin, hook: str, *args: object) -> None:
        try:
            getattr(plugin, hook)(*args)
        except GenerationCancelledError:
            raise
        except Exception as e:
            logger.warning("Plugin %s failed in %s: %s", plugin.name(), hook, e)
