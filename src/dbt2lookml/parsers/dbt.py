"""Parser for dbt ``manifest.json`` and ``catalog.json`` artifacts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dbt2lookml.exceptions import ParseError
from dbt2lookml.interfaces.parser import Parser
from dbt2lookml.parsers.catalog import CatalogParser
from dbt2lookml.parsers.exposure import ExposureParser
from dbt2lookml.parsers.model import ModelParser
from dbt2lookml.parsers.semantic import SemanticModelParser
from dbt2lookml.schemas.dbt import DbtCatalog, DbtManifest, DbtModel

logger = logging.getLogger(__name__)


class DbtParser(Parser):
    """Turns a manifest and catalog into processed, filtered models.

    After ``parse`` the validated manifest is available as ``manifest`` and
    its semantic layer as ``semantic``, for plugins and reporting.
    """

    def __init__(
        self,
        select: str | None = None,
        tag: str | None = None,
        include_models: list[str] | None = None,
        exclude_models: list[str] | None = None,
        exposures_only: bool = False,
        exposures_tag: str | None = None,
        strict_mode: bool = False,
    ) -> None:
        """Initialize the parser with model filters.

        Args:
            select: Exact name of the only model to generate.
            tag: Only models with this tag.
            include_models: Only these models.
            exclude_models: Never these models.
            exposures_only: Only models referenced by exposures.
            exposures_tag: Restrict ``exposures_only`` to exposures with this tag.
            strict_mode: Raise on invalid model nodes instead of skipping them.
        """
        super().__init__(strict_mode=strict_mode)
        self.select = select
        self.tag = tag
        self.include_models = include_models or []
        self.exclude_models = exclude_models or []
        self.exposures_only = exposures_only
        self.exposures_tag = exposures_tag
        self.manifest: DbtManifest | None = None
        self.semantic: SemanticModelParser | None = None

    def parse(self, manifest_path: Path, catalog_path: Path) -> list[DbtModel]:
        """Parse both artifacts and return the selected models.

        Args:
            manifest_path: Path to ``manifest.json``.
            catalog_path: Path to ``catalog.json``.

        Returns:
            Processed models sorted by name.

        Raises:
            ParseError: If either file is malformed, does not match the
                expected structure, or targets an unsupported adapter.
        """
        raw_manifest = self.read_json(manifest_path)
        raw_catalog = self.read_json(catalog_path)
        if not self.validate(raw_manifest):
            raise ParseError(f"{manifest_path} does not look like a dbt manifest")

        self.manifest = self.load_manifest(raw_manifest)
        catalog = self.load_catalog(raw_catalog)
        self.manifest.metadata.validate_adapter()

        self.semantic = SemanticModelParser(
            self.manifest.semantic_models, self.manifest.metrics
        )

        model_parser = ModelParser(self.manifest.nodes, strict_mode=self.strict_mode)
        exposed = None
        if self.exposures_only:
            exposed = ExposureParser(self.manifest.exposures).referenced_models(
                self.exposures_tag
            )
            logger.debug("Exposures reference %d model(s)", len(exposed))

        models = model_parser.filter_models(
            model_parser.all_models(),
            select=self.select,
            tag=self.tag,
            exposed_names=exposed,
            include_models=self.include_models,
            exclude_models=self.exclude_models,
        )
        logger.info("Selected %d model(s) from %s", len(models), manifest_path)
        return CatalogParser(catalog).process_models(models)

    def validate(self, content: dict[str, Any]) -> bool:
        """Check that content has the top-level keys of a manifest.

        Args:
            content: Parsed manifest JSON.

        Returns:
            True if ``metadata`` and ``nodes`` are present.
        """
        return "metadata" in content and "nodes" in content

    def load_manifest(self, content: dict[str, Any]) -> DbtManifest:
        try:
            return DbtManifest.model_validate(content)
        except ValidationError as e:
            raise ParseError(f"invalid manifest: {e}") from e

    def load_catalog(self, content: dict[str, Any]) -> DbtCatalog:
        try:
            return DbtCatalog.model_validate(content)
        except ValidationError as e:
            raise ParseError(f"invalid catalog: {e}") from e
