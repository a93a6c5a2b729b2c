"""Select model nodes from a manifest."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from dbt2lookml.exceptions import ParseError
from dbt2lookml.schemas.dbt import DbtModel

logger = logging.getLogger(__name__)


class ModelParser:
    """Builds ``DbtModel`` objects from raw manifest nodes and filters them."""

    def __init__(self, nodes: dict[str, dict[str, Any]], strict_mode: bool = False) -> None:
        """Initialize the parser.

        Args:
            nodes: The manifest's ``nodes`` mapping.
            strict_mode: Raise on nodes that fail validation instead of
                skipping them with a warning.
        """
        self.nodes = nodes
        self.strict_mode = strict_mode

    def all_models(self) -> list[DbtModel]:
        """All valid model nodes, sorted by name."""
        models = []
        for unique_id, node in self.nodes.items():
            if node.get("resource_type") != "model":
                continue
            if not node.get("name"):
                logger.warning("Skipping model node %s without a name", unique_id)
                continue
            try:
                models.append(DbtModel.model_validate(node))
            except ValidationError as e:
                if self.strict_mode:
                    raise ParseError(f"invalid model node {unique_id}: {e}") from e
                logger.warning("Skipping invalid model node %s: %s", unique_id, e)
        return sorted(models, key=lambda m: m.name)

    def filter_models(
        self,
        models: list[DbtModel],
        select: str | None = None,
        tag: str | None = None,
        exposed_names: list[str] | None = None,
        include_models: list[str] | None = None,
        exclude_models: list[str] | None = None,
    ) -> list[DbtModel]:
        """Apply model filters.

        ``select`` matches one model name exactly and ignores every other
        filter. Otherwise filters apply in order: tag (case-insensitive),
        exposure-referenced names, include list, exclude list.

        Args:
            models: Candidate models.
            select: Exact model name to generate.
            tag: Keep only models carrying this tag.
            exposed_names: Keep only these names (from exposures); ``None``
                disables the filter.
            include_models: Keep only these names when non-empty.
            exclude_models: Drop these names.

        Returns:
            Filtered models in name order.
        """
        if select:
            return [model for model in models if model.name == select]

        selected = list(models)
        if tag:
            wanted = tag.lower()
            selected = [m for m in selected if wanted in (t.lower() for t in m.tags)]
        if exposed_names is not None:
            exposed = set(exposed_names)
            selected = [m for m in selected if m.name in exposed]
        if include_models:
            included = set(include_models)
            selected = [m for m in selected if m.name in included]
        if exclude_models:
            excluded = set(exclude_models)
            selected = [m for m in selected if m.name not in excluded]
        return sorted(selected, key=lambda m: m.name)
