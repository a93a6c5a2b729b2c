"""Merge physical column types from ``catalog.json`` into manifest models."""

from __future__ import annotations

import logging

from dbt2lookml.schemas.dbt import DbtCatalog, DbtModel, DbtModelColumn

logger = logging.getLogger(__name__)


class CatalogParser:
    """Applies catalog columns to models.

    The catalog is authoritative for the column list and types: every catalog
    column ends up on the model, descriptions come from the catalog comment
    with the manifest description as fallback, and the catalog's casing is
    kept as the column's original name. Columns documented only in the
    manifest are kept as they are.
    """

    def __init__(self, catalog: DbtCatalog) -> None:
        self.catalog = catalog
        for node in self.catalog.nodes.values():
            node.normalize_column_names()

    def process_model(self, model: DbtModel) -> DbtModel:
        """Return a processed copy of ``model`` with catalog columns merged in.

        Args:
            model: Model as read from the manifest.

        Returns:
            New model with lowercase column paths and LookML names derived.
        """
        processed = model.model_copy(deep=True)
        node = self.catalog.nodes.get(model.unique_id)
        if node is None:
            logger.warning("No catalog entry found for model %s", model.name)
            return processed.process()

        documented = {
            column.name.lower(): column for column in processed.columns.values()
        }
        columns: dict[str, DbtModelColumn] = {}
        for path, catalog_column in node.columns.items():
            manifest_column = documented.pop(path, None)
            description = catalog_column.comment or (
                manifest_column.description if manifest_column else None
            )
            columns[path] = DbtModelColumn(
                name=path,
                original_name=catalog_column.original_name,
                data_type=catalog_column.data_type or None,
                inner_types=list(catalog_column.inner_types),
                description=description,
                meta=manifest_column.meta if manifest_column else None,
                constraints=manifest_column.constraints if manifest_column else [],
            )

        for path, column in documented.items():
            logger.debug(
                "Model %s: column %s is documented but missing from the catalog",
                model.name,
                path,
            )
            columns[path] = column

        processed.columns = columns
        return processed.process()

    def process_models(self, models: list[DbtModel]) -> list[DbtModel]:
        return [self.process_model(model) for model in models]
