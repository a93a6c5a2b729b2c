"""View assembly.

For each model this produces the base view, one nested view per kept array
column and the explore joining them. Dimension names are made disjoint from
dimension group names within every view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dbt2lookml.config import GeneratorOptions
from dbt2lookml.constants import CONFLICT_SUFFIX
from dbt2lookml.generators.columns import ColumnClassifier, ColumnCollection
from dbt2lookml.generators.dimension import DimensionGenerator
from dbt2lookml.generators.explore import ExploreGenerator, nested_view_name
from dbt2lookml.generators.measure import MeasureGenerator
from dbt2lookml.naming import to_lookml_name
from dbt2lookml.schemas.dbt import DbtModel
from dbt2lookml.schemas.lookml import (
    LookMLDimension,
    LookMLDimensionGroup,
    LookMLExplore,
    LookMLMeasure,
    LookMLView,
)
from dbt2lookml.schemas.semantic_layer import SemanticMeasure
from dbt2lookml.types import DimensionType

logger = logging.getLogger(__name__)


@dataclass
class GeneratedModel:
    """Everything rendered into one model's view file."""

    model: DbtModel
    base_name: str
    base_view: LookMLView
    explore: LookMLExplore
    nested_views: list[LookMLView] = field(default_factory=list)

    @property
    def views(self) -> list[LookMLView]:
        return [self.base_view, *self.nested_views]


def resolve_conflicts(
    dimensions: list[LookMLDimension], dimension_groups: list[LookMLDimensionGroup]
) -> list[LookMLDimension]:
    """Rename dimensions that clash with a dimension group's fields.

    A group ``created`` reserves ``created`` plus ``created_<timeframe>`` for
    each of its timeframes, since Looker generates those fields. The group
    keeps its name; the dimension gets the ``_conflict_dimension`` suffix and
    is hidden.
    """
    reserved = set()
    for group in dimension_groups:
        reserved.add(group.name)
        reserved.update(
            f"{group.name}_{getattr(timeframe, 'value', timeframe)}"
            for timeframe in group.timeframes
        )

    resolved = []
    for dimension in dimensions:
        if dimension.name in reserved:
            renamed = f"{dimension.name}{CONFLICT_SUFFIX}"
            logger.debug("Renaming dimension %s to %s", dimension.name, renamed)
            dimension = dimension.model_copy(update={"name": renamed, "hidden": True})
        resolved.append(dimension)
    return resolved


class ViewGenerator:
    """Assembles base views, nested views and explores for models."""

    def __init__(self, options: GeneratorOptions | None = None) -> None:
        """Initialize the assembler and its field generators.

        Args:
            options: Output options; defaults are used when omitted.
        """
        self.options = options or GeneratorOptions()
        self.classifier = ColumnClassifier(self.options.max_nested_depth)
        self.dimension_generator = DimensionGenerator(self.options)
        self.measure_generator = MeasureGenerator()
        self.explore_generator = ExploreGenerator()

    def generate(
        self,
        model: DbtModel,
        semantic_measures: list[SemanticMeasure] | None = None,
    ) -> GeneratedModel:
        """Build every LookML record for one model.

        Args:
            model: Processed model.
            semantic_measures: Semantic layer measures attached to the model.

        Returns:
            Base view, nested views and explore.

        Raises:
            MeasureValidationError: If a metadata measure is invalid.
        """
        collection = self.classifier.classify(model)
        base_name = self.view_name(model)

        base_view = self.generate_base_view(
            model, collection, base_name, semantic_measures or []
        )
        nested_views = self.generate_nested_views(collection, base_name)

        # Reference dimensions carry the nested view name as their sql
        nested_names = {view.name for view in nested_views}
        reference_names = {
            dimension.sql: dimension.name
            for dimension in base_view.dimensions
            if dimension.sql in nested_names
        }
        explore = self.explore_generator.generate_explore(
            model, base_name, collection, reference_names
        )

        return GeneratedModel(
            model=model,
            base_name=base_name,
            base_view=base_view,
            nested_views=nested_views,
            explore=explore,
        )

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def view_name(self, model: DbtModel) -> str:
        """Base view name from the model name or the warehouse table name."""
        if self.options.use_table_name and model.relation_name:
            table = model.relation_name.split(".")[-1].strip("`")
            if table:
                return table.lower()
        return to_lookml_name(model.name)

    def sql_table_name(self, model: DbtModel) -> str:
        """Backtick-quoted relation the base view reads from."""
        if self.options.use_table_name and model.relation_name:
            return f"`{model.relation_name.replace('`', '')}`"

        schema = model.schema_
        if self.options.remove_schema_string:
            schema = schema.replace(self.options.remove_schema_string, "")
        relation = f"{schema}.{model.name}" if schema else model.name
        return f"`{relation.replace('`', '')}`"

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def generate_base_view(
        self,
        model: DbtModel,
        collection: ColumnCollection,
        base_name: str,
        semantic_measures: list[SemanticMeasure],
    ) -> LookMLView:
        """Build the base view of a model."""
        view_meta = model.looker.view if model.looker else None

        dimensions: list[LookMLDimension] = []
        dimension_groups: list[LookMLDimensionGroup] = []
        kept_arrays = set(collection.array_paths)

        for path, column in collection.main_view_columns.items():
            if path in kept_arrays:
                continue
            dimension = self.dimension_generator.generate_dimension(column, base_name)
            if dimension is not None:
                dimensions.append(dimension)
            group = self.dimension_generator.generate_dimension_group(column)
            if group is not None:
                dimension_groups.append(group)

        dimensions.extend(self.generate_reference_dimensions(collection, base_name))

        return LookMLView(
            name=base_name,
            sql_table_name=self.sql_table_name(model),
            label=view_meta.label if view_meta else None,
            description=(view_meta.description if view_meta else None)
            or model.description
            or None,
            hidden=view_meta.hidden if view_meta else None,
            dimensions=resolve_conflicts(dimensions, dimension_groups),
            dimension_groups=dimension_groups,
            measures=self.generate_measures(model, collection, semantic_measures),
        )

    def generate_reference_dimensions(
        self, collection: ColumnCollection, base_name: str
    ) -> list[LookMLDimension]:
        """Hidden base-view dimensions pointing at each nested view."""
        references = []
        for array_path in collection.array_paths:
            column = collection.array_column(array_path)
            references.append(
                LookMLDimension(
                    name=to_lookml_name(column.ref),
                    type=DimensionType.STRING,
                    sql=nested_view_name(base_name, column.ref),
                    hidden=True,
                )
            )
        return references

    def generate_nested_views(
        self, collection: ColumnCollection, base_name: str
    ) -> list[LookMLView]:
        """One view per kept array, without ``sql_table_name``."""
        views = []
        for array_path, columns in collection.nested_view_columns.items():
            array_column = columns[array_path]
            view_name = nested_view_name(base_name, array_column.ref)

            dimensions: list[LookMLDimension] = []
            dimension_groups: list[LookMLDimensionGroup] = []
            for path, column in columns.items():
                if path == array_path:
                    if not array_column.is_array_of_struct or "." not in array_path:
                        dimensions.append(
                            self.dimension_generator.generate_array_self_dimension(
                                column, view_name
                            )
                        )
                    continue

                dimension = self.dimension_generator.generate_nested_dimension(
                    column, array_path, view_name
                )
                if dimension is not None:
                    dimensions.append(dimension)
                group = self.dimension_generator.generate_nested_dimension_group(
                    column, array_path, view_name
                )
                if group is not None:
                    dimension_groups.append(group)

            views.append(
                LookMLView(
                    name=view_name,
                    dimensions=resolve_conflicts(dimensions, dimension_groups),
                    dimension_groups=dimension_groups,
                )
            )
        return views

    # ------------------------------------------------------------------
    # Measures
    # ------------------------------------------------------------------

    def generate_measures(
        self,
        model: DbtModel,
        collection: ColumnCollection,
        semantic_measures: list[SemanticMeasure],
    ) -> list[LookMLMeasure]:
        """Semantic measures, then metadata measures, then the default count."""
        measures = self.measure_generator.merge_measures(
            self.measure_generator.generate_semantic_measures(semantic_measures),
            self.measure_generator.generate_meta_measures(model),
        )

        if self.options.primary_key_measures:
            existing = {m.name for m in measures}
            for column in collection.main_view_columns.values():
                if not column.is_primary_key:
                    continue
                measure = self.measure_generator.generate_primary_key_measure(column)
                if measure.name not in existing:
                    measures.append(measure)

        count = self.measure_generator.generate_default_count_measure(measures)
        if count is not None:
            measures.append(count)
        return measures
