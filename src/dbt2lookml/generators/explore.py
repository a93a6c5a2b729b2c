"""Explore generation.

Each model gets one hidden explore named after its base view. Every nested
view is joined through ``LEFT JOIN UNNEST``; join hints from model metadata
follow. Plugins may append further joins afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping

from dbt2lookml.generators.columns import ColumnCollection
from dbt2lookml.naming import to_lookml_name, to_title_case
from dbt2lookml.schemas.dbt import DbtModel, DbtModelColumn
from dbt2lookml.schemas.lookml import LookMLExplore, LookMLJoin
from dbt2lookml.types import RelationshipType


def nested_view_name(base_name: str, array_ref: str) -> str:
    """Name of the view holding the unnested rows of an array."""
    return f"{base_name}__{to_lookml_name(array_ref)}"


class ExploreGenerator:
    """Builds the explore that ties a base view to its nested views."""

    def generate_explore(
        self,
        model: DbtModel,
        base_name: str,
        collection: ColumnCollection,
        reference_names: Mapping[str, str] | None = None,
    ) -> LookMLExplore:
        """Generate the explore for a model.

        Args:
            model: The model being generated.
            base_name: Name of the base view (and of the explore).
            collection: Column classification of the model.
            reference_names: Final name of the base-view reference dimension
                per nested view, when conflict resolution renamed it.

        Returns:
            A hidden explore with UNNEST joins followed by metadata joins.
        """
        explore = LookMLExplore(name=base_name, view_name=base_name, hidden=True)
        reference_names = reference_names or {}

        for array_path in collection.array_paths:
            array_column = collection.array_column(array_path)
            view_name = nested_view_name(base_name, array_column.ref)
            explore.joins.append(
                self.generate_unnest_join(
                    base_name, array_column, reference_names.get(view_name)
                )
            )

        explore.joins.extend(self.generate_meta_joins(model))
        return explore

    def generate_unnest_join(
        self,
        base_name: str,
        array_column: DbtModelColumn,
        reference_name: str | None = None,
    ) -> LookMLJoin:
        """Join one nested view by unnesting the array behind its reference dimension."""
        array_name = to_lookml_name(array_column.ref)
        view_name = nested_view_name(base_name, array_column.ref)
        reference = reference_name or array_name
        return LookMLJoin(
            name=view_name,
            view_label=f"{to_title_case(base_name)}: {to_title_case(array_name)}",
            sql=f"LEFT JOIN UNNEST(${{{base_name}.{reference}}}) as {view_name}",
            relationship=RelationshipType.ONE_TO_MANY,
        )

    def generate_meta_joins(self, model: DbtModel) -> list[LookMLJoin]:
        """Joins declared in ``meta.looker.joins``."""
        if model.looker is None:
            return []

        joins = []
        for join_meta in model.looker.joins:
            if not join_meta.join_model:
                continue
            joins.append(
                LookMLJoin(
                    name=to_lookml_name(join_meta.join_model),
                    type=join_meta.type,
                    sql_on=join_meta.sql_on,
                    relationship=join_meta.relationship,
                )
            )
        return joins
