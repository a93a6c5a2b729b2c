"""Column classification for nested BigQuery schemas.

A model's flat column map is split into the columns rendered in the base
view and one group per ARRAY column that gets its own nested view. Struct
fields stay in the base view as dotted references; arrays become views
joined through UNNEST.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dbt2lookml.constants import DEFAULT_MAX_NESTED_DEPTH
from dbt2lookml.schemas.dbt import DbtModel, DbtModelColumn
from dbt2lookml.types import is_array_type, is_struct_type

logger = logging.getLogger(__name__)


def column_depth(path: str) -> int:
    """Number of dotted components in a column path."""
    return path.count(".") + 1


def ancestor_paths(path: str) -> list[str]:
    """Strict prefixes of a dotted path, innermost first.

    Examples:
        >>> ancestor_paths("a.b.c")
        ['a.b', 'a']
    """
    parts = path.split(".")
    return [".".join(parts[:i]) for i in range(len(parts) - 1, 0, -1)]


def strip_array_prefix(path: str, array_path: str) -> str:
    """Remove a leading ``<array>.`` from a path, ignoring case."""
    prefix = f"{array_path}."
    if path.lower().startswith(prefix.lower()):
        return path[len(prefix) :]
    return path


@dataclass
class ColumnCollection:
    """Columns of one model, split by the view that renders them.

    Attributes:
        main_view_columns: Columns of the base view, keyed by path. Kept
            arrays appear here too, as the source of reference dimensions.
        nested_view_columns: Array path to the columns of its nested view,
            including the array itself.
        excluded_columns: Paths dropped by the depth limit or because they
            are struct containers.
    """

    main_view_columns: dict[str, DbtModelColumn] = field(default_factory=dict)
    nested_view_columns: dict[str, dict[str, DbtModelColumn]] = field(
        default_factory=dict
    )
    excluded_columns: list[str] = field(default_factory=list)

    @property
    def array_paths(self) -> list[str]:
        """Paths of arrays rendered as nested views, in output order."""
        return list(self.nested_view_columns)

    def array_column(self, array_path: str) -> DbtModelColumn:
        return self.nested_view_columns[array_path][array_path]


class ColumnClassifier:
    """Builds a ColumnCollection from a model."""

    def __init__(self, max_nested_depth: int = DEFAULT_MAX_NESTED_DEPTH) -> None:
        """Initialize the classifier.

        Args:
            max_nested_depth: Deepest array (in dotted components) that still
                gets its own nested view.
        """
        self.max_nested_depth = max_nested_depth

    def classify(self, model: DbtModel) -> ColumnCollection:
        """Split a model's columns into base-view and nested-view sets.

        Args:
            model: Processed model with lowercase column paths.

        Returns:
            Collection with deterministic (path-sorted) ordering.
        """
        columns = {path: model.columns[path] for path in sorted(model.columns)}
        arrays = {path for path, col in columns.items() if is_array_type(col.data_type)}
        kept = {path for path in arrays if self._keeps_array(path, arrays)}
        containers = self._struct_containers(columns)

        collection = ColumnCollection()
        for path in sorted(kept):
            collection.nested_view_columns[path] = {}

        for path, column in columns.items():
            if path in containers:
                collection.excluded_columns.append(path)
                continue

            if path in kept:
                collection.main_view_columns[path] = column
                collection.nested_view_columns[path][path] = column
                continue

            owner = self._owning_array(path, arrays, kept)
            if owner is None:
                collection.main_view_columns[path] = column
            elif owner == "":
                collection.excluded_columns.append(path)
            else:
                collection.nested_view_columns[owner][path] = column

        if collection.excluded_columns:
            logger.debug(
                "Model %s: excluded columns %s",
                model.name,
                ", ".join(collection.excluded_columns),
            )
        return collection

    def _keeps_array(self, path: str, arrays: set[str]) -> bool:
        """An array gets a nested view if shallow enough and not inside another array."""
        if column_depth(path) > self.max_nested_depth:
            return False
        return not any(parent in arrays for parent in ancestor_paths(path))

    def _owning_array(self, path: str, arrays: set[str], kept: set[str]) -> str | None:
        """Innermost kept array enclosing ``path``.

        Returns:
            The array path, ``None`` if no array encloses the column, or an
            empty string if the column lies beyond the depth limit.
        """
        enclosing = [parent for parent in ancestor_paths(path) if parent in arrays]
        if not enclosing:
            # Top-level columns, including arrays too deep for a view of their own
            return None

        if path in arrays and column_depth(path) > self.max_nested_depth:
            return ""

        for parent in enclosing:
            if parent in kept:
                return parent
            if column_depth(parent) > self.max_nested_depth:
                return ""
        return ""

    @staticmethod
    def _struct_containers(columns: dict[str, DbtModelColumn]) -> set[str]:
        """Plain STRUCT columns whose fields are listed separately."""
        containers = set()
        for path, column in columns.items():
            if not is_struct_type(column.data_type):
                continue
            prefix = f"{path}."
            if any(other.startswith(prefix) for other in columns):
                containers.add(path)
        return containers
