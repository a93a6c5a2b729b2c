"""Dimension and dimension group generation.

Every field is derived from one column plus model context. Metadata under
``meta.looker.dimension`` overrides the derived value field by field.
"""

from __future__ import annotations

from dbt2lookml.config import GeneratorOptions
from dbt2lookml.constants import (
    DATE_TIMEFRAMES,
    DATETIME_TIMEFRAMES,
    DIMENSION_GROUP_SUFFIXES,
)
from dbt2lookml.generators.columns import strip_array_prefix
from dbt2lookml.naming import quote_column_if_needed, to_lookml_name, to_title_case
from dbt2lookml.schemas.dbt import DbtMetaLookerDimension, DbtModelColumn
from dbt2lookml.schemas.lookml import LookMLDimension, LookMLDimensionGroup
from dbt2lookml.types import (
    DimensionType,
    Timeframe,
    base_type,
    is_array_type,
    is_time_type,
    map_warehouse_type,
)


def strip_time_suffix(name: str) -> str:
    """Drop one trailing ``_datetime``, ``_timestamp`` or ``_date``.

    Examples:
        >>> strip_time_suffix("created_date")
        'created'
        >>> strip_time_suffix("created_date_time")
        'created_date_time'
    """
    for suffix in DIMENSION_GROUP_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


class DimensionGenerator:
    """Generates LookML dimensions and dimension groups from columns."""

    def __init__(self, options: GeneratorOptions | None = None) -> None:
        """Initialize the generator.

        Args:
            options: Output options; defaults are used when omitted.
        """
        self.options = options or GeneratorOptions()

    # ------------------------------------------------------------------
    # Base view fields
    # ------------------------------------------------------------------

    def generate_dimension(
        self, column: DbtModelColumn, view_name: str
    ) -> LookMLDimension | None:
        """Generate a base-view dimension.

        Args:
            column: Column from the base view set.
            view_name: Name of the view the dimension belongs to.

        Returns:
            The dimension, or None for time columns (rendered as groups).
        """
        if is_time_type(column.data_type):
            return None

        if is_array_type(column.data_type):
            return self._array_dimension(column, view_name)

        meta = column.looker_dimension
        dimension = LookMLDimension(
            name=to_lookml_name(column.ref),
            type=map_warehouse_type(column.data_type),
            sql=self._table_sql(column.ref),
            description=self._description(column),
            group_label=self._group_label(column.ref),
            group_item_label=self._group_item_label(column.ref),
            primary_key=True if column.is_primary_key else None,
        )
        return self._apply_meta(dimension, meta)

    def generate_dimension_group(
        self, column: DbtModelColumn
    ) -> LookMLDimensionGroup | None:
        """Generate a base-view dimension group for DATE/DATETIME/TIMESTAMP columns."""
        if not is_time_type(column.data_type):
            return None
        return self._dimension_group(
            column, name_source=column.ref, sql=self._table_sql(column.ref)
        )

    # ------------------------------------------------------------------
    # Nested view fields
    # ------------------------------------------------------------------

    def generate_nested_dimension(
        self, column: DbtModelColumn, array_path: str, view_name: str
    ) -> LookMLDimension | None:
        """Generate a dimension for a field inside an array.

        Args:
            column: Column strictly inside ``array_path``.
            array_path: Path of the array owning the nested view.
            view_name: Name of the nested view.

        Returns:
            The dimension, or None for time columns.
        """
        if is_time_type(column.data_type):
            return None

        nested_path = self._nested_path(column, array_path)
        meta = column.looker_dimension
        dimension = LookMLDimension(
            name=to_lookml_name(nested_path),
            type=map_warehouse_type(column.data_type),
            sql=self._nested_sql(nested_path, view_name),
            description=self._description(column),
            group_label=self._group_label(nested_path),
            group_item_label=self._group_item_label(nested_path),
        )
        if is_array_type(column.data_type):
            dimension.hidden = True
        return self._apply_meta(dimension, meta)

    def generate_nested_dimension_group(
        self, column: DbtModelColumn, array_path: str, view_name: str
    ) -> LookMLDimensionGroup | None:
        """Generate a dimension group for a time field inside an array."""
        if not is_time_type(column.data_type):
            return None
        nested_path = self._nested_path(column, array_path)
        return self._dimension_group(
            column,
            name_source=nested_path,
            sql=self._nested_sql(nested_path, view_name),
        )

    def generate_array_self_dimension(
        self, column: DbtModelColumn, view_name: str
    ) -> LookMLDimension:
        """The hidden dimension standing for the unnested element itself.

        Its SQL is the nested view's alias, as produced by the explore's
        UNNEST join.
        """
        element_type = column.inner_types[0] if column.inner_types else None
        return LookMLDimension(
            name=view_name,
            type=map_warehouse_type(element_type),
            sql=view_name,
            description=self._description(column),
            hidden=True,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _array_dimension(self, column: DbtModelColumn, view_name: str) -> LookMLDimension:
        base_segment = column.ref.split(".", 1)[0]
        return LookMLDimension(
            name=f"{view_name}__{to_lookml_name(column.name)}",
            type=DimensionType.STRING,
            sql=self._table_sql(base_segment),
            description=self._description(column),
            hidden=True,
        )

    def _dimension_group(
        self, column: DbtModelColumn, name_source: str, sql: str
    ) -> LookMLDimensionGroup:
        meta = column.looker_dimension
        group = LookMLDimensionGroup(
            name=strip_time_suffix(to_lookml_name(name_source)),
            sql=sql,
            description=self._description(column),
            timeframes=self._timeframes(column),
        )
        if meta is not None:
            group.label = meta.label
            group.hidden = meta.hidden
            group.group_label = meta.group_label
            group.convert_tz = meta.convert_tz
        return group

    def _timeframes(self, column: DbtModelColumn) -> list[Timeframe | str]:
        """Metadata override, then configured override, then type default."""
        meta = column.looker_dimension
        if meta is not None and meta.timeframes:
            return list(meta.timeframes)
        if self.options.timeframes:
            return list(self.options.timeframes)
        if base_type(column.data_type) == "DATE":
            return list(DATE_TIMEFRAMES)
        return list(DATETIME_TIMEFRAMES)

    @staticmethod
    def _apply_meta(
        dimension: LookMLDimension, meta: DbtMetaLookerDimension | None
    ) -> LookMLDimension:
        if meta is None:
            return dimension
        if meta.label is not None:
            dimension.label = meta.label
        if meta.hidden is not None and not dimension.hidden:
            dimension.hidden = meta.hidden
        if meta.group_label is not None:
            dimension.group_label = meta.group_label
        if meta.can_filter is not None:
            dimension.can_filter = meta.can_filter
        if meta.value_format_name and dimension.type == DimensionType.NUMBER:
            dimension.value_format_name = meta.value_format_name
        return dimension

    @staticmethod
    def _description(column: DbtModelColumn) -> str | None:
        meta = column.looker_dimension
        if meta is not None and meta.description:
            return meta.description
        return column.description or None

    @staticmethod
    def _table_sql(ref: str) -> str:
        return f"${{TABLE}}.{quote_column_if_needed(ref)}"

    def _nested_sql(self, nested_path: str, view_name: str) -> str:
        qualifier = view_name if self.options.use_explicit_reference else "${TABLE}"
        return f"{qualifier}.{nested_path.lower()}"

    @staticmethod
    def _nested_path(column: DbtModelColumn, array_path: str) -> str:
        return strip_array_prefix(column.ref, array_path)

    @staticmethod
    def _group_label(path: str) -> str | None:
        if "." not in path:
            return None
        return to_title_case(to_lookml_name(path.rsplit(".", 1)[0]))

    @staticmethod
    def _group_item_label(path: str) -> str | None:
        if "." not in path:
            return None
        return to_title_case(to_lookml_name(path.rsplit(".", 1)[1]))
