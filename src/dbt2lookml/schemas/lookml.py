"""LookML output records.

Dimensions, dimension groups and measures share some fields but not others,
so each is its own model and a view holds three ordered lists. Every record
converts to the dictionary layout ``lkml.dump`` expects.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from dbt2lookml.types import (
    DimensionType,
    JoinType,
    MeasureType,
    RelationshipType,
    Timeframe,
)

__all__ = [
    "convert_bools",
    "LookMLDimension",
    "LookMLDimensionGroup",
    "LookMLMeasureFilter",
    "LookMLMeasure",
    "LookMLView",
    "LookMLJoin",
    "LookMLExplore",
]

# Flags that are only rendered when set
_OMIT_WHEN_FALSE = frozenset({"hidden", "primary_key"})


def convert_bools(d: dict[str, Any]) -> dict[str, Any]:
    """Convert boolean values to LookML-compatible strings."""
    result: dict[str, Any] = {}
    for k, v in d.items():
        if isinstance(v, bool):
            if not v and k in _OMIT_WHEN_FALSE:
                continue
            result[k] = "yes" if v else "no"
        elif isinstance(v, dict):
            result[k] = convert_bools(v)
        elif isinstance(v, list):
            result[k] = [
                convert_bools(item) if isinstance(item, dict) else item for item in v
            ]
        else:
            result[k] = v
    return result


def _dump(record: BaseModel) -> dict[str, Any]:
    return convert_bools(record.model_dump(exclude_none=True, mode="json"))


class LookMLDimension(BaseModel):
    """Represents a LookML dimension."""

    name: str
    type: DimensionType = DimensionType.STRING
    sql: str
    label: str | None = None
    description: str | None = None
    hidden: bool | None = None
    primary_key: bool | None = None
    group_label: str | None = None
    group_item_label: str | None = None
    value_format_name: str | None = None
    can_filter: bool | str | None = None
    convert_tz: bool | None = None


class LookMLDimensionGroup(BaseModel):
    """Represents a LookML dimension_group of type time."""

    name: str
    type: DimensionType = DimensionType.TIME
    sql: str
    label: str | None = None
    description: str | None = None
    hidden: bool | None = None
    group_label: str | None = None
    timeframes: list[Timeframe | str] = Field(default_factory=list)
    convert_tz: bool | None = None


class LookMLMeasureFilter(BaseModel):
    """Condition of a filtered measure."""

    filter_dimension: str
    filter_expression: str


class LookMLMeasure(BaseModel):
    """Represents a LookML measure."""

    name: str
    type: MeasureType
    sql: str | None = None
    label: str | None = None
    description: str | None = None
    hidden: bool | None = None
    group_label: str | None = None
    value_format_name: str | None = None
    approximate: bool | None = None
    approximate_threshold: int | None = None
    precision: int | None = None
    sql_distinct_key: str | None = None
    percentile: int | None = None
    filters: list[LookMLMeasureFilter] = Field(default_factory=list)

    def to_lookml_dict(self) -> dict[str, Any]:
        """Convert the measure to lkml's dictionary layout."""
        measure = _dump(self.model_copy(update={"filters": []}))
        measure.pop("filters", None)
        if self.filters:
            measure["filters"] = [
                {f.filter_dimension: f.filter_expression} for f in self.filters
            ]
        return measure


class LookMLView(BaseModel):
    """Represents a LookML view.

    Nested views have no ``sql_table_name``; they are reached through an
    UNNEST join in the explore. Metric views are backed by a derived table
    instead.
    """

    name: str
    sql_table_name: str | None = None
    derived_table_sql: str | None = None
    label: str | None = None
    description: str | None = None
    hidden: bool | None = None
    dimensions: list[LookMLDimension] = Field(default_factory=list)
    dimension_groups: list[LookMLDimensionGroup] = Field(default_factory=list)
    measures: list[LookMLMeasure] = Field(default_factory=list)

    def to_lookml_dict(self) -> dict[str, Any]:
        """Convert LookML view to dictionary format."""
        view_dict: dict[str, Any] = {}

        if self.sql_table_name:
            view_dict["sql_table_name"] = self.sql_table_name
        if self.derived_table_sql:
            view_dict["derived_table"] = {"sql": self.derived_table_sql}
        if self.label:
            view_dict["label"] = self.label
        if self.description:
            view_dict["description"] = self.description
        if self.hidden:
            view_dict["hidden"] = "yes"

        if self.dimensions:
            view_dict["dimensions"] = [_dump(dim) for dim in self.dimensions]

        if self.dimension_groups:
            view_dict["dimension_groups"] = [_dump(dg) for dg in self.dimension_groups]

        if self.measures:
            view_dict["measures"] = [m.to_lookml_dict() for m in self.measures]

        view_dict["name"] = self.name
        return view_dict


class LookMLJoin(BaseModel):
    """Represents a join inside an explore."""

    name: str
    view_label: str | None = None
    type: JoinType | None = None
    sql: str | None = None
    sql_on: str | None = None
    relationship: RelationshipType | None = None


class LookMLExplore(BaseModel):
    """Represents a LookML explore."""

    name: str
    view_name: str
    label: str | None = None
    description: str | None = None
    hidden: bool | None = None
    joins: list[LookMLJoin] = Field(default_factory=list)

    def to_lookml_dict(self) -> dict[str, Any]:
        """Convert the explore to lkml's dictionary layout."""
        explore: dict[str, Any] = {}
        if self.view_name != self.name:
            explore["view_name"] = self.view_name
        if self.label:
            explore["label"] = self.label
        if self.description:
            explore["description"] = self.description
        if self.hidden:
            explore["hidden"] = "yes"
        if self.joins:
            explore["joins"] = [_dump(join) for join in self.joins]
        explore["name"] = self.name
        return explore
