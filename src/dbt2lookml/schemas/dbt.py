"""Schemas for dbt manifest and catalog artifacts.

These models describe the subset of ``manifest.json`` and ``catalog.json``
the generators need: models with their columns and Looker metadata,
exposures, and the catalog's physical column types.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dbt2lookml.constants import SUPPORTED_ADAPTERS
from dbt2lookml.exceptions import MeasureValidationError, ParseError
from dbt2lookml.schemas.semantic_layer import Metric, SemanticModel
from dbt2lookml.types import (
    JoinType,
    MeasureType,
    RelationshipType,
    is_array_of_struct,
    is_array_type,
)

__all__ = [
    "DbtMetaLookerBase",
    "DbtMetaLookerDimension",
    "DbtMetaLookerMeasureFilter",
    "DbtMetaLookerMeasure",
    "DbtMetaLookerJoin",
    "DbtMetaLooker",
    "DbtMeta",
    "DbtModelColumn",
    "DbtModel",
    "DbtExposureRef",
    "DbtExposure",
    "DbtCatalogColumn",
    "DbtCatalogNodeMetadata",
    "DbtCatalogNode",
    "DbtCatalog",
    "DbtManifestMetadata",
    "DbtManifest",
]


# ============================================================================
# Looker metadata (``meta.looker`` blocks on models and columns)
# ============================================================================


class DbtMetaLookerBase(BaseModel):
    """Label, description and visibility overrides."""

    label: str | None = None
    description: str | None = None
    hidden: bool | None = None


class DbtMetaLookerDimension(DbtMetaLookerBase):
    """Overrides applied to a generated dimension or dimension group."""

    convert_tz: bool | None = None
    group_label: str | None = None
    value_format_name: str | None = None
    timeframes: list[str] | None = None
    can_filter: bool | str | None = None


class DbtMetaLookerMeasureFilter(BaseModel):
    """A filtered-measure condition."""

    filter_dimension: str
    filter_expression: str


class DbtMetaLookerMeasure(DbtMetaLookerBase):
    """An explicit measure declared in model or column metadata."""

    type: str
    name: str | None = None
    sql: str | None = None
    group_label: str | None = None
    value_format_name: str | None = None
    filters: list[DbtMetaLookerMeasureFilter] = Field(default_factory=list)
    approximate: bool | None = None
    approximate_threshold: int | None = None
    precision: int | None = None
    sql_distinct_key: str | None = None
    percentile: int | None = None

    def validate_attributes(self) -> None:
        """Check that type-specific attributes match the measure type.

        Raises:
            MeasureValidationError: If an attribute is not legal for the type.
        """
        valid_types = {t.value for t in MeasureType}
        if self.type not in valid_types:
            raise MeasureValidationError(f"unknown measure type '{self.type}'")

        distinct_only = {
            "approximate": self.approximate,
            "approximate_threshold": self.approximate_threshold,
            "sql_distinct_key": self.sql_distinct_key,
        }
        for attribute, value in distinct_only.items():
            if value is not None and self.type != MeasureType.COUNT_DISTINCT.value:
                raise MeasureValidationError(
                    f"{attribute} can only be used with count_distinct measures, "
                    f"not '{self.type}'"
                )

        if self.percentile is not None and not (
            self.type.startswith("percentile") and len(self.type) >= 10
        ):
            raise MeasureValidationError(
                f"percentile can only be used with percentile measures, "
                f"not '{self.type}'"
            )

        if self.precision is not None and self.type not in (
            MeasureType.SUM.value,
            MeasureType.AVERAGE.value,
        ):
            raise MeasureValidationError(
                f"precision can only be used with sum or average measures, "
                f"not '{self.type}'"
            )


class DbtMetaLookerJoin(BaseModel):
    """A join hint declared on a model."""

    join_model: str | None = None
    sql_on: str | None = None
    type: JoinType | None = None
    relationship: RelationshipType | None = None


class DbtMetaLooker(BaseModel):
    """The ``looker`` block inside dbt ``meta``."""

    view: DbtMetaLookerBase | None = None
    dimension: DbtMetaLookerDimension | None = None
    measures: list[DbtMetaLookerMeasure] = Field(default_factory=list)
    joins: list[DbtMetaLookerJoin] = Field(default_factory=list)


class DbtMeta(BaseModel):
    """dbt ``meta`` dictionary; only the ``looker`` key is interpreted."""

    looker: DbtMetaLooker | None = None


# ============================================================================
# Models and columns
# ============================================================================


class DbtModelColumn(BaseModel):
    """A column of a dbt model, keyed by its lowercase dotted path."""

    name: str
    description: str | None = None
    original_name: str | None = None
    data_type: str | None = None
    inner_types: list[str] = Field(default_factory=list)
    meta: DbtMeta | None = None
    constraints: list[dict[str, Any]] = Field(default_factory=list)
    nested: bool = False
    is_primary_key: bool = False

    def process(self) -> DbtModelColumn:
        """Normalize the path and detect nesting and primary keys.

        Returns:
            The column itself, for chaining.
        """
        if self.original_name is None:
            self.original_name = self.name
        self.name = self.name.lower()
        self.nested = "." in self.name
        if any(c.get("type") == "primary_key" for c in self.constraints):
            self.is_primary_key = True
        return self

    @property
    def ref(self) -> str:
        """SQL reference preserving the producer's casing."""
        return self.original_name or self.name

    @property
    def is_array(self) -> bool:
        return is_array_type(self.data_type)

    @property
    def is_array_of_struct(self) -> bool:
        return is_array_of_struct(self.data_type)

    @property
    def looker_dimension(self) -> DbtMetaLookerDimension | None:
        if self.meta and self.meta.looker:
            return self.meta.looker.dimension
        return None

    @property
    def looker_measures(self) -> list[DbtMetaLookerMeasure]:
        if self.meta and self.meta.looker:
            return self.meta.looker.measures
        return []


class DbtModel(BaseModel):
    """A dbt model node."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    unique_id: str
    resource_type: str = "model"
    relation_name: str | None = None
    schema_: str = Field("", alias="schema")
    description: str = ""
    columns: dict[str, DbtModelColumn] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    meta: DbtMeta | None = None
    constraints: list[dict[str, Any]] = Field(default_factory=list)
    path: str = ""

    def process(self) -> DbtModel:
        """Lowercase column keys and process every column.

        Returns:
            The model itself, for chaining.
        """
        primary_keys = {
            column.lower()
            for constraint in self.constraints
            if constraint.get("type") == "primary_key"
            for column in constraint.get("columns", [])
        }
        normalized: dict[str, DbtModelColumn] = {}
        for column in self.columns.values():
            column.process()
            if column.name in primary_keys:
                column.is_primary_key = True
            normalized[column.name] = column
        self.columns = normalized
        return self

    @property
    def looker(self) -> DbtMetaLooker | None:
        return self.meta.looker if self.meta else None


# ============================================================================
# Exposures
# ============================================================================


class DbtExposureRef(BaseModel):
    """A ``ref()`` made by an exposure."""

    name: str
    package: str | None = None
    version: str | int | None = None


class DbtExposure(BaseModel):
    """A dbt exposure (dashboard, notebook, application)."""

    name: str
    unique_id: str = ""
    description: str | None = None
    url: str | None = None
    refs: list[DbtExposureRef | list[str] | dict[str, Any]] = Field(
        default_factory=list
    )
    tags: list[str] = Field(default_factory=list)
    depends_on: dict[str, list[str]] = Field(default_factory=dict)

    def ref_names(self) -> list[str]:
        """Names of referenced models, across manifest format versions."""
        names = []
        for ref in self.refs:
            if isinstance(ref, DbtExposureRef):
                names.append(ref.name)
            elif isinstance(ref, list) and ref:
                # Older manifests store refs as [package?, name]
                names.append(ref[-1])
            elif isinstance(ref, dict) and "name" in ref:
                names.append(ref["name"])
        return names


# ============================================================================
# Catalog
# ============================================================================


class DbtCatalogColumn(BaseModel):
    """Physical column information from ``catalog.json``."""

    type: str
    data_type: str | None = None
    inner_types: list[str] = Field(default_factory=list)
    comment: str | None = None
    index: int = 0
    name: str
    original_name: str | None = None

    def process_type(self) -> DbtCatalogColumn:
        """Derive ``data_type`` and ``inner_types`` from the raw type string."""
        raw = self.type.strip()
        self.data_type = raw.upper()
        upper = raw.upper()
        if upper.startswith("ARRAY<") and upper.endswith(">"):
            self.inner_types = [raw[len("ARRAY<") : -1]]
        return self


class DbtCatalogNodeMetadata(BaseModel):
    """Relation-level catalog metadata."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = ""
    schema_: str = Field("", alias="schema")
    name: str = ""
    comment: str | None = None
    owner: str | None = None


class DbtCatalogNode(BaseModel):
    """Catalog entry for one relation."""

    metadata: DbtCatalogNodeMetadata = Field(default_factory=DbtCatalogNodeMetadata)
    columns: dict[str, DbtCatalogColumn] = Field(default_factory=dict)

    def normalize_column_names(self) -> DbtCatalogNode:
        """Key columns by lowercase path, keeping the producer casing."""
        normalized: dict[str, DbtCatalogColumn] = {}
        for key, column in self.columns.items():
            column.original_name = column.name or key
            column.name = column.original_name.lower()
            column.process_type()
            normalized[column.name] = column
        self.columns = normalized
        return self


class DbtCatalog(BaseModel):
    """Parsed ``catalog.json``."""

    nodes: dict[str, DbtCatalogNode] = Field(default_factory=dict)


# ============================================================================
# Manifest
# ============================================================================


class DbtManifestMetadata(BaseModel):
    """Manifest header."""

    adapter_type: str = ""
    dbt_version: str | None = None

    def validate_adapter(self) -> None:
        """Raise ParseError unless the manifest targets a supported warehouse."""
        if self.adapter_type not in SUPPORTED_ADAPTERS:
            raise ParseError(
                f"adapter type '{self.adapter_type}' is not supported. "
                f"Supported adapters are: {', '.join(SUPPORTED_ADAPTERS)}"
            )


class DbtManifest(BaseModel):
    """Parsed ``manifest.json``.

    ``nodes`` stays raw because it mixes models, tests, seeds and snapshots;
    the model parser picks out and validates model nodes.
    """

    metadata: DbtManifestMetadata = Field(default_factory=DbtManifestMetadata)
    nodes: dict[str, dict[str, Any]] = Field(default_factory=dict)
    exposures: dict[str, DbtExposure] = Field(default_factory=dict)
    semantic_models: dict[str, SemanticModel] = Field(default_factory=dict)
    metrics: dict[str, Metric] = Field(default_factory=dict)
