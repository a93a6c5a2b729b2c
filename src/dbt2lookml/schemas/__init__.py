"""Schema definitions for dbt artifacts and LookML structures.

- schemas.dbt: manifest and catalog schemas (DbtModel, DbtModelColumn, ...)
- schemas.semantic_layer: dbt semantic layer schemas (SemanticModel, Metric, ...)
- schemas.lookml: LookML output schemas (LookML*)
"""

from __future__ import annotations

from dbt2lookml.schemas.dbt import (
    DbtCatalog,
    DbtCatalogColumn,
    DbtCatalogNode,
    DbtExposure,
    DbtManifest,
    DbtMeta,
    DbtMetaLooker,
    DbtMetaLookerDimension,
    DbtMetaLookerJoin,
    DbtMetaLookerMeasure,
    DbtModel,
    DbtModelColumn,
)
from dbt2lookml.schemas.lookml import (
    LookMLDimension,
    LookMLDimensionGroup,
    LookMLExplore,
    LookMLJoin,
    LookMLMeasure,
    LookMLView,
)
from dbt2lookml.schemas.semantic_layer import Metric, SemanticMeasure, SemanticModel

__all__ = [
    "DbtCatalog",
    "DbtCatalogColumn",
    "DbtCatalogNode",
    "DbtExposure",
    "DbtManifest",
    "DbtMeta",
    "DbtMetaLooker",
    "DbtMetaLookerDimension",
    "DbtMetaLookerJoin",
    "DbtMetaLookerMeasure",
    "DbtModel",
    "DbtModelColumn",
    "LookMLDimension",
    "LookMLDimensionGroup",
    "LookMLExplore",
    "LookMLJoin",
    "LookMLMeasure",
    "LookMLView",
    "Metric",
    "SemanticMeasure",
    "SemanticModel",
]
