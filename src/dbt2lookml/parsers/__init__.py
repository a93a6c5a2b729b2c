"""Parsers for dbt artifacts."""

from dbt2lookml.parsers.catalog import CatalogParser
from dbt2lookml.parsers.dbt import DbtParser
from dbt2lookml.parsers.exposure import ExposureParser
from dbt2lookml.parsers.model import ModelParser
from dbt2lookml.parsers.semantic import SemanticModelParser

__all__ = [
    "CatalogParser",
    "DbtParser",
    "ExposureParser",
    "ModelParser",
    "SemanticModelParser",
]
