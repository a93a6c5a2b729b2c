"""Abstract interfaces for parsers and generators."""

from dbt2lookml.interfaces.generator import Generator
from dbt2lookml.interfaces.parser import Parser

__all__ = ["Generator", "Parser"]
