"""Abstract base class for all parsers."""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from dbt2lookml.exceptions import ParseError
from dbt2lookml.schemas import DbtModel


class Parser(ABC):
    """Base parser interface for dbt artifact formats."""

    def __init__(self, strict_mode: bool = False) -> None:
        """Initialize the parser.

        Args:
            strict_mode: If True, raise errors on validation issues.
                        If False, log warnings and continue.
        """
        self.strict_mode = strict_mode

    @abstractmethod
    def parse(self, manifest_path: Path, catalog_path: Path) -> list[DbtModel]:
        """Parse dbt artifacts into models ready for generation.

        Args:
            manifest_path: Path to ``manifest.json``.
            catalog_path: Path to ``catalog.json``.

        Returns:
            List of processed models.
        """
        pass

    @abstractmethod
    def validate(self, content: dict[str, Any]) -> bool:
        """Validate format-specific structure.

        Args:
            content: Parsed content to validate.

        Returns:
            True if valid, False otherwise.
        """
        pass

    # Common utility methods
    def read_json(self, path: Path) -> dict[str, Any]:
        """Shared JSON reading logic.

        Args:
            path: Path to JSON file.

        Returns:
            Parsed JSON object.

        Raises:
            ParseError: If the file is unreadable, malformed, or not an object.
        """
        try:
            with open(path, encoding="utf-8") as f:
                content = json.load(f)
        except OSError as e:
            raise ParseError(f"cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ParseError(f"malformed JSON in {path}: {e}") from e

        if not isinstance(content, dict):
            raise ParseError(f"expected a JSON object in {path}")
        return content
