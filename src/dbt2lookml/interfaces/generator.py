"""Abstract base class for all generators."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from dbt2lookml.exceptions import OutputDirectoryError

logger = logging.getLogger(__name__)


class Generator(ABC):
    """Base generator interface for all output formats."""

    def __init__(self, validate_syntax: bool = True, **config: Any) -> None:
        """Initialize the generator with common configuration.

        Args:
            validate_syntax: Whether to validate generated output syntax.
            **config: Additional format-specific configuration.
        """
        self.validate_syntax = validate_syntax
        self.config = config

    @abstractmethod
    def generate(self, models: list[Any]) -> Any:
        """Generate output files from models.

        Args:
            models: Models to generate from.

        Returns:
            A summary of the generated output.
        """
        pass

    @abstractmethod
    def validate_output(self, content: str) -> tuple[bool, str]:
        """Validate generated output syntax.

        Args:
            content: Generated content to validate.

        Returns:
            Tuple of (is_valid, error_message).
            error_message is empty string if valid.
        """
        pass

    def prepare_output_dir(self, output_dir: Path, dry_run: bool = False) -> None:
        """Create the output directory unless running dry.

        Raises:
            OutputDirectoryError: If the directory cannot be created.
        """
        if dry_run:
            return
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(
                f"cannot create output directory {output_dir}: {e}"
            ) from e

    def write_file(
        self,
        file_path: Path,
        content: str,
        dry_run: bool = False,
        verbose: bool = False,
    ) -> Path:
        """Write one generated file, creating parent directories.

        Args:
            file_path: Destination path.
            content: File content.
            dry_run: If True, don't actually write the file.
            verbose: If True, log a preview of the content.

        Returns:
            The path written (or that would have been written).
        """
        if dry_run:
            logger.info("Would create %s", file_path)
            if verbose:
                for line in content.strip().split("\n")[:3]:
                    logger.debug("  %s", line)
            return file_path

        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.debug("Created %s", file_path)
        return file_path
