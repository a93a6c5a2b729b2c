"""Exception hierarchy for dbt2lookml.

Configuration and parse errors are fatal at startup. Model generation errors
are governed by the driver's error strategy. Cancellation is reported
separately so callers can tell an interrupted run from a failing one.
"""

from __future__ import annotations

from typing import Any


class Dbt2LookMLError(Exception):
    """Base class for all dbt2lookml errors.

    The generation driver attaches its partial ``GenerationResult`` as
    ``result`` before raising, so callers can report what was written.
    """

    result: Any = None


class ConfigurationError(Dbt2LookMLError):
    """Invalid or incomplete configuration."""


class ParseError(Dbt2LookMLError):
    """Malformed manifest or catalog."""


class MeasureValidationError(Dbt2LookMLError):
    """A measure declares attributes incompatible with its type."""


class OutputDirectoryError(Dbt2LookMLError):
    """The output directory cannot be created or written."""


class LookMLValidationError(Dbt2LookMLError):
    """Generated LookML failed to parse."""


class NoModelsError(Dbt2LookMLError):
    """The generation driver was given no models."""

    def __init__(self) -> None:
        super().__init__("no models provided")


class ModelGenerationError(Dbt2LookMLError):
    """Generation failed for one model."""

    def __init__(self, model: str, error: Exception | str) -> None:
        self.model = model
        self.error = error
        super().__init__(f"model {model}: {error}")


class GenerationCancelledError(Dbt2LookMLError):
    """Generation was cancelled between models."""

    def __init__(self, files_generated: int) -> None:
        self.files_generated = files_generated
        super().__init__(
            f"generation cancelled after {files_generated} file(s) were written"
        )


class TooManyErrorsError(Dbt2LookMLError):
    """The error budget of a fail_at_end run was exhausted."""

    def __init__(self, max_errors: int) -> None:
        self.max_errors = max_errors
        super().__init__(f"too many errors: reached the limit of {max_errors}")


class AggregatedGenerationError(Dbt2LookMLError):
    """One or more models failed in a fail_at_end run."""

    def __init__(self, errors: list[ModelGenerationError]) -> None:
        self.errors = errors
        super().__init__(f"generation failed for {len(errors)} model(s)")
