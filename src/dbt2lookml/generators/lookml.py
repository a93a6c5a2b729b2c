"""Generation driver.

Walks the selected models in order, builds each model's views and explore,
lets plugins enrich the explore, writes one consolidated ``.view.lkml`` file
per model and then lets plugins add sidecar files. Failures are handled
according to the configured error strategy; cancellation is checked between
models.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from dbt2lookml.config import GenerationOptions, GeneratorOptions
from dbt2lookml.constants import VIEW_FILE_SUFFIX
from dbt2lookml.exceptions import (
    AggregatedGenerationError,
    Dbt2LookMLError,
    GenerationCancelledError,
    LookMLValidationError,
    ModelGenerationError,
    NoModelsError,
    TooManyErrorsError,
)
from dbt2lookml.generators.serializer import LookMLSerializer
from dbt2lookml.generators.view import ViewGenerator
from dbt2lookml.interfaces.generator import Generator
from dbt2lookml.plugins.base import PluginRegistry
from dbt2lookml.schemas.dbt import DbtModel
from dbt2lookml.types import ErrorStrategy

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared by the CLI and the driver.

    ``cancel`` may be called from a signal handler or another thread; the
    driver only looks at the flag between models and when plugins write.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, files_generated: int = 0) -> None:
        """Raise GenerationCancelledError once ``cancel`` has been called."""
        if self.cancelled:
            raise GenerationCancelledError(files_generated)


@dataclass
class GenerationContext:
    """What plugin hooks get to know about the model being generated.

    Attributes:
        token: Cancellation token of the run.
        output_dir: Directory holding the model's view file.
        base_name: Name of the model's base view.
        dry_run: If set, files are recorded but not written.
        written_files: Every file of the run so far, shared with the result.
    """

    token: CancellationToken
    output_dir: Path
    base_name: str
    dry_run: bool = False
    written_files: list[Path] = field(default_factory=list)

    def write_file(self, filename: str, content: str) -> Path:
        """Write a sidecar file next to the model's view file.

        Raises:
            GenerationCancelledError: If the run has been cancelled.
        """
        self.token.raise_if_cancelled(len(self.written_files))
        path = self.output_dir / filename
        if not self.dry_run:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        self.written_files.append(path)
        return path


@dataclass
class GenerationResult:
    """Outcome of a generation run.

    Attributes:
        files: Files written (or that would be written in a dry run).
        errors: One entry per failed model.
        models_processed: Models the driver attempted.
        timings: Seconds spent per model name.
    """

    files: list[Path] = field(default_factory=list)
    errors: list[ModelGenerationError] = field(default_factory=list)
    models_processed: int = 0
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def files_generated(self) -> int:
        return len(self.files)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def success(self) -> bool:
        return not self.errors

    def error_summary(self) -> str:
        """One line per failed model."""
        return "\n".join(f"  - {error.model}: {error.error}" for error in self.errors)


class LookMLGenerator(Generator):
    """Generates one LookML view file per dbt model."""

    def __init__(
        self,
        options: GenerationOptions | None = None,
        generator_options: GeneratorOptions | None = None,
        registry: PluginRegistry | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            options: Loop and layout options (error strategy, output
                directory, dry run).
            generator_options: Options passed to the view assembler.
            registry: Plugins to notify; an empty registry when omitted.
        """
        self.options = options or GenerationOptions()
        super().__init__(validate_syntax=self.options.validate_syntax)
        self.registry = registry or PluginRegistry()
        self.view_generator = ViewGenerator(generator_options)
        self.serializer = LookMLSerializer()

    def generate(
        self,
        models: list[DbtModel],
        token: CancellationToken | None = None,
    ) -> GenerationResult:
        """Generate view files for every model.

        Args:
            models: Processed models, in output order.
            token: Cancellation token checked before each model.

        Returns:
            The run result.

        Raises:
            NoModelsError: If ``models`` is empty.
            OutputDirectoryError: If the output directory cannot be created.
            GenerationCancelledError: If the token was cancelled.
            ModelGenerationError: First failure under ``fail_fast``.
            TooManyErrorsError: ``max_errors`` reached under ``fail_at_end``.
            AggregatedGenerationError: Any failure under ``fail_at_end``.

            Every raised error carries the partial result as ``result``.
        """
        token = token or CancellationToken()
        result = GenerationResult()
        strategy = self.options.error_strategy

        if not models:
            raise self._with_result(NoModelsError(), result)

        try:
            self.prepare_output_dir(self.options.output_dir, self.options.dry_run)
        except Dbt2LookMLError as e:
            raise self._with_result(e, result)

        for model in models:
            if token.cancelled:
                logger.warning("Generation cancelled before model %s", model.name)
                raise self._with_result(
                    GenerationCancelledError(result.files_generated), result
                )

            result.models_processed += 1
            started = time.perf_counter()
            try:
                self.generate_model(model, token, result)
            except GenerationCancelledError:
                raise self._with_result(
                    GenerationCancelledError(result.files_generated), result
                )
            except Exception as e:
                error = ModelGenerationError(model.name, e)
                result.errors.append(error)

                if strategy == ErrorStrategy.FAIL_FAST:
                    logger.error("%s", error)
                    raise self._with_result(error, result) from e

                if strategy == ErrorStrategy.FAIL_AT_END:
                    logger.error("%s", error)
                    max_errors = self.options.max_errors
                    if max_errors > 0 and len(result.errors) >= max_errors:
                        raise self._with_result(TooManyErrorsError(max_errors), result)
                else:
                    logger.warning("%s (continuing)", error)
            finally:
                result.timings[model.name] = time.perf_counter() - started

        if strategy == ErrorStrategy.FAIL_AT_END and result.errors:
            raise self._with_result(AggregatedGenerationError(result.errors), result)

        logger.info(
            "Generated %d file(s) from %d model(s)",
            result.files_generated,
            result.models_processed,
        )
        return result

    def generate_model(
        self, model: DbtModel, token: CancellationToken, result: GenerationResult
    ) -> Path:
        """Generate, validate and write one model's view file.

        Args:
            model: Model to generate.
            token: Cancellation token handed to plugins.
            result: Run result; written files are appended to it.

        Returns:
            Path of the model's view file.
        """
        semantic_measures = self.registry.semantic_measures(model.name)
        generated = self.view_generator.generate(model, semantic_measures)
        path = self.output_path(model, generated.base_name)

        ctx = GenerationContext(
            token=token,
            output_dir=path.parent,
            base_name=generated.base_name,
            dry_run=self.options.dry_run,
            written_files=result.files,
        )
        self.registry.fire_enrich_explore(ctx, model, generated.explore, generated.base_name)

        content = self.serializer.render_file(generated)
        if self.validate_syntax:
            is_valid, message = self.validate_output(content)
            if not is_valid:
                raise LookMLValidationError(f"{path.name}: {message}")

        self.write_file(path, content, dry_run=self.options.dry_run, verbose=self.options.verbose)
        result.files.append(path)

        self.registry.fire_after_model(ctx, model)
        return path

    def output_path(self, model: DbtModel, base_name: str) -> Path:
        """Destination of a model's view file.

        The model's source directory is mirrored under the output directory
        unless ``flatten`` is set. ``remove_schema_string`` is removed from
        that directory once.
        """
        directory = self.options.output_dir
        if not self.options.flatten and model.path:
            source_dir = Path(model.path).parent.as_posix()
            if self.options.remove_schema_string:
                source_dir = source_dir.replace(self.options.remove_schema_string, "")
            parts = [p for p in source_dir.split("/") if p and p != "."]
            directory = directory.joinpath(*parts)
        return directory / f"{base_name}{VIEW_FILE_SUFFIX}"

    def validate_output(self, content: str) -> tuple[bool, str]:
        """Validate LookML syntax.

        Args:
            content: LookML content to validate.

        Returns:
            Tuple of (is_valid, error_message).
        """
        return self.serializer.validate(content)

    @staticmethod
    def _with_result(error: Dbt2LookMLError, result: GenerationResult) -> Dbt2LookMLError:
        error.result = result
        return error
