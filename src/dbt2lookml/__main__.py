"""Command-line interface for dbt2lookml."""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console

from dbt2lookml import __version__
from dbt2lookml.cli.formatting import (
    create_summary_table,
    create_validation_table,
    format_error,
    format_success,
    format_warning,
)
from dbt2lookml.config import Settings, load_settings
from dbt2lookml.exceptions import (
    ConfigurationError,
    Dbt2LookMLError,
    GenerationCancelledError,
    ParseError,
)
from dbt2lookml.generators.columns import ColumnClassifier
from dbt2lookml.generators.lookml import CancellationToken, GenerationResult, LookMLGenerator
from dbt2lookml.log import setup_logging
from dbt2lookml.parsers.dbt import DbtParser
from dbt2lookml.plugins import MetricsPlugin, PluginRegistry
from dbt2lookml.report import RunReport
from dbt2lookml.types import ErrorStrategy, LogFormat

EXIT_GENERATION_FAILED = 1
EXIT_CONFIGURATION = 2
EXIT_CANCELLED = 130

console = Console()
logger = logging.getLogger("dbt2lookml")


def _split(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated option values."""
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


def _load(config_file: Path | None, overrides: dict[str, Any]) -> Settings:
    settings = load_settings(config_file, overrides)
    settings.validate_inputs()
    return settings


def _parser(settings: Settings) -> DbtParser:
    return DbtParser(
        select=settings.select,
        tag=settings.tag,
        include_models=settings.include_models,
        exclude_models=settings.exclude_models,
        exposures_only=settings.exposures_only,
        exposures_tag=settings.exposures_tag,
        strict_mode=settings.strict,
    )


@click.group()
@click.version_option(version=__version__, prog_name="dbt2lookml")
def cli() -> None:
    """Generate LookML from dbt manifest and catalog artifacts.

    Every dbt model becomes one .view.lkml file holding the base view, one
    view per repeated (ARRAY) column and a hidden explore joining them.

    Quick Start:

      1. Check what would be generated:
         $ dbt2lookml validate -m target/manifest.json -c target/catalog.json

      2. Generate LookML files:
         $ dbt2lookml generate -m target/manifest.json -c target/catalog.json -o lookml/

    Options can also come from dbt2lookml.yml or DBT2LOOKML_* environment
    variables; command-line flags win.
    """
    pass


@cli.command()
@click.option(
    "--manifest-path",
    "-m",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to dbt manifest.json",
)
@click.option(
    "--catalog-path",
    "-c",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to dbt catalog.json",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (defaults to ./dbt2lookml.yml when present)",
)
@click.option(
    "--target-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory relative manifest and catalog paths are resolved against",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to write LookML files to",
)
@click.option("--select", "-s", default=None, help="Generate only this model")
@click.option("--tag", "-t", default=None, help="Generate only models with this tag")
@click.option(
    "--include-models",
    multiple=True,
    help="Generate only these models (repeatable or comma-separated)",
)
@click.option(
    "--exclude-models",
    multiple=True,
    help="Skip these models (repeatable or comma-separated)",
)
@click.option(
    "--exposures-only",
    is_flag=True,
    help="Generate only models referenced by exposures",
)
@click.option(
    "--exposures-tag",
    default=None,
    help="With --exposures-only, only consider exposures with this tag",
)
@click.option(
    "--use-table-name",
    is_flag=True,
    help="Name views after the warehouse table instead of the dbt model",
)
@click.option(
    "--use-explicit-reference",
    is_flag=True,
    help="Reference nested fields as <view>.<field> instead of ${TABLE}.<field>",
)
@click.option(
    "--use-semantic-models",
    is_flag=True,
    help="Add semantic layer measures and metrics",
)
@click.option(
    "--timeframes",
    default=None,
    help="Comma-separated timeframes for every dimension group",
)
@click.option(
    "--remove-schema-string",
    default=None,
    help="Text removed from schema and directory names",
)
@click.option(
    "--flatten",
    is_flag=True,
    help="Write all files directly into the output directory",
)
@click.option(
    "--max-nested-depth",
    type=int,
    default=None,
    help="Deepest ARRAY column that gets its own nested view (default 2)",
)
@click.option(
    "--primary-key-measures",
    is_flag=True,
    help="Add a count_distinct measure for every primary key column",
)
@click.option(
    "--error-strategy",
    type=click.Choice([s.value for s in ErrorStrategy]),
    default=None,
    help="How to handle a model that fails to generate",
)
@click.option(
    "--continue-on-error",
    is_flag=True,
    help="Same as --error-strategy continue_on_error",
)
@click.option(
    "--max-errors",
    type=int,
    default=None,
    help="Stop a fail_at_end run after this many errors (0 = no limit)",
)
@click.option("--strict", is_flag=True, help="Fail on invalid model nodes")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be generated without writing files",
)
@click.option(
    "--report",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write a YAML run report to this file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARN", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level",
)
@click.option(
    "--log-format",
    type=click.Choice([f.value for f in LogFormat]),
    default=None,
    help="Log output format",
)
def generate(
    manifest_path: Path | None,
    catalog_path: Path | None,
    config_file: Path | None,
    target_dir: Path | None,
    output_dir: Path | None,
    select: str | None,
    tag: str | None,
    include_models: tuple[str, ...],
    exclude_models: tuple[str, ...],
    exposures_only: bool,
    exposures_tag: str | None,
    use_table_name: bool,
    use_explicit_reference: bool,
    use_semantic_models: bool,
    timeframes: str | None,
    remove_schema_string: str | None,
    flatten: bool,
    max_nested_depth: int | None,
    primary_key_measures: bool,
    error_strategy: str | None,
    continue_on_error: bool,
    max_errors: int | None,
    strict: bool,
    dry_run: bool,
    report: Path | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Generate LookML view files from dbt artifacts.

    Exit codes: 0 on success (including continue_on_error runs with
    failures), 1 when generation fails, 2 for configuration or parse
    errors, 130 when interrupted.

    Examples:

      Mirror the dbt project layout under lookml/:
      $ dbt2lookml generate -m target/manifest.json -c target/catalog.json -o lookml/

      One model, with semantic layer metrics:
      $ dbt2lookml generate -m manifest.json -c catalog.json -s orders --use-semantic-models

      Keep going past failing models and report them at the end:
      $ dbt2lookml generate -m manifest.json -c catalog.json --error-strategy fail_at_end
    """
    run_report = RunReport()
    # Unset flags stay out of the overrides so config file and environment apply
    overrides: dict[str, Any] = {
        "manifest_path": manifest_path,
        "catalog_path": catalog_path,
        "target_dir": target_dir,
        "output_dir": output_dir,
        "select": select,
        "tag": tag,
        "include_models": _split(include_models),
        "exclude_models": _split(exclude_models),
        "exposures_only": exposures_only or None,
        "exposures_tag": exposures_tag,
        "use_table_name": use_table_name or None,
        "use_explicit_reference": use_explicit_reference or None,
        "use_semantic_models": use_semantic_models or None,
        "timeframes": _split((timeframes,)) if timeframes else None,
        "remove_schema_string": remove_schema_string,
        "flatten": flatten or None,
        "max_nested_depth": max_nested_depth,
        "primary_key_measures": primary_key_measures or None,
        "error_strategy": error_strategy,
        "continue_on_error": continue_on_error or None,
        "max_errors": max_errors,
        "strict": strict or None,
        "dry_run": dry_run or None,
        "report": report,
        "log_level": log_level.upper() if log_level else None,
        "log_format": log_format,
    }

    try:
        settings = _load(config_file, overrides)
    except ConfigurationError as e:
        console.print(format_error("Invalid configuration", context=str(e)))
        sys.exit(EXIT_CONFIGURATION)

    setup_logging(settings.log_level, settings.log_format)

    parser = _parser(settings)
    try:
        models = parser.parse(settings.manifest_path, settings.catalog_path)
    except ParseError as e:
        console.print(format_error("Could not parse dbt artifacts", context=str(e)))
        _write_report(settings, run_report, None, "failed", str(e))
        sys.exit(EXIT_CONFIGURATION)

    registry = PluginRegistry([MetricsPlugin(settings.use_semantic_models)])
    registry.fire_manifest_loaded(parser.manifest)

    generator = LookMLGenerator(
        settings.generation_options(),
        settings.generator_options(),
        registry,
    )

    if settings.dry_run:
        console.print(
            f"[bold yellow]Previewing LookML generation for {settings.output_dir}"
            "[/bold yellow]"
        )
    else:
        console.print(
            f"[bold blue]Generating LookML files to {settings.output_dir}[/bold blue]"
        )

    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        result = generator.generate(models, token)
    except GenerationCancelledError as e:
        console.print(
            format_warning("Generation cancelled", context=f"{e.files_generated} file(s) written")
        )
        _write_report(settings, run_report, e.result, "cancelled", str(e))
        sys.exit(EXIT_CANCELLED)
    except Dbt2LookMLError as e:
        partial: GenerationResult | None = e.result
        context = str(e)
        if partial is not None and partial.has_errors:
            context = f"{e}\n{partial.error_summary()}"
        console.print(format_error("Generation failed", context=context))
        if partial is not None:
            console.print(create_summary_table(partial))
        _write_report(settings, run_report, partial, "failed", str(e))
        sys.exit(EXIT_GENERATION_FAILED)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    verb = "Would generate" if settings.dry_run else "Generated"
    details = f"{verb} {result.files_generated} file(s) in {settings.output_dir}"
    if result.has_errors:
        console.print(
            format_warning(
                f"Generation completed with {len(result.errors)} failed model(s)",
                context=f"{details}\n{result.error_summary()}",
            )
        )
    else:
        console.print(format_success("LookML generation completed", details=details))
    console.print(create_summary_table(result))

    _write_report(settings, run_report, result, "success")


def _write_report(
    settings: Settings,
    run_report: RunReport,
    result: GenerationResult | None,
    status: str,
    message: str | None = None,
) -> None:
    if settings.report is None:
        return
    run_report.finish(result, status=status, message=message)
    try:
        path = run_report.write(settings.report)
    except Dbt2LookMLError as e:
        logger.warning("%s", e)
        return
    logger.info("Wrote run report to %s", path)


@cli.command()
@click.option(
    "--manifest-path",
    "-m",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to dbt manifest.json",
)
@click.option(
    "--catalog-path",
    "-c",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to dbt catalog.json",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (defaults to ./dbt2lookml.yml when present)",
)
@click.option("--select", "-s", default=None, help="Validate only this model")
@click.option("--tag", "-t", default=None, help="Validate only models with this tag")
@click.option("--strict", is_flag=True, help="Fail on invalid model nodes")
@click.option("--verbose", "-v", is_flag=True, help="List every model")
def validate(
    manifest_path: Path | None,
    catalog_path: Path | None,
    config_file: Path | None,
    select: str | None,
    tag: str | None,
    strict: bool,
    verbose: bool,
) -> None:
    """Parse dbt artifacts and report what would be generated.

    Nothing is written. Exits with 2 when the configuration or the
    artifacts are invalid.

    Examples:

      $ dbt2lookml validate -m target/manifest.json -c target/catalog.json -v
    """
    overrides: dict[str, Any] = {
        "manifest_path": manifest_path,
        "catalog_path": catalog_path,
        "select": select,
        "tag": tag,
        "strict": strict or None,
    }
    try:
        settings = _load(config_file, overrides)
    except ConfigurationError as e:
        console.print(format_error("Invalid configuration", context=str(e)))
        sys.exit(EXIT_CONFIGURATION)

    setup_logging(settings.log_level, settings.log_format)

    parser = _parser(settings)
    try:
        models = parser.parse(settings.manifest_path, settings.catalog_path)
    except ParseError as e:
        console.print(format_error("Could not parse dbt artifacts", context=str(e)))
        sys.exit(EXIT_CONFIGURATION)

    classifier = ColumnClassifier(settings.max_nested_depth)
    rows = []
    for model in models:
        collection = classifier.classify(model)
        measures = parser.semantic.measures_for(model.name) if parser.semantic else []
        rows.append(
            (model.name, len(model.columns), len(collection.array_paths), len(measures))
        )

    if verbose:
        console.print(create_validation_table(rows))

    total_columns = sum(row[1] for row in rows)
    total_arrays = sum(row[2] for row in rows)
    total_measures = sum(row[3] for row in rows)
    console.print(
        format_success(
            f"Found {len(models)} model(s)",
            details=(
                f"{total_columns} column(s), {total_arrays} nested view(s), "
                f"{total_measures} semantic measure(s)"
            ),
        )
    )


if __name__ == "__main__":
    cli()
