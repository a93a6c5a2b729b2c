"""Configuration loading for dbt2lookml.

Settings are merged from, in increasing priority: field defaults, a YAML
config file, ``DBT2LOOKML_*`` environment variables and CLI flags. The
generators receive the narrower ``GeneratorOptions`` and ``GenerationOptions``
views so they can be built without a full configuration in tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from dbt2lookml.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_MAX_NESTED_DEPTH,
    ENV_PREFIX,
    VALID_LOG_LEVELS,
)
from dbt2lookml.exceptions import ConfigurationError
from dbt2lookml.types import ErrorStrategy, LogFormat, Timeframe


def _split_csv(value: Any) -> Any:
    """Split a comma-separated string, as given by an environment variable."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class GeneratorOptions(BaseModel):
    """Options that shape the generated LookML."""

    use_table_name: bool = False
    use_explicit_reference: bool = False
    remove_schema_string: str | None = None
    timeframes: list[Timeframe] | None = None
    max_nested_depth: int = DEFAULT_MAX_NESTED_DEPTH
    primary_key_measures: bool = False


class GenerationOptions(BaseModel):
    """Options that control the generation loop and file layout."""

    output_dir: Path = Path(".")
    flatten: bool = False
    remove_schema_string: str | None = None
    error_strategy: ErrorStrategy = ErrorStrategy.FAIL_FAST
    max_errors: int = 0
    verbose: bool = False
    dry_run: bool = False
    validate_syntax: bool = True


class ConfigFileSource(YamlConfigSettingsSource):
    """YAML config file source that accepts dashed option names."""

    def _read_file(self, file_path: Path) -> dict[str, Any]:
        try:
            content = super()._read_file(file_path)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"cannot read config file {file_path}: {e}") from e

        if not isinstance(content, dict):
            raise ConfigurationError(f"config file {file_path} must contain a mapping")
        return {str(k).replace("-", "_"): v for k, v in content.items()}


class Settings(BaseSettings):
    """Complete run configuration."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        yaml_file=DEFAULT_CONFIG_FILE,
        extra="forbid",
    )

    manifest_path: Path | None = None
    catalog_path: Path | None = None
    target_dir: Path = Path(".")
    output_dir: Path = Path(".")

    # Model selection
    select: str | None = None
    tag: str | None = None
    include_models: Annotated[list[str], NoDecode] = Field(default_factory=list)
    exclude_models: Annotated[list[str], NoDecode] = Field(default_factory=list)
    exposures_only: bool = False
    exposures_tag: str | None = None

    # Output shape
    use_table_name: bool = False
    use_explicit_reference: bool = False
    use_semantic_models: bool = False
    timeframes: Annotated[list[Timeframe] | None, NoDecode] = None
    remove_schema_string: str | None = None
    flatten: bool = False
    max_nested_depth: int = DEFAULT_MAX_NESTED_DEPTH
    primary_key_measures: bool = False

    # Run behaviour
    continue_on_error: bool = False
    error_strategy: ErrorStrategy = ErrorStrategy.FAIL_FAST
    max_errors: int = 0
    strict: bool = False
    dry_run: bool = False
    report: Path | None = None

    # Observability
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.RICH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, ConfigFileSource(settings_cls))

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"invalid log level '{value}', expected one of "
                f"{', '.join(VALID_LOG_LEVELS)}"
            )
        return level

    @field_validator("include_models", "exclude_models", mode="before")
    @classmethod
    def _split_model_lists(cls, value: Any) -> Any:
        return _split_csv(value)

    @field_validator("timeframes", mode="before")
    @classmethod
    def _check_timeframes(cls, value: Any) -> Any:
        value = _split_csv(value)
        if value is None:
            return value
        valid = {t.value for t in Timeframe}
        for timeframe in value:
            if getattr(timeframe, "value", timeframe) not in valid:
                raise ValueError(
                    f"invalid timeframe '{timeframe}', expected one of "
                    f"{', '.join(sorted(valid))}"
                )
        return value

    @field_validator("max_errors", "max_nested_depth")
    @classmethod
    def _check_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be zero or greater")
        return value

    @model_validator(mode="after")
    def _apply_legacy_flags(self) -> Settings:
        if not self.continue_on_error:
            return self
        if (
            "error_strategy" in self.model_fields_set
            and self.error_strategy != ErrorStrategy.CONTINUE_ON_ERROR
        ):
            raise ValueError(
                f"continue_on_error conflicts with error_strategy "
                f"'{self.error_strategy.value}'"
            )
        self.error_strategy = ErrorStrategy.CONTINUE_ON_ERROR
        return self

    def validate_inputs(self) -> None:
        """Check that the manifest and catalog exist.

        Relative paths are resolved against ``target_dir``.

        Raises:
            ConfigurationError: If a path is missing or not a file.
        """
        for label in ("manifest_path", "catalog_path"):
            path = getattr(self, label)
            if path is None:
                raise ConfigurationError(f"{label} is required")
            if not path.is_absolute():
                path = self.target_dir / path
                setattr(self, label, path)
            if not path.exists():
                raise ConfigurationError(f"{label} does not exist: {path}")
            if not path.is_file():
                raise ConfigurationError(f"{label} is not a file: {path}")

    def generator_options(self) -> GeneratorOptions:
        return GeneratorOptions(
            use_table_name=self.use_table_name,
            use_explicit_reference=self.use_explicit_reference,
            remove_schema_string=self.remove_schema_string,
            timeframes=self.timeframes,
            max_nested_depth=self.max_nested_depth,
            primary_key_measures=self.primary_key_measures,
        )

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            output_dir=self.output_dir,
            flatten=self.flatten,
            remove_schema_string=self.remove_schema_string,
            error_strategy=self.error_strategy,
            max_errors=self.max_errors,
            verbose=self.log_level == "DEBUG",
            dry_run=self.dry_run,
        )


def load_settings(
    config_file: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Build settings from file, environment and explicit overrides.

    Args:
        config_file: YAML file to read; defaults to ``dbt2lookml.yml`` in the
            working directory when it exists.
        overrides: Highest-priority values, typically CLI flags. ``None`` and
            empty sequences mean "not given".

    Returns:
        Validated settings.

    Raises:
        ConfigurationError: If any source holds an invalid value.
    """
    settings_cls: type[Settings] = Settings
    if config_file is not None:
        if not config_file.is_file():
            raise ConfigurationError(f"config file does not exist: {config_file}")

        class FileSettings(Settings):
            model_config = SettingsConfigDict(yaml_file=config_file)

        settings_cls = FileSettings

    given = {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in (overrides or {}).items()
        if value is not None and not (isinstance(value, (list, tuple)) and not value)
    }

    try:
        return settings_cls(**given)
    except ValidationError as e:
        unknown = sorted(
            str(error["loc"][0]) for error in e.errors() if error["type"] == "extra_forbidden"
        )
        if unknown:
            raise ConfigurationError(
                f"unknown configuration option(s): {', '.join(unknown)}"
            ) from e
        raise ConfigurationError(str(e)) from e
