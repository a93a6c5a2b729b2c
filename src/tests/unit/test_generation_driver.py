"""Unit tests for the generation driver."""

from pathlib import Path
from unittest.mock import patch

import lkml
import pytest

from dbt2lookml.config import GenerationOptions, GeneratorOptions
from dbt2lookml.exceptions import (
    AggregatedGenerationError,
    GenerationCancelledError,
    LookMLValidationError,
    ModelGenerationError,
    NoModelsError,
    OutputDirectoryError,
    TooManyErrorsError,
)
from dbt2lookml.generators.lookml import (
    CancellationToken,
    GenerationContext,
    GenerationResult,
    LookMLGenerator,
)
from dbt2lookml.plugins import ModelGenerationHook, Plugin, PluginRegistry
from dbt2lookml.schemas.dbt import DbtModel, DbtModelColumn
from dbt2lookml.types import ErrorStrategy


def _model(name: str, path: str = "", broken: bool = False) -> DbtModel:
    meta = None
    if broken:
        meta = {"looker": {"measures": [{"type": "sum", "approximate": True}]}}
    return DbtModel(
        name=name,
        unique_id=f"model.shop.{name}",
        schema="analytics",
        path=path,
        meta=meta,
        columns={"id": DbtModelColumn(name="id", data_type="INT64")},
    ).process()


class _CancelAfterModel(Plugin, ModelGenerationHook):
    """Cancels the run once the first model is done."""

    def __init__(self, token: CancellationToken) -> None:
        self.token = token

    def name(self) -> str:
        return "Canceller"

    def enabled(self) -> bool:
        return True

    def after_model_generation(self, ctx: GenerationContext, model: DbtModel) -> None:
        self.token.cancel()


class _Sidecar(Plugin, ModelGenerationHook):
    """Writes one extra file per model."""

    def name(self) -> str:
        return "Sidecar"

    def enabled(self) -> bool:
        return True

    def after_model_generation(self, ctx: GenerationContext, model: DbtModel) -> None:
        ctx.write_file(f"{ctx.base_name}__extra.view.lkml", "view: +extra {}\n")


class TestGenerationResult:
    """Test cases for GenerationResult."""

    def test_summary(self) -> None:
        """Test counters and the error summary."""
        result = GenerationResult(files=[Path("a"), Path("b")], models_processed=3)
        assert result.files_generated == 2
        assert result.success is True

        result.errors.append(ModelGenerationError("orders", "boom"))
        assert result.has_errors is True
        assert result.success is False
        assert result.error_summary() == "  - orders: boom"


class TestLookMLGenerator:
    """Test cases for LookMLGenerator."""

    def test_generate(self, tmp_path: Path) -> None:
        """Test one parseable file per model."""
        generator = LookMLGenerator(GenerationOptions(output_dir=tmp_path))
        result = generator.generate([_model("orders"), _model("customers")])

        assert result.models_processed == 2
        assert result.files == [
            tmp_path / "orders.view.lkml",
            tmp_path / "customers.view.lkml",
        ]
        assert set(result.timings) == {"orders", "customers"}
        parsed = lkml.load((tmp_path / "orders.view.lkml").read_text())
        assert parsed["views"][0]["name"] == "orders"
        assert parsed["explores"][0]["name"] == "orders"

    def test_no_models(self, tmp_path: Path) -> None:
        """Test an empty model list is an error."""
        with pytest.raises(NoModelsError) as exc_info:
            LookMLGenerator(GenerationOptions(output_dir=tmp_path)).generate([])
        assert exc_info.value.result.models_processed == 0

    def test_output_dir_error(self, tmp_path: Path) -> None:
        """Test an output directory that cannot be created."""
        blocker = tmp_path / "file"
        blocker.write_text("")
        generator = LookMLGenerator(GenerationOptions(output_dir=blocker / "out"))
        with pytest.raises(OutputDirectoryError):
            generator.generate([_model("orders")])

    def test_dry_run(self, tmp_path: Path) -> None:
        """Test dry runs report files without writing them."""
        output_dir = tmp_path / "out"
        generator = LookMLGenerator(GenerationOptions(output_dir=output_dir, dry_run=True))
        result = generator.generate([_model("orders")])
        assert result.files == [output_dir / "orders.view.lkml"]
        assert not output_dir.exists()

    def test_output_path(self, tmp_path: Path) -> None:
        """Test source directories are mirrored unless flattened."""
        model = _model("orders", path="dbt_marts/finance/orders.sql")

        nested = LookMLGenerator(GenerationOptions(output_dir=tmp_path))
        assert nested.output_path(model, "orders") == (
            tmp_path / "dbt_marts" / "finance" / "orders.view.lkml"
        )

        stripped = LookMLGenerator(
            GenerationOptions(output_dir=tmp_path, remove_schema_string="dbt_")
        )
        assert stripped.output_path(model, "orders") == (
            tmp_path / "marts" / "finance" / "orders.view.lkml"
        )

        flat = LookMLGenerator(GenerationOptions(output_dir=tmp_path, flatten=True))
        assert flat.output_path(model, "orders") == tmp_path / "orders.view.lkml"

        root = LookMLGenerator(GenerationOptions(output_dir=tmp_path))
        assert root.output_path(_model("orders", path="orders.sql"), "orders") == (
            tmp_path / "orders.view.lkml"
        )

    def test_generator_options_applied(self, tmp_path: Path) -> None:
        """Test view assembler options reach the generated file."""
        generator = LookMLGenerator(
            GenerationOptions(output_dir=tmp_path),
            GeneratorOptions(remove_schema_string="analy"),
        )
        generator.generate([_model("orders")])
        parsed = lkml.load((tmp_path / "orders.view.lkml").read_text())
        assert parsed["views"][0]["sql_table_name"] == "`tics.orders`"

    def test_sidecar_files_counted(self, tmp_path: Path) -> None:
        """Test plugin files are part of the result."""
        generator = LookMLGenerator(
            GenerationOptions(output_dir=tmp_path), registry=PluginRegistry([_Sidecar()])
        )
        result = generator.generate([_model("orders")])
        assert result.files == [
            tmp_path / "orders.view.lkml",
            tmp_path / "orders__extra.view.lkml",
        ]
        assert result.files_generated == 2
        assert (tmp_path / "orders__extra.view.lkml").exists()

    def test_invalid_output(self, tmp_path: Path) -> None:
        """Test a failing syntax check fails the model."""
        generator = LookMLGenerator(GenerationOptions(output_dir=tmp_path))
        with patch.object(generator, "validate_output", return_value=(False, "bad")):
            with pytest.raises(ModelGenerationError) as exc_info:
                generator.generate([_model("orders")])
        assert isinstance(exc_info.value.error, LookMLValidationError)
        assert not (tmp_path / "orders.view.lkml").exists()

    def test_syntax_check_disabled(self, tmp_path: Path) -> None:
        """Test validation is skipped when disabled."""
        generator = LookMLGenerator(
            GenerationOptions(output_dir=tmp_path, validate_syntax=False)
        )
        with patch.object(generator, "validate_output") as validate:
            generator.generate([_model("orders")])
        validate.assert_not_called()


class TestErrorStrategies:
    """Test cases for error strategies."""

    @pytest.fixture
    def models(self) -> list[DbtModel]:
        """Create models where the second and third fail."""
        return [
            _model("a_ok"),
            _model("b_broken", broken=True),
            _model("c_broken", broken=True),
            _model("d_ok"),
        ]

    def _generator(self, tmp_path: Path, strategy: ErrorStrategy, **kwargs: int) -> LookMLGenerator:
        return LookMLGenerator(
            GenerationOptions(output_dir=tmp_path, error_strategy=strategy, **kwargs)
        )

    def test_fail_fast(self, tmp_path: Path, models: list[DbtModel]) -> None:
        """Test the first failure stops the run."""
        generator = self._generator(tmp_path, ErrorStrategy.FAIL_FAST)
        with pytest.raises(ModelGenerationError) as exc_info:
            generator.generate(models)

        error = exc_info.value
        assert error.model == "b_broken"
        assert "approximate" in str(error)
        assert error.result.models_processed == 2
        assert error.result.files == [tmp_path / "a_ok.view.lkml"]

    def test_fail_at_end(self, tmp_path: Path, models: list[DbtModel]) -> None:
        """Test every model is attempted before failing."""
        generator = self._generator(tmp_path, ErrorStrategy.FAIL_AT_END)
        with pytest.raises(AggregatedGenerationError) as exc_info:
            generator.generate(models)

        error = exc_info.value
        assert [e.model for e in error.errors] == ["b_broken", "c_broken"]
        assert error.result.models_processed == 4
        assert error.result.files_generated == 2

    def test_fail_at_end_max_errors(self, tmp_path: Path, models: list[DbtModel]) -> None:
        """Test the error budget stops the run early."""
        generator = self._generator(tmp_path, ErrorStrategy.FAIL_AT_END, max_errors=2)
        with pytest.raises(TooManyErrorsError) as exc_info:
            generator.generate(models)

        assert exc_info.value.max_errors == 2
        assert exc_info.value.result.models_processed == 3
        assert not (tmp_path / "d_ok.view.lkml").exists()

    def test_continue_on_error(self, tmp_path: Path, models: list[DbtModel]) -> None:
        """Test failures are recorded and the run succeeds."""
        generator = self._generator(tmp_path, ErrorStrategy.CONTINUE_ON_ERROR)
        result = generator.generate(models)

        assert result.models_processed == 4
        assert result.files_generated == 2
        assert [e.model for e in result.errors] == ["b_broken", "c_broken"]
        assert result.has_errors is True


class TestCancellation:
    """Test cases for cancellation between models."""

    def test_cancelled_before_start(self, tmp_path: Path) -> None:
        """Test a cancelled token writes nothing."""
        token = CancellationToken()
        token.cancel()
        generator = LookMLGenerator(GenerationOptions(output_dir=tmp_path))

        with pytest.raises(GenerationCancelledError) as exc_info:
            generator.generate([_model("a"), _model("b")], token)

        assert exc_info.value.files_generated == 0
        assert exc_info.value.result.models_processed == 0
        assert list(tmp_path.iterdir()) == []

    def test_cancelled_after_first_model(self, tmp_path: Path) -> None:
        """Test cancellation takes effect at the next model boundary."""
        token = CancellationToken()
        generator = LookMLGenerator(
            GenerationOptions(output_dir=tmp_path),
            registry=PluginRegistry([_CancelAfterModel(token)]),
        )

        with pytest.raises(GenerationCancelledError) as exc_info:
            generator.generate([_model("a"), _model("b"), _model("c")], token)

        assert exc_info.value.files_generated == 1
        assert [p.name for p in tmp_path.iterdir()] == ["a.view.lkml"]

    def test_cancelled_plugin_write(self, tmp_path: Path) -> None:
        """Test a plugin writing after cancellation stops the run."""
        token = CancellationToken()
        generator = LookMLGenerator(
            GenerationOptions(output_dir=tmp_path),
            registry=PluginRegistry([_CancelAfterModel(token), _Sidecar()]),
        )

        with pytest.raises(GenerationCancelledError) as exc_info:
            generator.generate([_model("a"), _model("b")], token)

        assert exc_info.value.files_generated == 1
        assert exc_info.value.result.models_processed == 1
