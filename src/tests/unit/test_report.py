"""Unit tests for the YAML run report."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from dbt2lookml.exceptions import ModelGenerationError, OutputDirectoryError
from dbt2lookml.generators.lookml import GenerationResult
from dbt2lookml.report import RunReport

STARTED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestRunReport:
    """Test cases for RunReport."""

    def test_success(self) -> None:
        """Test a successful run is summarized."""
        result = GenerationResult(
            files=[Path("out/orders.view.lkml")],
            models_processed=1,
            timings={"orders": 0.123456},
        )
        report = RunReport(started_at=STARTED)
        report.finish(result, finished_at=STARTED + timedelta(seconds=2.5))

        assert report.to_dict() == {
            "status": "success",
            "started_at": "2024-01-01T12:00:00+00:00",
            "finished_at": "2024-01-01T12:00:02.500000+00:00",
            "duration_seconds": 2.5,
            "models_processed": 1,
            "files_generated": 1,
            "files": ["out/orders.view.lkml"],
            "model_timings": {"orders": 0.1235},
            "errors": [],
        }

    def test_failure(self) -> None:
        """Test errors and the top-level message are reported."""
        result = GenerationResult(
            errors=[ModelGenerationError("orders", ValueError("bad column"))],
            models_processed=1,
        )
        report = RunReport(started_at=STARTED)
        report.finish(result, status="failed", message="generation failed for 1 model(s)")

        data = report.to_dict()
        assert data["status"] == "failed"
        assert data["errors"] == [{"model": "orders", "error": "bad column"}]
        assert data["message"] == "generation failed for 1 model(s)"

    def test_without_result(self) -> None:
        """Test a run that never reached the driver."""
        report = RunReport(started_at=STARTED)
        report.finish(None, status="failed", message="manifest not found")

        data = report.to_dict()
        assert data["models_processed"] == 0
        assert data["files"] == []

    def test_unfinished(self) -> None:
        """Test an unfinished report is still serializable."""
        data = RunReport().to_dict()
        assert data["status"] == "running"
        assert data["duration_seconds"] >= 0

    def test_write(self, tmp_path: Path) -> None:
        """Test the report is written as YAML in key order."""
        report = RunReport(started_at=STARTED)
        report.finish(GenerationResult(models_processed=2), finished_at=STARTED)
        path = report.write(tmp_path / "reports" / "run.yml")

        content = path.read_text()
        assert content.startswith("status: success\n")
        assert yaml.safe_load(content)["models_processed"] == 2

    def test_write_error(self, tmp_path: Path) -> None:
        """Test unwritable destinations raise OutputDirectoryError."""
        blocker = tmp_path / "file"
        blocker.write_text("")
        report = RunReport()
        with pytest.raises(OutputDirectoryError):
            report.write(blocker / "run.yml")
